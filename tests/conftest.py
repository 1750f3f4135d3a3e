"""
Shared fixtures for Nabook backend tests.

Session data goes to a throwaway SQLite file (aiosqlite) unless
TEST_DATABASE_URL points somewhere else. The hosted services (embeddings,
chat, OCR) and the vector index are replaced with the in-process doubles from
tests/fakes.py, so no test needs network access.
"""
from __future__ import annotations

import os
import tempfile
from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Configure settings *before* any app module is imported, so that
# settings.DATABASE_URL and the global engine point at the test DB.
_DB_FILE = os.path.join(tempfile.mkdtemp(prefix="nabook-tests-"), "nabook_test.db")
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{_DB_FILE}")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("AZURE_OPENAI_ENDPOINT", "https://nabook-test.openai.azure.com")
os.environ.setdefault("AZURE_OPENAI_API_KEY", "test-azure-key")
os.environ.setdefault("MISTRAL_API_KEY", "test-mistral-key")
os.environ["SEARCH_RETRY_BASE_DELAY"] = "0"

from app.database import Base, get_db  # noqa: E402
from app.dependencies.services import (  # noqa: E402
    get_chat_service,
    get_embedding_service,
    get_ocr_service,
    get_vector_index,
)
from app.main import app  # noqa: E402
from app.services.ocr import MistralOCRService  # noqa: E402
from tests.fakes import (  # noqa: E402
    FakeChat,
    FakeEmbedder,
    FakeOCRBackend,
    InMemoryVectorIndex,
)


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a DB session for each test. Tables are created before and dropped
    after the test so each test starts with a clean slate.
    """
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def vector_index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex()


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()


@pytest.fixture
def ocr_backend() -> FakeOCRBackend:
    return FakeOCRBackend()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    embedder: FakeEmbedder,
    vector_index: InMemoryVectorIndex,
    chat: FakeChat,
    ocr_backend: FakeOCRBackend,
) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB dependency
    overridden to use the per-test session and every hosted service swapped
    for its test double. OCR goes through the real MistralOCRService over an
    httpx.MockTransport.
    """

    async def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_embedding_service] = lambda: embedder
    app.dependency_overrides[get_vector_index] = lambda: vector_index
    app.dependency_overrides[get_chat_service] = lambda: chat
    app.dependency_overrides[get_ocr_service] = lambda: MistralOCRService(
        transport=httpx.MockTransport(ocr_backend.handle)
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

AUTH_HEADERS = {"X-User-Id": "test-user-1"}

AUTH_HEADERS_USER2 = {"X-User-Id": "test-user-2"}
