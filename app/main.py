"""
Main FastAPI application for the Nabook backend.
Handles CORS, request logging middleware, lifespan events, error rendering
and router registration.
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.database import close_db, engine, init_db
from app.exceptions import NabookError
from app.routers import documents, exams, health, sessions
from app.services.vector_index import VectorIndexStore

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Startup / shutdown helpers
# ---------------------------------------------------------------------------

async def _check_database() -> bool:
    """Initialise session tables and verify the connection.  Returns True on success."""
    try:
        await init_db()
        logger.info("✓ Database connection OK")
        return True
    except Exception as exc:
        logger.error("✗ Database connection failed: %s", exc)
        raise


async def _check_vector_index() -> bool:
    """
    Make sure the vector index exists.  Never raises: every ingestion and
    exam request calls ensure_index again.
    """
    try:
        created = await VectorIndexStore(engine).ensure_index()
        logger.info(
            "✓ Vector index '%s' %s",
            settings.SEARCH_INDEX_NAME,
            "created" if created else "ready",
        )
        return True
    except Exception as exc:
        logger.error(
            "✗ Vector index '%s' unavailable (%s); ingestion and exams will fail",
            settings.SEARCH_INDEX_NAME,
            exc,
        )
        return False


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown event handler."""
    logger.info("=" * 60)
    logger.info("  Starting Nabook backend …")
    logger.info("=" * 60)

    # 1: Database (required; raises on failure)
    await _check_database()

    # 2: Vector index (optional; logs errors but continues)
    await _check_vector_index()

    logger.info("=" * 60)
    logger.info("  Nabook backend ready on http://%s:%d", settings.HOST, settings.PORT)
    logger.info("  Swagger UI : http://%s:%d/docs", settings.HOST, settings.PORT)
    logger.info("  Health     : http://%s:%d/api/health", settings.HOST, settings.PORT)
    logger.info("=" * 60)

    yield  # ← server is running

    logger.info("Shutting down Nabook backend …")
    await close_db()
    logger.info("✓ Shutdown complete.")


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Nabook API",
    description=(
        "**Nabook** — study notes that quiz you back.\n\n"
        "Index Markdown notes and scanned pages, generate multiple-choice "
        "exams grounded in them, and track the weak points each exam reveals.\n\n"
        "Key endpoints:\n"
        "- `POST /api/generate-exam` — ingest a note (optional) and build an exam\n"
        "- `POST /api/process-document` — OCR an image or PDF into the index\n"
        "- `POST /api/documents/ingest` — index a note's text\n"
        "- `POST /api/sessions` — create a study session\n"
        "- `POST /api/sessions/{id}/exam-results` — record weak points\n"
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request / response logging middleware
# ---------------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every request with method, path, status code, and elapsed time.
    Attaches an ``X-Process-Time`` header (milliseconds) to every response.
    """
    t0 = time.monotonic()
    response = await call_next(request)
    elapsed_ms = round((time.monotonic() - t0) * 1000, 2)

    # Skip noisy health-check polling from the frontend
    if not request.url.path.startswith("/api/health") and request.url.path != "/":
        logger.info(
            "%s %s → %d  (%.2f ms)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )

    response.headers["X-Process-Time"] = f"{elapsed_ms}ms"
    return response


# ---------------------------------------------------------------------------
# Exception handlers: every error body is {"error": "<message>"}
# ---------------------------------------------------------------------------

@app.exception_handler(NabookError)
async def nabook_error_handler(request: Request, exc: NabookError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are client errors: 400 with the first problem spelled out."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request."
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured JSON error for any unhandled exception."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc) or "Internal server error"},
    )


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(health.router,    prefix="/api/health",   tags=["Health"])
app.include_router(exams.router,     prefix="/api",          tags=["Exams"])
app.include_router(documents.router, prefix="/api",          tags=["Documents"])
app.include_router(sessions.router,  prefix="/api/sessions", tags=["Sessions"])


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------

@app.get("/", tags=["Root"], include_in_schema=False)
async def root():
    """API root — returns basic service info."""
    return {
        "name": "Nabook API",
        "version": "0.1.0",
        "description": "Study Notes and Exam Generation Backend",
        "docs": "/docs",
        "health": "/api/health",
        "endpoints": {
            "generate_exam": "/api/generate-exam",
            "process_document": "/api/process-document",
            "ingest": "/api/documents/ingest",
            "sessions": "/api/sessions",
        },
    }


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level="info",
    )
