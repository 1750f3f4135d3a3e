"""Tests for settings loading."""
import pytest
from pydantic import ValidationError

from app.config import Settings


@pytest.mark.parametrize(
    "name",
    ["DATABASE_URL", "AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY", "MISTRAL_API_KEY"],
)
def test_missing_credential_fails_fast(monkeypatch, name):
    monkeypatch.delenv(name, raising=False)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_blank_credential_is_rejected(monkeypatch):
    monkeypatch.setenv("MISTRAL_API_KEY", "")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_defaults(monkeypatch):
    monkeypatch.delenv("SEARCH_RETRY_BASE_DELAY", raising=False)
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://a.test, http://b.test")

    s = Settings(_env_file=None)

    assert s.SEARCH_INDEX_NAME == "nabook-index"
    assert s.VECTOR_DIMENSION == 1536
    assert s.RETRIEVAL_TOP_K == 3
    assert s.EXAM_QUESTION_COUNT == 3
    assert s.SEARCH_RETRY_BASE_DELAY == 0.5
    assert s.get_allowed_origins() == ["http://a.test", "http://b.test"]
