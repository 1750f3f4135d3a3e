"""
Configuration settings for the Nabook backend.
Loads environment variables and provides application-wide settings.

Credentials for the document store, the chat/embedding provider and the OCR
provider have no defaults: a missing value makes ``Settings()`` raise at
import time so the process never starts half-configured.
"""
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration (sessions + vector index live here)
    DATABASE_URL: str = Field(..., min_length=1)

    # Azure OpenAI Configuration (chat + embeddings)
    AZURE_OPENAI_ENDPOINT: str = Field(..., min_length=1)
    AZURE_OPENAI_API_KEY: str = Field(..., min_length=1)
    AZURE_OPENAI_API_VERSION: str = "2024-02-15-preview"
    AZURE_OPENAI_EMBEDDING_DEPLOYMENT: str = "text-embedding-3-small"
    AZURE_OPENAI_CHAT_DEPLOYMENT: str = "gpt-4o"

    # Mistral OCR Configuration
    MISTRAL_API_KEY: str = Field(..., min_length=1)
    MISTRAL_OCR_URL: str = "https://api.mistral.ai/v1/ocr"
    MISTRAL_OCR_MODEL: str = "mistral-ocr-latest"

    # Timeout for every hosted call (seconds)
    UPSTREAM_TIMEOUT: float = 120.0

    # Vector Index Configuration
    SEARCH_INDEX_NAME: str = "nabook-index"
    VECTOR_DIMENSION: int = 1536  # text-embedding-3-small / ada-002 output size
    HNSW_M: int = 4
    HNSW_EF_CONSTRUCTION: int = 400
    HNSW_EF_SEARCH: int = 500

    # Exam Generation Configuration
    RETRIEVAL_TOP_K: int = 3
    EXAM_QUESTION_COUNT: int = 3
    EXAM_DIFFICULTY: str = "medium"
    # Zero hits right after an inline ingestion are retried with backoff
    SEARCH_RETRY_ATTEMPTS: int = 3
    SEARCH_RETRY_BASE_DELAY: float = 0.5

    # Upload Configuration
    MAX_FILE_SIZE: int = 20 * 1024 * 1024  # 20 MB
    PREVIEW_LENGTH: int = 200

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:3001"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]


# Global settings instance
settings = Settings()
