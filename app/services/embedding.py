"""
Embedding generation via the Azure OpenAI embeddings deployment.

One string in, one vector out: no batching, no caching and no retries.
Quota, auth and malformed-input failures from the upstream model surface as
``UpstreamServiceError``.
"""
from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from app.config import settings
from app.exceptions import InvalidRequestError, UpstreamServiceError
from app.services.azure_openai import AzureOpenAIService

logger = logging.getLogger(__name__)


class AzureOpenAIEmbeddingService(AzureOpenAIService):
    """Turns text into a fixed-length float vector."""

    SERVICE_NAME = "azure-openai-embeddings"

    def __init__(
        self,
        *,
        deployment: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs,
    ) -> None:
        super().__init__(
            deployment=deployment or settings.AZURE_OPENAI_EMBEDDING_DEPLOYMENT,
            transport=transport,
            **kwargs,
        )

    async def embed_text(self, text: str) -> List[float]:
        """Embed a single text string."""
        if not text or not text.strip():
            raise InvalidRequestError("Cannot embed empty text.")

        body = await self._post("embeddings", {"input": text})
        try:
            vector = body["data"][0]["embedding"]
        except (KeyError, IndexError, TypeError) as exc:
            raise UpstreamServiceError(
                self.SERVICE_NAME, "Embedding response did not contain a vector."
            ) from exc

        logger.debug("Embedded %d chars → %d-dim vector", len(text), len(vector))
        return [float(x) for x in vector]
