"""
Document ingestion: embed a text and upsert it into the vector index.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from app.models.database_models import SourceType
from app.services.vector_index import IndexedChunk, IndexingResult

logger = logging.getLogger(__name__)


class DocumentIngestionService:
    """Embeds and indexes whole documents as single chunks."""

    def __init__(self, embedder, index) -> None:
        self._embedder = embedder
        self._index = index

    async def ingest(
        self,
        doc_id: str,
        content: str,
        source_type: SourceType = SourceType.NOTE,
    ) -> IndexingResult:
        """
        Embed *content* and upsert it under *doc_id*.

        There is no rollback: when the upsert fails after a successful
        embedding the caller sees the upsert error. The returned result's
        ``succeeded`` flag must be checked.
        """
        vector = await self._embedder.embed_text(content)

        results = await self._index.upsert(
            [
                IndexedChunk(
                    id=doc_id,
                    content=content,
                    content_vector=vector,
                    source_type=source_type,
                    created_at=datetime.now(timezone.utc),
                )
            ]
        )
        result = results[0]

        if result.succeeded:
            logger.info("[Ingest] Document %s indexed (%s).", doc_id, source_type.value)
        else:
            logger.error("[Ingest] Document %s was not indexed: %s", doc_id, result.error_message)
        return result
