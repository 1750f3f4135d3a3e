"""
Vector index store backed by PostgreSQL + pgvector.

The index is a single table created on demand by ``ensure_index``:

    id              key
    content         searchable text (GIN full-text index)
    source_type     filterable tag ("note" | "vision_ocr")
    created_at      sortable timestamp
    content_vector  vector(VECTOR_DIMENSION) with an HNSW cosine index

Public API
----------
VectorIndexStore.ensure_index()                               -> bool
VectorIndexStore.upsert(documents)                            -> List[IndexingResult]
VectorIndexStore.search(query_text, vector_query, top, select) -> async iterator of dicts
"""
from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    Column,
    DateTime,
    Index,
    MetaData,
    String,
    Table,
    Text,
    func,
    inspect,
    literal_column,
    select as sa_select,
    text,
)
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncEngine

from app.config import settings
from app.models.database_models import SourceType

logger = logging.getLogger(__name__)

MATCH_ALL = "*"
_TS_CONFIG = literal_column("'simple'")


# ---------------------------------------------------------------------------
# Documents, queries and results
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class IndexedChunk:
    """One document in the vector index."""

    id: str
    content: str
    content_vector: List[float]
    source_type: SourceType = SourceType.NOTE
    created_at: Optional[datetime] = None


@dataclasses.dataclass
class VectorQuery:
    """Nearest-neighbour clause of a search."""

    vector: List[float]
    k_nearest_neighbors: int = 3
    fields: str = "content_vector"


@dataclasses.dataclass
class IndexingResult:
    """Per-document outcome of an upsert. Callers must check ``succeeded``."""

    key: str
    succeeded: bool
    error_message: Optional[str] = None


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

def build_index_table(
    name: str,
    dimension: int,
    *,
    m: int = 4,
    ef_construction: int = 400,
    metadata: Optional[MetaData] = None,
) -> Table:
    """Describe the index table and its secondary indexes."""
    metadata = metadata if metadata is not None else MetaData()
    slug = name.replace("-", "_")

    table = Table(
        name,
        metadata,
        Column("id", String(255), primary_key=True),
        Column("content", Text, nullable=False),
        Column("source_type", String(32), nullable=False),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("content_vector", Vector(dimension), nullable=False),
    )

    Index(
        f"ix_{slug}_content_vector_hnsw",
        table.c.content_vector,
        postgresql_using="hnsw",
        postgresql_with={"m": m, "ef_construction": ef_construction},
        postgresql_ops={"content_vector": "vector_cosine_ops"},
    )
    fts = Index(
        f"ix_{slug}_content_fts",
        func.to_tsvector(_TS_CONFIG, table.c.content),
        postgresql_using="gin",
    )
    # Functional indexes are not always bound through their expression
    if fts not in table.indexes:
        table.append_constraint(fts)
    Index(f"ix_{slug}_source_type", table.c.source_type)
    Index(f"ix_{slug}_created_at", table.c.created_at)
    return table


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class VectorIndexStore:
    """Upsert-by-id and approximate nearest-neighbour search over one table."""

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        name: Optional[str] = None,
        dimension: Optional[int] = None,
        m: Optional[int] = None,
        ef_construction: Optional[int] = None,
        ef_search: Optional[int] = None,
    ) -> None:
        self._engine = engine
        self.name = name or settings.SEARCH_INDEX_NAME
        self.dimension = dimension or settings.VECTOR_DIMENSION
        self.ef_search = ef_search or settings.HNSW_EF_SEARCH
        self._metadata = MetaData()
        self.table = build_index_table(
            self.name,
            self.dimension,
            m=m or settings.HNSW_M,
            ef_construction=ef_construction or settings.HNSW_EF_CONSTRUCTION,
            metadata=self._metadata,
        )

    # ------------------------------------------------------------------
    # Schema management
    # ------------------------------------------------------------------

    async def exists(self) -> bool:
        async with self._engine.connect() as conn:
            return await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).has_table(self.name)
            )

    async def ensure_index(self) -> bool:
        """
        Create the index if it does not exist yet.

        Returns True when this call created it. Any failure other than the
        index being absent propagates.
        """
        if await self._index_exists():
            logger.info("Vector index '%s' already exists.", self.name)
            return False

        logger.info("Creating vector index '%s' (dim=%d) …", self.name, self.dimension)
        await self._create_index()
        logger.info("Vector index '%s' created.", self.name)
        return True

    async def _index_exists(self) -> bool:
        return await self.exists()

    async def _create_index(self) -> None:
        async with self._engine.begin() as conn:
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
            await conn.run_sync(self._metadata.create_all)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert(self, documents: Sequence[IndexedChunk]) -> List[IndexingResult]:
        """
        Insert or overwrite *documents* by key.

        Documents whose vector does not match the schema dimension are
        reported as failed and skipped; the rest are written in one statement.
        """
        results: List[IndexingResult] = []
        rows: Dict[str, Dict[str, Any]] = {}

        for doc in documents:
            if len(doc.content_vector) != self.dimension:
                msg = (
                    f"Vector dimension mismatch for '{doc.id}': expected "
                    f"{self.dimension}, got {len(doc.content_vector)}"
                )
                logger.error("upsert: %s", msg)
                results.append(IndexingResult(key=doc.id, succeeded=False, error_message=msg))
                continue

            # Last write wins for duplicate keys within one batch
            rows[doc.id] = {
                "id": doc.id,
                "content": doc.content,
                "source_type": SourceType(doc.source_type).value,
                "created_at": doc.created_at or datetime.now(timezone.utc),
                "content_vector": list(doc.content_vector),
            }
            results.append(IndexingResult(key=doc.id, succeeded=True))

        if rows:
            stmt = pg_insert(self.table).values(list(rows.values()))
            stmt = stmt.on_conflict_do_update(
                index_elements=[self.table.c.id],
                set_={
                    col: stmt.excluded[col]
                    for col in ("content", "source_type", "created_at", "content_vector")
                },
            )
            async with self._engine.begin() as conn:
                await conn.execute(stmt)

        logger.info(
            "upsert: %d/%d document(s) written to '%s'",
            sum(1 for r in results if r.succeeded),
            len(results),
            self.name,
        )
        return results

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def search(
        self,
        query_text: str,
        vector_query: Optional[VectorQuery] = None,
        top: Optional[int] = None,
        select: Sequence[str] = ("content",),
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Hybrid search. ``query_text="*"`` matches everything; other text is
        applied as a full-text filter. With a *vector_query* the matches are
        ranked by cosine similarity and capped at its neighbour count.

        Yields dicts holding the *select*-ed fields plus ``score``. The
        iterator is single-use: re-issue the query to read the results again.
        """
        columns = [self._column(name) for name in select]
        stmt = sa_select(*columns)

        if query_text and query_text.strip() != MATCH_ALL:
            stmt = stmt.where(
                func.to_tsvector(_TS_CONFIG, self.table.c.content).bool_op("@@")(
                    func.plainto_tsquery(_TS_CONFIG, query_text)
                )
            )

        limit = top
        if vector_query is not None:
            vector_column = self._column(vector_query.fields)
            distance = vector_column.cosine_distance(vector_query.vector)
            stmt = stmt.add_columns((1 - distance).label("score")).order_by(distance)
            limit = min(top, vector_query.k_nearest_neighbors) if top else vector_query.k_nearest_neighbors
        else:
            stmt = stmt.add_columns(literal_column("1.0").label("score"))

        if limit:
            stmt = stmt.limit(limit)

        async with self._engine.connect() as conn:
            await conn.execute(text(f"SET LOCAL hnsw.ef_search = {int(self.ef_search)}"))
            result = await conn.stream(stmt)
            async for row in result.mappings():
                yield dict(row)

    def _column(self, name: str):
        try:
            return self.table.c[name]
        except KeyError:
            raise ValueError(f"Unknown field '{name}' for index '{self.name}'") from None
