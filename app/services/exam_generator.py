"""
Exam generation: retrieval-augmented synthesis of a multiple-choice exam.

Public API
----------
ExamGenerator.generate(topic, doc_id=None, doc_content=None) -> Exam

Every step is awaited in sequence and any failure aborts the request; the
only retry is a short bounded backoff on the search step when it comes back
empty right after an inline ingestion (index writes may not be visible yet).
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from app.config import settings
from app.exceptions import (
    EmptyKnowledgeBaseError,
    ExamFormatError,
    InvalidRequestError,
    UpstreamServiceError,
)
from app.models.schemas import Exam
from app.services.ingestion import DocumentIngestionService
from app.services.vector_index import MATCH_ALL, VectorQuery

logger = logging.getLogger(__name__)

CONTEXT_DELIMITER = "\n\n---\n\n"


# ---------------------------------------------------------------------------
# Prompt templates
# ---------------------------------------------------------------------------

_SYSTEM_PROMPT = """\
You are an expert academic examiner.
Using EXCLUSIVELY the context below, write a multiple-choice exam. Do not use \
outside knowledge; if the context does not cover something, do not ask about it.
Write the exam in the same language as the context.

Respond ONLY with a JSON object of this exact shape:
{{
  "examTitle": "...",
  "questions": [
    {{
      "id": "q1",
      "questionText": "...",
      "options": ["...", "...", "...", "..."],
      "correctOptionIndex": 0,
      "explanation": "..."
    }}
  ]
}}
Every question has exactly four options and correctOptionIndex is the \
zero-based position of the right one.

Context:
{context}\
"""

_USER_PROMPT = """\
Generate an exam about: {topic}.
Write {question_count} questions of {difficulty} difficulty.\
"""


class ExamGenerator:
    """Orchestrates ensure-index → ingest → embed → search → chat → parse."""

    def __init__(
        self,
        embedder,
        index,
        chat,
        ingestion: Optional[DocumentIngestionService] = None,
        *,
        top_k: Optional[int] = None,
        question_count: Optional[int] = None,
        difficulty: Optional[str] = None,
        search_retry_attempts: Optional[int] = None,
        search_retry_base_delay: Optional[float] = None,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self._chat = chat
        self._ingestion = ingestion or DocumentIngestionService(embedder, index)
        self.top_k = top_k or settings.RETRIEVAL_TOP_K
        self.question_count = question_count or settings.EXAM_QUESTION_COUNT
        self.difficulty = difficulty or settings.EXAM_DIFFICULTY
        self.search_retry_attempts = max(
            1, search_retry_attempts or settings.SEARCH_RETRY_ATTEMPTS
        )
        self.search_retry_base_delay = (
            settings.SEARCH_RETRY_BASE_DELAY
            if search_retry_base_delay is None
            else search_retry_base_delay
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def generate(
        self,
        topic: Optional[str],
        doc_id: Optional[str] = None,
        doc_content: Optional[str] = None,
    ) -> Exam:
        """
        Full RAG pipeline:

        1. Validate the topic.
        2. Ensure the vector index exists.
        3. Ingest the supplied document, when both id and content are given.
        4. Embed the topic.
        5. Retrieve the top-k chunks (with backoff after an ingestion).
        6. Fail with EmptyKnowledgeBaseError when nothing was found.
        7-9. Build the context + prompts and call the chat model.
        10-11. Parse and validate the exam.
        """
        # 1: validate
        if not topic or not topic.strip():
            raise InvalidRequestError("The 'topic' field is required.")
        topic = topic.strip()
        logger.info("[GenerateExam] Starting. Topic: %r", topic)

        # 2: index
        await self._index.ensure_index()

        # 3: inline ingestion
        ingested = False
        if doc_id and doc_content and doc_content.strip():
            logger.info("[GenerateExam] Ingesting document id: %s", doc_id)
            result = await self._ingestion.ingest(doc_id, doc_content)
            if not result.succeeded:
                raise UpstreamServiceError(
                    "vector-index",
                    f"Document '{doc_id}' could not be indexed: {result.error_message}",
                )
            ingested = True

        # 4: embed topic
        logger.info("[GenerateExam] Embedding topic %r …", topic)
        topic_vector = await self._embedder.embed_text(topic)

        # 5 + 6: retrieve
        chunks = await self._retrieve(topic_vector, retry=ingested)
        logger.info("[GenerateExam] ✓ Search complete. Chunks: %d.", len(chunks))
        if not chunks:
            raise EmptyKnowledgeBaseError(
                "The knowledge base has no notes to build an exam from yet. "
                "Save or index some notes first."
            )

        # 7-9: synthesise
        system_prompt = _SYSTEM_PROMPT.format(context=CONTEXT_DELIMITER.join(chunks))
        user_prompt = _USER_PROMPT.format(
            topic=topic,
            question_count=self.question_count,
            difficulty=self.difficulty,
        )
        raw = await self._chat.complete_json(system_prompt, user_prompt)

        # 10-11: parse
        exam = self._parse_exam(raw)
        logger.info(
            "[GenerateExam] ✓ Exam %r generated with %d question(s).",
            exam.exam_title,
            len(exam.questions),
        )
        return exam

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _retrieve(self, vector: List[float], *, retry: bool) -> List[str]:
        attempts = self.search_retry_attempts if retry else 1
        chunks: List[str] = []

        for attempt in range(1, attempts + 1):
            chunks = await self._search_once(vector)
            if chunks or attempt == attempts:
                break
            delay = self.search_retry_base_delay * (2 ** (attempt - 1))
            logger.warning(
                "[GenerateExam] Search returned no chunks after ingestion "
                "(attempt %d/%d). Retrying in %.2fs.",
                attempt,
                attempts,
                delay,
            )
            await asyncio.sleep(delay)

        return chunks

    async def _search_once(self, vector: List[float]) -> List[str]:
        results = self._index.search(
            MATCH_ALL,
            VectorQuery(vector=vector, k_nearest_neighbors=self.top_k),
            select=("content",),
        )
        chunks: List[str] = []
        async for match in results:
            content = match.get("content")
            if content:
                chunks.append(content)
        return chunks

    @staticmethod
    def _parse_exam(raw: Optional[str]) -> Exam:
        if not raw or not raw.strip():
            raise ExamFormatError("The chat model returned no content.")
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ExamFormatError(f"The chat model returned invalid JSON: {exc}") from exc
        try:
            return Exam.model_validate(payload)
        except ValidationError as exc:
            raise ExamFormatError(
                f"The chat model returned an exam with an unexpected shape: {exc}"
            ) from exc
