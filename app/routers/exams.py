"""
Exam generation endpoint.

POST /generate-exam       — optionally ingest a note, then build an exam from
                            the indexed knowledge base.
POST /ingest-and-search   — older name for the same operation.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.dependencies.services import get_exam_generator
from app.models.schemas import GenerateExamRequest, GenerateExamResponse
from app.services.exam_generator import ExamGenerator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate-exam", response_model=GenerateExamResponse)
async def generate_exam(
    body: GenerateExamRequest,
    generator: ExamGenerator = Depends(get_exam_generator),
) -> GenerateExamResponse:
    """
    Generate a multiple-choice exam about ``topic``.

    When both ``id`` and ``content`` are supplied the note is embedded and
    indexed first, so the exam can draw on it straight away.

    - 400 when ``topic`` is missing or blank
    - 404 when the knowledge base holds nothing relevant
    - 500 when an upstream service fails or the model output is unusable
    """
    exam = await generator.generate(body.topic, doc_id=body.id, doc_content=body.content)
    return GenerateExamResponse(exam=exam)


router.add_api_route(
    "/ingest-and-search",
    generate_exam,
    methods=["POST"],
    response_model=GenerateExamResponse,
    include_in_schema=False,
)
