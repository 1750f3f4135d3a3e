"""
Pydantic schemas for request/response validation.

Field names are snake_case in Python and camelCase on the wire
(``examTitle``, ``correctOptionIndex``, ``noteContent`` ...). The exam shape
is also the JSON object the chat model is instructed to emit.
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum


class CamelModel(BaseModel):
    """Base model serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Enums (matching database enums)
class CriticalitySchema(str, Enum):
    """Weak point criticality for API responses."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# ---------------------------------------------------------------------------
# Exam Schemas
# ---------------------------------------------------------------------------

class Question(CamelModel):
    """One multiple-choice question."""

    id: str
    question_text: str = Field(..., min_length=1)
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_option_index: int
    explanation: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # Models sometimes number questions instead of quoting the id
        return str(value)

    @model_validator(mode="after")
    def _check_correct_index(self) -> "Question":
        if not 0 <= self.correct_option_index < len(self.options):
            raise ValueError(
                f"correctOptionIndex {self.correct_option_index} is outside "
                f"[0, {len(self.options)})"
            )
        return self


class Exam(CamelModel):
    """A generated exam. Transient: produced per request, never stored."""

    exam_title: str
    questions: List[Question] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_unique_ids(self) -> "Exam":
        seen = set()
        for question in self.questions:
            if question.id in seen:
                raise ValueError(f"Duplicate question id '{question.id}'")
            seen.add(question.id)
        return self


class GenerateExamRequest(CamelModel):
    """Body of POST /api/generate-exam. ``topic`` is validated by the pipeline."""

    id: Optional[str] = None
    topic: Optional[str] = None
    content: Optional[str] = None


class GenerateExamResponse(CamelModel):
    success: bool = True
    exam: Exam


# ---------------------------------------------------------------------------
# Document Schemas
# ---------------------------------------------------------------------------

class ProcessedDocumentData(CamelModel):
    """Summary of an OCR-processed upload."""

    document_id: str
    preview: str
    indexed: bool


class ProcessDocumentResponse(CamelModel):
    success: bool = True
    data: ProcessedDocumentData


class IngestDocumentRequest(CamelModel):
    id: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


class IngestDocumentResponse(CamelModel):
    success: bool = True
    document_id: str
    indexed: bool


# ---------------------------------------------------------------------------
# Session Schemas
# ---------------------------------------------------------------------------

class WeakPointSchema(CamelModel):
    """A topic the user answered incorrectly on their latest exam."""

    id: str
    topic: str
    description: str
    criticality: CriticalitySchema = CriticalitySchema.HIGH
    matched_text_snippet: str


class SessionCreateRequest(CamelModel):
    title: str = Field("Untitled notes", min_length=1, max_length=255)
    note_content: str = ""


class SessionUpdateRequest(CamelModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    note_content: Optional[str] = None


class SessionResponse(CamelModel):
    id: str
    owner_id: str
    title: str
    note_content: str
    created_at: datetime
    updated_at: datetime
    weak_points: List[WeakPointSchema] = []


class ExamResultsRequest(CamelModel):
    """Answers a client collected while taking ``exam``: question id → option index."""

    exam: Exam
    answers: Dict[str, int] = {}


# ---------------------------------------------------------------------------
# Health Schemas
# ---------------------------------------------------------------------------

class HealthCheckResponse(CamelModel):
    """Schema for health check response."""

    status: str
    database: str
    vector_index: str
    timestamp: datetime
