"""Database and schema models for Nabook."""
from app.models.database_models import (
    StudySession,
    WeakPoint,
    Criticality,
    SourceType,
)
from app.models.schemas import (
    Exam,
    Question,
    GenerateExamRequest,
    GenerateExamResponse,
    ProcessDocumentResponse,
    IngestDocumentRequest,
    IngestDocumentResponse,
    SessionCreateRequest,
    SessionUpdateRequest,
    SessionResponse,
    WeakPointSchema,
    ExamResultsRequest,
    HealthCheckResponse,
)

__all__ = [
    # Database models
    "StudySession",
    "WeakPoint",
    "Criticality",
    "SourceType",
    # Pydantic schemas
    "Exam",
    "Question",
    "GenerateExamRequest",
    "GenerateExamResponse",
    "ProcessDocumentResponse",
    "IngestDocumentRequest",
    "IngestDocumentResponse",
    "SessionCreateRequest",
    "SessionUpdateRequest",
    "SessionResponse",
    "WeakPointSchema",
    "ExamResultsRequest",
    "HealthCheckResponse",
]
