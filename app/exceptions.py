"""
Error taxonomy for the Nabook backend.

Every class carries the HTTP status it is rendered with; the exception
handlers in ``app.main`` turn any ``NabookError`` into ``{"error": message}``.
"""
from __future__ import annotations

from typing import Optional


class NabookError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequestError(NabookError):
    """Missing or empty required input."""

    status_code = 400


class NoTextExtractedError(InvalidRequestError):
    """OCR finished but produced no usable text."""


class EmptyKnowledgeBaseError(NabookError):
    """Retrieval found no context to build an exam from."""

    status_code = 404


class SessionNotFoundError(NabookError):
    status_code = 404


class ExamStateError(NabookError):
    """An exam attempt operation was called in the wrong state."""

    status_code = 409


class UpstreamServiceError(NabookError):
    """A hosted dependency (embedding, index, chat, OCR) failed."""

    status_code = 500

    def __init__(
        self,
        service: str,
        message: str,
        upstream_status: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.upstream_status = upstream_status


class ExamFormatError(NabookError):
    """The chat model returned empty or unparseable exam content."""

    status_code = 500
