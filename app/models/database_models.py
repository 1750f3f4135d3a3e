"""
SQLAlchemy ORM models for the Nabook database.

Sessions and their weak points are the durable record of a user's notes and
exam outcomes. Indexed note chunks are not ORM models: they live in the
lazily-created vector index table managed by ``app.services.vector_index``.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Enum as SQLEnum,
)
from datetime import datetime, timezone
import enum

from app.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Enums
class Criticality(str, enum.Enum):
    """How urgently a weak point should be reviewed."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class SourceType(str, enum.Enum):
    """Where an indexed chunk's text came from."""

    NOTE = "note"
    VISION_OCR = "vision_ocr"


# Models
class StudySession(Base):
    """A Markdown editing session owned by a user."""

    __tablename__ = "sessions"

    id = Column(String(64), primary_key=True)
    owner_id = Column(String(255), nullable=False, index=True)  # partition key
    title = Column(String(255), nullable=False)
    note_content = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)


class WeakPoint(Base):
    """A question answered incorrectly on the session's most recent exam."""

    __tablename__ = "weak_points"

    id = Column(String(64), primary_key=True)
    session_id = Column(
        String(64), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False)  # order within the batch
    topic = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    criticality = Column(SQLEnum(Criticality), nullable=False, default=Criticality.HIGH)
    matched_text_snippet = Column(Text, nullable=False)
