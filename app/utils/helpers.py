"""
Common utility functions and helpers.
"""
from datetime import datetime, timezone
import uuid


def truncate(text: str, length: int, ellipsis: str = "...") -> str:
    """
    Cut text to its first *length* characters and append an ellipsis.

    The ellipsis is always appended, so UI previews and weak-point topics
    read the same whether or not the source was long.

    Args:
        text: Text to cut
        length: Number of characters to keep
        ellipsis: Marker appended after the kept characters

    Returns:
        Shortened text
    """
    return text[:length] + ellipsis


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """
    Generate a random identifier for sessions and indexed documents.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())
