"""
Owner identification for session routes.

There is no authentication: the frontend sends the user's id in the
X-User-Id header and it is used only as the sessions' partition key.
"""
from __future__ import annotations

import logging

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import InvalidRequestError, SessionNotFoundError
from app.models.database_models import StudySession

logger = logging.getLogger(__name__)


async def get_owner_id(
    x_user_id: str = Header("", alias="X-User-Id"),
) -> str:
    """Extract the owner id from the request header. Raises 400 if missing."""
    if not x_user_id.strip():
        raise InvalidRequestError("Missing X-User-Id header.")
    return x_user_id.strip()


async def get_owned_session(
    session_id: str,
    owner_id: str = Depends(get_owner_id),
    db: AsyncSession = Depends(get_db),
) -> StudySession:
    """
    Load the given session within the owner's partition.
    Returns the StudySession ORM object or raises 404.
    """
    result = await db.execute(
        select(StudySession).where(
            StudySession.id == session_id,
            StudySession.owner_id == owner_id,
        )
    )
    session = result.scalar_one_or_none()

    if session is None:
        raise SessionNotFoundError(f"Session {session_id} not found.")

    return session
