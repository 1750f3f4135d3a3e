"""
Health check endpoint.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
import logging

from app.database import get_db
from app.dependencies.services import get_vector_index
from app.models.schemas import HealthCheckResponse
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    index=Depends(get_vector_index),
):
    """
    Health check endpoint to verify system status.

    Returns:
        HealthCheckResponse with status of the database and the vector index
        ("missing" until the first ingestion creates it)
    """
    # Check database connection
    db_status = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        db_status = "error"

    # Check vector index
    index_status = "ok"
    try:
        if not await index.exists():
            index_status = "missing"
    except Exception as e:
        logger.error("Vector index health check failed: %s", e)
        index_status = "error"

    # Overall status
    overall_status = "healthy" if db_status == "ok" and index_status != "error" else "degraded"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        vector_index=index_status,
        timestamp=utcnow(),
    )
