"""
Document ingestion endpoints.

POST /process-document   — OCR an uploaded image or PDF and index its text.
POST /documents/ingest   — index a note's text directly under a given id.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from app.config import settings
from app.dependencies.services import (
    get_ingestion_service,
    get_ocr_service,
    get_vector_index,
)
from app.exceptions import InvalidRequestError, NabookError
from app.models.database_models import SourceType
from app.models.schemas import (
    IngestDocumentRequest,
    IngestDocumentResponse,
    ProcessDocumentResponse,
    ProcessedDocumentData,
)
from app.services.ingestion import DocumentIngestionService
from app.services.ocr import MistralOCRService
from app.utils.helpers import new_id, truncate

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_upload(file: UploadFile) -> bytes:
    """Read the upload into memory while enforcing the size limit."""
    data = bytearray()
    while True:
        chunk = await file.read(1024 * 1024)   # 1 MB slices
        if not chunk:
            break
        data.extend(chunk)
        if len(data) > settings.MAX_FILE_SIZE:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=(
                    f"File exceeds the {settings.MAX_FILE_SIZE // (1024 * 1024)} MB "
                    "size limit."
                ),
            )
    return bytes(data)


# ---------------------------------------------------------------------------
# OCR upload
# ---------------------------------------------------------------------------

@router.post("/process-document", response_model=ProcessDocumentResponse)
async def process_document(
    file: Optional[UploadFile] = File(None),
    ocr: MistralOCRService = Depends(get_ocr_service),
    index=Depends(get_vector_index),
    ingestion: DocumentIngestionService = Depends(get_ingestion_service),
) -> ProcessDocumentResponse:
    """
    Extract text from an uploaded image or scanned PDF and index it.

    The extracted text is stored under a fresh id with source type
    ``vision_ocr``; the response carries that id and a short preview.

    - 400 when no file was sent or no text could be extracted
    - 413 when the file exceeds MAX_FILE_SIZE
    - 500 when OCR, embedding or indexing fails
    """
    if file is None:
        raise InvalidRequestError("No file was uploaded.")

    try:
        file_bytes = await _read_upload(file)
        if not file_bytes:
            raise InvalidRequestError("The uploaded file is empty.")

        mime_type = file.content_type or "application/pdf"
        logger.info(
            "[ProcessDocument] %r (%s, %d bytes)",
            file.filename,
            mime_type,
            len(file_bytes),
        )

        text = await ocr.extract_text(file_bytes, mime_type)

        await index.ensure_index()
        document_id = new_id()
        result = await ingestion.ingest(document_id, text, source_type=SourceType.VISION_OCR)

    except (HTTPException, NabookError):
        raise
    except Exception as exc:
        logger.exception("Unexpected error processing %r", file.filename)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error processing document: {exc}",
        )

    return ProcessDocumentResponse(
        data=ProcessedDocumentData(
            document_id=document_id,
            preview=truncate(text, settings.PREVIEW_LENGTH),
            indexed=result.succeeded,
        )
    )


# ---------------------------------------------------------------------------
# Direct ingestion
# ---------------------------------------------------------------------------

@router.post("/documents/ingest", response_model=IngestDocumentResponse)
async def ingest_document(
    body: IngestDocumentRequest,
    index=Depends(get_vector_index),
    ingestion: DocumentIngestionService = Depends(get_ingestion_service),
) -> IngestDocumentResponse:
    """Embed a note and upsert it under ``id``; re-ingesting overwrites."""
    if not body.content.strip():
        raise InvalidRequestError("The 'content' field must not be blank.")

    await index.ensure_index()
    result = await ingestion.ingest(body.id, body.content)
    return IngestDocumentResponse(document_id=body.id, indexed=result.succeeded)
