"""
Text extraction from images and scanned PDFs via Mistral OCR.

The file is sent inline as a base64 ``data:`` URL; the response carries one
entry per page, each with a ``markdown`` rendering and/or plain ``text``.
"""
from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional

import httpx

from app.config import settings
from app.exceptions import NoTextExtractedError, UpstreamServiceError

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"


def _page_text(page: Dict[str, Any]) -> str:
    """Prefer the formatted markdown rendering over plain text."""
    return page.get("markdown") or page.get("text") or ""


class MistralOCRService:
    """Hosted OCR gateway."""

    SERVICE_NAME = "mistral-ocr"

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key or settings.MISTRAL_API_KEY
        self.url = url or settings.MISTRAL_OCR_URL
        self.model = model or settings.MISTRAL_OCR_MODEL
        self.timeout = httpx.Timeout(timeout or settings.UPSTREAM_TIMEOUT, connect=10.0)
        self._transport = transport

    async def extract_text(self, file_bytes: bytes, mime_type: str) -> str:
        """
        Run OCR over *file_bytes* and return the concatenated page text.

        Raises:
            UpstreamServiceError: the OCR call failed or answered non-200.
            NoTextExtractedError: the call succeeded but no text came back.
        """
        mime_type = mime_type or "application/pdf"
        encoded = base64.b64encode(file_bytes).decode("ascii")
        data_url = f"data:{mime_type};base64,{encoded}"

        if mime_type == "application/pdf":
            document = {"type": "document_url", "document_url": data_url}
        else:
            document = {"type": "image_url", "image_url": data_url}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    self.url,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={"model": self.model, "document": document},
                )
        except httpx.HTTPError as exc:
            logger.error("Mistral OCR request failed: %s", exc)
            raise UpstreamServiceError(
                self.SERVICE_NAME, f"Mistral OCR request failed: {exc}"
            ) from exc

        if resp.status_code != 200:
            logger.error("Mistral OCR returned %d: %s", resp.status_code, resp.text[:300])
            raise UpstreamServiceError(
                self.SERVICE_NAME,
                f"Mistral OCR failed: {resp.status_code} {resp.reason_phrase} - {resp.text}",
                upstream_status=resp.status_code,
            )

        pages: List[Dict[str, Any]] = resp.json().get("pages") or []
        texts = [t for t in (_page_text(p) for p in pages) if t]
        extracted = PAGE_SEPARATOR.join(texts)

        if not extracted.strip():
            raise NoTextExtractedError(
                "No text could be extracted from the uploaded file."
            )

        logger.info(
            "Mistral OCR: %d page(s), %d chars extracted (%s, %d bytes)",
            len(pages),
            len(extracted),
            mime_type,
            len(file_bytes),
        )
        return extracted
