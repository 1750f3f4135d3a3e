"""
Shared plumbing for calls to the Azure OpenAI REST API.

Both the embedding and the chat gateway POST JSON to
``{endpoint}/openai/deployments/{deployment}/{operation}?api-version=...``
with an ``api-key`` header. Transports are injectable so tests can plug in
``httpx.MockTransport``.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import httpx

from app.config import settings
from app.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


class AzureOpenAIService:
    """Base class holding endpoint, credential and HTTP settings."""

    SERVICE_NAME = "azure-openai"

    def __init__(
        self,
        *,
        deployment: str,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        api_version: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.endpoint = (endpoint or settings.AZURE_OPENAI_ENDPOINT).rstrip("/")
        self.api_key = api_key or settings.AZURE_OPENAI_API_KEY
        self.api_version = api_version or settings.AZURE_OPENAI_API_VERSION
        self.deployment = deployment
        self.timeout = httpx.Timeout(timeout or settings.UPSTREAM_TIMEOUT, connect=10.0)
        self._transport = transport

    def _url(self, operation: str) -> str:
        return f"{self.endpoint}/openai/deployments/{self.deployment}/{operation}"

    async def _post(self, operation: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST *payload* and return the decoded JSON body, raising on any failure."""
        t0 = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    self._url(operation),
                    params={"api-version": self.api_version},
                    headers={"api-key": self.api_key},
                    json=payload,
                )
        except httpx.HTTPError as exc:
            logger.error("%s %s request failed: %s", self.SERVICE_NAME, operation, exc)
            raise UpstreamServiceError(
                self.SERVICE_NAME, f"Azure OpenAI {operation} request failed: {exc}"
            ) from exc

        elapsed_ms = (time.perf_counter() - t0) * 1000
        if resp.status_code != 200:
            logger.error(
                "%s %s returned %d: %s",
                self.SERVICE_NAME,
                operation,
                resp.status_code,
                resp.text[:300],
            )
            raise UpstreamServiceError(
                self.SERVICE_NAME,
                f"Azure OpenAI {operation} failed: {resp.status_code} "
                f"{resp.reason_phrase} - {resp.text}",
                upstream_status=resp.status_code,
            )

        logger.debug(
            "%s %s (%s) answered in %.1f ms",
            self.SERVICE_NAME,
            operation,
            self.deployment,
            elapsed_ms,
        )
        return resp.json()
