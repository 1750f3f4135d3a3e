"""
Chat completions via the Azure OpenAI chat deployment.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from app.config import settings
from app.services.azure_openai import AzureOpenAIService

logger = logging.getLogger(__name__)


class AzureOpenAIChatService(AzureOpenAIService):
    """Sends a system + user prompt pair and returns the assistant text."""

    SERVICE_NAME = "azure-openai-chat"

    def __init__(
        self,
        *,
        deployment: Optional[str] = None,
        temperature: float = 0.3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        **kwargs,
    ) -> None:
        super().__init__(
            deployment=deployment or settings.AZURE_OPENAI_CHAT_DEPLOYMENT,
            transport=transport,
            **kwargs,
        )
        self.temperature = temperature

    async def complete_json(self, system_prompt: str, user_prompt: str) -> str:
        """
        Request a strict JSON-object completion.

        Returns the raw message content, or an empty string when the model
        sent none. Parsing is the caller's job.
        """
        body = await self._post(
            "chat/completions",
            {
                "messages": [
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                "response_format": {"type": "json_object"},
                "temperature": self.temperature,
            },
        )
        choices = body.get("choices") or []
        if not choices:
            logger.warning("complete_json: response carried no choices")
            return ""
        return (choices[0].get("message") or {}).get("content") or ""
