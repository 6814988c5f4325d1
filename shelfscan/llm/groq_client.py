from __future__ import annotations

import logging

from groq import AsyncGroq

from ..errors import LLMError
from ..ports import ChatModel
from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)


class GroqChatModel(ChatModel):
    """Chat completion against the Groq API, expected (not guaranteed) to return JSON."""

    def __init__(self, config: LLMConfig = DEFAULT_LLM_CONFIG) -> None:
        self._config = config
        self._client: AsyncGroq | None = None

    def _get_client(self) -> AsyncGroq:
        if self._client is None:
            self._client = AsyncGroq(api_key=self._config.api_key, timeout=self._config.timeout)
        return self._client

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        config = self._config
        if not config.enabled or not config.api_key:
            raise LLMError("Groq LLM is disabled or GROQ_API_KEY is not set")

        kwargs = {}
        if config.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        logger.info("Groq request: model=%s, max_tokens=%d", config.model, config.max_tokens)
        try:
            response = await self._get_client().chat.completions.create(
                model=config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                **kwargs,
            )
            content = response.choices[0].message.content or ""
        except Exception as exc:
            raise LLMError(f"Groq chat completion failed: {exc}") from exc

        logger.info("Groq response: %d chars", len(content))
        return content
