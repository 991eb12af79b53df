"""
OpenAI chat-completions backend for the turn engine.

Uses the async client with a JSON-schema response format so the model is
held to the ``{slot, ack, values}`` contract at the API level. The engine
still validates and repairs whatever comes back.
"""

import logging
from typing import Any, Optional

from openai import AsyncOpenAI, OpenAIError

from receptionist.errors import GeneratorError
from receptionist.llm.base import GeneratorRequest, GeneratorResponse, TextGenerator

logger = logging.getLogger(__name__)


class OpenAIGenerator(TextGenerator):
    """
    ``TextGenerator`` backed by ``openai.AsyncOpenAI``.

    Args:
        api_key: OpenAI API key. Falls back to ``OPENAI_API_KEY`` when None.
        model: Chat model name.
        base_url: Optional OpenAI-compatible endpoint.
        timeout: Per-request client timeout in seconds. The engine applies
            its own, tighter, turn budget on top of this.
        client: Pre-built client, mainly for tests.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
        timeout: float = 5.0,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self.model = model
        if client is None:
            kwargs: dict[str, Any] = {"api_key": api_key, "timeout": timeout, "max_retries": 0}
            if base_url:
                kwargs["base_url"] = base_url
            client = AsyncOpenAI(**kwargs)
        self._client = client

    def _response_format(self, request: GeneratorRequest) -> Optional[dict[str, Any]]:
        if request.response_schema is None:
            return None
        return {
            "type": "json_schema",
            "json_schema": {
                "name": "turn_decision",
                "schema": request.response_schema,
            },
        }

    async def generate(self, request: GeneratorRequest) -> GeneratorResponse:
        messages = [m.to_dict() for m in request.messages]
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
        }
        response_format = self._response_format(request)
        if response_format is not None:
            kwargs["response_format"] = response_format

        logger.debug("Sending %d messages to %s", len(messages), self.model)
        try:
            response = await self._client.chat.completions.create(**kwargs)
        except OpenAIError as exc:
            raise GeneratorError(f"OpenAI request failed: {exc}") from exc

        if not response.choices:
            raise GeneratorError("OpenAI returned no choices")
        choice = response.choices[0]
        usage = getattr(response, "usage", None)
        return GeneratorResponse(
            content=choice.message.content or "",
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            model=getattr(response, "model", self.model),
            finish_reason=choice.finish_reason,
        )

    async def aclose(self) -> None:
        await self._client.close()
