"""
OpenAI LLM
Chat Completions backend
"""
from typing import List, Optional
import logging

import openai

from utils.exceptions import BackendError, TransientBackendError

from .base import BaseLLM, Message, LLMResponse


logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (
    openai.APIConnectionError,  # includes APITimeoutError
    openai.RateLimitError,
    openai.InternalServerError,
)


class OpenAILLM(BaseLLM):
    """OpenAI Chat Completions implementation"""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1500,
        timeout: float = 60.0,
        **kwargs,
    ):
        super().__init__(model, temperature, max_tokens, timeout, **kwargs)
        self.api_key = api_key
        self.base_url = base_url
        self._async_client = None

    @property
    def provider(self) -> str:
        return "openai"

    def _get_async_client(self):
        if self._async_client is None:
            self._async_client = openai.AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,  # retries are owned by GenerationClient
            )
        return self._async_client

    async def acomplete(
        self,
        messages: List[Message],
        **kwargs,
    ) -> LLMResponse:
        client = self._get_async_client()

        request_params = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "temperature": kwargs.get("temperature", self.temperature),
            "max_tokens": kwargs.get("max_tokens", self.max_tokens),
        }

        try:
            response = await client.chat.completions.create(**request_params)
        except _TRANSIENT_ERRORS as exc:
            raise TransientBackendError(f"openai request failed: {exc}", provider=self.provider) from exc
        except openai.APIStatusError as exc:
            raise BackendError(
                f"openai rejected request: {exc}",
                provider=self.provider,
                status_code=exc.status_code,
            ) from exc

        choice = response.choices[0]
        usage = {}
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return LLMResponse(
            content=choice.message.content or "",
            model=response.model or self.model,
            usage=usage,
            finish_reason=choice.finish_reason,
            raw_response=response,
        )

    async def aclose(self) -> None:
        if self._async_client is not None:
            await self._async_client.close()
            self._async_client = None
