"""
Google Gemini LLM
generateContent backend via google-generativeai
"""
from typing import List, Optional
import logging

from utils.exceptions import BackendError, TransientBackendError

from .base import BaseLLM, Message, MessageRole, LLMResponse


logger = logging.getLogger(__name__)


class GeminiLLM(BaseLLM):
    """Google Gemini implementation"""

    def __init__(
        self,
        model: str = "gemini-2.0-flash",
        api_key: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: int = 1500,
        timeout: float = 60.0,
        **kwargs,
    ):
        super().__init__(model, temperature, max_tokens, timeout, **kwargs)
        self.api_key = api_key

    @property
    def provider(self) -> str:
        return "gemini"

    @staticmethod
    def _split_messages(messages: List[Message]) -> tuple:
        """Gemini takes the system prompt separately from the user turn"""
        system_parts = [m.content for m in messages if m.role == MessageRole.SYSTEM]
        user_parts = [m.content for m in messages if m.role != MessageRole.SYSTEM]
        system_instruction = "\n\n".join(system_parts) or None
        return system_instruction, "\n\n".join(user_parts)

    async def acomplete(
        self,
        messages: List[Message],
        **kwargs,
    ) -> LLMResponse:
        import google.generativeai as genai
        from google.api_core import exceptions as gexc

        genai.configure(api_key=self.api_key)

        system_instruction, prompt = self._split_messages(messages)
        generation_config = {
            "temperature": kwargs.get("temperature", self.temperature),
            "max_output_tokens": kwargs.get("max_tokens", self.max_tokens),
        }

        model = genai.GenerativeModel(
            model_name=self.model,
            generation_config=generation_config,
            system_instruction=system_instruction,
        )

        try:
            response = await model.generate_content_async(
                prompt,
                request_options={"timeout": self.timeout},
            )
        except (
            gexc.ServiceUnavailable,
            gexc.DeadlineExceeded,
            gexc.ResourceExhausted,
            gexc.InternalServerError,
        ) as exc:
            raise TransientBackendError(f"gemini request failed: {exc}", provider=self.provider) from exc
        except gexc.GoogleAPICallError as exc:
            raise BackendError(f"gemini rejected request: {exc}", provider=self.provider) from exc

        # .text raises when the candidate was blocked or empty
        try:
            content = response.text or ""
        except ValueError:
            content = ""

        usage = {}
        if getattr(response, "usage_metadata", None):
            usage = {
                "prompt_tokens": response.usage_metadata.prompt_token_count,
                "completion_tokens": response.usage_metadata.candidates_token_count,
                "total_tokens": response.usage_metadata.total_token_count,
            }

        return LLMResponse(
            content=content,
            model=self.model,
            usage=usage,
            finish_reason=response.candidates[0].finish_reason.name if response.candidates else None,
            raw_response=response,
        )
