"""
Generation Client
Turns one CoverageKey into one raw ContentCandidate
"""
import logging
from typing import List, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from config import LLMSettings
from core.contracts import ContentCandidate, CoverageKey
from planning.catalog import SkillNode
from utils.exceptions import MalformedOutputError, TransientBackendError

from .decoder import extract_json_object
from .llm import BaseLLM, LLMResponse, Message
from .prompts import render_calibration_prompt, render_prompt


logger = logging.getLogger(__name__)

DEFAULT_CALIBRATED_DIFFICULTY = 3


class GenerationClient:
    """
    One backend request per item

    TransientBackendError is retried with exponential backoff up to
    max_attempts; MalformedOutputError and BackendError are raised at once.
    """

    def __init__(
        self,
        llm: BaseLLM,
        *,
        max_attempts: int = 3,
        wait_min: float = 1.0,
        wait_max: float = 10.0,
        generation_temperature: float = 0.8,
        calibration_temperature: float = 0.3,
        max_output_tokens: int = 1500,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.llm = llm
        self.max_attempts = max_attempts
        self.wait_min = wait_min
        self.wait_max = wait_max
        self.generation_temperature = generation_temperature
        self.calibration_temperature = calibration_temperature
        self.max_output_tokens = max_output_tokens

    @classmethod
    def from_settings(cls, llm: BaseLLM, settings: LLMSettings) -> "GenerationClient":
        return cls(
            llm,
            max_attempts=settings.max_attempts,
            wait_min=settings.retry_min_wait,
            wait_max=settings.retry_max_wait,
            generation_temperature=settings.generation_temperature,
            calibration_temperature=settings.calibration_temperature,
            max_output_tokens=settings.max_output_tokens,
        )

    @property
    def model_id(self) -> str:
        return f"{self.llm.provider}:{self.llm.model}"

    async def _request(self, messages: List[Message], temperature: float) -> LLMResponse:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(TransientBackendError),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=self.wait_min, max=self.wait_max),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                number = attempt.retry_state.attempt_number
                if number > 1:
                    logger.warning(f"Retrying {self.model_id} (attempt {number}/{self.max_attempts})")
                return await self.llm.acomplete(
                    messages,
                    temperature=temperature,
                    max_tokens=self.max_output_tokens,
                )

    async def generate(self, key: CoverageKey, skill_node: SkillNode) -> ContentCandidate:
        """
        Request one question for a bucket

        Raises:
            TransientBackendError: retries exhausted
            BackendError: non-retryable backend failure
            MalformedOutputError: response holds no JSON object
        """
        system_prompt, user_prompt = render_prompt(key, skill_node)
        response = await self._request(
            [Message.system(system_prompt), Message.user(user_prompt)],
            temperature=self.generation_temperature,
        )
        payload = extract_json_object(response.content)
        return ContentCandidate(
            key=key,
            payload=payload,
            model_id=response.model or self.llm.model,
            raw_text=response.content,
        )

    async def calibrate_difficulty(self, question_text: str) -> int:
        """
        Score a question's difficulty on 1..5

        Unparseable answers fall back to 3. Backend errors propagate.
        """
        system_prompt, user_prompt = render_calibration_prompt(question_text)
        response = await self._request(
            [Message.system(system_prompt), Message.user(user_prompt)],
            temperature=self.calibration_temperature,
        )
        try:
            data = extract_json_object(response.content)
            score = int(round(float(data["difficulty"])))
        except (MalformedOutputError, KeyError, TypeError, ValueError) as exc:
            logger.warning(f"Unparseable calibration answer, using {DEFAULT_CALIBRATED_DIFFICULTY}: {exc}")
            return DEFAULT_CALIBRATED_DIFFICULTY
        return max(1, min(5, score))

    async def aclose(self) -> None:
        await self.llm.aclose()


def question_text(payload: dict) -> str:
    """Flatten a payload into the text shown to the calibrator"""
    lines: List[Optional[str]] = [payload.get("question")]
    for option in payload.get("options") or []:
        lines.append(str(option))
    for part in payload.get("parts") or []:
        if isinstance(part, dict):
            lines.append(f"({part.get('part', '')}) {part.get('question', '')}")
    return "\n".join(str(line) for line in lines if line)
