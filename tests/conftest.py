from __future__ import annotations

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from core import QuestionType
from generation.llm import BaseLLM, LLMResponse, Message
from planning import Catalog, CoverageModel, SkillNode


class FakeClock:
    """Virtual time: sleep advances now() and yields to the loop once."""

    def __init__(self, start: float = 0.0) -> None:
        self.t = start
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self.t

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            self.t += seconds
            self.sleeps.append(seconds)
        await asyncio.sleep(0)


Reply = Union[str, Exception, Callable[[List[Message]], str]]


class ScriptedLLM(BaseLLM):
    """Returns queued replies in order; the last reply repeats."""

    def __init__(self, replies: List[Reply], *, clock: Optional[FakeClock] = None, latency_s: float = 0.0):
        super().__init__(model="fake-model", temperature=0.0, max_tokens=100)
        self.replies = list(replies)
        self.clock = clock
        self.latency_s = latency_s
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    @property
    def provider(self) -> str:
        return "fake"

    async def acomplete(self, messages: List[Message], **kwargs) -> LLMResponse:
        self.calls.append({"messages": list(messages), **kwargs})
        if self.clock is not None and self.latency_s:
            await self.clock.sleep(self.latency_s)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(messages)
        return LLMResponse(content=reply, model=self.model)

    async def aclose(self) -> None:
        self.closed = True


VALID_PAYLOADS: Dict[QuestionType, Dict[str, Any]] = {
    QuestionType.MC: {
        "question": "A car accelerates uniformly from rest to $20\\,\\text{m s}^{-1}$ in 5 s. Find its acceleration.",
        "options": ["A. 2 m/s²", "B. 4 m/s²", "C. 5 m/s²", "D. 100 m/s²"],
        "correctAnswer": "B",
        "explanation": "$a = \\frac{v - u}{t} = \\frac{20}{5} = 4$",
        "difficulty": 2,
    },
    QuestionType.SHORT: {
        "question": "Explain why a satellite in circular orbit is accelerating.",
        "modelAnswer": "Its velocity changes direction continuously.",
        "markingScheme": [{"marks": 1, "point": "velocity is a vector"}, {"marks": 2, "point": "direction changes"}],
        "totalMarks": 3,
    },
    QuestionType.LONG: {
        "question": "A ball is projected horizontally from a cliff.",
        "parts": [
            {"part": "a", "question": "Find the time of flight.", "marks": 3, "modelAnswer": "t = 2 s"},
            {"part": "b", "question": "Find the range.", "marks": 5, "modelAnswer": "R = 20 m"},
        ],
        "totalMarks": 8,
    },
    QuestionType.FILL_IN: {
        "question": "Newton's second law can be expressed as F = ___",
        "blanks": ["ma"],
        "hints": ["Force equals mass times..."],
        "explanation": "Definition of the newton.",
    },
    QuestionType.MATCHING: {
        "question": "Match the quantities with their units",
        "leftItems": ["Force", "Energy", "Power"],
        "rightItems": ["N", "J", "W"],
        "correctPairs": [[0, 0], [1, 1], [2, 2]],
    },
    QuestionType.ORDERING: {
        "question": "Order by frequency, lowest first",
        "items": ["Radio", "Infrared", "Visible", "Ultraviolet"],
        "correctOrder": [0, 1, 2, 3],
    },
}


def payload_reply(question_type: QuestionType, **overrides: Any) -> str:
    payload = dict(VALID_PAYLOADS[question_type])
    payload.update(overrides)
    return "Here you go:\n```json\n" + json.dumps(payload, ensure_ascii=False) + "\n```"


def reply_for_prompt(messages: List[Message]) -> str:
    """Valid reply for whatever question type the prompt asks for."""
    prompt = messages[-1].content
    markers = [
        ("multiple choice", QuestionType.MC),
        ("short answer", QuestionType.SHORT),
        ("long question", QuestionType.LONG),
        ("fill-in-the-blank", QuestionType.FILL_IN),
        ("matching question", QuestionType.MATCHING),
        ("ordering question", QuestionType.ORDERING),
    ]
    for marker, question_type in markers:
        if marker in prompt:
            return payload_reply(question_type)
    raise AssertionError(f"unexpected prompt: {prompt[:80]}")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def catalog() -> Catalog:
    return Catalog(
        name="test",
        target_per_bucket=2,
        difficulties=[2, 3],
        question_types=[QuestionType.MC, QuestionType.ORDERING],
        new_question_types=[QuestionType.ORDERING],
        languages=["en"],
        skill_nodes=[
            SkillNode(id="kinematics", name="Kinematics", name_zh="運動學", unit="Force and Motion"),
            SkillNode(id="waves", name="Wave properties", name_zh="波的特性", unit="Wave Motion"),
        ],
    )


@pytest.fixture
def model(catalog: Catalog) -> CoverageModel:
    return CoverageModel(catalog)
