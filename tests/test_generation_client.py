from __future__ import annotations

import pytest

from conftest import ScriptedLLM, payload_reply
from core import CoverageKey, QuestionType
from generation import GenerationClient, render_prompt
from generation.llm import MessageRole
from planning import SkillNode
from utils.exceptions import BackendError, MalformedOutputError, TransientBackendError


NODE = SkillNode(id="kinematics", name="Kinematics", name_zh="運動學", unit="Force and Motion")


def _key(qtype: str = "mc", language: str = "en", difficulty: int = 3) -> CoverageKey:
    return CoverageKey(skill_node="kinematics", difficulty=difficulty, question_type=qtype, language=language)


def _client(llm: ScriptedLLM, **kwargs) -> GenerationClient:
    kwargs.setdefault("max_attempts", 3)
    return GenerationClient(llm, wait_min=0, wait_max=0, **kwargs)


@pytest.mark.asyncio
async def test_generate_uses_generation_temperature_and_output_budget() -> None:
    llm = ScriptedLLM([payload_reply(QuestionType.MC)])
    candidate = await _client(llm, generation_temperature=0.8, max_output_tokens=1500).generate(_key(), NODE)

    assert candidate.key == _key()
    assert candidate.payload["correctAnswer"] == "B"
    assert candidate.model_id == "fake-model"
    assert "```json" in candidate.raw_text

    call = llm.calls[0]
    assert call["temperature"] == 0.8
    assert call["max_tokens"] == 1500
    assert call["messages"][0].role is MessageRole.SYSTEM
    assert "Kinematics" in call["messages"][1].content


@pytest.mark.asyncio
async def test_transient_errors_are_retried_then_succeed() -> None:
    llm = ScriptedLLM(
        [
            TransientBackendError("rate limited", provider="fake"),
            TransientBackendError("timeout", provider="fake"),
            payload_reply(QuestionType.MC),
        ]
    )
    candidate = await _client(llm).generate(_key(), NODE)
    assert candidate.payload["question"]
    assert len(llm.calls) == 3


@pytest.mark.asyncio
async def test_retries_are_bounded() -> None:
    llm = ScriptedLLM([TransientBackendError("down", provider="fake")])
    with pytest.raises(TransientBackendError):
        await _client(llm, max_attempts=2).generate(_key(), NODE)
    assert len(llm.calls) == 2


@pytest.mark.asyncio
async def test_permanent_errors_and_malformed_output_are_not_retried() -> None:
    llm = ScriptedLLM([BackendError("bad request", provider="fake")])
    with pytest.raises(BackendError):
        await _client(llm).generate(_key(), NODE)
    assert len(llm.calls) == 1

    llm = ScriptedLLM(["I cannot produce JSON today."])
    with pytest.raises(MalformedOutputError):
        await _client(llm).generate(_key(), NODE)
    assert len(llm.calls) == 1


@pytest.mark.asyncio
async def test_calibration_uses_low_temperature_and_clamps() -> None:
    llm = ScriptedLLM(['{"difficulty": 7, "reasoning": "very hard"}', '{"difficulty": "2"}', "no idea"])
    client = _client(llm, calibration_temperature=0.3)

    assert await client.calibrate_difficulty("What is g?") == 5
    assert await client.calibrate_difficulty("What is g?") == 2
    assert await client.calibrate_difficulty("What is g?") == 3
    assert all(call["temperature"] == 0.3 for call in llm.calls)


def test_prompts_cover_every_type_and_language() -> None:
    for qtype in QuestionType:
        for language in ("en", "zh"):
            system_prompt, user_prompt = render_prompt(_key(qtype.value, language), NODE)
            assert system_prompt
            expected_topic = "運動學" if language == "zh" else "Kinematics"
            assert expected_topic in user_prompt
            assert '"difficulty": 3' in user_prompt
