"""Tests for the content generator contract and built-in generators."""

import asyncio

import pytest

from mystery_kernel.content import prompts
from mystery_kernel.content.generator import (
    GeneratorError,
    GeneratorErrorKind,
    SampleScenarioGenerator,
    ScriptedContentGenerator,
    request_content,
)
from mystery_kernel.content.pipeline import process_scenario
from mystery_kernel.models import ContentAccepted


class _SlowGenerator:
    async def generate(self, system_prompt, user_payload, max_output_size):
        await asyncio.sleep(5)
        return "{}"


class _BrokenGenerator:
    async def generate(self, system_prompt, user_payload, max_output_size):
        raise ConnectionError("connection reset")


def _request(generator, timeout: float = 1.0) -> str:
    return asyncio.run(request_content(generator, "system", "payload", 100, timeout))


class TestRequestContent:
    def test_returns_text(self):
        generator = ScriptedContentGenerator(["hello"])
        assert _request(generator) == "hello"
        assert generator.calls == [("system", "payload", 100)]

    def test_timeout(self):
        with pytest.raises(GeneratorError) as exc:
            _request(_SlowGenerator(), timeout=0.01)
        assert exc.value.kind == GeneratorErrorKind.TIMEOUT

    def test_transport_failure(self):
        with pytest.raises(GeneratorError) as exc:
            _request(_BrokenGenerator())
        assert exc.value.kind == GeneratorErrorKind.TRANSPORT
        assert "connection reset" in exc.value.message

    def test_empty_response(self):
        with pytest.raises(GeneratorError) as exc:
            _request(ScriptedContentGenerator(["   "]))
        assert exc.value.kind == GeneratorErrorKind.EMPTY


class TestScriptedContentGenerator:
    def test_replays_in_order(self):
        generator = ScriptedContentGenerator(["one"])
        generator.enqueue("two")
        assert _request(generator) == "one"
        assert _request(generator) == "two"
        assert generator.pending == 0

    def test_queued_exception_is_raised(self):
        generator = ScriptedContentGenerator([RuntimeError("boom")])
        with pytest.raises(GeneratorError) as exc:
            _request(generator)
        assert exc.value.kind == GeneratorErrorKind.TRANSPORT

    def test_exhausted_queue_fails(self):
        with pytest.raises(GeneratorError):
            _request(ScriptedContentGenerator())


class TestSampleScenarioGenerator:
    def test_serves_sample_for_bootstrap(self):
        raw = asyncio.run(request_content(
            SampleScenarioGenerator(), prompts.SCENARIO_SYSTEM_PROMPT, "keywords", 3000, 1.0
        ))
        result = process_scenario(raw)
        assert isinstance(result, ContentAccepted)
        assert result.state.title == "Murder at the Office"

    def test_fails_other_requests(self):
        with pytest.raises(GeneratorError):
            asyncio.run(request_content(
                SampleScenarioGenerator(), prompts.INTRO_SYSTEM_PROMPT, "{}", 1000, 1.0
            ))
