"""
Content Generator — the untrusted source of scenarios, replies and prose.

The kernel never talks to a model provider directly. Anything that can
answer `generate(system_prompt, user_payload, max_output_size)` will do;
the answer is treated as raw text and goes through the validation pipeline.

Behavioral Contract:
- One attempt per request, bounded by a timeout
- Timeouts and transport failures surface as GeneratorError, never as text
- Callers convert GeneratorError immediately (fallback or ERROR status)
"""

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Deque, List, Optional, Protocol, Tuple, Union

from mystery_kernel.content import prompts
from mystery_kernel.scenario.sample import sample_scenario_json

logger = logging.getLogger(__name__)


class ContentGenerator(Protocol):
    """Protocol for content generation, pluggable backend."""

    async def generate(
        self, system_prompt: str, user_payload: str, max_output_size: int
    ) -> str: ...


class GeneratorErrorKind(str, Enum):
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    EMPTY = "empty"


class GeneratorError(Exception):
    """Raised when the generator could not produce a response."""

    def __init__(self, kind: GeneratorErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


async def request_content(
    generator: ContentGenerator,
    system_prompt: str,
    user_payload: str,
    max_output_size: int,
    timeout_seconds: float,
) -> str:
    """Make one bounded generator call, normalizing failures to GeneratorError."""
    try:
        response = await asyncio.wait_for(
            generator.generate(system_prompt, user_payload, max_output_size),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        raise GeneratorError(
            GeneratorErrorKind.TIMEOUT,
            f"Generator did not answer within {timeout_seconds:g}s",
        )
    except GeneratorError:
        raise
    except Exception as e:
        raise GeneratorError(
            GeneratorErrorKind.TRANSPORT, f"{type(e).__name__}: {e}"
        ) from e

    if response is None or not str(response).strip():
        raise GeneratorError(GeneratorErrorKind.EMPTY, "Generator returned no content")
    return response


# --- Built-in generators ---

class ScriptedContentGenerator:
    """
    Replays queued responses in order. Queue an Exception to make that
    call fail. Every call is recorded as (system_prompt, user_payload,
    max_output_size) for inspection.
    """

    def __init__(self, responses: Optional[List[Union[str, Exception]]] = None):
        self._responses: Deque[Union[str, Exception]] = deque(responses or [])
        self.calls: List[Tuple[str, str, int]] = []

    def enqueue(self, response: Union[str, Exception]) -> None:
        self._responses.append(response)

    @property
    def pending(self) -> int:
        return len(self._responses)

    async def generate(
        self, system_prompt: str, user_payload: str, max_output_size: int
    ) -> str:
        self.calls.append((system_prompt, user_payload, max_output_size))
        if not self._responses:
            raise GeneratorError(GeneratorErrorKind.TRANSPORT, "No scripted response left")
        response = self._responses.popleft()
        if isinstance(response, Exception):
            raise response
        return response


class SampleScenarioGenerator:
    """
    Offline generator: serves the built-in sample case for bootstrap
    requests and fails everything else, so local fallbacks take over.
    """

    def __init__(self, scenario_json: Optional[str] = None):
        if scenario_json is None:
            scenario_json = sample_scenario_json()
        self._scenario_json = scenario_json

    async def generate(
        self, system_prompt: str, user_payload: str, max_output_size: int
    ) -> str:
        if system_prompt == prompts.SCENARIO_SYSTEM_PROMPT:
            return self._scenario_json
        logger.debug("Offline generator has no content for this request")
        raise GeneratorError(GeneratorErrorKind.TRANSPORT, "Offline generator: no content")
