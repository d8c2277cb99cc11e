"""
Game Session — holds the single current snapshot and serializes changes.

The session is the only writer. Actions are resolved one at a time: while
one is in flight a second is refused rather than queued. Observers are told
about every new snapshot and status change.
"""

import logging
from typing import Callable, Dict, List, Optional

from mystery_kernel.content import prompts
from mystery_kernel.content.generator import ContentGenerator, GeneratorError, request_content
from mystery_kernel.content.pipeline import process_narrative_text, process_scenario
from mystery_kernel.content.requests import (
    build_epilogue_request,
    build_intro_request,
    build_scenario_request,
)
from mystery_kernel.models.action import ActionErrorKind, ActionResult, Question
from mystery_kernel.models.content import ContentRejected
from mystery_kernel.models.engine import EngineConfig
from mystery_kernel.models.session import (
    BootstrapResult,
    ConversationMessage,
    NarrativeResult,
    SessionState,
    SessionStatus,
)
from mystery_kernel.models.world import GamePhase, GameState, LossReason
from mystery_kernel.outcome.evaluator import PhaseTransition, transition_to_phase
from mystery_kernel.resolver.actions import ActionResolver
from mystery_kernel.scenario.sample import sample_scenario_json

logger = logging.getLogger(__name__)

INTRO_MIN_LENGTH = 50
INTRO_MAX_LENGTH = 2000
EPILOGUE_MAX_LENGTH = 3000

Listener = Callable[[Optional[GameState], SessionState], None]


class NoGameError(Exception):
    """Raised when an operation needs a game and none has been started."""
    pass


class GameSession:
    """In-memory holder for one game at a time."""

    def __init__(
        self,
        generator: Optional[ContentGenerator] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.generator = generator
        self._config = config or EngineConfig()
        self._resolver = ActionResolver(generator, self._config)
        self._state: Optional[GameState] = None
        self._status = SessionState()
        self._listeners: List[Listener] = []
        self._conversations: Dict[str, List[ConversationMessage]] = {}

    # --- Observation ---

    @property
    def state(self) -> Optional[GameState]:
        return self._state

    @property
    def status(self) -> SessionState:
        return self._status

    @property
    def config(self) -> EngineConfig:
        return self._config

    @config.setter
    def config(self, config: EngineConfig) -> None:
        self._config = config
        self._resolver = ActionResolver(self.generator, config)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self._state, self._status)

    def _set_status(self, status: SessionStatus, message: Optional[str] = None) -> None:
        self._status = SessionState(
            status=status,
            message=message,
            has_game=self._state is not None,
            action_in_flight=self._status.action_in_flight,
        )
        self._notify()

    def _set_in_flight(self, in_flight: bool) -> None:
        self._status = self._status.model_copy(update={"action_in_flight": in_flight})

    def _require_state(self) -> GameState:
        if self._state is None:
            raise NoGameError("No game has been started")
        return self._state

    def conversation(self, character_id: str) -> List[ConversationMessage]:
        return list(self._conversations.get(character_id, []))

    # --- Bootstrap ---

    def _install(self, state: GameState) -> None:
        self._state = state
        self._conversations = {}
        self._set_status(SessionStatus.READY)

    def load_scenario(self, raw: str) -> BootstrapResult:
        """
        Validate a scenario document and, if accepted, make it the game.

        A rejected document leaves no current game, as with start_new_game.
        """
        result = process_scenario(raw)
        if isinstance(result, ContentRejected):
            self._state = None
            self._conversations = {}
            self._set_status(SessionStatus.ERROR, f"Scenario rejected: {result.summary()}")
            return BootstrapResult(success=False, issues=result.issues)
        self._install(result.state)
        return BootstrapResult(success=True, state=result.state)

    def start_sample_game(self) -> BootstrapResult:
        return self.load_scenario(sample_scenario_json())

    async def start_new_game(self, keywords: str) -> BootstrapResult:
        """
        Ask the generator for a new case and validate it.

        On any failure there is no current game and the status is ERROR;
        calling again retries.
        """
        self._state = None
        self._conversations = {}
        if self.generator is None:
            self._set_status(SessionStatus.ERROR, "No content generator configured")
            return BootstrapResult(success=False, generator_error="No content generator configured")

        self._set_status(SessionStatus.LOADING)
        try:
            raw = await request_content(
                self.generator,
                prompts.SCENARIO_SYSTEM_PROMPT,
                build_scenario_request(keywords, self._config.language),
                self._config.scenario_max_output,
                self._config.generator_timeout_seconds,
            )
        except GeneratorError as e:
            logger.warning("Scenario generation failed: %s", e.message)
            self._set_status(SessionStatus.ERROR, f"Scenario generation failed: {e.message}")
            return BootstrapResult(success=False, generator_error=e.message)

        return self.load_scenario(raw)

    # --- Play ---

    async def execute_action(self, action) -> ActionResult:
        """Resolve one action against the current snapshot."""
        if self._status.action_in_flight:
            return ActionResult.refused(
                action, self._state, ActionErrorKind.BUSY, "Another action is still being resolved"
            )
        if self._state is None:
            return ActionResult.refused(action, None, ActionErrorKind.NO_GAME, "No game has been started")

        before = self._state
        history = self.conversation(action.character_id) if isinstance(action, Question) else []
        self._set_in_flight(True)
        try:
            result = await self._resolver.resolve(before, action, history)
        finally:
            self._set_in_flight(False)

        if not result.success:
            return result

        self._state = result.state
        if isinstance(action, Question):
            self._record_exchange(before, result, action)
        self._set_status(SessionStatus.READY)
        return result

    def _record_exchange(self, before: GameState, result: ActionResult, action: Question) -> None:
        log = self._conversations.setdefault(action.character_id, [])
        log.append(ConversationMessage(
            role="player",
            text=action.question or "Tell me what you know.",
            at_minutes=before.current_time.minutes,
        ))
        if result.narrative:
            log.append(ConversationMessage(
                role="character",
                text=result.narrative,
                at_minutes=result.state.current_time.minutes,
                fallback=result.used_fallback,
            ))

    def transition_to_phase(self, phase: GamePhase) -> PhaseTransition:
        transition = transition_to_phase(self._require_state(), phase)
        if transition.success:
            self._state = transition.state
            self._set_status(SessionStatus.READY)
        return transition

    # --- Narrative ---

    async def _narrate(
        self, system_prompt: str, payload: str, min_length: int, max_length: int
    ) -> Optional[str]:
        if self.generator is None:
            return None
        try:
            raw = await request_content(
                self.generator,
                system_prompt,
                payload,
                self._config.narrative_max_output,
                self._config.generator_timeout_seconds,
            )
        except GeneratorError as e:
            logger.warning("Narrative generation failed: %s", e.message)
            return None
        result = process_narrative_text(raw, min_length, max_length)
        if isinstance(result, ContentRejected):
            logger.warning("Narrative rejected: %s", result.summary())
            return None
        return result.text

    async def generate_intro(self) -> NarrativeResult:
        state = self._require_state()
        text = await self._narrate(
            prompts.INTRO_SYSTEM_PROMPT,
            build_intro_request(state, self._config.language),
            INTRO_MIN_LENGTH,
            INTRO_MAX_LENGTH,
        )
        if text is None:
            return NarrativeResult(text=fallback_intro(state), used_fallback=True)
        return NarrativeResult(text=text)

    async def generate_epilogue(self) -> NarrativeResult:
        state = self._require_state()
        text = await self._narrate(
            prompts.EPILOGUE_SYSTEM_PROMPT,
            build_epilogue_request(state, self._config.language),
            1,
            EPILOGUE_MAX_LENGTH,
        )
        if text is None:
            return NarrativeResult(text=fallback_epilogue(state), used_fallback=True)
        return NarrativeResult(text=text)


def fallback_intro(state: GameState) -> str:
    place = state.get_current_place()
    where = place.name if place else "the scene"
    suspects = [c.name for c in state.characters if not c.hidden and not c.is_victim]
    lines = [state.title or "A new case", "", state.description]
    if suspects:
        lines.append(f"The people you will want to talk to: {', '.join(suspects)}.")
    lines.append(
        f"You arrive at {where} at {state.current_time.format()}. "
        f"You have until {state.timeline.end_time.format()} to name the culprit."
    )
    return "\n".join(lines)


def fallback_epilogue(state: GameState) -> str:
    criminal = state.get_criminal()
    name = criminal.name if criminal else "the culprit"
    if state.phase == GamePhase.WIN:
        return f"Case closed. Your deduction holds: {name} is taken into custody."
    if state.loss_reason == LossReason.FALSE_ACCUSATION:
        return f"The accusation falls apart. While attention is elsewhere, {name} walks free."
    if state.loss_reason == LossReason.TIMEOUT:
        return f"Time runs out before the truth comes to light. It was {name}."
    return f"The case remains unresolved. It was {name}."
