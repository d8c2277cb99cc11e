"""
Action Resolver — validates a player action and produces the next snapshot.

Behavioral Contract:
- A failed precondition leaves the snapshot untouched and says why
- Every successful action costs time, then fires the events it crossed
- The Win/Lose Evaluator runs after every successful action
- Generator content is optional: when it fails, the local handler runs
- Actions against a finished game are refused
"""

import logging
from typing import Optional, Sequence, Tuple

from mystery_kernel.clock.engine import advance_and_collect
from mystery_kernel.content import prompts
from mystery_kernel.content.generator import ContentGenerator, GeneratorError, request_content
from mystery_kernel.content.pipeline import (
    apply_dialogue,
    process_dialogue,
    process_narrative_text,
    process_transition,
)
from mystery_kernel.content.requests import (
    build_description_request,
    build_dialogue_request,
    build_transition_request,
)
from mystery_kernel.models.action import (
    Accuse,
    ActionError,
    ActionErrorKind,
    ActionResult,
    Investigate,
    Move,
    Question,
)
from mystery_kernel.models.content import ContentRejected
from mystery_kernel.models.engine import EngineConfig
from mystery_kernel.models.session import ConversationMessage
from mystery_kernel.models.world import GamePhase, GameState, LossReason
from mystery_kernel.outcome.evaluator import evaluate_outcome
from mystery_kernel.unlock.evaluator import missing_conditions

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 2000


def _error(kind: ActionErrorKind, message: str, target_id: Optional[str] = None) -> ActionError:
    return ActionError(kind=kind, message=message, target_id=target_id)


def _locked_message(name: str, conditions, state: GameState) -> str:
    return f"{name} is locked (requires: {', '.join(missing_conditions(conditions, state.flags))})"


# --- Preconditions ---

def check_preconditions(state: GameState, action) -> Optional[ActionError]:
    """Return why an action cannot be taken, or None if it can."""
    if state.is_finished:
        return _error(
            ActionErrorKind.GAME_FINISHED,
            f"The game is over ({state.phase.value})",
        )

    if isinstance(action, (Investigate, Move)):
        place = state.get_place(action.place_id)
        if place is None:
            return _error(ActionErrorKind.UNKNOWN_PLACE, f"No such place: {action.place_id}", action.place_id)
        if not place.is_unlocked(state.flags):
            return _error(ActionErrorKind.LOCKED, _locked_message(place.name, place.unlock_conditions, state), place.id)
        if isinstance(action, Move):
            if state.player.current_location == place.id:
                return _error(ActionErrorKind.ALREADY_THERE, f"Already at {place.name}", place.id)
            if state.get_current_place() is None:
                return _error(
                    ActionErrorKind.UNKNOWN_CURRENT_LOCATION,
                    f"Player location {state.player.current_location!r} is not a known place",
                    state.player.current_location,
                )
        return None

    if isinstance(action, (Question, Accuse)):
        character = state.get_character(action.character_id)
        if character is None:
            return _error(
                ActionErrorKind.UNKNOWN_CHARACTER,
                f"No such character: {action.character_id}",
                action.character_id,
            )
        if isinstance(action, Question):
            if not character.is_unlocked(state.flags):
                return _error(
                    ActionErrorKind.LOCKED,
                    _locked_message(character.name, character.unlock_conditions, state),
                    character.id,
                )
            if not character.is_at_location(state.player.current_location):
                return _error(
                    ActionErrorKind.NOT_CO_LOCATED,
                    f"{character.name} is not here",
                    character.id,
                )
        return None

    raise AssertionError(f"Unhandled action: {action!r}")


def action_minutes(state: GameState, action, config: EngineConfig) -> int:
    """Time cost of an action whose preconditions hold."""
    if isinstance(action, Investigate):
        return config.investigation_minutes
    if isinstance(action, Question):
        return config.questioning_minutes
    if isinstance(action, Move):
        current = state.get_current_place()
        target = state.get_place(action.place_id)
        return config.movement_minutes(current.distance_to(target))
    if isinstance(action, Accuse):
        return config.accusation_minutes
    raise AssertionError(f"Unhandled action: {action!r}")


# --- Local handler ---

def _apply_effect(state: GameState, action) -> Tuple[GameState, Optional[str]]:
    """Deterministic effect of an action, before time passes."""
    if isinstance(action, Investigate):
        return state, None
    if isinstance(action, Question):
        character = state.get_character(action.character_id)
        return state, f"{character.name} has nothing more to add right now."
    if isinstance(action, Move):
        return state.update_player(state.player.move_to(action.place_id)), None
    if isinstance(action, Accuse):
        return state, None
    raise AssertionError(f"Unhandled action: {action!r}")


def _render_verdict(state: GameState, action) -> GameState:
    if not isinstance(action, Accuse) or state.is_finished:
        return state
    character = state.get_character(action.character_id)
    if character.is_criminal:
        logger.info("Correct accusation of %s; game won", character.id)
        return state.with_phase(GamePhase.WIN)
    logger.info("False accusation of %s; game lost", character.id)
    return state.with_phase(GamePhase.LOSE, LossReason.FALSE_ACCUSATION)


def _complete(
    state: GameState,
    action,
    minutes: int,
    narrative: Optional[str] = None,
    used_fallback: bool = False,
) -> ActionResult:
    """Spend the action's time, fire crossed events, and evaluate the outcome."""
    state, fired = advance_and_collect(state, minutes)
    state = _render_verdict(state, action)
    state = evaluate_outcome(state)
    return ActionResult(
        success=True,
        action=action,
        state=state,
        minutes_spent=minutes,
        fired_events=fired,
        narrative=narrative,
        used_fallback=used_fallback,
    )


def apply_action(state: GameState, action, config: Optional[EngineConfig] = None) -> ActionResult:
    """Resolve an action with the local, deterministic handler only."""
    config = config or EngineConfig()
    error = check_preconditions(state, action)
    if error:
        return ActionResult(success=False, action=action, state=state, error=error)

    minutes = action_minutes(state, action, config)
    new_state, narrative = _apply_effect(state, action)
    return _complete(new_state, action, minutes, narrative)


# --- Generator-backed resolution ---

class ActionResolver:
    """
    Resolves actions, consulting the content generator where one helps.

    Investigations may get a place description; questions get either a
    full proposed next snapshot ("transition" mode) or an in-character
    reply ("dialogue" mode). Moves and accusations are always local.
    """

    def __init__(
        self,
        generator: Optional[ContentGenerator] = None,
        config: Optional[EngineConfig] = None,
    ):
        self.generator = generator
        self.config = config or EngineConfig()

    async def _request(self, system_prompt: str, payload: str, max_output: int) -> str:
        return await request_content(
            self.generator,
            system_prompt,
            payload,
            max_output,
            self.config.generator_timeout_seconds,
        )

    async def resolve(
        self,
        state: GameState,
        action,
        history: Sequence[ConversationMessage] = (),
    ) -> ActionResult:
        error = check_preconditions(state, action)
        if error:
            return ActionResult(success=False, action=action, state=state, error=error)

        if self.generator is None or isinstance(action, (Move, Accuse)):
            return apply_action(state, action, self.config)
        if isinstance(action, Investigate):
            return await self._investigate(state, action)
        if isinstance(action, Question):
            if self.config.question_mode == "dialogue":
                return await self._question_dialogue(state, action, history)
            return await self._question_transition(state, action)
        raise AssertionError(f"Unhandled action: {action!r}")

    async def _investigate(self, state: GameState, action: Investigate) -> ActionResult:
        minutes = action_minutes(state, action, self.config)
        if not self.config.describe_investigations:
            return _complete(state, action, minutes)

        try:
            raw = await self._request(
                prompts.DESCRIPTION_SYSTEM_PROMPT,
                build_description_request(state, action.place_id, self.config.language),
                self.config.narrative_max_output,
            )
        except GeneratorError as e:
            logger.warning("Description for %s unavailable: %s", action.place_id, e.message)
            return _complete(state, action, minutes, used_fallback=True)

        result = process_narrative_text(raw, max_length=MAX_DESCRIPTION_LENGTH)
        if isinstance(result, ContentRejected):
            logger.warning("Description for %s rejected: %s", action.place_id, result.summary())
            return _complete(state, action, minutes, used_fallback=True)
        return _complete(state, action, minutes, narrative=result.text)

    async def _question_transition(self, state: GameState, action: Question) -> ActionResult:
        minutes = action_minutes(state, action, self.config)
        try:
            raw = await self._request(
                prompts.TRANSITION_SYSTEM_PROMPT,
                build_transition_request(state, action),
                self.config.transition_max_output,
            )
        except GeneratorError as e:
            logger.warning("Transition for %s failed (%s); using local handler", action.character_id, e.message)
            return self._fallback(state, action)

        result = process_transition(raw, state)
        if isinstance(result, ContentRejected):
            logger.warning("Transition for %s rejected: %s; using local handler", action.character_id, result.summary())
            return self._fallback(state, action)
        return _complete(result.state, action, minutes, narrative=result.reply)

    async def _question_dialogue(
        self,
        state: GameState,
        action: Question,
        history: Sequence[ConversationMessage],
    ) -> ActionResult:
        minutes = action_minutes(state, action, self.config)
        try:
            raw = await self._request(
                prompts.DIALOGUE_SYSTEM_PROMPT,
                build_dialogue_request(state, action.character_id, action.question, history),
                self.config.dialogue_max_output,
            )
        except GeneratorError as e:
            logger.warning("Dialogue for %s failed (%s); using local handler", action.character_id, e.message)
            return self._fallback(state, action)

        result = process_dialogue(raw, state, action.character_id)
        if isinstance(result, ContentRejected):
            logger.warning("Dialogue for %s rejected: %s; using local handler", action.character_id, result.summary())
            return self._fallback(state, action)
        new_state = apply_dialogue(state, action.character_id, result.reply)
        return _complete(new_state, action, minutes, narrative=result.reply.dialogue)

    def _fallback(self, state: GameState, action) -> ActionResult:
        result = apply_action(state, action, self.config)
        return result.model_copy(update={"used_fallback": True})
