"""
Win/Lose Evaluator — terminal conditions and explicit phase transitions.

Phases only move forward:
  START → TUTORIAL → INTRODUCTION → INVESTIGATION → (WIN | LOSE | GAME_OVER)
Steps may be skipped, but never repeated or reversed, and a terminal phase
is never left.
"""

import logging
from typing import Optional

from pydantic import BaseModel

from mystery_kernel.models.world import (
    GamePhase,
    GameState,
    LossReason,
    TERMINAL_PHASES,
)

logger = logging.getLogger(__name__)

_PHASE_RANK = {
    GamePhase.START: 0,
    GamePhase.TUTORIAL: 1,
    GamePhase.INTRODUCTION: 2,
    GamePhase.INVESTIGATION: 3,
    GamePhase.GAME_OVER: 4,
    GamePhase.WIN: 4,
    GamePhase.LOSE: 4,
}


class PhaseTransition(BaseModel):
    """Result of asking for a phase change."""

    success: bool
    state: GameState
    error: Optional[str] = None


def evaluate_outcome(state: GameState) -> GameState:
    """
    Check a snapshot for terminal conditions.

    A finished game is left alone, so a WIN is never overridden. Otherwise
    reaching the deadline loses the game on time.
    """
    if state.phase in TERMINAL_PHASES:
        return state
    if state.current_time.minutes >= state.timeline.end_time.minutes:
        logger.info("Deadline %s reached; game lost", state.timeline.end_time.format())
        return state.with_phase(GamePhase.LOSE, LossReason.TIMEOUT)
    return state


def transition_to_phase(state: GameState, phase: GamePhase) -> PhaseTransition:
    """Move the snapshot to a later phase."""
    current = state.phase
    if current == phase:
        return PhaseTransition(
            success=False, state=state, error=f"Phase is already {phase.value}"
        )
    if current in TERMINAL_PHASES:
        return PhaseTransition(
            success=False,
            state=state,
            error=f"Game has finished ({current.value}); cannot enter {phase.value}",
        )
    if _PHASE_RANK[phase] < _PHASE_RANK[current]:
        return PhaseTransition(
            success=False,
            state=state,
            error=f"Cannot go back from {current.value} to {phase.value}",
        )

    return PhaseTransition(success=True, state=state.with_phase(phase))
