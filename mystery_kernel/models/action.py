"""Game Actions — the four things a player can do, and their outcomes."""

from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from mystery_kernel.models.timeline import TimelineEvent
from mystery_kernel.models.world import GameState

_ACTION_CONFIG = ConfigDict(
    frozen=True, alias_generator=to_camel, populate_by_name=True
)


class Investigate(BaseModel):
    """Search a place for clues and descriptions."""

    model_config = _ACTION_CONFIG

    kind: Literal["investigate"] = "investigate"
    place_id: str


class Question(BaseModel):
    """Interrogate a character in the same place as the player."""

    model_config = _ACTION_CONFIG

    kind: Literal["question"] = "question"
    character_id: str
    question: Optional[str] = None


class Move(BaseModel):
    """Walk to another place."""

    model_config = _ACTION_CONFIG

    kind: Literal["move"] = "move"
    place_id: str


class Accuse(BaseModel):
    """Name the criminal. Evidence is a list of clue ids."""

    model_config = _ACTION_CONFIG

    kind: Literal["accuse"] = "accuse"
    character_id: str
    evidence: Tuple[str, ...] = ()


GameAction = Annotated[
    Union[Investigate, Question, Move, Accuse], Field(discriminator="kind")
]


class ActionErrorKind(str, Enum):
    UNKNOWN_PLACE = "unknown_place"
    UNKNOWN_CHARACTER = "unknown_character"
    LOCKED = "locked"
    NOT_CO_LOCATED = "not_co_located"
    ALREADY_THERE = "already_there"
    UNKNOWN_CURRENT_LOCATION = "unknown_current_location"
    GAME_FINISHED = "game_finished"
    NO_GAME = "no_game"
    BUSY = "busy"


class ActionError(BaseModel):
    """Why an action was refused. The world snapshot is left untouched."""

    kind: ActionErrorKind
    message: str
    target_id: Optional[str] = None


class ActionResult(BaseModel):
    """Outcome of resolving one action against a snapshot."""

    success: bool
    action: Optional[Union[Investigate, Question, Move, Accuse]] = None
    state: Optional[GameState] = None
    minutes_spent: int = 0
    fired_events: List[TimelineEvent] = []
    narrative: Optional[str] = None          # Reply or description text, if any
    used_fallback: bool = False              # Generator failed; local handler ran
    error: Optional[ActionError] = None

    @classmethod
    def refused(
        cls,
        action,
        state: Optional[GameState],
        kind: ActionErrorKind,
        message: str,
        target_id: Optional[str] = None,
    ) -> "ActionResult":
        return cls(
            success=False,
            action=action,
            state=state,
            error=ActionError(kind=kind, message=message, target_id=target_id),
        )
