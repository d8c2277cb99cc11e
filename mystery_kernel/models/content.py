"""Content results — what the validation pipeline hands back to callers."""

from enum import Enum
from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel

from mystery_kernel.models.world import GameState


class ContentErrorKind(str, Enum):
    # Malformed input, never partially applied
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_JSON = "malformed_json"
    SCHEMA_MISMATCH = "schema_mismatch"

    # Consistency
    NO_CHARACTERS = "no_characters"
    NO_PLACES = "no_places"
    DUPLICATE_ID = "duplicate_id"
    UNKNOWN_CHARACTER_LOCATION = "unknown_character_location"
    UNKNOWN_PLAYER_LOCATION = "unknown_player_location"
    UNKNOWN_CONNECTION = "unknown_connection"
    UNKNOWN_CLUE_LOCATION = "unknown_clue_location"
    INVALID_PHASE = "invalid_phase"
    NO_CRIMINAL = "no_criminal"
    MULTIPLE_CRIMINALS = "multiple_criminals"
    INVALID_TIMELINE = "invalid_timeline"
    INVALID_BASE_TIME = "invalid_base_time"
    EVENT_OUT_OF_WINDOW = "event_out_of_window"
    UNKNOWN_EVENT_REFERENCE = "unknown_event_reference"
    ENTITY_SET_CHANGED = "entity_set_changed"

    # Dialogue and narrative text
    EMPTY_TEXT = "empty_text"
    TEXT_TOO_SHORT = "text_too_short"
    TEXT_TOO_LONG = "text_too_long"
    UNKNOWN_CLUE = "unknown_clue"
    CLUE_NOT_KNOWN_BY_CHARACTER = "clue_not_known_by_character"
    CLUE_LOCKED = "clue_locked"
    CLUE_ALREADY_COLLECTED = "clue_already_collected"


class ContentIssue(BaseModel):
    """A single reason generated content was refused."""

    kind: ContentErrorKind
    message: str
    entity_id: Optional[str] = None
    field: Optional[str] = None
    expected: Optional[str] = None
    actual: Optional[str] = None


class ContentAccepted(BaseModel):
    status: Literal["accepted"] = "accepted"
    state: GameState
    reply: Optional[str] = None      # In-character reply riding on a transition


class ContentRejected(BaseModel):
    status: Literal["rejected"] = "rejected"
    issues: List[ContentIssue]

    @property
    def first(self) -> ContentIssue:
        return self.issues[0]

    def summary(self) -> str:
        return "; ".join(issue.message for issue in self.issues)


ContentResult = Union[ContentAccepted, ContentRejected]


class DialogueReply(BaseModel):
    """A validated in-character answer to a question."""

    dialogue: str
    new_clues: Tuple[str, ...] = ()
    mental_state_update: Optional[str] = None
    hints: Tuple[str, ...] = ()


class TextAccepted(BaseModel):
    status: Literal["accepted"] = "accepted"
    text: str


class DialogueAccepted(BaseModel):
    status: Literal["accepted"] = "accepted"
    reply: DialogueReply


TextResult = Union[TextAccepted, ContentRejected]
DialogueResult = Union[DialogueAccepted, ContentRejected]
