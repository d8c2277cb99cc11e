"""Session models — status of the state holder and conversation logs."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from mystery_kernel.models.content import ContentIssue
from mystery_kernel.models.world import GameState


class SessionStatus(str, Enum):
    IDLE = "idle"          # No game yet; start surface
    LOADING = "loading"    # Waiting on the content generator
    READY = "ready"
    ERROR = "error"        # Last operation failed; message says why


class SessionState(BaseModel):
    status: SessionStatus = SessionStatus.IDLE
    message: Optional[str] = None
    has_game: bool = False
    action_in_flight: bool = False


class ConversationMessage(BaseModel):
    """One line of a conversation with a character."""

    role: str                    # "player" | "character"
    text: str
    at_minutes: int
    fallback: bool = False       # Reply came from the local handler


class BootstrapResult(BaseModel):
    """Outcome of starting a new case."""

    success: bool
    issues: List[ContentIssue] = []
    generator_error: Optional[str] = None     # Set when the generator itself failed
    state: Optional[GameState] = None


class NarrativeResult(BaseModel):
    """Intro or epilogue text shown to the player."""

    text: str
    used_fallback: bool = False
