"""Mystery Kernel data models."""

from mystery_kernel.models.action import (
    Accuse,
    ActionError,
    ActionErrorKind,
    ActionResult,
    GameAction,
    Investigate,
    Move,
    Question,
)
from mystery_kernel.models.content import (
    ContentAccepted,
    ContentErrorKind,
    ContentIssue,
    ContentRejected,
    DialogueAccepted,
    DialogueReply,
    TextAccepted,
)
from mystery_kernel.models.engine import EngineConfig
from mystery_kernel.models.session import (
    ConversationMessage,
    SessionState,
    SessionStatus,
)
from mystery_kernel.models.time import GameTime
from mystery_kernel.models.timeline import EventType, Timeline, TimelineEvent
from mystery_kernel.models.world import (
    Character,
    Clue,
    GamePhase,
    GameState,
    LossReason,
    Place,
    Player,
)

__all__ = [
    "Accuse",
    "ActionError",
    "ActionErrorKind",
    "ActionResult",
    "Character",
    "Clue",
    "ContentAccepted",
    "ContentErrorKind",
    "ContentIssue",
    "ContentRejected",
    "ConversationMessage",
    "DialogueAccepted",
    "DialogueReply",
    "EngineConfig",
    "EventType",
    "GameAction",
    "GamePhase",
    "GameState",
    "GameTime",
    "Investigate",
    "LossReason",
    "Move",
    "Place",
    "Player",
    "Question",
    "SessionState",
    "SessionStatus",
    "TextAccepted",
    "Timeline",
    "TimelineEvent",
]
