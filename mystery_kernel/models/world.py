"""
World Model — the immutable snapshot of a case in progress.

Every entity is frozen. Changes go through the with-style helpers, which
return new objects; a GameState is replaced wholesale, never edited.
"""

from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from mystery_kernel.models.time import GameTime
from mystery_kernel.models.timeline import Timeline
from mystery_kernel.unlock.evaluator import is_unlocked


class GamePhase(str, Enum):
    START = "START"                  # Initial state
    TUTORIAL = "TUTORIAL"
    INTRODUCTION = "INTRODUCTION"    # Background, incident, cast introduction
    INVESTIGATION = "INVESTIGATION"  # Main gameplay
    GAME_OVER = "GAME_OVER"          # Ended without a verdict
    WIN = "WIN"
    LOSE = "LOSE"


TERMINAL_PHASES = frozenset({GamePhase.GAME_OVER, GamePhase.WIN, GamePhase.LOSE})
INITIAL_PHASES = (GamePhase.START, GamePhase.TUTORIAL, GamePhase.INTRODUCTION)


class LossReason(str, Enum):
    TIMEOUT = "TIMEOUT"                    # Deadline reached
    FALSE_ACCUSATION = "FALSE_ACCUSATION"  # Accused someone innocent


_ENTITY_CONFIG = ConfigDict(
    frozen=True, alias_generator=to_camel, populate_by_name=True
)


class Place(BaseModel):
    """A location the player can visit."""

    model_config = _ENTITY_CONFIG

    id: str
    name: str
    description: str = ""
    traits: Tuple[str, ...] = ()
    available_clues: Tuple[str, ...] = ()
    connected_places: Tuple[str, ...] = ()
    unlock_conditions: Tuple[str, ...] = ()
    hidden: bool = False

    def is_unlocked(self, flags: Dict[str, bool]) -> bool:
        return is_unlocked(self.unlock_conditions, flags)

    def distance_to(self, other: "Place") -> int:
        """1 for a direct connection from this place, otherwise 2."""
        return 1 if other.id in self.connected_places else 2


class Character(BaseModel):
    """A person in the case: suspect, witness or victim."""

    model_config = _ENTITY_CONFIG

    id: str
    name: str
    traits: Tuple[str, ...] = ()
    is_criminal: bool = False
    is_victim: bool = False
    known_clues: Tuple[str, ...] = ()
    mental_state: str = "Normal"
    current_location: str = ""
    unlock_conditions: Tuple[str, ...] = ()
    hidden: bool = False
    items: Tuple[str, ...] = ()

    def is_unlocked(self, flags: Dict[str, bool]) -> bool:
        return is_unlocked(self.unlock_conditions, flags)

    def is_at_location(self, location_id: str) -> bool:
        return self.current_location == location_id

    def move_to(self, location_id: str) -> "Character":
        return self.model_copy(update={"current_location": location_id})

    def with_mental_state(self, mental_state: str) -> "Character":
        return self.model_copy(update={"mental_state": mental_state})


class Clue(BaseModel):
    """A piece of evidence. `location` is a place id or a character id."""

    model_config = _ENTITY_CONFIG

    id: str
    name: str
    description: str = ""
    location: str
    unlock_conditions: Tuple[str, ...] = ()

    def is_unlocked(self, flags: Dict[str, bool]) -> bool:
        return is_unlocked(self.unlock_conditions, flags)


class Player(BaseModel):
    """The detective."""

    model_config = _ENTITY_CONFIG

    name: str = "Detective"
    current_location: str = ""
    collected_clues: Tuple[str, ...] = ()
    tools: Tuple[str, ...] = ()

    def has_clue(self, clue_id: str) -> bool:
        return clue_id in self.collected_clues

    def has_tool(self, tool: str) -> bool:
        return tool in self.tools

    def add_clue(self, clue_id: str) -> "Player":
        if self.has_clue(clue_id):
            return self
        return self.model_copy(update={"collected_clues": self.collected_clues + (clue_id,)})

    def add_tool(self, tool: str) -> "Player":
        if self.has_tool(tool):
            return self
        return self.model_copy(update={"tools": self.tools + (tool,)})

    def move_to(self, location_id: str) -> "Player":
        return self.model_copy(update={"current_location": location_id})


class GameState(BaseModel):
    """One complete, immutable snapshot of the world."""

    model_config = _ENTITY_CONFIG

    title: str = ""
    description: str = ""
    phase: GamePhase = GamePhase.START
    current_time: GameTime = GameTime(minutes=0)
    player: Player = Player()
    characters: Tuple[Character, ...] = ()
    places: Tuple[Place, ...] = ()
    clues: Tuple[Clue, ...] = ()
    timeline: Timeline = Timeline(
        base_time=GameTime(minutes=0),
        start_time=GameTime(minutes=0),
        end_time=GameTime(minutes=480),  # 8 hours
    )
    flags: Dict[str, bool] = {}
    loss_reason: Optional[LossReason] = None

    # --- Lookups ---

    def get_character(self, character_id: str) -> Optional[Character]:
        return next((c for c in self.characters if c.id == character_id), None)

    def get_place(self, place_id: str) -> Optional[Place]:
        return next((p for p in self.places if p.id == place_id), None)

    def get_clue(self, clue_id: str) -> Optional[Clue]:
        return next((c for c in self.clues if c.id == clue_id), None)

    def get_current_place(self) -> Optional[Place]:
        return self.get_place(self.player.current_location)

    def get_characters_at_location(self, location_id: str) -> List[Character]:
        return [c for c in self.characters if c.is_at_location(location_id)]

    def get_available_clues_at_location(self, location_id: str) -> List[Clue]:
        """Unlocked clues listed by a place."""
        place = self.get_place(location_id)
        if place is None:
            return []
        clues = [self.get_clue(clue_id) for clue_id in place.available_clues]
        return [c for c in clues if c is not None and c.is_unlocked(self.flags)]

    def get_criminal(self) -> Optional[Character]:
        return next((c for c in self.characters if c.is_criminal), None)

    def get_victim(self) -> Optional[Character]:
        return next((c for c in self.characters if c.is_victim), None)

    @property
    def is_finished(self) -> bool:
        return self.phase in TERMINAL_PHASES

    # --- Copy-on-write updates ---

    def update_flag(self, key: str, value: bool) -> "GameState":
        return self.model_copy(update={"flags": {**self.flags, key: value}})

    def update_time(self, new_time: GameTime) -> "GameState":
        return self.model_copy(update={"current_time": new_time})

    def update_player(self, new_player: Player) -> "GameState":
        return self.model_copy(update={"player": new_player})

    def with_phase(
        self, phase: GamePhase, loss_reason: Optional[LossReason] = None
    ) -> "GameState":
        return self.model_copy(update={"phase": phase, "loss_reason": loss_reason})

    def replace_character(self, character: Character) -> "GameState":
        characters = tuple(
            character if c.id == character.id else c for c in self.characters
        )
        return self.model_copy(update={"characters": characters})

    def to_payload(self) -> dict:
        """JSON-ready dict in wire (camelCase) form."""
        return self.model_dump(mode="json", by_alias=True)
