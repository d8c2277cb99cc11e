"""
Wire schema for generated scenarios.

These payload models mirror the JSON the content generator is asked to
produce. They are deliberately separate from the world model: mapping a
payload into entities keeps ids and renames fields, nothing more.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic.alias_generators import to_camel

from mystery_kernel.models.content import DialogueReply
from mystery_kernel.models.time import GameTime, round_to_time_unit
from mystery_kernel.models.timeline import EventType, Timeline, TimelineEvent
from mystery_kernel.models.world import (
    Character,
    Clue,
    GamePhase,
    GameState,
    Place,
    Player,
)


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimePayload(_Payload):
    minutes: int

    def to_game_time(self) -> GameTime:
        return GameTime(minutes=round_to_time_unit(self.minutes))


class PlayerPayload(_Payload):
    current_location: str
    tools: List[str] = []

    def to_player(self) -> Player:
        return Player(current_location=self.current_location, tools=tuple(self.tools))


class CharacterPayload(_Payload):
    id: str
    name: str
    traits: List[str] = []
    initial_location: str
    is_criminal: bool = False
    is_victim: bool = False
    known_clues: List[str] = []
    mental_state: str = "Normal"
    hidden: bool = False
    items: List[str] = []
    unlock_conditions: List[str] = []

    def to_character(self) -> Character:
        return Character(
            id=self.id,
            name=self.name,
            traits=tuple(self.traits),
            current_location=self.initial_location,
            is_criminal=self.is_criminal,
            is_victim=self.is_victim,
            known_clues=tuple(self.known_clues),
            mental_state=self.mental_state,
            hidden=self.hidden,
            items=tuple(self.items),
            unlock_conditions=tuple(self.unlock_conditions),
        )


class PlacePayload(_Payload):
    id: str
    name: str
    description: str = ""
    traits: List[str] = []
    available_clues: List[str] = []
    unlock_conditions: List[str] = []
    connections: List[str] = []
    hidden: bool = False

    def to_place(self) -> Place:
        return Place(
            id=self.id,
            name=self.name,
            description=self.description,
            traits=tuple(self.traits),
            available_clues=tuple(self.available_clues),
            unlock_conditions=tuple(self.unlock_conditions),
            connected_places=tuple(self.connections),
            hidden=self.hidden,
        )


class CluePayload(_Payload):
    id: str
    name: str
    description: str = ""
    location: str
    unlock_conditions: List[str] = []

    def to_clue(self) -> Clue:
        return Clue(
            id=self.id,
            name=self.name,
            description=self.description,
            location=self.location,
            unlock_conditions=tuple(self.unlock_conditions),
        )


class TimelineEventPayload(_Payload):
    id: str
    time: TimePayload
    event_type: EventType
    description: str = ""
    character_id: Optional[str] = None
    place_id: Optional[str] = None

    def to_event(self) -> TimelineEvent:
        return TimelineEvent(
            id=self.id,
            time=self.time.to_game_time(),
            event_type=self.event_type,
            description=self.description,
            # Generators send "" for "not applicable"
            character_id=self.character_id or None,
            place_id=self.place_id or None,
        )


class TimelinePayload(_Payload):
    base_time: TimePayload
    start_time: TimePayload
    end_time: TimePayload
    events: List[TimelineEventPayload] = []

    def to_timeline(self) -> Timeline:
        return Timeline(
            base_time=self.base_time.to_game_time(),
            start_time=self.start_time.to_game_time(),
            end_time=self.end_time.to_game_time(),
            events=tuple(e.to_event() for e in self.events),
        )


class FlagPayload(_Payload):
    id: str
    value: bool


FlagList = TypeAdapter(List[FlagPayload])


class ScenarioPayload(_Payload):
    """A complete generated case, as produced for bootstrap."""

    title: str
    description: str = ""
    phase: GamePhase
    player: PlayerPayload
    characters: List[CharacterPayload] = []
    places: List[PlacePayload] = []
    clues: List[CluePayload] = []
    timeline: TimelinePayload
    flags: List[FlagPayload] = []

    def flag_table(self) -> Dict[str, bool]:
        return {f.id: f.value for f in self.flags}

    def to_game_state(self) -> GameState:
        timeline = self.timeline.to_timeline()
        return GameState(
            title=self.title,
            description=self.description,
            phase=self.phase,
            # Play begins at the timeline's start
            current_time=timeline.start_time,
            player=self.player.to_player(),
            characters=tuple(c.to_character() for c in self.characters),
            places=tuple(p.to_place() for p in self.places),
            clues=tuple(c.to_clue() for c in self.clues),
            timeline=timeline,
            flags=self.flag_table(),
        )


class DialoguePayload(_Payload):
    """An in-character answer, as produced for a question."""

    dialogue: Optional[str] = None
    new_clues: Optional[List[str]] = None
    mental_state_update: Optional[str] = None
    hints: Optional[List[str]] = None

    def to_reply(self) -> DialogueReply:
        return DialogueReply(
            dialogue=self.dialogue or "",
            new_clues=tuple(self.new_clues or ()),
            mental_state_update=self.mental_state_update or None,
            hints=tuple(self.hints or ()),
        )
