"""
Request payloads — what each content request tells the generator.

Each builder projects a snapshot onto exactly the information a request
needs. The intro request carries public information only; nothing in it
says who the criminal is.
"""

import json
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from mystery_kernel.models.action import Accuse, Investigate, Move, Question
from mystery_kernel.models.session import ConversationMessage
from mystery_kernel.models.world import GamePhase, GameState

MAX_PLACE_EVENTS = 5
MAX_KEY_CLUES = 6


class _Request(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


# --- Scenario ---

def build_scenario_request(keywords: str, language: str = "en") -> str:
    keywords = keywords.strip() or "a murder in a small office building"
    return (
        f"Case keywords: {keywords}\n"
        f"Language: {language or 'en'}\n"
        "Generate the complete scenario JSON now."
    )


# --- Transition ---

def describe_action(action, state: GameState) -> str:
    """One-line, human-readable account of an action for the generator."""
    if isinstance(action, Question):
        character = state.get_character(action.character_id)
        name = character.name if character else action.character_id
        question = action.question or "Tell me what you know."
        return f"The detective questions {name} ({action.character_id}): \"{question}\""
    if isinstance(action, Investigate):
        return f"The detective investigates {action.place_id}."
    if isinstance(action, Move):
        return f"The detective moves to {action.place_id}."
    if isinstance(action, Accuse):
        return f"The detective accuses {action.character_id}."
    raise AssertionError(f"Unhandled action: {action!r}")


def build_transition_request(state: GameState, action) -> str:
    return json.dumps({
        "state": state.to_payload(),
        "action": action.model_dump(mode="json", by_alias=True),
        "actionDescription": describe_action(action, state),
    })


# --- Dialogue ---

class _TimeInfo(_Request):
    minutes: int


class _DialogueCharacter(_Request):
    id: str
    name: str
    traits: List[str]
    mental_state: str
    known_clues: List[str]
    current_location: str
    is_criminal: bool


class _DialoguePlayer(_Request):
    collected_clues: List[str]
    current_time: _TimeInfo
    current_location: str


class _HistoryItem(_Request):
    role: str
    text: str


class _EventInfo(_Request):
    id: str
    time: _TimeInfo
    event_type: str
    description: str
    character_id: Optional[str] = None
    place_id: Optional[str] = None


class _CaseInfo(_Request):
    title: str
    description: str


class DialogueRequest(_Request):
    character: _DialogueCharacter
    player: _DialoguePlayer
    conversation_history: List[_HistoryItem] = []
    player_question: str
    past_events: List[_EventInfo] = []
    case_info: _CaseInfo


def build_dialogue_request(
    state: GameState,
    character_id: str,
    question: Optional[str],
    history: Sequence[ConversationMessage] = (),
) -> str:
    character = state.get_character(character_id)
    if character is None:
        raise ValueError(f"Unknown character: {character_id}")

    request = DialogueRequest(
        character=_DialogueCharacter(
            id=character.id,
            name=character.name,
            traits=list(character.traits),
            mental_state=character.mental_state,
            known_clues=list(character.known_clues),
            current_location=character.current_location,
            is_criminal=character.is_criminal,
        ),
        player=_DialoguePlayer(
            collected_clues=list(state.player.collected_clues),
            current_time=_TimeInfo(minutes=state.current_time.minutes),
            current_location=state.player.current_location,
        ),
        conversation_history=[_HistoryItem(role=m.role, text=m.text) for m in history],
        player_question=question or "Tell me what you know.",
        past_events=[
            _EventInfo(
                id=e.id,
                time=_TimeInfo(minutes=e.time.minutes),
                event_type=e.event_type.value,
                description=e.description,
                character_id=e.character_id,
                place_id=e.place_id,
            )
            for e in state.timeline.get_past_events(state.current_time)
        ],
        case_info=_CaseInfo(title=state.title, description=state.description),
    )
    return request.to_json()


# --- Intro ---

class _PublicCharacter(_Request):
    name: str
    traits: List[str]
    current_location: str


class _PublicPlace(_Request):
    name: str
    description: str


class _PublicTimeline(_Request):
    start_time: _TimeInfo
    end_time: _TimeInfo


class IntroRequest(_Request):
    title: str
    description: str
    characters: List[_PublicCharacter]
    places: List[_PublicPlace]
    timeline: _PublicTimeline
    language: str = "en"


def build_intro_request(state: GameState, language: str = "en") -> str:
    """Public case information only. Hidden entities are left out too."""
    request = IntroRequest(
        title=state.title,
        description=state.description,
        characters=[
            _PublicCharacter(
                name=c.name,
                traits=list(c.traits),
                current_location=c.current_location,
            )
            for c in state.characters
            if not c.hidden
        ],
        places=[
            _PublicPlace(name=p.name, description=p.description)
            for p in state.places
            if not p.hidden
        ],
        timeline=_PublicTimeline(
            start_time=_TimeInfo(minutes=state.timeline.start_time.minutes),
            end_time=_TimeInfo(minutes=state.timeline.end_time.minutes),
        ),
        language=language or "en",
    )
    return request.to_json()


# --- Description ---

class _PlaceInfo(_Request):
    id: str
    name: str
    description: str
    connections: List[str]
    available_clues: List[str]


class _CharacterBrief(_Request):
    name: str
    role_or_trait: str


class _DescriptionPlayer(_Request):
    collected_clues: List[str]
    current_time_minutes: int


class _EventBrief(_Request):
    time_minutes: int
    description: str


class DescriptionRequest(_Request):
    place: _PlaceInfo
    characters_here: List[_CharacterBrief]
    player: _DescriptionPlayer
    timeline_events: List[_EventBrief]
    language: str = "en"


def build_description_request(
    state: GameState, place_id: str, language: str = "en"
) -> str:
    place = state.get_place(place_id)
    if place is None:
        raise ValueError(f"Unknown place: {place_id}")

    clue_names = [
        clue.name for clue in state.get_available_clues_at_location(place.id)
    ]
    place_events = sorted(
        (e for e in state.timeline.events if e.place_id == place.id),
        key=lambda e: e.time.minutes,
    )[-MAX_PLACE_EVENTS:]

    request = DescriptionRequest(
        place=_PlaceInfo(
            id=place.id,
            name=place.name,
            description=place.description,
            connections=list(place.connected_places),
            available_clues=clue_names,
        ),
        characters_here=[
            _CharacterBrief(
                name=c.name,
                role_or_trait=c.traits[0] if c.traits else "Unknown role",
            )
            for c in state.get_characters_at_location(place.id)
            if not c.hidden
        ],
        player=_DescriptionPlayer(
            collected_clues=[
                clue.name
                for clue in (state.get_clue(cid) for cid in state.player.collected_clues)
                if clue is not None
            ],
            current_time_minutes=state.current_time.minutes,
        ),
        timeline_events=[
            _EventBrief(time_minutes=e.time.minutes, description=e.description)
            for e in place_events
        ],
        language=language or "en",
    )
    return request.to_json()


# --- Epilogue ---

class _CriminalInfo(_Request):
    name: str
    motive: str
    method_summary: str
    key_clues: List[str]


class _VictimInfo(_Request):
    name: str
    role: str


class EpilogueRequest(_Request):
    case: _CaseInfo
    criminal: _CriminalInfo
    victim: _VictimInfo
    outcome: str
    loss_reason: Optional[str] = None
    language: str = "en"


def build_epilogue_request(state: GameState, language: str = "en") -> str:
    criminal = state.get_criminal()
    victim = state.get_victim()
    crimes = state.timeline.get_crime_events()
    key_clues = [
        clue.name
        for clue in (state.get_clue(cid) for cid in state.player.collected_clues)
        if clue is not None
    ][:MAX_KEY_CLUES]

    request = EpilogueRequest(
        case=_CaseInfo(title=state.title, description=state.description),
        criminal=_CriminalInfo(
            name=criminal.name if criminal else "Unknown criminal",
            motive=criminal.traits[0] if criminal and criminal.traits else "Motive not provided",
            method_summary=crimes[0].description if crimes else "Method not specified",
            key_clues=key_clues or ["No decisive clues collected"],
        ),
        victim=_VictimInfo(
            name=victim.name if victim else "Unknown victim",
            role=victim.traits[0] if victim and victim.traits else "Role not specified",
        ),
        outcome="WIN" if state.phase == GamePhase.WIN else "LOSE",
        loss_reason=state.loss_reason.value if state.loss_reason else None,
        language=language or "en",
    )
    return request.to_json()
