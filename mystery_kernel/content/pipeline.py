"""
Content Validation Pipeline — turns generated JSON into world snapshots.

Everything the content generator returns is untrusted. The pipeline either
produces a complete, consistent GameState or a rejection that says exactly
what was wrong. It never hands back a partially applied state.

Modes:
  Bootstrap: a whole new case. Every issue is collected for diagnostics.
  Transition: a proposed next snapshot after a Question. First issue wins.
  Dialogue: an in-character reply plus revealed clues. First issue wins.
  Narrative: free text (intro, description, epilogue).

Check order (bootstrap and transition):
  1. non-empty response          5. clue locations resolve
  2. well-formed JSON / shape    6. phase is an initial phase (bootstrap)
  3. characters and places       7. exactly one criminal
  4. locations resolve           8. timeline bounds, then event windows
"""

import json
import logging
from collections import Counter
from typing import Callable, Iterable, List, Optional, Tuple

from pydantic import ValidationError

from mystery_kernel.content.schema import DialoguePayload, FlagList, ScenarioPayload
from mystery_kernel.models.content import (
    ContentAccepted,
    ContentErrorKind,
    ContentIssue,
    ContentRejected,
    ContentResult,
    DialogueAccepted,
    DialogueReply,
    DialogueResult,
    TextAccepted,
    TextResult,
)
from mystery_kernel.models.timeline import EventType
from mystery_kernel.models.world import INITIAL_PHASES, Character, GamePhase, GameState

logger = logging.getLogger(__name__)

MAX_DIALOGUE_LENGTH = 1000

# Generators are inconsistent about phase names; map the usual variants
_PHASE_ALIASES = {
    "start": GamePhase.START,
    "tutorial": GamePhase.TUTORIAL,
    "intro": GamePhase.INTRODUCTION,
    "introduction": GamePhase.INTRODUCTION,
    "investigation": GamePhase.INVESTIGATION,
    "investigate": GamePhase.INVESTIGATION,
    "game_over": GamePhase.GAME_OVER,
    "gameover": GamePhase.GAME_OVER,
    "game over": GamePhase.GAME_OVER,
    "win": GamePhase.WIN,
    "won": GamePhase.WIN,
    "victory": GamePhase.WIN,
    "success": GamePhase.WIN,
    "lose": GamePhase.LOSE,
    "lost": GamePhase.LOSE,
    "loss": GamePhase.LOSE,
    "fail": GamePhase.LOSE,
    "failed": GamePhase.LOSE,
    "failure": GamePhase.LOSE,
}


# --- Text cleanup ---

def strip_code_fences(raw: str) -> str:
    """Remove a surrounding ``` / ```json markdown fence."""
    text = raw.strip()
    if not text.startswith("```"):
        return text
    first_newline = text.find("\n")
    text = text[first_newline + 1:] if first_newline != -1 else text.lstrip("`")
    if text.rstrip().endswith("```"):
        text = text.rstrip()[:-3]
    return text.strip()


def extract_json_block(text: str) -> str:
    """Cut the outermost {...} object out of surrounding chatter."""
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start:end + 1]
    return text.strip()


def normalize_phase(raw_phase: object) -> object:
    """
    Map a generator's phase string onto a GamePhase value, case-insensitively.

    Unknown strings are returned unchanged so strict validation can reject
    them; non-strings are left for schema validation.
    """
    if not isinstance(raw_phase, str):
        return raw_phase
    key = raw_phase.strip().lower().replace("-", "_")
    phase = _PHASE_ALIASES.get(key)
    return phase.value if phase else raw_phase.strip()


def _issue(kind: ContentErrorKind, message: str, **context) -> ContentIssue:
    return ContentIssue(kind=kind, message=message, **context)


def _decode(raw: Optional[str]) -> Tuple[Optional[dict], Optional[ContentIssue]]:
    """Checks 1 and 2: something was returned and it is a JSON object."""
    if raw is None or not raw.strip():
        return None, _issue(ContentErrorKind.EMPTY_RESPONSE, "Generator returned an empty response")

    cleaned = extract_json_block(strip_code_fences(raw))
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        return None, _issue(
            ContentErrorKind.MALFORMED_JSON,
            f"JSON parsing failed: {e.msg} (line {e.lineno}, column {e.colno})",
        )
    if not isinstance(data, dict):
        return None, _issue(
            ContentErrorKind.MALFORMED_JSON,
            "Expected a JSON object at the top level",
            expected="object",
            actual=type(data).__name__,
        )
    return data, None


def _schema_issue(error: ValidationError) -> ContentIssue:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return _issue(
        ContentErrorKind.SCHEMA_MISMATCH,
        f"{location}: {first['msg']} ({error.error_count()} schema error(s))",
        field=location or None,
    )


# --- Consistency checks ---
# Each check returns every issue it finds; callers decide whether to keep
# all of them (bootstrap) or only the first (transitions).

def _check_cast(state: GameState) -> List[ContentIssue]:
    issues = []
    if not state.characters:
        issues.append(_issue(ContentErrorKind.NO_CHARACTERS, "No characters found in game data", field="characters"))
    if not state.places:
        issues.append(_issue(ContentErrorKind.NO_PLACES, "No places found in game data", field="places"))
    return issues


def _check_unique_ids(state: GameState) -> List[ContentIssue]:
    issues = []
    groups = (
        ("characters", [c.id for c in state.characters]),
        ("places", [p.id for p in state.places]),
        ("clues", [c.id for c in state.clues]),
    )
    for field, ids in groups:
        for entity_id, count in Counter(ids).items():
            if count > 1:
                issues.append(_issue(
                    ContentErrorKind.DUPLICATE_ID,
                    f"Id '{entity_id}' appears {count} times in {field}",
                    entity_id=entity_id,
                    field=field,
                ))
    return issues


def _check_locations(state: GameState) -> List[ContentIssue]:
    if not state.places:
        return []  # Already reported by _check_cast
    place_ids = {p.id for p in state.places}
    issues = []
    for character in state.characters:
        if character.current_location not in place_ids:
            issues.append(_issue(
                ContentErrorKind.UNKNOWN_CHARACTER_LOCATION,
                f"Character '{character.id}' has invalid location '{character.current_location}'",
                entity_id=character.id,
                field="currentLocation",
                expected="a place id",
                actual=character.current_location,
            ))
    if state.player.current_location not in place_ids:
        issues.append(_issue(
            ContentErrorKind.UNKNOWN_PLAYER_LOCATION,
            f"Player has invalid location '{state.player.current_location}'",
            entity_id="player",
            field="currentLocation",
            expected="a place id",
            actual=state.player.current_location,
        ))
    return issues


def _check_connections(state: GameState) -> List[ContentIssue]:
    place_ids = {p.id for p in state.places}
    issues = []
    for place in state.places:
        for target in place.connected_places:
            if target not in place_ids:
                issues.append(_issue(
                    ContentErrorKind.UNKNOWN_CONNECTION,
                    f"Place '{place.id}' connects to unknown place '{target}'",
                    entity_id=place.id,
                    field="connections",
                    expected="a place id",
                    actual=target,
                ))
    return issues


def _check_clue_locations(state: GameState) -> List[ContentIssue]:
    if not state.places:
        return []
    known = {p.id for p in state.places} | {c.id for c in state.characters}
    return [
        _issue(
            ContentErrorKind.UNKNOWN_CLUE_LOCATION,
            f"Clue '{clue.id}' references invalid location '{clue.location}'",
            entity_id=clue.id,
            field="location",
            expected="a place id or character id",
            actual=clue.location,
        )
        for clue in state.clues
        if clue.location not in known
    ]


def _check_initial_phase(state: GameState) -> List[ContentIssue]:
    if state.phase in INITIAL_PHASES:
        return []
    allowed = ", ".join(p.value for p in INITIAL_PHASES)
    return [_issue(
        ContentErrorKind.INVALID_PHASE,
        f"Phase should be one of {allowed}, but got {state.phase.value}",
        field="phase",
        expected=allowed,
        actual=state.phase.value,
    )]


def _check_single_criminal(state: GameState) -> List[ContentIssue]:
    criminals = [c.id for c in state.characters if c.is_criminal]
    if len(criminals) == 1:
        return []
    if not criminals:
        return [_issue(
            ContentErrorKind.NO_CRIMINAL,
            "No criminal found in game data",
            field="isCriminal",
            expected="1",
            actual="0",
        )]
    return [_issue(
        ContentErrorKind.MULTIPLE_CRIMINALS,
        f"Found {len(criminals)} criminals: {', '.join(criminals)}",
        field="isCriminal",
        expected="1",
        actual=str(len(criminals)),
    )]


def _check_timeline_bounds(state: GameState) -> List[ContentIssue]:
    timeline = state.timeline
    issues = []
    if timeline.start_time.minutes >= timeline.end_time.minutes:
        issues.append(_issue(
            ContentErrorKind.INVALID_TIMELINE,
            "Timeline is invalid: startTime must be before endTime",
            field="timeline.startTime",
            expected=f"< {timeline.end_time.minutes}",
            actual=str(timeline.start_time.minutes),
        ))
    return issues


def _check_base_time(state: GameState) -> List[ContentIssue]:
    timeline = state.timeline
    if timeline.base_time.minutes < timeline.start_time.minutes:
        return []
    return [_issue(
        ContentErrorKind.INVALID_BASE_TIME,
        "Timeline baseTime must be before startTime",
        field="timeline.baseTime",
        expected=f"< {timeline.start_time.minutes}",
        actual=str(timeline.base_time.minutes),
    )]


def _check_event_windows(state: GameState) -> List[ContentIssue]:
    timeline = state.timeline
    base, start, end = (
        timeline.base_time.minutes,
        timeline.start_time.minutes,
        timeline.end_time.minutes,
    )
    issues = []
    for event in timeline.events:
        minutes = event.time.minutes
        if event.event_type == EventType.CRIME:
            ok, window = base <= minutes < start, f"[{base}, {start})"
        else:
            ok, window = start <= minutes <= end, f"[{start}, {end}]"
        if not ok:
            issues.append(_issue(
                ContentErrorKind.EVENT_OUT_OF_WINDOW,
                f"{event.event_type.value} event '{event.id}' at {minutes} is outside {window}",
                entity_id=event.id,
                field="time",
                expected=window,
                actual=str(minutes),
            ))
    return issues


def _check_event_references(state: GameState) -> List[ContentIssue]:
    character_ids = {c.id for c in state.characters}
    place_ids = {p.id for p in state.places}
    issues = []
    for event in state.timeline.events:
        if event.character_id and event.character_id not in character_ids:
            issues.append(_issue(
                ContentErrorKind.UNKNOWN_EVENT_REFERENCE,
                f"Event '{event.id}' references unknown character '{event.character_id}'",
                entity_id=event.id,
                field="characterId",
                actual=event.character_id,
            ))
        if event.place_id and event.place_id not in place_ids:
            issues.append(_issue(
                ContentErrorKind.UNKNOWN_EVENT_REFERENCE,
                f"Event '{event.id}' references unknown place '{event.place_id}'",
                entity_id=event.id,
                field="placeId",
                actual=event.place_id,
            ))
    return issues


def _entity_set_check(previous: GameState) -> Callable[[GameState], List[ContentIssue]]:
    """A transition may change entities but not add or drop them."""

    def check(state: GameState) -> List[ContentIssue]:
        issues = []
        groups = (
            ("characters", previous.characters, state.characters),
            ("places", previous.places, state.places),
            ("clues", previous.clues, state.clues),
        )
        for field, before, after in groups:
            expected = {e.id for e in before}
            actual = {e.id for e in after}
            if expected != actual:
                issues.append(_issue(
                    ContentErrorKind.ENTITY_SET_CHANGED,
                    f"Transition changed the set of {field}",
                    field=field,
                    expected=", ".join(sorted(expected)),
                    actual=", ".join(sorted(actual)),
                ))
        return issues

    return check


_BOOTSTRAP_CHECKS = (
    _check_cast,
    _check_unique_ids,
    _check_locations,
    _check_connections,
    _check_clue_locations,
    _check_initial_phase,
    _check_single_criminal,
    _check_timeline_bounds,
    _check_base_time,
    _check_event_windows,
    _check_event_references,
)

_TRANSITION_CHECKS = (
    _check_cast,
    _check_unique_ids,
    _check_locations,
    _check_connections,
    _check_clue_locations,
    _check_single_criminal,
    _check_timeline_bounds,
)


def _run_checks(
    state: GameState, checks: Iterable[Callable[[GameState], List[ContentIssue]]]
) -> List[ContentIssue]:
    issues = []
    for check in checks:
        issues.extend(check(state))
    return issues


def _first_issue(
    state: GameState, checks: Iterable[Callable[[GameState], List[ContentIssue]]]
) -> Optional[ContentIssue]:
    for check in checks:
        issues = check(state)
        if issues:
            return issues[0]
    return None


def validate_scenario(state: GameState) -> List[ContentIssue]:
    """All consistency issues in a freshly bootstrapped snapshot."""
    return _run_checks(state, _BOOTSTRAP_CHECKS)


def validate_transition(proposed: GameState, previous: GameState) -> Optional[ContentIssue]:
    """The first reason a proposed next snapshot is unacceptable, if any."""
    return _first_issue(proposed, _TRANSITION_CHECKS + (_entity_set_check(previous),))


# --- Bootstrap ---

def process_scenario(raw: Optional[str]) -> ContentResult:
    """Parse, map and validate a generated scenario into the first snapshot."""
    data, issue = _decode(raw)
    if issue:
        return ContentRejected(issues=[issue])

    data["phase"] = normalize_phase(data.get("phase"))
    phase_issue = None
    if data["phase"] not in {p.value for p in GamePhase}:
        phase_issue = _issue(
            ContentErrorKind.INVALID_PHASE,
            f"Unknown phase {data['phase']!r}",
            field="phase",
            expected=", ".join(p.value for p in INITIAL_PHASES),
            actual=str(data["phase"]),
        )
        # Keep validating the rest so the report is complete
        data["phase"] = GamePhase.START.value

    try:
        payload = ScenarioPayload.model_validate(data)
    except ValidationError as e:
        return ContentRejected(issues=[_schema_issue(e)] + ([phase_issue] if phase_issue else []))

    state = payload.to_game_state()
    issues = validate_scenario(state)
    if phase_issue:
        issues.append(phase_issue)
    if issues:
        logger.warning(
            "Scenario rejected with %d issue(s): %s",
            len(issues), "; ".join(i.message for i in issues),
        )
        return ContentRejected(issues=issues)

    logger.info(
        "Scenario '%s' accepted: %d characters, %d places, %d clues, %d events",
        state.title, len(state.characters), len(state.places),
        len(state.clues), len(state.timeline.events),
    )
    return ContentAccepted(state=state)


# --- Incremental transitions ---

def _normalize_flags(data: dict) -> Optional[ContentIssue]:
    """Accept flags as a table or as a list of {id, value} entries."""
    flags = data.get("flags")
    if not isinstance(flags, list):
        return None
    try:
        entries = FlagList.validate_python(flags)
    except ValidationError as e:
        return _schema_issue(e)
    data["flags"] = {f.id: f.value for f in entries}
    return None


def _keep_role(character: Character, previous: GameState) -> Character:
    before = previous.get_character(character.id)
    if before is None:
        return character
    if (character.is_criminal, character.is_victim) != (before.is_criminal, before.is_victim):
        logger.warning("Ignoring generator role change for %s", character.id)
    return character.model_copy(update={
        "is_criminal": before.is_criminal,
        "is_victim": before.is_victim,
    })


def merge_transition(previous: GameState, proposed: GameState) -> GameState:
    """
    Take a validated proposal, keeping the fields the engine owns.

    The clock, timeline, phase and loss reason only change through the
    engine. Fired-event flags come from the previous snapshot only, so a
    proposal can neither re-arm nor cancel a scripted event. Criminal and
    victim roles are fixed for the whole case.
    """
    if proposed.current_time.minutes != previous.current_time.minutes:
        logger.debug(
            "Ignoring generator clock %d; engine clock is %d",
            proposed.current_time.minutes,
            previous.current_time.minutes,
        )
    flags = {
        name: value for name, value in proposed.flags.items()
        if not name.endswith("_fired")
    }
    dropped = sorted(set(proposed.flags) - set(flags) - set(previous.flags))
    if dropped:
        logger.warning("Ignoring generator-set event flags: %s", ", ".join(dropped))
    flags.update(
        (name, value) for name, value in previous.flags.items()
        if name.endswith("_fired")
    )
    return proposed.model_copy(update={
        "current_time": previous.current_time,
        "timeline": previous.timeline,
        "phase": previous.phase,
        "loss_reason": previous.loss_reason,
        "characters": tuple(_keep_role(c, previous) for c in proposed.characters),
        "flags": flags,
    })


def process_transition(raw: Optional[str], previous: GameState) -> ContentResult:
    """Parse and validate a generator-proposed next snapshot."""
    data, issue = _decode(raw)
    if issue:
        return ContentRejected(issues=[issue])

    reply = data.pop("reply", None)
    if "phase" in data:
        data["phase"] = normalize_phase(data["phase"])
    issue = _normalize_flags(data)
    if issue:
        return ContentRejected(issues=[issue])

    try:
        proposed = GameState.model_validate(data)
    except ValidationError as e:
        return ContentRejected(issues=[_schema_issue(e)])

    issue = validate_transition(proposed, previous)
    if issue:
        logger.warning("Transition rejected: %s", issue.message)
        return ContentRejected(issues=[issue])

    return ContentAccepted(
        state=merge_transition(previous, proposed),
        reply=reply.strip() if isinstance(reply, str) and reply.strip() else None,
    )


# --- Dialogue ---

def validate_dialogue(
    reply: DialogueReply, state: GameState, character_id: str
) -> Optional[ContentIssue]:
    """First problem with a dialogue reply, checked against the snapshot."""
    dialogue = reply.dialogue.strip()
    if not dialogue:
        return _issue(ContentErrorKind.EMPTY_TEXT, "Dialogue text is empty", field="dialogue")
    if len(dialogue) > MAX_DIALOGUE_LENGTH:
        return _issue(
            ContentErrorKind.TEXT_TOO_LONG,
            f"Dialogue text is too long (maximum {MAX_DIALOGUE_LENGTH} characters, got {len(dialogue)})",
            field="dialogue",
            expected=f"<= {MAX_DIALOGUE_LENGTH}",
            actual=str(len(dialogue)),
        )

    character = state.get_character(character_id)
    for clue_id in reply.new_clues:
        clue = state.get_clue(clue_id)
        if clue is None:
            return _issue(
                ContentErrorKind.UNKNOWN_CLUE,
                f"Invalid clue id in newClues: {clue_id}",
                entity_id=clue_id,
                field="newClues",
            )
        if character is not None and clue_id not in character.known_clues:
            return _issue(
                ContentErrorKind.CLUE_NOT_KNOWN_BY_CHARACTER,
                f"Clue {clue_id} is not in character {character_id}'s known clues",
                entity_id=clue_id,
                field="newClues",
            )
        if not clue.is_unlocked(state.flags):
            return _issue(
                ContentErrorKind.CLUE_LOCKED,
                f"Clue {clue_id} is not unlocked",
                entity_id=clue_id,
                field="newClues",
            )
        if state.player.has_clue(clue_id):
            return _issue(
                ContentErrorKind.CLUE_ALREADY_COLLECTED,
                f"Clue {clue_id} is already in the player's collected clues",
                entity_id=clue_id,
                field="newClues",
            )
    return None


def process_dialogue(raw: Optional[str], state: GameState, character_id: str) -> DialogueResult:
    """Parse and validate a dialogue reply for a questioned character."""
    data, issue = _decode(raw)
    if issue:
        return ContentRejected(issues=[issue])

    try:
        reply = DialoguePayload.model_validate(data).to_reply()
    except ValidationError as e:
        return ContentRejected(issues=[_schema_issue(e)])

    issue = validate_dialogue(reply, state, character_id)
    if issue:
        logger.warning("Dialogue for %s rejected: %s", character_id, issue.message)
        return ContentRejected(issues=[issue])
    return DialogueAccepted(reply=reply.model_copy(update={"dialogue": reply.dialogue.strip()}))


def apply_dialogue(state: GameState, character_id: str, reply: DialogueReply) -> GameState:
    """Hand revealed clues to the player and record the character's mood."""
    player = state.player
    for clue_id in reply.new_clues:
        player = player.add_clue(clue_id)
    state = state.update_player(player)

    character = state.get_character(character_id)
    if character is not None and reply.mental_state_update:
        state = state.replace_character(character.with_mental_state(reply.mental_state_update))
    return state


# --- Narrative text ---

def process_narrative_text(
    raw: Optional[str], min_length: int = 1, max_length: int = 2000
) -> TextResult:
    """
    Accept {"text": ...} or, failing that, the plain text itself.

    Used for intros, place descriptions and epilogues, where a generator
    that ignores the JSON format still produced something usable.
    """
    if raw is None or not raw.strip():
        return ContentRejected(issues=[_issue(ContentErrorKind.EMPTY_RESPONSE, "Generator returned an empty response")])

    cleaned = strip_code_fences(raw)
    text = cleaned
    try:
        data = json.loads(extract_json_block(cleaned))
    except json.JSONDecodeError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("text"), str):
        text = data["text"]
    text = text.strip()

    if not text:
        issue = _issue(ContentErrorKind.EMPTY_TEXT, "Text is empty", field="text")
    elif len(text) < min_length:
        issue = _issue(
            ContentErrorKind.TEXT_TOO_SHORT,
            f"Text is too short (minimum {min_length} characters, got {len(text)})",
            field="text", expected=f">= {min_length}", actual=str(len(text)),
        )
    elif len(text) > max_length:
        issue = _issue(
            ContentErrorKind.TEXT_TOO_LONG,
            f"Text is too long (maximum {max_length} characters, got {len(text)})",
            field="text", expected=f"<= {max_length}", actual=str(len(text)),
        )
    else:
        return TextAccepted(text=text)
    return ContentRejected(issues=[issue])
