"""
Time & Event Engine — moves the game clock and fires scripted events.

Behavioral Contract:
- The clock never passes the timeline deadline; overshoot is capped
- An event fires when the clock crosses its time, i.e. previous < time <= new
- Events in one window are applied in time order, ties in script order
- Splitting an advance into smaller steps gives the same final state
- All functions are pure: they take a snapshot and return a new one
"""

import logging
from typing import List, Tuple

from mystery_kernel.models.time import GameTime
from mystery_kernel.models.timeline import EventType, Timeline, TimelineEvent
from mystery_kernel.models.world import GameState

logger = logging.getLogger(__name__)


def advance_time(state: GameState, delta_minutes: int) -> GameState:
    """Move the clock forward, capped at the timeline's end time."""
    if delta_minutes < 0:
        raise ValueError(f"Cannot move the clock backwards ({delta_minutes} minutes)")
    new_minutes = min(
        state.current_time.minutes + delta_minutes,
        state.timeline.end_time.minutes,
    )
    return state.update_time(GameTime(minutes=new_minutes))


def triggered_events_between(
    timeline: Timeline, start: GameTime, end: GameTime
) -> List[TimelineEvent]:
    """Events whose time falls in (start, end], ascending."""
    return timeline.events_between(start, end)


def apply_event(state: GameState, event: TimelineEvent) -> GameState:
    """Apply one timeline event to a snapshot."""
    if event.event_type == EventType.CRIME:
        # Already happened before play began; replayed for narrative recall only
        return state

    if state.flags.get(event.fired_flag):
        logger.debug("Event %s already fired; skipping", event.id)
        return state

    if event.event_type == EventType.CHARACTER_MOVEMENT:
        state = _apply_character_movement(state, event)

    logger.debug("Event %s fired at %s", event.id, event.time.format())
    return state.update_flag(event.fired_flag, True)


def _apply_character_movement(state: GameState, event: TimelineEvent) -> GameState:
    character = state.get_character(event.character_id) if event.character_id else None
    if character is None:
        logger.warning(
            "Movement event %s references unknown character %r",
            event.id, event.character_id,
        )
        return state
    if not event.place_id or state.get_place(event.place_id) is None:
        logger.warning(
            "Movement event %s references unknown place %r",
            event.id, event.place_id,
        )
        return state
    return state.replace_character(character.move_to(event.place_id))


def process_events(
    state: GameState, start: GameTime, end: GameTime
) -> Tuple[GameState, List[TimelineEvent]]:
    """Fold apply_event over every event triggered in (start, end]."""
    fired = []
    for event in triggered_events_between(state.timeline, start, end):
        if event.event_type == EventType.CRIME:
            continue
        if state.flags.get(event.fired_flag):
            continue
        state = apply_event(state, event)
        fired.append(event)
    return state, fired


def advance_time_and_process_events(state: GameState, delta_minutes: int) -> GameState:
    """Advance the clock and apply every event crossed on the way."""
    state, _ = advance_and_collect(state, delta_minutes)
    return state


def advance_and_collect(
    state: GameState, delta_minutes: int
) -> Tuple[GameState, List[TimelineEvent]]:
    """Like advance_time_and_process_events, also returning the fired events."""
    previous = state.current_time
    state = advance_time(state, delta_minutes)
    return process_events(state, previous, state.current_time)
