"""Tests for the Action Resolver."""

import asyncio
import json

import pytest

from mystery_kernel.content.generator import ScriptedContentGenerator
from mystery_kernel.models import (
    Accuse,
    ActionErrorKind,
    EngineConfig,
    GamePhase,
    GameTime,
    Investigate,
    LossReason,
    Move,
    Question,
)
from mystery_kernel.resolver.actions import ActionResolver, apply_action, check_preconditions
from mystery_kernel.scenario.sample import sample_game_state


def _resolve(resolver: ActionResolver, state, action):
    return asyncio.run(resolver.resolve(state, action))


class TestPreconditions:
    def setup_method(self):
        self.state = sample_game_state()  # Player in the lobby at 18:00

    def test_unknown_place(self):
        error = check_preconditions(self.state, Move(place_id="place_moon"))
        assert error.kind == ActionErrorKind.UNKNOWN_PLACE

    def test_locked_place(self):
        locked = self.state.get_place("place_parking").model_copy(
            update={"unlock_conditions": ("has_car_keys",)}
        )
        places = tuple(locked if p.id == locked.id else p for p in self.state.places)
        state = self.state.model_copy(update={"places": places})
        error = check_preconditions(state, Investigate(place_id="place_parking"))
        assert error.kind == ActionErrorKind.LOCKED
        assert "has_car_keys" in error.message

    def test_already_there(self):
        error = check_preconditions(self.state, Move(place_id="place_lobby"))
        assert error.kind == ActionErrorKind.ALREADY_THERE

    def test_question_requires_same_place(self):
        error = check_preconditions(self.state, Question(character_id="char_bob"))
        assert error.kind == ActionErrorKind.NOT_CO_LOCATED

    def test_question_locked_character(self):
        state = self.state.update_player(self.state.player.move_to("place_office"))
        error = check_preconditions(state, Question(character_id="char_victim"))
        assert error.kind == ActionErrorKind.LOCKED

    def test_unknown_character(self):
        error = check_preconditions(self.state, Accuse(character_id="char_ghost"))
        assert error.kind == ActionErrorKind.UNKNOWN_CHARACTER

    def test_accuse_anywhere(self):
        assert check_preconditions(self.state, Accuse(character_id="char_bob")) is None

    def test_finished_game(self):
        state = self.state.with_phase(GamePhase.WIN)
        error = check_preconditions(state, Investigate(place_id="place_lobby"))
        assert error.kind == ActionErrorKind.GAME_FINISHED


class TestApplyAction:
    def setup_method(self):
        self.state = sample_game_state()
        self.config = EngineConfig()

    def test_failed_precondition_leaves_state(self):
        result = apply_action(self.state, Move(place_id="place_lobby"), self.config)
        assert not result.success
        assert result.state == self.state
        assert result.minutes_spent == 0

    def test_investigate_costs_time(self):
        result = apply_action(self.state, Investigate(place_id="place_lobby"), self.config)
        assert result.success
        assert result.minutes_spent == 15
        assert result.state.current_time.minutes == 1095

    def test_question_local_reply(self):
        result = apply_action(self.state, Question(character_id="char_alice"), self.config)
        assert result.minutes_spent == 20
        assert "Alice Johnson" in result.narrative

    def test_move_adjacent(self):
        result = apply_action(self.state, Move(place_id="place_office"), self.config)
        assert result.state.player.current_location == "place_office"
        assert result.minutes_spent == 10

    def test_move_not_adjacent(self):
        state = self.state.update_player(self.state.player.move_to("place_office"))
        result = apply_action(state, Move(place_id="place_parking"), self.config)
        assert result.minutes_spent == 15

    def test_move_cost_from_config(self):
        config = EngineConfig(movement_base_minutes=10, movement_distance_minutes=20)
        result = apply_action(self.state, Move(place_id="place_office"), config)
        assert result.minutes_spent == 30

    def test_correct_accusation_wins(self):
        result = apply_action(self.state, Accuse(character_id="char_alice"), self.config)
        assert result.state.phase == GamePhase.WIN
        assert result.minutes_spent == 5
        assert result.state.current_time.minutes == 1085
        assert result.state.loss_reason is None

    def test_false_accusation_loses(self):
        result = apply_action(self.state, Accuse(character_id="char_bob"), self.config)
        assert result.state.phase == GamePhase.LOSE
        assert result.state.current_time.minutes == 1085
        assert result.state.loss_reason == LossReason.FALSE_ACCUSATION

    def test_win_at_deadline_stands(self):
        state = self.state.update_time(GameTime(minutes=1435))
        result = apply_action(state, Accuse(character_id="char_alice"), self.config)
        assert result.state.current_time.minutes == 1440
        assert result.state.phase == GamePhase.WIN

    def test_timeout_after_action(self):
        state = self.state.update_time(GameTime(minutes=1430))
        result = apply_action(state, Investigate(place_id="place_lobby"), self.config)
        assert result.state.current_time.minutes == 1440
        assert result.state.phase == GamePhase.LOSE
        assert result.state.loss_reason == LossReason.TIMEOUT

    def test_events_fire_during_action(self):
        state = self.state.update_time(GameTime(minutes=1190))
        result = apply_action(state, Investigate(place_id="place_lobby"), self.config)
        assert [e.id for e in result.fired_events] == ["event_office_sealed"]
        assert result.state.flags["event_office_sealed_fired"] is True

    def test_unhandled_action_raises(self):
        with pytest.raises(AssertionError):
            apply_action(self.state, object(), self.config)


class TestActionResolver:
    def setup_method(self):
        self.state = sample_game_state()

    def _transition(self, reply: str = "I was at the front desk.") -> str:
        payload = self.state.to_payload()
        payload["player"]["collectedClues"] = ["clue_3"]
        payload["reply"] = reply
        return json.dumps(payload)

    def test_without_generator_uses_local_handler(self):
        result = _resolve(ActionResolver(), self.state, Question(character_id="char_alice"))
        assert result.success
        assert not result.used_fallback

    def test_question_transition_mode(self):
        generator = ScriptedContentGenerator([self._transition()])
        result = _resolve(ActionResolver(generator), self.state, Question(character_id="char_charlie"))
        assert result.success
        assert not result.used_fallback
        assert result.narrative == "I was at the front desk."
        assert result.state.player.has_clue("clue_3")
        assert result.state.current_time.minutes == 1100
        assert len(generator.calls) == 1

    def test_question_transition_rejected_falls_back(self):
        generator = ScriptedContentGenerator(["not json at all"])
        result = _resolve(ActionResolver(generator), self.state, Question(character_id="char_charlie"))
        assert result.success
        assert result.used_fallback
        assert result.state.current_time.minutes == 1100
        assert result.state.player.collected_clues == ()

    def test_question_generator_error_falls_back(self):
        generator = ScriptedContentGenerator([ConnectionError("down")])
        result = _resolve(ActionResolver(generator), self.state, Question(character_id="char_alice"))
        assert result.used_fallback
        assert result.minutes_spent == 20

    def test_question_dialogue_mode(self):
        generator = ScriptedContentGenerator([json.dumps({
            "dialogue": "There was blood by the desk, I think.",
            "newClues": ["clue_1"],
            "mentalStateUpdate": "Defensive",
        })])
        config = EngineConfig(question_mode="dialogue")
        result = _resolve(ActionResolver(generator, config), self.state, Question(character_id="char_alice"))
        assert not result.used_fallback
        assert result.state.player.has_clue("clue_1")
        assert result.state.get_character("char_alice").mental_state == "Defensive"

    def test_dialogue_with_locked_clue_falls_back(self):
        generator = ScriptedContentGenerator([json.dumps({
            "dialogue": "I saw her leave.", "newClues": ["clue_4"],
        })])
        config = EngineConfig(question_mode="dialogue")
        result = _resolve(ActionResolver(generator, config), self.state, Question(character_id="char_charlie"))
        assert result.used_fallback
        assert not result.state.player.has_clue("clue_4")

    def test_malformed_dialogue_fields_fall_back(self):
        generator = ScriptedContentGenerator(['{"dialogue": "Hi", "hints": 3}'])
        config = EngineConfig(question_mode="dialogue")
        result = _resolve(ActionResolver(generator, config), self.state, Question(character_id="char_alice"))
        assert result.success
        assert result.used_fallback
        assert result.minutes_spent == 20

    def test_investigate_with_description(self):
        generator = ScriptedContentGenerator(['{"text": "The lobby hums with nervous chatter."}'])
        result = _resolve(ActionResolver(generator), self.state, Investigate(place_id="place_lobby"))
        assert result.narrative == "The lobby hums with nervous chatter."
        assert result.minutes_spent == 15

    def test_investigate_description_failure_still_succeeds(self):
        generator = ScriptedContentGenerator([TimeoutError()])
        result = _resolve(ActionResolver(generator), self.state, Investigate(place_id="place_lobby"))
        assert result.success
        assert result.used_fallback
        assert result.narrative is None

    def test_descriptions_can_be_disabled(self):
        generator = ScriptedContentGenerator()
        config = EngineConfig(describe_investigations=False)
        _resolve(ActionResolver(generator, config), self.state, Investigate(place_id="place_lobby"))
        assert generator.calls == []

    def test_move_never_calls_generator(self):
        generator = ScriptedContentGenerator()
        result = _resolve(ActionResolver(generator), self.state, Move(place_id="place_office"))
        assert result.success
        assert generator.calls == []

    def test_precondition_checked_before_generator(self):
        generator = ScriptedContentGenerator([self._transition()])
        result = _resolve(ActionResolver(generator), self.state, Question(character_id="char_bob"))
        assert result.error.kind == ActionErrorKind.NOT_CO_LOCATED
        assert generator.calls == []
