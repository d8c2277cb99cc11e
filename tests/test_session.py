"""Tests for the Game Session holder."""

import asyncio
import json

import pytest

from mystery_kernel.content.generator import SampleScenarioGenerator, ScriptedContentGenerator
from mystery_kernel.models import (
    Accuse,
    ActionErrorKind,
    ContentErrorKind,
    EngineConfig,
    GamePhase,
    Investigate,
    Move,
    Question,
    SessionStatus,
)
from mystery_kernel.scenario.sample import sample_scenario_json, sample_scenario_payload
from mystery_kernel.session.holder import GameSession, NoGameError


class TestBootstrap:
    def test_sample_game(self):
        session = GameSession()
        result = session.start_sample_game()
        assert result.success
        assert session.state.title == "Murder at the Office"
        assert session.status.status == SessionStatus.READY
        assert session.status.has_game

    def test_new_game_through_generator(self):
        session = GameSession(generator=SampleScenarioGenerator())
        result = asyncio.run(session.start_new_game("office, murder"))
        assert result.success
        assert session.state is not None

    def test_generator_failure_is_retryable(self):
        generator = ScriptedContentGenerator([ConnectionError("down"), sample_scenario_json()])
        session = GameSession(generator=generator)

        first = asyncio.run(session.start_new_game("office"))
        assert not first.success
        assert first.generator_error
        assert session.state is None
        assert session.status.status == SessionStatus.ERROR

        second = asyncio.run(session.start_new_game("office"))
        assert second.success
        assert session.status.status == SessionStatus.READY

    def test_rejected_scenario_reports_issues(self):
        payload = sample_scenario_payload()
        payload["characters"][1]["isCriminal"] = True
        session = GameSession(generator=ScriptedContentGenerator([json.dumps(payload)]))
        result = asyncio.run(session.start_new_game("office"))
        assert not result.success
        assert result.generator_error is None
        assert [i.kind for i in result.issues] == [ContentErrorKind.MULTIPLE_CRIMINALS]
        assert session.state is None

    def test_rejected_upload_clears_previous_game(self):
        session = GameSession()
        session.start_sample_game()
        payload = sample_scenario_payload()
        payload["characters"] = []
        result = session.load_scenario(json.dumps(payload))
        assert not result.success
        assert session.state is None
        assert session.status.status == SessionStatus.ERROR
        assert not session.status.has_game

    def test_no_generator_configured(self):
        result = asyncio.run(GameSession().start_new_game("office"))
        assert not result.success
        assert result.generator_error

    def test_loading_status_is_published(self):
        seen = []
        session = GameSession(generator=SampleScenarioGenerator())
        session.subscribe(lambda state, status: seen.append(status.status))
        asyncio.run(session.start_new_game("office"))
        assert seen == [SessionStatus.LOADING, SessionStatus.READY]


class TestActions:
    def setup_method(self):
        self.session = GameSession()
        self.session.start_sample_game()

    def test_no_game(self):
        result = asyncio.run(GameSession().execute_action(Move(place_id="place_office")))
        assert result.error.kind == ActionErrorKind.NO_GAME

    def test_action_updates_state(self):
        result = asyncio.run(self.session.execute_action(Move(place_id="place_office")))
        assert result.success
        assert self.session.state.player.current_location == "place_office"
        assert not self.session.status.action_in_flight

    def test_busy_while_in_flight(self):
        self.session._set_in_flight(True)
        before = self.session.state
        result = asyncio.run(self.session.execute_action(Move(place_id="place_office")))
        assert result.error.kind == ActionErrorKind.BUSY
        assert self.session.state == before

    def test_failed_action_keeps_state(self):
        before = self.session.state
        result = asyncio.run(self.session.execute_action(Move(place_id="place_lobby")))
        assert not result.success
        assert self.session.state == before

    def test_listeners_see_new_state(self):
        seen = []
        listener = lambda state, status: seen.append(state.current_time.minutes)
        self.session.subscribe(listener)
        asyncio.run(self.session.execute_action(Move(place_id="place_office")))
        self.session.unsubscribe(listener)
        asyncio.run(self.session.execute_action(Move(place_id="place_lobby")))
        assert seen == [1090]

    def test_conversation_history(self):
        action = Question(character_id="char_alice", question="Where were you at five?")
        asyncio.run(self.session.execute_action(action))
        log = self.session.conversation("char_alice")
        assert [m.role for m in log] == ["player", "character"]
        assert log[0].text == "Where were you at five?"
        assert log[0].at_minutes == 1080
        assert log[1].at_minutes == 1100
        assert self.session.conversation("char_bob") == []

    def test_config_replacement_reaches_resolver(self):
        self.session.config = EngineConfig(investigation_minutes=30)
        result = asyncio.run(self.session.execute_action(Investigate(place_id="place_lobby")))
        assert result.minutes_spent == 30


class TestPhaseAndNarrative:
    def test_phase_transition(self):
        session = GameSession()
        session.start_sample_game()
        assert session.transition_to_phase(GamePhase.INVESTIGATION).success
        assert session.state.phase == GamePhase.INVESTIGATION
        assert not session.transition_to_phase(GamePhase.INTRODUCTION).success

    def test_phase_without_game(self):
        with pytest.raises(NoGameError):
            GameSession().transition_to_phase(GamePhase.INVESTIGATION)

    def test_intro_fallback(self):
        session = GameSession(generator=SampleScenarioGenerator())
        asyncio.run(session.start_new_game("office"))
        result = asyncio.run(session.generate_intro())
        assert result.used_fallback
        assert "Murder at the Office" in result.text
        assert "18:00" in result.text

    def test_intro_from_generator(self):
        text = "It is a cold evening in the city, and the office tower is silent. " * 2
        generator = ScriptedContentGenerator([sample_scenario_json(), json.dumps({"text": text})])
        session = GameSession(generator=generator)
        asyncio.run(session.start_new_game("office"))
        result = asyncio.run(session.generate_intro())
        assert not result.used_fallback
        assert result.text == text.strip()
        assert '"isCriminal"' not in generator.calls[1][1]

    def test_intro_too_short_falls_back(self):
        generator = ScriptedContentGenerator([sample_scenario_json(), '{"text": "Short."}'])
        session = GameSession(generator=generator)
        asyncio.run(session.start_new_game("office"))
        assert asyncio.run(session.generate_intro()).used_fallback

    def test_epilogue_fallback_names_culprit(self):
        session = GameSession()
        session.start_sample_game()
        asyncio.run(session.execute_action(Accuse(character_id="char_bob")))
        result = asyncio.run(session.generate_epilogue())
        assert result.used_fallback
        assert "Alice Johnson" in result.text
