"""Tests for the FastAPI endpoints."""

import copy

import pytest
from fastapi.testclient import TestClient

from mystery_kernel.api.app import create_app
from mystery_kernel.content.generator import ScriptedContentGenerator
from mystery_kernel.models import EngineConfig
from mystery_kernel.scenario.sample import sample_scenario_json, sample_scenario_payload
from mystery_kernel.session.holder import GameSession


@pytest.fixture
def client():
    """Create a test client with a fresh session and no generator."""
    return TestClient(create_app())


@pytest.fixture
def playing(client):
    """A client with the sample case loaded."""
    response = client.post("/game/sample")
    assert response.status_code == 200
    return client


def _action(client, **action):
    return client.post("/game/actions", json={"action": action})


class TestBootstrapEndpoints:
    def test_no_game_yet(self, client):
        assert client.get("/game/state").status_code == 404
        assert client.get("/game/status").json()["status"] == "idle"

    def test_sample(self, client):
        response = client.post("/game/sample")
        assert response.status_code == 200
        state = response.json()["state"]
        assert state["title"] == "Murder at the Office"
        assert state["currentTime"]["minutes"] == 1080

    def test_start_without_generator(self, client):
        response = client.post("/game/start", json={"keywords": "office"})
        assert response.status_code == 502

    def test_start_with_generator(self):
        session = GameSession(generator=ScriptedContentGenerator([sample_scenario_json()]))
        client = TestClient(create_app(session=session))
        response = client.post("/game/start", json={"keywords": "office"})
        assert response.status_code == 200
        assert client.get("/game/status").json()["status"] == "ready"

    def test_start_rejected_content(self):
        session = GameSession(generator=ScriptedContentGenerator(["{broken"]))
        client = TestClient(create_app(session=session))
        response = client.post("/game/start", json={"keywords": "office"})
        assert response.status_code == 422
        issues = response.json()["detail"]["issues"]
        assert issues[0]["kind"] == "malformed_json"

    def test_upload_scenario(self, client):
        response = client.post("/game/scenario", json=sample_scenario_payload())
        assert response.status_code == 200

    def test_upload_invalid_scenario(self, client):
        payload = copy.deepcopy(sample_scenario_payload())
        for c in payload["characters"]:
            c["isCriminal"] = False
        response = client.post("/game/scenario", json=payload)
        assert response.status_code == 422
        assert [i["kind"] for i in response.json()["detail"]["issues"]] == ["no_criminal"]
        assert client.get("/game/status").json()["status"] == "error"


class TestActionEndpoints:
    def test_action_without_game(self, client):
        response = _action(client, kind="move", placeId="place_office")
        assert response.status_code == 404

    def test_move(self, playing):
        response = _action(playing, kind="move", placeId="place_office")
        assert response.status_code == 200
        body = response.json()
        assert body["minutesSpent"] == 10
        assert body["state"]["player"]["currentLocation"] == "place_office"

    def test_snake_case_fields_accepted(self, playing):
        response = _action(playing, kind="investigate", place_id="place_lobby")
        assert response.status_code == 200
        assert response.json()["minutesSpent"] == 15

    def test_precondition_failure(self, playing):
        response = _action(playing, kind="move", placeId="place_lobby")
        assert response.status_code == 409
        assert response.json()["detail"]["kind"] == "already_there"

    def test_unknown_action_kind(self, playing):
        response = _action(playing, kind="dance")
        assert response.status_code == 422

    def test_question_and_conversation(self, playing):
        response = _action(playing, kind="question", characterId="char_alice", question="Hello?")
        assert response.status_code == 200
        log = playing.get("/game/conversations/char_alice").json()
        assert [m["role"] for m in log] == ["player", "character"]
        assert playing.get("/game/conversations/char_nobody").status_code == 404

    def test_accusation_ends_game(self, playing):
        response = _action(playing, kind="accuse", characterId="char_alice", evidence=["clue_1"])
        assert response.json()["state"]["phase"] == "WIN"
        again = _action(playing, kind="investigate", placeId="place_lobby")
        assert again.status_code == 409
        assert again.json()["detail"]["kind"] == "game_finished"

    def test_events_fired_in_response(self, playing):
        # Lobby -> parking -> lobby -> parking ... until 20:00 passes
        fired = []
        targets = ["place_parking", "place_lobby"] * 6
        for target in targets:
            body = _action(playing, kind="move", placeId=target).json()
            fired.extend(e["id"] for e in body["firedEvents"])
        assert fired[0] == "event_office_sealed"


class TestPhaseAndTimelineEndpoints:
    def test_phase_forward_and_back(self, playing):
        assert playing.post("/game/phase", json={"phase": "INVESTIGATION"}).status_code == 200
        assert playing.post("/game/phase", json={"phase": "INTRODUCTION"}).status_code == 409

    def test_phase_without_game(self, client):
        assert client.post("/game/phase", json={"phase": "INVESTIGATION"}).status_code == 404

    def test_past_events_include_crime(self, playing):
        past = playing.get("/game/events/past").json()
        assert [e["id"] for e in past] == ["event_murder"]

    def test_upcoming_events(self, playing):
        upcoming = playing.get("/game/events/upcoming").json()
        assert [e["id"] for e in upcoming] == [
            "event_office_sealed", "event_alice_movement", "event_evidence_found",
        ]
        limited = playing.get("/game/events/upcoming", params={"limit": 1}).json()
        assert len(limited) == 1

    def test_upcoming_events_limit_bounds(self, playing):
        assert playing.get("/game/events/upcoming", params={"limit": 0}).json() == []
        assert playing.get("/game/events/upcoming", params={"limit": -1}).status_code == 422


class TestNarrationEndpoints:
    def test_intro_requires_game(self, client):
        assert client.post("/game/intro").status_code == 404

    def test_intro_fallback(self, playing):
        body = playing.post("/game/intro").json()
        assert body["used_fallback"] is True
        assert "Murder at the Office" in body["text"]

    def test_epilogue(self, playing):
        _action(playing, kind="accuse", characterId="char_alice")
        body = playing.post("/game/epilogue").json()
        assert "Alice Johnson" in body["text"]


class TestConfigEndpoints:
    def test_get_config(self, client):
        config = client.get("/engine/config").json()
        assert config["investigation_minutes"] == 15
        assert config["question_mode"] == "transition"

    def test_update_config(self, playing):
        response = playing.put("/engine/config", json={"investigation_minutes": 30})
        assert response.status_code == 200
        body = _action(playing, kind="investigate", placeId="place_lobby").json()
        assert body["minutesSpent"] == 30

    def test_invalid_config(self, client):
        response = client.put("/engine/config", json={"generator_timeout_seconds": 0})
        assert response.status_code == 422

    def test_config_passed_to_factory(self):
        client = TestClient(create_app(config=EngineConfig(accusation_minutes=10)))
        assert client.get("/engine/config").json()["accusation_minutes"] == 10
