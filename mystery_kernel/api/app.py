"""
Mystery Kernel API — FastAPI endpoints.

Exposes one game session over REST:
- Case bootstrap (generated, sample, or uploaded scenario)
- Snapshot and status inspection
- Player actions and phase changes
- Timeline and conversation queries
- Intro and epilogue narration
- Engine configuration
"""

import json
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from mystery_kernel.content.generator import ContentGenerator
from mystery_kernel.models.action import ActionErrorKind, GameAction
from mystery_kernel.models.engine import EngineConfig
from mystery_kernel.models.session import BootstrapResult
from mystery_kernel.models.world import GamePhase, GameState
from mystery_kernel.session.holder import GameSession, NoGameError


# --- Request/Response Models ---

class StartGameRequest(BaseModel):
    keywords: str = ""


class ActionRequest(BaseModel):
    action: GameAction


class PhaseRequest(BaseModel):
    phase: GamePhase


_NOT_FOUND_ACTION_ERRORS = {ActionErrorKind.NO_GAME}


def _state_payload(state: GameState) -> dict:
    return state.to_payload()


def _bootstrap_response(result: BootstrapResult) -> dict:
    if result.generator_error:
        raise HTTPException(502, f"Content generator failed: {result.generator_error}")
    if not result.success:
        raise HTTPException(422, {
            "message": "Scenario rejected",
            "issues": [i.model_dump(mode="json") for i in result.issues],
        })
    return {"status": "ready", "state": _state_payload(result.state)}


# --- Application Factory ---

def create_app(
    session: Optional[GameSession] = None,
    config: Optional[EngineConfig] = None,
    generator: Optional[ContentGenerator] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Mystery Kernel API",
        description="Detective game simulation engine",
        version="0.1.0",
    )

    gs = session or GameSession(generator=generator, config=config)
    if session is not None and config is not None:
        gs.config = config
    app.state.session = gs

    def current_state() -> GameState:
        if gs.state is None:
            raise HTTPException(404, "No game has been started")
        return gs.state

    # === BOOTSTRAP ===

    @app.post("/game/start")
    async def start_game(req: StartGameRequest):
        """Generate a new case from keywords."""
        return _bootstrap_response(await gs.start_new_game(req.keywords))

    @app.post("/game/sample")
    def start_sample_game():
        """Start the built-in sample case."""
        return _bootstrap_response(gs.start_sample_game())

    @app.post("/game/scenario")
    def load_scenario(scenario: dict):
        """Validate and start an uploaded scenario document."""
        return _bootstrap_response(gs.load_scenario(json.dumps(scenario)))

    # === INSPECTION ===

    @app.get("/game/state")
    def get_state():
        return _state_payload(current_state())

    @app.get("/game/status")
    def get_status():
        return gs.status.model_dump(mode="json")

    # === PLAY ===

    @app.post("/game/actions")
    async def execute_action(req: ActionRequest):
        """Resolve one player action."""
        result = await gs.execute_action(req.action)
        if not result.success:
            status = 404 if result.error.kind in _NOT_FOUND_ACTION_ERRORS else 409
            raise HTTPException(status, result.error.model_dump(mode="json"))
        return {
            "success": True,
            "minutesSpent": result.minutes_spent,
            "narrative": result.narrative,
            "usedFallback": result.used_fallback,
            "firedEvents": [
                e.model_dump(mode="json", by_alias=True) for e in result.fired_events
            ],
            "state": _state_payload(result.state),
        }

    @app.post("/game/phase")
    def change_phase(req: PhaseRequest):
        current_state()
        transition = gs.transition_to_phase(req.phase)
        if not transition.success:
            raise HTTPException(409, transition.error)
        return {"phase": transition.state.phase.value}

    # === TIMELINE & CONVERSATIONS ===

    @app.get("/game/events/past")
    def past_events():
        state = current_state()
        return [
            e.model_dump(mode="json", by_alias=True)
            for e in state.timeline.get_past_events(state.current_time)
        ]

    @app.get("/game/events/upcoming")
    def upcoming_events(limit: Optional[int] = Query(None, ge=0)):
        state = current_state()
        if limit is None:
            limit = gs.config.upcoming_event_limit
        events = state.timeline.get_upcoming_events(state.current_time, limit)
        return [e.model_dump(mode="json", by_alias=True) for e in events]

    @app.get("/game/conversations/{character_id}")
    def get_conversation(character_id: str):
        state = current_state()
        if state.get_character(character_id) is None:
            raise HTTPException(404, "Character not found")
        return [m.model_dump(mode="json") for m in gs.conversation(character_id)]

    # === NARRATION ===

    @app.post("/game/intro")
    async def intro():
        try:
            result = await gs.generate_intro()
        except NoGameError as e:
            raise HTTPException(404, str(e))
        return result.model_dump(mode="json")

    @app.post("/game/epilogue")
    async def epilogue():
        try:
            result = await gs.generate_epilogue()
        except NoGameError as e:
            raise HTTPException(404, str(e))
        return result.model_dump(mode="json")

    # === ENGINE CONFIG ===

    @app.get("/engine/config")
    def get_engine_config():
        """Current engine configuration."""
        return gs.config.model_dump()

    @app.put("/engine/config")
    def update_engine_config(config: EngineConfig):
        """Replace the engine configuration."""
        gs.config = config
        return config.model_dump()

    return app
