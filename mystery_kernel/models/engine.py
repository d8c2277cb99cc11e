"""Engine configuration — action time costs and generator limits."""

from typing import Literal

from pydantic import BaseModel, Field


class EngineConfig(BaseModel):
    """Configuration for the action resolver and content round-trips."""

    # Action time costs, in minutes (multiples of 5)
    investigation_minutes: int = Field(ge=0, default=15)
    questioning_minutes: int = Field(ge=0, default=20)
    movement_base_minutes: int = Field(ge=0, default=5)
    movement_distance_minutes: int = Field(ge=0, default=5)   # Per distance unit
    accusation_minutes: int = Field(ge=0, default=5)

    # Content generator round-trips
    generator_timeout_seconds: float = Field(gt=0, default=30.0)
    scenario_max_output: int = 3000
    transition_max_output: int = 2000
    dialogue_max_output: int = 512
    narrative_max_output: int = 1000
    question_mode: Literal["transition", "dialogue"] = "transition"
    describe_investigations: bool = True
    language: str = "en"

    upcoming_event_limit: int = 5

    def movement_minutes(self, distance: int) -> int:
        return self.movement_base_minutes + distance * self.movement_distance_minutes
