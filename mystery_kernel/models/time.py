"""Game Time — the in-game clock value, counted in minutes."""

from pydantic import BaseModel, ConfigDict

MIN_TIME_UNIT = 5  # Every engine-produced time is a multiple of this


def round_to_time_unit(minutes: int) -> int:
    """Round down to the nearest multiple of MIN_TIME_UNIT."""
    return (minutes // MIN_TIME_UNIT) * MIN_TIME_UNIT


def is_valid_time_unit(minutes: int) -> bool:
    return minutes >= 0 and minutes % MIN_TIME_UNIT == 0


class GameTime(BaseModel):
    """
    A point on the game clock.

    Minutes are absolute and share the timeline's epoch (usually minutes
    from midnight of the case day), so 1080 reads as 18:00.
    """

    model_config = ConfigDict(frozen=True)

    minutes: int = 0

    @property
    def hours(self) -> int:
        return self.minutes // 60

    @property
    def minutes_of_hour(self) -> int:
        return self.minutes % 60

    def add_minutes(self, amount: int) -> "GameTime":
        return GameTime(minutes=self.minutes + amount)

    def is_after(self, other: "GameTime") -> bool:
        return self.minutes > other.minutes

    def is_before(self, other: "GameTime") -> bool:
        return self.minutes < other.minutes

    def format(self) -> str:
        """Clock notation, e.g. GameTime(125) -> "02:05"."""
        return f"{self.hours:02d}:{self.minutes_of_hour:02d}"

    def __lt__(self, other: "GameTime") -> bool:
        return self.minutes < other.minutes

    def __le__(self, other: "GameTime") -> bool:
        return self.minutes <= other.minutes

    def __gt__(self, other: "GameTime") -> bool:
        return self.minutes > other.minutes

    def __ge__(self, other: "GameTime") -> bool:
        return self.minutes >= other.minutes
