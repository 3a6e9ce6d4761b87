"""Search condition models - user preference tags for trip planning."""

import re
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator

_CLOCK_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


class SearchConditions(BaseModel):
    """Immutable preference bundle used to search POIs and prompt the planner."""

    model_config = ConfigDict(frozen=True)

    geographic_features: list[str] = Field(default_factory=list)
    climate_preference: str | None = None
    food_preferences: list[str] = Field(default_factory=list)
    activity_types: list[str] = Field(default_factory=list)
    budget_level: str | None = None
    travel_style: str | None = None
    start_date: date | None = None
    total_days: int | None = Field(default=None, ge=1)
    arrival_time: str | None = Field(default=None, description="Local clock time, HH:MM")
    departure_time: str | None = Field(default=None, description="Local clock time, HH:MM")

    @field_validator("arrival_time", "departure_time")
    @classmethod
    def validate_clock(cls, v: str | None) -> str | None:
        """Ensure clock times are HH:MM."""
        if v is None:
            return v
        if not _CLOCK_RE.match(v.strip()):
            raise ValueError("clock time must be HH:MM (00:00-23:59)")
        return v.strip()
