"""Lap event and best-time entry models."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

#: Display name used when the event source supplies none.
UNKNOWN_DRIVER = "Unknown"


class LapCompletedEvent(BaseModel):
    """One completed lap, as delivered by the event source."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    driver_name: str = Field(default=UNKNOWN_DRIVER, description="Driver display name")
    lap_time_ms: int = Field(..., ge=0, description="Lap time in whole milliseconds")
    cuts: int = Field(default=0, ge=0, description="Track-limit violations on this lap")

    @field_validator("driver_name", mode="before")
    @classmethod
    def _default_unknown(cls, value: object) -> object:
        if value is None:
            return UNKNOWN_DRIVER
        if isinstance(value, str) and not value.strip():
            return UNKNOWN_DRIVER
        return value


class BestTimeEntry(BaseModel):
    """A driver's best lap time in one table."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    lap_time_ms: int = Field(..., ge=0)
    last_updated: datetime | None = None
    """When the entry was last written to the snapshot (UTC), if known."""

    @property
    def key(self) -> str:
        """Case-insensitive identity of the driver."""
        return name_key(self.name)

    @field_validator("last_updated")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


def name_key(name: str) -> str:
    return name.casefold()
