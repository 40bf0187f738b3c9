"""Outbound lap-time submission payload."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from bestlaps._format import format_lap_time


class LapTimeSubmission(BaseModel):
    """JSON body POSTed to the lap-time collector.

    Serialized with camelCase keys: ``nickName``, ``bestLapTimeMs`` and
    ``formattedTime``.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    nick_name: str
    best_lap_time_ms: int
    formatted_time: str

    @classmethod
    def for_lap(cls, nick_name: str, lap_time_ms: int) -> LapTimeSubmission:
        return cls(
            nick_name=nick_name,
            best_lap_time_ms=lap_time_ms,
            formatted_time=format_lap_time(lap_time_ms),
        )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
