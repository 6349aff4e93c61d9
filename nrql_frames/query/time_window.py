"""
TimeWindow -- the externally supplied [from, to] bound a query must honor.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


def to_epoch_ms(value: datetime) -> int:
    """Milliseconds since the Unix epoch (naive datetimes are UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _ONE_MS


def from_epoch_ms(ms: int | float) -> datetime:
    return _EPOCH + timedelta(milliseconds=ms)


def to_rfc3339(value: datetime) -> str:
    """RFC3339 with second precision, ``Z`` for UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    text = value.replace(microsecond=0).isoformat()
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text


class TimeWindow(BaseModel):
    """Immutable ``[from, to]`` range supplied per request."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: datetime = Field(..., alias="from", description="Window start")
    to: datetime = Field(..., description="Window end")

    @field_validator("from_", "to")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _check_order(self) -> "TimeWindow":
        if self.from_ > self.to:
            raise ValueError("time window 'from' must not be after 'to'")
        return self

    @classmethod
    def from_epoch_ms(cls, from_ms: int | float, to_ms: int | float) -> "TimeWindow":
        return cls(from_=from_epoch_ms(from_ms), to=from_epoch_ms(to_ms))

    @property
    def span(self) -> timedelta:
        return self.to - self.from_

    @property
    def from_ms(self) -> int:
        return to_epoch_ms(self.from_)

    @property
    def to_ms(self) -> int:
        return to_epoch_ms(self.to)

    @property
    def from_iso(self) -> str:
        return to_rfc3339(self.from_)

    @property
    def to_iso(self) -> str:
        return to_rfc3339(self.to)
