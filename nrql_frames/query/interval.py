"""
Bucket-width policy: maps a window span to a TIMESERIES interval token.
"""
from __future__ import annotations

from datetime import timedelta

from nrql_frames.query.time_window import TimeWindow

AUTO = "AUTO"

# (inclusive upper bound, token) -- first match wins
_POLICY: tuple[tuple[timedelta, str], ...] = (
    (timedelta(hours=1), AUTO),
    (timedelta(hours=6), "5m"),
    (timedelta(hours=24), "15m"),
    (timedelta(days=7), "1h"),
)
_WIDEST = "1d"


def bucket_width_for_span(span: timedelta) -> str:
    for upper, token in _POLICY:
        if span <= upper:
            return token
    return _WIDEST


def bucket_width(window: TimeWindow) -> str:
    """Return the bucket width for *window* (e.g. ``"5m"``, ``"1d"``, ``"AUTO"``)."""
    return bucket_width_for_span(window.span)
