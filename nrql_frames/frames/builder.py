"""
Frame builder.

Turns a classified ``ResultSet`` into the frames the rendering layer needs:

  - simple scalar   → 1-row table + 2-point flat line across the window
  - faceted scalar  → facet table + the same rows stamped at ``window.from``
  - generic         → one frame: time column + one typed column per field
                      (facet arrays unpacked, percentile objects flattened)
  - empty           → no frames

Row order always follows the result set; nothing is sorted or deduplicated.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any

from nrql_frames.frames.classifier import ResultShape, classify
from nrql_frames.frames.models import (
    BEGIN_TIME_FIELD,
    COUNT_FIELD,
    COUNT_FRAME,
    COUNT_TIME_SERIES_FRAME,
    END_TIME_FIELD,
    FACET_FIELD,
    FACET_FRAME,
    FACET_TIME_SERIES_FRAME,
    PERCENTILE_PREFIX,
    RESPONSE_FRAME,
    TIME_FIELD,
    TIMESTAMP_FIELD,
    Column,
    Frame,
    FrameSet,
    ResultSet,
    SemanticType,
    VisualizationHint,
)
from nrql_frames.frames.type_inference import coerce, infer_and_coerce, render_text
from nrql_frames.query.time_window import TimeWindow, from_epoch_ms
from nrql_frames.core.logging import get_logger

logger = get_logger(__name__)


def build_frames(rs: ResultSet, window: TimeWindow) -> FrameSet:
    """Classify *rs* and build its frames in one call."""
    return build(rs, classify(rs), window)


def build(rs: ResultSet, shape: ResultShape, window: TimeWindow) -> FrameSet:
    """Build the frames for *rs* given its *shape*.

    Parameters
    ----------
    rs : ResultSet
        Raw rows and facet names from the engine.
    shape : ResultShape
        Result of ``classify(rs)``.
    window : TimeWindow
        The request's time window; anchors the synthetic time columns.

    Returns
    -------
    FrameSet
        0, 1 or 2 frames.
    """
    if shape is ResultShape.EMPTY or not rs.rows:
        frames: FrameSet = []
    elif shape is ResultShape.SIMPLE_SCALAR:
        frames = _simple_scalar_frames(rs, window)
    elif shape is ResultShape.FACETED_SCALAR:
        frames = _faceted_scalar_frames(rs, window)
    else:
        frames = [_generic_frame(rs, window)]

    logger.info("Built %d frame(s) for shape=%s rows=%d", len(frames), shape.value, len(rs.rows))
    return frames


# ── Simple scalar ───────────────────────────────────────


def extract_count(row: dict[str, Any]) -> float:
    return coerce(row.get(COUNT_FIELD), SemanticType.NUMERIC)


def _simple_scalar_frames(rs: ResultSet, window: TimeWindow) -> FrameSet:
    count = extract_count(rs.rows[0])

    table = Frame(
        name=COUNT_FRAME,
        columns=[Column(COUNT_FIELD, SemanticType.NUMERIC, [count])],
        visualization_hint=VisualizationHint.TABLE,
    )
    # No intra-window resolution for a pure aggregate: flat line over the window.
    graph = Frame(
        name=COUNT_TIME_SERIES_FRAME,
        columns=[
            Column(TIME_FIELD, SemanticType.TIME, [window.from_, window.to]),
            Column(COUNT_FIELD, SemanticType.NUMERIC, [count, count]),
        ],
        visualization_hint=VisualizationHint.GRAPH,
    )
    return [table, graph]


# ── Faceted scalar ──────────────────────────────────────


def facet_values(row: dict[str, Any], facet_names: list[str]) -> list[str]:
    """Unpack a row's facet value positionally against *facet_names*."""
    values = [""] * len(facet_names)
    raw = row.get(FACET_FIELD)
    if isinstance(raw, (list, tuple)):
        for i, item in enumerate(raw[: len(facet_names)]):
            values[i] = render_text(item)
    elif raw is not None and facet_names:
        values[0] = render_text(raw)
    return values


def _facet_columns(rs: ResultSet) -> list[Column]:
    facet_names = list(rs.facet_names) or [FACET_FIELD]
    per_row = [facet_values(row, facet_names) for row in rs.rows]
    columns = [
        Column(name, SemanticType.TEXT, [vals[i] for vals in per_row])
        for i, name in enumerate(facet_names)
    ]
    counts = [extract_count(row) for row in rs.rows]
    columns.append(Column(COUNT_FIELD, SemanticType.NUMERIC, counts))
    return columns


def _faceted_scalar_frames(rs: ResultSet, window: TimeWindow) -> FrameSet:
    columns = _facet_columns(rs)
    logger.debug("Facet columns: %s", [c.name for c in columns])

    table = Frame(name=FACET_FRAME, columns=columns, visualization_hint=VisualizationHint.TABLE)
    # Facet series are not bucketed here: every row sits at window.from.
    times = Column(TIME_FIELD, SemanticType.TIME, [window.from_] * len(rs.rows))
    graph = Frame(
        name=FACET_TIME_SERIES_FRAME,
        columns=[times, *columns],
        visualization_hint=VisualizationHint.GRAPH,
    )
    return [table, graph]


# ── Generic rows ────────────────────────────────────────

_TIME_KEYS = (TIMESTAMP_FIELD, BEGIN_TIME_FIELD, END_TIME_FIELD)


def field_names(rs: ResultSet) -> list[str]:
    """Union of row keys in first-seen order, without the time keys."""
    seen: dict[str, None] = {}
    for row in rs.rows:
        for key in row:
            if key not in _TIME_KEYS:
                seen.setdefault(key, None)
    return list(seen)


def _epoch_number(value: Any) -> float | None:
    """A finite number from a JSON number or a numeric string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def row_time(row: dict[str, Any]) -> datetime | None:
    """Row time from ``timestamp`` (ms) or TIMESERIES ``beginTimeSeconds`` (s)."""
    ms = _epoch_number(row.get(TIMESTAMP_FIELD))
    if ms is None:
        seconds = _epoch_number(row.get(BEGIN_TIME_FIELD))
        if seconds is None:
            return None
        ms = seconds * 1000
    try:
        return from_epoch_ms(ms)
    except (OverflowError, ValueError):
        return None


def _has_facets(rs: ResultSet) -> bool:
    return any(row.get(FACET_FIELD) is not None for row in rs.rows)


def _percentile_columns(name: str, rs: ResultSet) -> list[Column]:
    """One numeric column per percentile key, e.g. ``percentile.duration.95``."""
    keys: dict[str, None] = {}
    for row in rs.rows:
        value = row.get(name)
        if isinstance(value, dict):
            for key in value:
                keys.setdefault(str(key), None)

    def _pick(row: dict[str, Any], key: str) -> Any:
        value = row.get(name)
        return value.get(key) if isinstance(value, dict) else None

    return [
        Column(f"{name}.{key}", SemanticType.NUMERIC,
               [coerce(_pick(row, key), SemanticType.NUMERIC) for row in rs.rows])
        for key in keys
    ]


def _is_percentile_object(name: str, rs: ResultSet) -> bool:
    return name.startswith(PERCENTILE_PREFIX) and any(
        isinstance(row.get(name), dict) for row in rs.rows
    )


def _data_columns(rs: ResultSet) -> list[Column]:
    columns: list[Column] = []
    for name in field_names(rs):
        if name == FACET_FIELD and _has_facets(rs):
            # faceted aggregation without a count: facet array unpacked in place
            facet_names = list(rs.facet_names) or [FACET_FIELD]
            per_row = [facet_values(row, facet_names) for row in rs.rows]
            columns.extend(
                Column(facet, SemanticType.TEXT, [vals[i] for vals in per_row])
                for i, facet in enumerate(facet_names)
            )
        elif _is_percentile_object(name, rs):
            columns.extend(_percentile_columns(name, rs))
        else:
            columns.append(infer_and_coerce(name, rs))
    return columns


def _generic_frame(rs: ResultSet, window: TimeWindow) -> Frame:
    row_times = [row_time(row) for row in rs.rows]
    times = Column(
        TIME_FIELD,
        SemanticType.TIME,
        [t if t is not None else window.from_ for t in row_times],
    )
    # Rows carrying their own time are a series; anything else renders as a table.
    hint = VisualizationHint.GRAPH if row_times[0] is not None else VisualizationHint.TABLE
    return Frame(name=RESPONSE_FRAME, columns=[times, *_data_columns(rs)], visualization_hint=hint)
