"""
Frame data model.

A ``ResultSet`` is the decoded, schema-less response of the query engine.
A ``Frame`` is the named, typed, columnar table handed to the rendering
layer.  Both are value objects built once per request.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import pandas as pd

from nrql_frames.query.time_window import to_epoch_ms

# ── Field & frame names ─────────────────────────────────

COUNT_FIELD = "count"
FACET_FIELD = "facet"
TIME_FIELD = "time"
TIMESTAMP_FIELD = "timestamp"
BEGIN_TIME_FIELD = "beginTimeSeconds"
END_TIME_FIELD = "endTimeSeconds"
PERCENTILE_PREFIX = "percentile."

COUNT_FRAME = "count"
COUNT_TIME_SERIES_FRAME = "count_time_series"
FACET_FRAME = "facets"
FACET_TIME_SERIES_FRAME = "facet_time_series"
RESPONSE_FRAME = "response"


class SemanticType(str, Enum):
    NUMERIC = "number"
    BOOLEAN = "boolean"
    TEXT = "string"
    TIME = "time"

    @property
    def zero(self) -> Any:
        return _ZERO_VALUES.get(self)


_ZERO_VALUES: dict[SemanticType, Any] = {
    SemanticType.NUMERIC: 0.0,
    SemanticType.BOOLEAN: False,
    SemanticType.TEXT: "",
}


class VisualizationHint(str, Enum):
    TABLE = "table"
    GRAPH = "graph"


@dataclass(frozen=True)
class ResultSet:
    """Rows returned by the engine plus the facet names of the whole result."""
    rows: tuple[dict[str, Any], ...] = ()
    facet_names: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "rows", tuple(self.rows))
        object.__setattr__(self, "facet_names", tuple(self.facet_names))

    @property
    def first_row(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ResultSet":
        """Accept either the engine's ``{results, metadata:{facets}}`` shape
        or the flat ``{rows, facetNames}`` shape."""
        rows = payload.get("results")
        if rows is None:
            rows = payload.get("rows") or []
        facets = payload.get("facetNames")
        if facets is None:
            facets = (payload.get("metadata") or {}).get("facets") or []
        if isinstance(facets, str):
            facets = [facets]
        return cls(rows=tuple(r for r in rows if isinstance(r, dict)), facet_names=tuple(facets))


@dataclass(frozen=True)
class Column:
    name: str
    semantic_type: SemanticType
    values: tuple[Any, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))

    def __len__(self) -> int:
        return len(self.values)

    def to_dict(self) -> dict[str, Any]:
        values: list[Any] = list(self.values)
        if self.semantic_type is SemanticType.TIME:
            values = [to_epoch_ms(v) if isinstance(v, datetime) else v for v in values]
        return {"name": self.name, "type": self.semantic_type.value, "values": values}


@dataclass(frozen=True)
class Frame:
    """A named, typed columnar table with a preferred visualization."""
    name: str
    columns: tuple[Column, ...] = field(default_factory=tuple)
    visualization_hint: VisualizationHint = VisualizationHint.TABLE

    def __post_init__(self):
        object.__setattr__(self, "columns", tuple(self.columns))

    @property
    def row_count(self) -> int:
        return len(self.columns[0]) if self.columns else 0

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> Column | None:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "columns": [c.to_dict() for c in self.columns],
            "visualizationHint": self.visualization_hint.value,
        }

    def to_pandas(self) -> pd.DataFrame:
        """Render the frame as a DataFrame (columns in frame order)."""
        return pd.DataFrame(
            {c.name: list(c.values) for c in self.columns},
            columns=self.column_names,
        )


FrameSet = list[Frame]
