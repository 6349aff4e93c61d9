"""
Per-column type inference and coercion.

The semantic type of a column is decided once, from the first row's value;
every row is then coerced to it on its own.  A later row of another type
never changes the column type, it is coerced (or zeroed) instead.
"""
from __future__ import annotations

import json
import math
from typing import Any

from nrql_frames.frames.models import Column, ResultSet, SemanticType


def _is_number(value: Any) -> bool:
    # bool is an int subclass but is its own semantic type
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_float(value: Any) -> float:
    if not _is_number(value):
        return 0.0
    try:
        return float(value)
    except OverflowError:
        # ints past the float range (valid JSON, decoded as int)
        return 0.0


def infer_type(value: Any) -> SemanticType:
    """Semantic type of a single raw value (absent / null → TEXT)."""
    if isinstance(value, bool):
        return SemanticType.BOOLEAN
    if _is_number(value):
        return SemanticType.NUMERIC
    return SemanticType.TEXT


def render_text(value: Any) -> str:
    """String form used for TEXT columns."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, (list, tuple, dict)):
        try:
            return json.dumps(value, separators=(",", ":"), default=str)
        except (TypeError, ValueError):
            return str(value)
    return str(value)


def coerce(value: Any, semantic_type: SemanticType) -> Any:
    """Coerce *value* to *semantic_type*, falling back to its zero value."""
    if value is None:
        return semantic_type.zero
    if semantic_type is SemanticType.NUMERIC:
        return _to_float(value)
    if semantic_type is SemanticType.BOOLEAN:
        return value if isinstance(value, bool) else False
    if semantic_type is SemanticType.TEXT:
        return render_text(value)
    return value


def infer_and_coerce(column_name: str, rs: ResultSet) -> Column:
    """Build a typed ``Column`` for *column_name* across every row of *rs*."""
    first = rs.first_row
    semantic_type = infer_type(first.get(column_name) if first else None)
    values = [coerce(row.get(column_name), semantic_type) for row in rs.rows]
    return Column(name=column_name, semantic_type=semantic_type, values=values)
