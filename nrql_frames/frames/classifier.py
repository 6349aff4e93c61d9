"""
Result-shape classification.

Decides, from the first row only, which frame layout a result set needs:

  - empty           (no rows)
  - simple scalar   (``count`` present, no ``facet``)
  - faceted scalar  (``count`` and ``facet`` present)
  - generic         (anything else, typically detail / time-series rows)

The count checks run before the generic fall-through so a faceted count is
never framed as detail rows, and vice versa.
"""
from __future__ import annotations

from enum import Enum

from nrql_frames.frames.models import COUNT_FIELD, FACET_FIELD, ResultSet
from nrql_frames.core.logging import get_logger

logger = get_logger(__name__)


class ResultShape(str, Enum):
    EMPTY = "empty"
    SIMPLE_SCALAR = "simple_scalar"
    FACETED_SCALAR = "faceted_scalar"
    GENERIC = "generic"


def classify(rs: ResultSet) -> ResultShape:
    """Return the ``ResultShape`` of *rs*.  Never raises."""
    first = rs.first_row
    if first is None:
        shape = ResultShape.EMPTY
    elif first.get(COUNT_FIELD) is not None and first.get(FACET_FIELD) is None:
        shape = ResultShape.SIMPLE_SCALAR
    elif first.get(COUNT_FIELD) is not None and first.get(FACET_FIELD) is not None:
        shape = ResultShape.FACETED_SCALAR
    else:
        shape = ResultShape.GENERIC

    logger.debug("Classified %d rows as %s", len(rs.rows), shape.value)
    return shape
