"""
Time-window query rewriter.

Rewrites NRQL text so its time bounds come from an externally supplied
``TimeWindow`` instead of literal clauses.  Three paths, tried in order:

  1. Placeholder substitution -- ``$__from``, ``$__to``, ``$__fromISOString``,
     ``$__toISOString``, ``$__timeFilter()`` and ``$__interval`` are replaced
     in place.  When the substituted text is bounded (see below) nothing
     else changes.  Text whose tokens bound nothing (``$__interval`` alone,
     ``$__from`` compared with another attribute) goes on to path 2 or 3.
  2. Relative clause -- ``SINCE <n> <unit> ago [UNTIL <n> <unit> ago|now]`` is
     stripped and a ``timestamp >= <from_ms> AND timestamp <= <to_ms>``
     condition is injected after an existing WHERE, or put where the clause
     was as a new WHERE.
  3. No time clause -- the condition is appended as a new WHERE clause.

Bounded text is text that compares ``timestamp`` with an epoch-ms or quoted
ISO literal, or holds ``SINCE <epoch-ms>|'<iso>' [UNTIL ...]``.  It is left
structurally alone: the emitted condition pair and absolute SINCE / UNTIL
literals are re-stamped with the window, other comparisons are kept as
written.  Re-running ``rewrite`` on its own output is therefore a no-op.

Keyword detection ignores quoted string literals.  Unrecognised input is
returned unchanged; this module never raises on query text.
"""
from __future__ import annotations

import re
from typing import Callable

from nrql_frames.query.interval import bucket_width
from nrql_frames.query.time_window import TimeWindow
from nrql_frames.core.logging import get_logger

logger = get_logger(__name__)

# ── Compiled patterns ────────────────────────────────────

# Longer tokens first so $__fromISOString never matches as $__from.
_PLACEHOLDER_RE = re.compile(
    r"\$__(fromISOString|toISOString|timeFilter\(\)|interval|from|to)"
)

_DURATION = r"(?:\d+(?:\.\d+)?\s+[a-z]+\s+)+ago\b"
_RELATIVE_RE = re.compile(
    rf"\bSINCE\s+{_DURATION}(?:\s+UNTIL\s+(?:{_DURATION}|now\b))?",
    re.IGNORECASE,
)

_UNITS = r"(?!\s+(?:second|minute|hour|day|week|month|quarter|year)s?\b)"
_ABSOLUTE_MS_RE = re.compile(
    rf"\bSINCE\s+(\d+)\b{_UNITS}(?:\s+UNTIL\s+(\d+)\b{_UNITS})?",
    re.IGNORECASE,
)
_ISO = r"\d{4}-\d{2}-\d{2}[T ][^'\"]*"
_ABSOLUTE_ISO_RE = re.compile(
    rf"\bSINCE\s+(['\"])({_ISO})\1(?:\s+UNTIL\s+(['\"])({_ISO})\3)?",
    re.IGNORECASE,
)
_BOUND_RE = re.compile(
    r"\btimestamp\s*>=\s*(\d+)\s+AND\s+timestamp\s*<=\s*(\d+)\b",
    re.IGNORECASE,
)

# Any other comparison of timestamp with an epoch-ms (12+ digits) or ISO literal.
_OP = r"(?:>=|<=|!=|<>|=|>|<)"
_EPOCH_MS = r"\d{12,}\b"
_COMPARISON_RES = (
    re.compile(rf"\btimestamp\s*{_OP}\s*{_EPOCH_MS}", re.IGNORECASE),
    re.compile(rf"\b{_EPOCH_MS}\s*{_OP}\s*timestamp\b", re.IGNORECASE),
    re.compile(rf"\btimestamp\s*{_OP}\s*(['\"]){_ISO}\1", re.IGNORECASE),
)

_WHERE_RE = re.compile(r"\bWHERE\b", re.IGNORECASE)

_QUOTES = "'\"`"


# ── Public API ───────────────────────────────────────────


def time_condition(window: TimeWindow) -> str:
    """The literal timestamp-bounded condition for *window*."""
    return f"timestamp >= {window.from_ms} AND timestamp <= {window.to_ms}"


def has_time_variables(query_text: str) -> bool:
    """True if *query_text* holds any time-window placeholder token."""
    return bool(query_text) and _PLACEHOLDER_RE.search(query_text) is not None


def substitute_time_variables(query_text: str, window: TimeWindow) -> str:
    """Replace every placeholder token with its value for *window*."""
    values = {
        "from": str(window.from_ms),
        "to": str(window.to_ms),
        "fromISOString": window.from_iso,
        "toISOString": window.to_iso,
        "timeFilter()": time_condition(window),
        "interval": bucket_width(window),
    }
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], query_text)


def is_bounded(query_text: str) -> bool:
    """True if *query_text* already pins its time range with literals."""
    patterns = (_BOUND_RE, _ABSOLUTE_MS_RE, _ABSOLUTE_ISO_RE, *_COMPARISON_RES)
    return any(_find_unquoted(p, query_text) is not None for p in patterns)


def rewrite(query_text: str, window: TimeWindow) -> str:
    """Rewrite *query_text* so it honors *window*.

    Parameters
    ----------
    query_text : str
        NRQL text as typed by the user.
    window : TimeWindow
        The externally selected time range.

    Returns
    -------
    str
        The windowed query text.  Empty input is returned unchanged.
    """
    if not query_text or not query_text.strip():
        return query_text

    text = query_text

    # ── 1. Placeholders ─────────────────────────────
    if has_time_variables(text):
        text = substitute_time_variables(text, window)
        if is_bounded(text):
            logger.debug("Rewrite path=placeholders")
            return text
        logger.debug("Rewrite path=placeholders (unbounded, windowing)")

    # ── Already-bounded text: re-stamp in place ─────
    elif is_bounded(text):
        logger.debug("Rewrite path=restamp")
        return _restamp(text, window)

    condition = time_condition(window)

    # ── 2a. Strip a relative SINCE … ago clause ─────
    relative = _find_unquoted(_RELATIVE_RE, text)
    if relative is not None:
        head = text[: relative.start()].rstrip()
        tail = text[relative.end():].lstrip()
        text = _join(head, tail)
    else:
        head = tail = ""

    # ── 2b / 3. Inject into an existing WHERE ───────
    where = _find_unquoted(_WHERE_RE, text)
    if where is not None:
        logger.debug("Rewrite path=inject-where relative=%s", relative is not None)
        rest = text[where.end():].lstrip()
        injected = f"{condition} AND {rest}" if rest else condition
        return f"{text[: where.end()]} {injected}"

    # ── 2c. New WHERE where the relative clause sat ─
    if relative is not None:
        logger.debug("Rewrite path=replace-relative")
        return _join(head, f"WHERE {condition}", tail)

    # ── 3. No time clause at all ────────────────────
    logger.debug("Rewrite path=append")
    return f"{text.rstrip()} WHERE {condition}"


# ── Helpers ──────────────────────────────────────────────


def _join(*parts: str) -> str:
    return " ".join(p for p in parts if p)


def _quoted_spans(text: str) -> list[tuple[int, int]]:
    """Half-open ``(start, end)`` ranges covered by quoted literals."""
    spans: list[tuple[int, int]] = []
    quote: str | None = None
    start = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                spans.append((start, i + 1))
                quote = None
        elif ch in _QUOTES:
            quote = ch
            start = i
        i += 1
    if quote is not None:
        spans.append((start, len(text)))
    return spans


def _unquoted(pattern: re.Pattern, text: str) -> list[re.Match]:
    spans = _quoted_spans(text)
    return [
        m for m in pattern.finditer(text)
        if not any(s <= m.start() < e for s, e in spans)
    ]


def _find_unquoted(pattern: re.Pattern, text: str) -> re.Match | None:
    matches = _unquoted(pattern, text)
    return matches[0] if matches else None


def _replace_unquoted(
    pattern: re.Pattern,
    text: str,
    fn: Callable[[re.Match], str],
) -> str:
    out: list[str] = []
    pos = 0
    for m in _unquoted(pattern, text):
        out.append(text[pos: m.start()])
        out.append(fn(m))
        pos = m.end()
    out.append(text[pos:])
    return "".join(out)


def _swap_groups(m: re.Match, values: dict[int, str]) -> str:
    """The matched text with only the given groups replaced."""
    out: list[str] = []
    pos = m.start()
    for group in sorted(values):
        if m.group(group) is None:
            continue
        out.append(m.string[pos: m.start(group)])
        out.append(values[group])
        pos = m.end(group)
    out.append(m.string[pos: m.end()])
    return "".join(out)


def _restamp(text: str, window: TimeWindow) -> str:
    """Swap the window's values into the emitted pair and SINCE / UNTIL literals."""
    start_ms, end_ms = str(window.from_ms), str(window.to_ms)
    text = _replace_unquoted(_BOUND_RE, text, lambda m: _swap_groups(m, {1: start_ms, 2: end_ms}))
    text = _replace_unquoted(_ABSOLUTE_MS_RE, text, lambda m: _swap_groups(m, {1: start_ms, 2: end_ms}))
    return _replace_unquoted(
        _ABSOLUTE_ISO_RE, text,
        lambda m: _swap_groups(m, {2: window.from_iso, 4: window.to_iso}),
    )
