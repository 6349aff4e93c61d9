"""
Query text clean-up applied before time rewriting.

Users paste NRQL with line breaks and annotate it with ``--`` comment lines;
both are removed so the rewriter and the upstream engine see one line.
"""
from __future__ import annotations

import re

_MULTI_SPACE = re.compile(r" {2,}")


def normalize_query(query_text: str) -> str:
    """Drop comment and blank lines, join the rest with single spaces."""
    kept: list[str] = []
    for line in query_text.split("\n"):
        line = line.replace("\r", "").strip()
        if not line or line.startswith("--"):
            continue
        kept.append(line)
    return _MULTI_SPACE.sub(" ", " ".join(kept)).strip()
