from __future__ import annotations

import re
from functools import lru_cache

WILDCARD = "*"

_WILDCARD_RUN_RE = re.compile(r"\*{2,}")


def is_pattern(value: str) -> bool:
    return WILDCARD in value


def collapse_wildcards(pattern: str) -> str:
    """Collapse runs of `*` into one so `**` and `*` compile identically."""
    return _WILDCARD_RUN_RE.sub(WILDCARD, pattern)


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> re.Pattern[str]:
    parts = collapse_wildcards(pattern).split(WILDCARD)
    body = ".*".join(re.escape(part) for part in parts)
    return re.compile(f"^{body}$", re.IGNORECASE | re.DOTALL)


def matches(pattern: str, candidate: str) -> bool:
    """Case-insensitive, fully anchored wildcard match.

    `*` stands for zero or more characters. A pattern without `*` only matches
    the candidate exactly (ignoring case).
    """
    return compile_pattern(pattern).fullmatch(candidate) is not None
