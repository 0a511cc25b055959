from __future__ import annotations

import re
from functools import lru_cache
from typing import Pattern

_FENCE = re.compile(r"```(?:\w+)?\s?")
_LIMIT = re.compile(r"\bLIMIT\s+\d+", re.IGNORECASE)


@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> Pattern[str]:
    words = r"\s+".join(re.escape(part) for part in keyword.split())
    return re.compile(rf"\b{words}\b", re.IGNORECASE)


def has_keyword(text: str, keyword: str) -> bool:
    """Case-insensitive whole-word check; multi-word keywords tolerate any whitespace between words."""
    return bool(_keyword_pattern(keyword).search(text))


def has_row_limit(text: str) -> bool:
    return bool(_LIMIT.search(text))


def strip_code_fences(text: str) -> str:
    return _FENCE.sub("", text).strip()


__all__ = ["has_keyword", "has_row_limit", "strip_code_fences"]
