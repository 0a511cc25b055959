from __future__ import annotations

import re
from typing import Optional

from .extractor import DEFAULT_ROW_LIMIT
from .utils import has_keyword, has_row_limit

RESULT_SUFFIX = f"\nRETURN * LIMIT {DEFAULT_ROW_LIMIT}"
YIELD_SUFFIX = f"\nYIELD * LIMIT {DEFAULT_ROW_LIMIT}"

_TERMINATORS = re.compile(r"[;\s]+$")
_WRITE_KEYWORDS = ("CREATE", "MERGE", "DELETE", "SET", "REMOVE")
_CALL_THEN_YIELD = re.compile(r"\bCALL\s.*\bYIELD\b", re.IGNORECASE)


def _is_read_operation(text: str) -> bool:
    return (
        has_keyword(text, "MATCH")
        or has_keyword(text, "RETURN")
        or has_keyword(text, "WITH")
        or bool(_CALL_THEN_YIELD.search(text))
    )


def normalize_statement(statement: Optional[str]) -> str:
    """
    Deterministic textual repair. Guarantees a RETURN (or, for procedure calls, a YIELD)
    and a LIMIT on read-shaped statements. Idempotent; never raises.
    """
    if not isinstance(statement, str) or not statement.strip():
        return RESULT_SUFFIX.strip()

    text = _TERMINATORS.sub("", statement.strip())

    if not has_keyword(text, "RETURN"):
        if has_keyword(text, "MATCH") or any(has_keyword(text, kw) for kw in _WRITE_KEYWORDS):
            text += RESULT_SUFFIX
        elif has_keyword(text, "CALL"):
            if not has_keyword(text, "YIELD"):
                text += YIELD_SUFFIX
        else:
            text += RESULT_SUFFIX

    if _is_read_operation(text) and not has_row_limit(text):
        if has_keyword(text, "RETURN") or has_keyword(text, "YIELD"):
            text += f" LIMIT {DEFAULT_ROW_LIMIT}"

    return text


__all__ = ["RESULT_SUFFIX", "YIELD_SUFFIX", "normalize_statement"]
