from __future__ import annotations

import re
from dataclasses import dataclass
from typing import FrozenSet, Optional

from .utils import has_keyword

OVERLY_GENERIC: FrozenSet[str] = frozenset(
    {
        "MATCH (n) RETURN n LIMIT 100",
        "MATCH (m:Movie) RETURN m LIMIT 100",
        "MATCH (p:Person) RETURN p LIMIT 100",
    }
)

_VALID_START = re.compile(r"^\s*(MATCH|CREATE|MERGE|CALL|WITH|RETURN|UNWIND)\b", re.IGNORECASE)


@dataclass(frozen=True)
class ValidationVerdict:
    accepted: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.accepted


def _reject(reason: str) -> ValidationVerdict:
    return ValidationVerdict(accepted=False, reason=reason)


def validate_statement(statement: Optional[str]) -> ValidationVerdict:
    """
    Safety gate over a candidate statement. Screens for vacuous, destructive-without-guard
    and non-conforming shapes; an accepted statement can still be semantically wrong.
    """
    if not isinstance(statement, str) or not statement.strip():
        return _reject("empty statement")
    text = statement.strip()

    if text in OVERLY_GENERIC:
        return _reject("overly generic statement")
    if not _VALID_START.match(text):
        return _reject("statement does not start with a recognized clause")

    has_return = has_keyword(text, "RETURN")
    if not (has_return or (has_keyword(text, "CALL") and has_keyword(text, "YIELD"))):
        return _reject("no RETURN clause (or CALL ... YIELD)")

    if has_keyword(text, "DROP"):
        return _reject("schema-dropping keyword present")
    if has_keyword(text, "DETACH DELETE"):
        return _reject("DETACH DELETE present")
    # Any DELETE passes once a RETURN accompanies it.
    if has_keyword(text, "DELETE") and not has_return:
        return _reject("DELETE without RETURN")

    return ValidationVerdict(accepted=True)


__all__ = ["OVERLY_GENERIC", "ValidationVerdict", "validate_statement"]
