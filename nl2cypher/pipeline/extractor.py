from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Pattern, Tuple

from .utils import has_keyword, strip_code_fences

logger = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT = 100
UNIVERSAL_FALLBACK = f"MATCH (n) RETURN n LIMIT {DEFAULT_ROW_LIMIT}"

_BLOCK_FLAGS = re.IGNORECASE | re.DOTALL
_LINE_FLAGS = re.IGNORECASE | re.MULTILINE
_SCAN_KEYWORDS = ("MATCH", "CREATE", "MERGE", "CALL")
_COMMENT_PREFIXES = ("//", "--")
_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_TRAILING_TERMINATORS = re.compile(r"[;\s]+$")


class MatchKind(str, Enum):
    READ_RETURN = "read_return"
    READ_YIELD = "read_yield"
    CREATE_RETURN = "create_return"
    MERGE_RETURN = "merge_return"
    CALL_YIELD = "call_yield"
    READ_LINE = "read_line"
    CREATE_LINE = "create_line"
    MERGE_LINE = "merge_line"
    CALL_LINE = "call_line"
    LINE_SCAN = "line_scan"
    FALLBACK = "fallback"


# Priority order matters: full statements first, bare single-line starts last.
_PATTERNS: List[Tuple[MatchKind, Pattern[str]]] = [
    (MatchKind.READ_RETURN, re.compile(r"(?<![^\n])[ \t]*(MATCH\s+.*?RETURN.*?(?:LIMIT\s+\d+)?);?$", _BLOCK_FLAGS)),
    (MatchKind.READ_YIELD, re.compile(r"(?<![^\n])[ \t]*(MATCH\s+.*?YIELD.*?(?:LIMIT\s+\d+)?);?$", _BLOCK_FLAGS)),
    (MatchKind.CREATE_RETURN, re.compile(r"(?<![^\n])[ \t]*(CREATE\s+.*?RETURN.*?(?:LIMIT\s+\d+)?);?$", _BLOCK_FLAGS)),
    (MatchKind.MERGE_RETURN, re.compile(r"(?<![^\n])[ \t]*(MERGE\s+.*?RETURN.*?(?:LIMIT\s+\d+)?);?$", _BLOCK_FLAGS)),
    (MatchKind.CALL_YIELD, re.compile(r"(?<![^\n])[ \t]*(CALL\s+.*?YIELD.*?(?:LIMIT\s+\d+)?);?$", _BLOCK_FLAGS)),
    (MatchKind.READ_LINE, re.compile(r"(MATCH\s+.*)$", _LINE_FLAGS)),
    (MatchKind.CREATE_LINE, re.compile(r"(CREATE\s+.*)$", _LINE_FLAGS)),
    (MatchKind.MERGE_LINE, re.compile(r"(MERGE\s+.*)$", _LINE_FLAGS)),
    (MatchKind.CALL_LINE, re.compile(r"(CALL\s+.*)$", _LINE_FLAGS)),
]


@dataclass
class CandidateStatement:
    text: str
    kind: MatchKind
    completed: bool = False


def _match_patterns(text: str) -> Optional[CandidateStatement]:
    for kind, pattern in _PATTERNS:
        match = pattern.search(text)
        if match and match.group(1).strip():
            # Prose after a blank line is commentary, not part of the statement.
            statement = _PARAGRAPH_BREAK.split(match.group(1).strip(), maxsplit=1)[0]
            statement = _TRAILING_TERMINATORS.sub("", statement.strip())
            return CandidateStatement(text=statement, kind=kind)
    return None


def _scan_lines(text: str) -> Optional[CandidateStatement]:
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith(_COMMENT_PREFIXES):
            continue
        if any(keyword in stripped for keyword in _SCAN_KEYWORDS):
            return CandidateStatement(text=stripped, kind=MatchKind.LINE_SCAN)
    return None


def _complete(candidate: CandidateStatement) -> CandidateStatement:
    text = candidate.text
    if has_keyword(text, "RETURN") or has_keyword(text, "YIELD"):
        return candidate
    logger.debug("extracted statement lacks RETURN/YIELD: %s", text)
    if has_keyword(text, "MATCH"):
        suffix = f" RETURN * LIMIT {DEFAULT_ROW_LIMIT}"
    elif has_keyword(text, "CALL"):
        suffix = f" YIELD * LIMIT {DEFAULT_ROW_LIMIT}"
    elif has_keyword(text, "CREATE") or has_keyword(text, "MERGE"):
        suffix = f" RETURN * LIMIT {DEFAULT_ROW_LIMIT}"
    else:
        return CandidateStatement(text=UNIVERSAL_FALLBACK, kind=MatchKind.FALLBACK)
    return CandidateStatement(text=text + suffix, kind=candidate.kind, completed=True)


def extract_candidate(raw: Optional[str]) -> CandidateStatement:
    """Recover one statement from free-form generator output. Never raises."""
    if not isinstance(raw, str) or not raw.strip():
        return CandidateStatement(text=UNIVERSAL_FALLBACK, kind=MatchKind.FALLBACK)
    cleaned = strip_code_fences(raw)
    candidate = _match_patterns(cleaned) or _scan_lines(cleaned)
    if candidate is None:
        return CandidateStatement(text=UNIVERSAL_FALLBACK, kind=MatchKind.FALLBACK)
    return _complete(candidate)


def extract_statement(raw: Optional[str]) -> str:
    return extract_candidate(raw).text


__all__ = [
    "CandidateStatement",
    "DEFAULT_ROW_LIMIT",
    "MatchKind",
    "UNIVERSAL_FALLBACK",
    "extract_candidate",
    "extract_statement",
]
