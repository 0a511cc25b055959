from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Set, Tuple

from .schema import SchemaDescription, SchemaInput, coerce_schema

# Labelled variant of the universal fallback; the bare form is screened out as vacuous.
CATCH_ALL = "MATCH (n) RETURN n, labels(n) AS labels LIMIT 100"


@dataclass(frozen=True)
class FallbackRule:
    keywords: Tuple[str, ...]
    statement: str
    requires: Tuple[str, ...] = ()
    refinements: Tuple["FallbackRule", ...] = ()

    def matches(self, text: str) -> bool:
        return any(keyword in text for keyword in self.keywords)


_MOVIE_REFINEMENTS = (
    FallbackRule(("comedy", "romantic"), 'MATCH (m:Movie) WHERE m.genres CONTAINS "Comedy" RETURN m LIMIT 100'),
    FallbackRule(("action",), 'MATCH (m:Movie) WHERE m.genres CONTAINS "Action" RETURN m LIMIT 100'),
    FallbackRule(("drama",), 'MATCH (m:Movie) WHERE m.genres CONTAINS "Drama" RETURN m LIMIT 100'),
    FallbackRule(
        ("year", "2000", "release"),
        "MATCH (m:Movie) WHERE m.releaseYear >= 2000 AND m.releaseYear < 2010 RETURN m LIMIT 100",
    ),
)

DECISION_LIST: Tuple[FallbackRule, ...] = (
    FallbackRule(
        ("movie", "film"),
        "MATCH (m:Movie) RETURN m ORDER BY m.title LIMIT 100",
        requires=("Movie",),
        refinements=_MOVIE_REFINEMENTS,
    ),
    FallbackRule(
        ("actor", "actress"),
        "MATCH (p:Person)-[:ACTED_IN]->(:Movie) RETURN DISTINCT p LIMIT 100",
        requires=("Person", "ACTED_IN", "Movie"),
    ),
    FallbackRule(
        ("director",),
        "MATCH (p:Person)-[:DIRECTED]->(:Movie) RETURN DISTINCT p LIMIT 100",
        requires=("Person", "DIRECTED", "Movie"),
    ),
    FallbackRule(
        ("acted in", "directed", "starred"),
        "MATCH (p:Person)-[r]->(m:Movie) RETURN p, r, m LIMIT 100",
        requires=("Person", "Movie"),
    ),
    FallbackRule(
        ("friend",),
        "MATCH (p:Person)-[r:FRIENDS_WITH]->(f) RETURN p, r, f LIMIT 100",
        requires=("Person", "FRIENDS_WITH"),
    ),
    FallbackRule(
        ("message",),
        "MATCH (msg:Message) RETURN msg ORDER BY msg.timestamp DESC LIMIT 100",
        requires=("Message",),
    ),
    FallbackRule(
        ("employee", "staff"),
        "MATCH (e:Employee) RETURN e ORDER BY e.name LIMIT 100",
        requires=("Employee",),
    ),
    FallbackRule(
        ("department",),
        "MATCH (d:Department) RETURN d ORDER BY d.name LIMIT 100",
        requires=("Department",),
    ),
    FallbackRule(
        ("company", "companies"),
        "MATCH (c:Company) RETURN c ORDER BY c.name LIMIT 100",
        requires=("Company",),
    ),
)


def _vocabulary(schema: Optional[SchemaInput]) -> Optional[Set[str]]:
    """Labels and relationship types of the schema; None means "do not filter"."""
    if schema is None:
        return None
    description: SchemaDescription = coerce_schema(schema)
    names = set(description.labels()) | set(description.relationship_types())
    return names or None


def select_fallback(original_request: str, schema: Optional[SchemaInput] = None) -> str:
    """
    Keyword-driven pick of a pre-bounded statement. Rules naming labels or relationship
    types absent from a non-empty schema are skipped.
    """
    text = (original_request or "").lower()
    vocabulary = _vocabulary(schema)
    for rule in DECISION_LIST:
        if vocabulary is not None and not set(rule.requires) <= vocabulary:
            continue
        if not rule.matches(text):
            continue
        for refinement in rule.refinements:
            if refinement.matches(text):
                return refinement.statement
        return rule.statement
    return CATCH_ALL


__all__ = ["CATCH_ALL", "DECISION_LIST", "FallbackRule", "select_fallback"]
