from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Mapping, Tuple


@dataclass
class GenerationRequest:
    system_prompt: str
    user_prompt: str


EXAMPLE_STATEMENTS: List[Tuple[str, str]] = [
    ("Romantic comedies", 'MATCH (m:Movie) WHERE m.genres CONTAINS "Comedy" AND m.genres CONTAINS "Romance" RETURN m'),
    ("Movies from 2000s", "MATCH (m:Movie) WHERE m.releaseYear >= 2000 AND m.releaseYear < 2010 RETURN m"),
    ("Action movies", 'MATCH (m:Movie) WHERE m.genres CONTAINS "Action" RETURN m'),
    ("Movies with specific actor", 'MATCH (p:Person {name: "Tom Hanks"})-[:ACTED_IN]->(m:Movie) RETURN m'),
    ("Directors and their movies", "MATCH (p:Person)-[:DIRECTED]->(m:Movie) RETURN p, m"),
]

QUERY_RULES: List[str] = [
    "Use properties from the schema above. Common movie properties: title, releaseYear, genres, rating",
    'For genre filters, use: WHERE m.genres CONTAINS "GenreName"',
    "For year ranges, use: WHERE m.releaseYear >= 2000 AND m.releaseYear < 2010",
    "EVERY query MUST include a RETURN clause",
    "Return ONLY the Cypher query. No explanations, no comments, no text",
]

QUERY_SYSTEM_TEMPLATE = """You are an expert Cypher query generator for Neo4j graph databases.

Schema Details:
{schema_text}
MOVIE QUERY EXAMPLES:
{examples}

ABSOLUTE RULES (MUST FOLLOW):
{rules}

CRITICAL: If the user asks for movies by genre or year, use the appropriate properties from the schema."""

EXPLANATION_SYSTEM = """You are an expert at explaining graph database queries and results in simple, clear language.

Important: The results may show only a sample of the data when there are many results.

Rules:
1. Explain what the query does in plain English in one or two sentences.
2. Describe the results clearly, highlighting only the key points.
3. If only a sample is shown, mention that these are sample results from a larger dataset.
4. Provide 2-3 key insights from the data, each in a single short sentence.
5. Use simple, concise language. Avoid technical jargon and unnecessary details.
6. Focus strictly on the query and the results.
7. If results are empty, explain in one sentence why that might be.
8. Keep the total explanation short and readable (no more than 5 sentences)."""


def build_query_prompt(user_request: str, schema_text: str) -> GenerationRequest:
    examples = "\n".join(f"- {title}: {statement}" for title, statement in EXAMPLE_STATEMENTS)
    rules = "\n".join(f"{idx}. {rule}" for idx, rule in enumerate(QUERY_RULES, 1))
    system = QUERY_SYSTEM_TEMPLATE.format(schema_text=schema_text, examples=examples, rules=rules)
    user = f'Convert this natural language request to a valid Cypher query: "{user_request}"'
    return GenerationRequest(system_prompt=system, user_prompt=user)


def build_explanation_prompt(statement: str, result_sample: Mapping[str, Any], original_request: str) -> GenerationRequest:
    """
    ``result_sample`` is the bounded view produced by ``explainer.extract_sample``:
    ``{"totalRecords": int, "sample": [...]}``.
    """
    total = result_sample.get("totalRecords", 0)
    sample = json.dumps(result_sample.get("sample", []), default=str)
    user = (
        "Explain this Cypher query and its results in simple, short and concise terms:\n"
        f"Query: {statement}\n"
        f"Sample Results ({total} total): {sample}\n"
        f'Original Request: "{original_request}"'
    )
    return GenerationRequest(system_prompt=EXPLANATION_SYSTEM, user_prompt=user)


__all__ = [
    "EXAMPLE_STATEMENTS",
    "EXPLANATION_SYSTEM",
    "GenerationRequest",
    "QUERY_RULES",
    "build_explanation_prompt",
    "build_query_prompt",
]
