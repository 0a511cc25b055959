from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from .prompts import GenerationRequest, build_explanation_prompt

SAMPLE_SIZE = 3


def _records(result_set: Any) -> List[Any]:
    """Accepts ``{"records": [...]}``, an object with ``.records``, a bare list, or None."""
    if result_set is None:
        return []
    if isinstance(result_set, Mapping):
        records = result_set.get("records")
    elif isinstance(result_set, Sequence) and not isinstance(result_set, (str, bytes)):
        records = result_set
    else:
        records = getattr(result_set, "records", None)
    if isinstance(records, Sequence) and not isinstance(records, (str, bytes)):
        return list(records)
    return []


def count_records(result_set: Any) -> int:
    return len(_records(result_set))


def _simplify(value: Any) -> Any:
    if not isinstance(value, Mapping) or not isinstance(value.get("properties"), Mapping):
        return value
    props = value["properties"]
    reduced: Dict[str, Any] = {}
    if props.get("name"):
        reduced["name"] = props["name"]
    if props.get("title"):
        reduced["title"] = props["title"]
    labels = value.get("labels")
    reduced["_type"] = labels[0] if isinstance(labels, Sequence) and not isinstance(labels, str) and labels else "Unknown"
    return reduced


def extract_sample(result_set: Any) -> Dict[str, Any]:
    """
    Bounded view of a result set for the explanation prompt: the total record count and
    at most the first three records, with node/relationship-shaped fields reduced to
    ``{name?, title?, _type}``.
    """
    records = _records(result_set)
    sample = []
    for record in records[:SAMPLE_SIZE]:
        if isinstance(record, Mapping):
            sample.append({key: _simplify(value) for key, value in record.items()})
        else:
            sample.append(record)
    return {"totalRecords": len(records), "sample": sample}


def build_request(statement: str, result_set: Any, original_request: str) -> GenerationRequest:
    return build_explanation_prompt(statement, extract_sample(result_set), original_request)


def fallback_explanation(statement: Optional[str], result_set: Any) -> str:
    return f'The query "{statement or ""}" returned {count_records(result_set)} records.'


__all__ = ["SAMPLE_SIZE", "build_request", "count_records", "extract_sample", "fallback_explanation"]
