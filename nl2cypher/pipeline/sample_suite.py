from __future__ import annotations

import json
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .llm_client import Backend, reset_usage_log, usage_totals
from .pipeline import NL2CypherPipeline, TextGenerator
from .samples import SAMPLE_SCHEMAS, sample_schema
from .schema import SchemaDescription, parse_schema_text


def _resolve_schema(name: str, entry: Dict[str, Any], base_dir: Path) -> SchemaDescription:
    if entry.get("sample_db"):
        return sample_schema(str(entry["sample_db"]))
    raw_schema = entry.get("schema")
    if isinstance(raw_schema, dict):
        return SchemaDescription.from_dict(raw_schema)
    if isinstance(raw_schema, list):
        return SchemaDescription.from_text("\n".join(str(line).strip() for line in raw_schema if str(line).strip()))
    if isinstance(raw_schema, str):
        if raw_schema in SAMPLE_SCHEMAS:
            return sample_schema(raw_schema)
        candidate_path = base_dir / raw_schema
        if candidate_path.exists():
            return parse_schema_text(candidate_path.read_text(encoding="utf-8").strip())
        return SchemaDescription.from_text(raw_schema)
    raise ValueError(f"sample suite entry '{name}' is missing a schema block")


def _load_sample_suite(path: str) -> List[Dict[str, Any]]:
    manifest_path = Path(path)
    if not manifest_path.exists():
        raise FileNotFoundError(f"sample suite file not found: {path}")
    try:
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"sample suite file must be JSON: {exc}") from exc

    if not isinstance(manifest, list):
        raise ValueError("sample suite file must contain a list of suite definitions")

    suites: List[Dict[str, Any]] = []
    for idx, entry in enumerate(manifest):
        if not isinstance(entry, dict):
            raise ValueError(f"sample suite entry {idx + 1} is not an object")

        name = str(entry.get("name") or f"suite_{idx + 1}")
        schema = _resolve_schema(name, entry, manifest_path.parent)

        queries = [str(q).strip() for q in entry.get("queries", []) if str(q).strip()]
        if not queries:
            raise ValueError(f"sample suite entry '{name}' is missing queries")

        suites.append({"name": name, "schema": schema, "queries": queries})

    if not suites:
        raise ValueError("sample suite file contained no usable entries")
    return suites


def run_sample_suite(
    suite_path: str,
    *,
    backend: Union[Backend, str, None] = None,
    model: Optional[str] = None,
    workers: Optional[int] = None,
    generate: Optional[TextGenerator] = None,
    log_dir: Optional[str] = None,
) -> List[Dict[str, Any]]:
    suites = _load_sample_suite(suite_path)
    tasks: List[Dict[str, Any]] = []
    for suite in suites:
        for query_idx, nl in enumerate(suite["queries"], 1):
            tasks.append(
                {
                    "order": len(tasks),
                    "suite": suite["name"],
                    "query_idx": query_idx,
                    "schema": suite["schema"],
                    "nl": nl,
                }
            )

    if not tasks:
        return []

    pipeline = NL2CypherPipeline(backend=backend, model=model, generate=generate, log_dir=log_dir)
    max_workers = max(1, workers or min(4, len(tasks)))

    def _run_task(task: Dict[str, Any]) -> Dict[str, Any]:
        start = time.perf_counter()
        reset_usage_log()
        outcome = pipeline.synthesize_query(task["nl"], task["schema"])
        return {
            "order": task["order"],
            "suite": task["suite"],
            "query_idx": task["query_idx"],
            "nl": task["nl"],
            "statement": outcome.statement,
            "provenance": outcome.provenance,
            "succeeded": outcome.succeeded,
            "error": outcome.error,
            "usage": usage_totals(),
            "elapsed_ms": int((time.perf_counter() - start) * 1000),
        }

    results: List[Dict[str, Any]] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(_run_task, task) for task in tasks]
        for fut in as_completed(futures):
            results.append(fut.result())

    return sorted(results, key=lambda r: r["order"])


__all__ = ["run_sample_suite", "_load_sample_suite"]
