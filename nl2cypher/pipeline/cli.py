from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import DEFAULT_LOG_DIR
from .llm_client import Backend, backend_status, reset_usage_log, usage_totals
from .pipeline import FALLBACK, NL2CypherPipeline
from .sample_suite import run_sample_suite
from .samples import SAMPLE_SCHEMAS, sample_schema
from .schema import InvalidSchema, SchemaDescription, parse_schema_text
from .ui import Spinner, style


def _fmt_block(text: str, indent: int = 4) -> str:
    pad = " " * indent
    return "\n".join(pad + line for line in text.splitlines())


def read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8") as fh:
        return fh.read().strip()


def _print_usage() -> None:
    usage = usage_totals()
    print(
        f"Token usage → prompt: {usage['prompt_tokens']}, "
        f"completion: {usage['completion_tokens']}, total: {usage['total_tokens']}"
    )


def _is_file(value: str) -> bool:
    # Inline schema text can exceed the OS path length limit.
    try:
        return Path(value).is_file()
    except OSError:
        return False


def _load_schema(args: argparse.Namespace) -> Optional[SchemaDescription]:
    if args.sample_db:
        return sample_schema(args.sample_db)
    if args.schema is not None:
        if not args.schema.lstrip().startswith("{") and _is_file(args.schema):
            return parse_schema_text(read_text(args.schema))
        return parse_schema_text(args.schema)
    if args.schema_file:
        return parse_schema_text(read_text(args.schema_file))
    return None


def _run_suite(args: argparse.Namespace) -> int:
    try:
        results = run_sample_suite(
            args.sample_suite,
            backend=args.provider,
            model=args.model,
            workers=args.suite_workers,
            log_dir=args.log_dir,
        )
    except (OSError, ValueError, KeyError) as exc:
        print(f"error: failed to run sample suite - {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(results, indent=2))
        return 0 if all(r["succeeded"] for r in results) else 2

    total = len(results)
    generated = sum(1 for r in results if r["provenance"] != FALLBACK)
    color_enabled = sys.stdout.isatty()

    print("\nSAMPLE SUITE SUMMARY")
    print(f"Results: {generated}/{total} generated, {total - generated} fallback")
    for res in results:
        label = f"{res['suite']} #{res['query_idx']}"
        if not res["succeeded"]:
            status, color = "[fail]", "red"
        elif res["provenance"] == FALLBACK:
            status, color = "[fallback]", "yellow"
        else:
            status, color = "[ok]", "green"
        print(f"{style(status, color, color_enabled)} {label}: {res['nl']}")
        print(_fmt_block(res["statement"]))
        if res.get("error"):
            print(f"    Error: {res['error']}")
        if args.verbose:
            usage = res.get("usage", {})
            print(
                f"    Usage → prompt: {usage.get('prompt_tokens', 0)}, "
                f"completion: {usage.get('completion_tokens', 0)}, "
                f"total: {usage.get('total_tokens', 0)}"
            )
    return 0 if all(r["succeeded"] for r in results) else 2


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Generate Cypher queries from natural language.")
    parser.add_argument("--nl", help="Natural language request")
    parser.add_argument("--schema-file", help="Path to a schema file (JSON introspection output or compact text)")
    parser.add_argument("--schema", help="Schema as a string or path (overrides --schema-file)")
    parser.add_argument("--sample-db", choices=sorted(SAMPLE_SCHEMAS), help="Use a built-in sample database schema")
    parser.add_argument("--provider", help="LLM provider: gemini, openai, anthropic or groq (default: LLM_PROVIDER)")
    parser.add_argument("--model", help="Model name override for the selected provider")
    parser.add_argument("--results-file", help="JSON result set; when given, also explain the results")
    parser.add_argument("--status", action="store_true", help="Print provider configuration and exit")
    parser.add_argument("--json", action="store_true", help="Print outcomes as JSON")
    parser.add_argument("--verbose", action="store_true", help="Print provenance, backend and token usage")
    parser.add_argument("--log-dir", default=DEFAULT_LOG_DIR, help="Directory for per-run artifacts (default: NL2CYPHER_LOG_DIR)")
    parser.add_argument("--sample-suite", metavar="FILE", help="Run every query in a sample suite manifest (JSON)")
    parser.add_argument("--suite-workers", type=int, help="Worker threads for the sample suite (default: min(4, total queries))")
    parser.add_argument("--spinner", dest="spinner", action="store_true", help="Show a spinner while the backend is called")
    parser.add_argument("--no-spinner", dest="spinner", action="store_false")
    parser.set_defaults(spinner=None)

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        backend = Backend.parse(args.provider)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    if args.status:
        print(json.dumps(backend_status(backend), indent=2))
        return 0

    if args.sample_suite:
        return _run_suite(args)

    if not args.nl:
        print("error: --nl is required when not running the sample suite", file=sys.stderr)
        return 1
    try:
        schema = _load_schema(args)
    except (OSError, InvalidSchema) as exc:
        print(f"error: could not load schema - {exc}", file=sys.stderr)
        return 1
    if schema is None:
        print("error: a schema is required via --schema, --schema-file or --sample-db", file=sys.stderr)
        return 1

    result_set: Any = None
    if args.results_file:
        try:
            result_set = json.loads(read_text(args.results_file))
        except (OSError, ValueError) as exc:
            print(f"error: could not read results file - {exc}", file=sys.stderr)
            return 1

    pipeline = NL2CypherPipeline(backend=backend, model=args.model, log_dir=args.log_dir)
    spinner = Spinner(enabled=args.spinner if args.spinner is not None else sys.stdout.isatty())
    reset_usage_log()
    spinner.start(f"Generating Cypher with {backend.value}...")
    outcome = pipeline.synthesize_query(args.nl, schema)
    explanation = None
    if args.results_file:
        spinner.update("Explaining results...")
        explanation = pipeline.summarize_results(outcome.statement, result_set, args.nl)
    if outcome.provenance == FALLBACK:
        spinner.stop("! Fallback query used.", color="yellow")
    else:
        spinner.stop("✓ Query generated.", color="green")

    if args.json:
        payload: Dict[str, Any] = {"query": outcome.to_dict()}
        if explanation is not None:
            payload["explanation"] = explanation.to_dict()
        print(json.dumps(payload, indent=2))
        return 0

    if args.verbose:
        print(f"Provenance: {outcome.provenance} (backend: {outcome.backend}, model: {outcome.model})")
        if outcome.error:
            print(f"Error: {outcome.error}")
        _print_usage()
    print(outcome.statement)
    if explanation is not None:
        print()
        print(explanation.text)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
