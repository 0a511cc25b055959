from __future__ import annotations

import argparse
import json
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Optional


def _read_json(path: Path) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _rejection_reasons(trace_path: Path) -> List[str]:
    reasons: List[str] = []
    try:
        lines = trace_path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return reasons
    for line in lines:
        try:
            entry = json.loads(line)
        except ValueError:
            continue
        if entry.get("stage") == "validate" and not entry.get("accepted") and entry.get("reason"):
            reasons.append(str(entry["reason"]))
    return reasons


def summarize(base_dir: str) -> Dict[str, object]:
    base = Path(base_dir)
    summaries = sorted(base.glob("*/summary.json"))
    status_counts: Counter = Counter()
    kind_counts: Counter = Counter()
    provenance_counts: Counter = Counter()
    top_errors: Counter = Counter()
    top_rejections: Counter = Counter()

    for summary_file in summaries:
        data = _read_json(summary_file)
        if data is None:
            continue
        status_counts[data.get("status", "unknown")] += 1
        provenance_counts[data.get("provenance", "unknown")] += 1
        metadata = _read_json(summary_file.parent / "metadata.json") or {}
        kind_counts[metadata.get("kind", "unknown")] += 1
        if data.get("error"):
            top_errors[str(data["error"])[:120]] += 1
        for reason in _rejection_reasons(summary_file.parent / "trace.jsonl"):
            top_rejections[reason] += 1

    return {
        "total_runs": len(summaries),
        "status_counts": dict(status_counts),
        "kind_counts": dict(kind_counts),
        "provenance_counts": dict(provenance_counts),
        "top_errors": top_errors.most_common(10),
        "top_rejections": top_rejections.most_common(10),
    }


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Summarize nl2cypher run logs.")
    parser.add_argument("--logs", default="nl2cypher-logs", help="Root directory containing run logs")
    args = parser.parse_args(argv)

    report = summarize(args.logs)
    print(f"Total runs: {report['total_runs']}")
    for title, key in (("Status", "status_counts"), ("Kind", "kind_counts"), ("Provenance", "provenance_counts")):
        counts = report[key]
        if counts:
            print(f"{title}:")
            for name, count in sorted(counts.items()):
                print(f"  {name}: {count}")
    if report["top_rejections"]:
        print("\nTop rejection reasons:")
        for msg, count in report["top_rejections"]:
            print(f"  ({count}) {msg}")
    if report["top_errors"]:
        print("\nTop generation errors:")
        for msg, count in report["top_errors"]:
            print(f"  ({count}) {msg}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
