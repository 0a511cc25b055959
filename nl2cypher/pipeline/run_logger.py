from __future__ import annotations

import json
import logging
import os
import re
import shutil
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from .config import DEFAULT_LOG_RETAIN

logger = logging.getLogger(__name__)

PROMPT_PREVIEW_LIMIT = 4000
RUN_ID_PATTERN = re.compile(r"^\d{8}-\d{6}-[a-z]+-[A-Za-z0-9-]+-[0-9a-f]{6}$")


def _utc_timestamp() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _is_run_dir(path: Path) -> bool:
    """Only directories written by RunLogger are eligible for pruning."""
    return path.is_dir() and bool(RUN_ID_PATTERN.match(path.name)) and (path / "metadata.json").is_file()


class RunLogger:
    """
    Per-run artifacts for one synthesis or summarization call.
    - metadata.json: request text, kind, parameters.
    - trace.jsonl: one line per pipeline stage.
    - summary.json: final outcome.
    Caps retained runs to avoid unbounded growth.
    """

    def __init__(self, base_dir: Optional[str] = None, retain: int = DEFAULT_LOG_RETAIN) -> None:
        env_dir = os.getenv("NL2CYPHER_LOG_DIR")
        self.base_dir = Path(base_dir or env_dir or (Path.cwd() / "nl2cypher-logs"))
        self.retain = max(1, retain)
        self.run_dir: Optional[Path] = None

    def start(self, kind: str, request: str, params: Dict[str, Any]) -> Optional[Path]:
        stamp = time.strftime("%Y%m%d-%H%M%S")
        slug = re.sub(r"[^a-zA-Z0-9]+", "-", request.strip())[:36].strip("-") or "run"
        run_id = f"{stamp}-{kind}-{slug}-{uuid.uuid4().hex[:6]}"
        try:
            run_dir = self.base_dir / run_id
            run_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.debug("run logging disabled: %s", exc)
            return None
        self.run_dir = run_dir
        metadata = {"kind": kind, "request": request, "params": params, "started_at": _utc_timestamp()}
        self._write_json(self.run_dir / "metadata.json", metadata)
        return self.run_dir

    def log_stage(self, stage: str, payload: Dict[str, Any]) -> None:
        if not self.run_dir:
            return
        entry = {"stage": stage, **payload, "logged_at": _utc_timestamp()}
        for key in ("system_prompt", "user_prompt", "raw_response"):
            if isinstance(entry.get(key), str):
                entry[key] = entry[key][:PROMPT_PREVIEW_LIMIT]
        try:
            with (self.run_dir / "trace.jsonl").open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(entry, default=str))
                fh.write("\n")
        except OSError as exc:
            logger.debug("could not append trace entry: %s", exc)

    def finalize(self, status: str, extra: Optional[Dict[str, Any]] = None) -> None:
        if not self.run_dir:
            return
        summary: Dict[str, Any] = {"status": status, "finished_at": _utc_timestamp()}
        if extra:
            summary.update(extra)
        self._write_json(self.run_dir / "summary.json", summary)
        self._prune_old_runs()

    def _write_json(self, path: Path, payload: Dict[str, Any]) -> None:
        # Logging must never block pipeline execution.
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
        except OSError as exc:
            logger.debug("could not write %s: %s", path, exc)

    def _prune_old_runs(self) -> None:
        try:
            candidates = [p for p in self.base_dir.iterdir() if _is_run_dir(p)]
            candidates.sort(key=lambda p: p.stat().st_mtime, reverse=True)
            for stale in candidates[self.retain :]:
                if self.run_dir and stale == self.run_dir:
                    continue
                shutil.rmtree(stale, ignore_errors=True)
        except OSError as exc:
            logger.debug("could not prune old runs: %s", exc)


__all__ = ["RunLogger", "PROMPT_PREVIEW_LIMIT", "RUN_ID_PATTERN"]
