from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, Union

from .config import DEFAULT_LOG_DIR, DEFAULT_LOG_RETAIN, DEFAULT_TIMEOUT_SECONDS
from .explainer import build_request, count_records, fallback_explanation
from .extractor import extract_candidate
from .fallback import select_fallback
from .llm_client import BACKEND_SPECS, Backend, GenerationFailed, generate_text
from .normalizer import normalize_statement
from .prompts import GenerationRequest, build_query_prompt
from .run_logger import RunLogger
from .schema import SchemaDescription, SchemaInput, coerce_schema, format_schema
from .validators import validate_statement

logger = logging.getLogger(__name__)

GENERATED = "generated"
FALLBACK = "fallback"

TextGenerator = Callable[..., str]


@dataclass(frozen=True)
class QueryOutcome:
    statement: str
    succeeded: bool
    provenance: str
    backend: str
    model: Optional[str] = None
    raw_response: str = ""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ExplanationOutcome:
    text: str
    succeeded: bool
    provenance: str
    backend: str
    model: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class NL2CypherPipeline:
    """
    Request/response core: natural language -> bounded Cypher statement, and
    statement + results -> short explanation. Holds no per-request state.

    ``generate`` defaults to the network adapter; any callable with the
    ``generate_text(backend, system_prompt, user_prompt, **kwargs)`` shape can be injected.
    """

    def __init__(
        self,
        *,
        backend: Union[Backend, str, None] = None,
        model: Optional[str] = None,
        generate: Optional[TextGenerator] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        log_dir: Optional[str] = DEFAULT_LOG_DIR,
        log_retain: int = DEFAULT_LOG_RETAIN,
    ) -> None:
        self.backend = Backend.parse(backend)
        self.model = model or BACKEND_SPECS[self.backend].model
        self.generate = generate or generate_text
        self.timeout = timeout
        self.log_dir = log_dir
        self.log_retain = log_retain

    def _run_logger(self, kind: str, request: str) -> Optional[RunLogger]:
        if not self.log_dir:
            return None
        run_logger = RunLogger(base_dir=self.log_dir, retain=self.log_retain)
        run_logger.start(
            kind,
            request,
            {"backend": self.backend.value, "model": self.model, "timeout": self.timeout},
        )
        return run_logger

    def _call(self, request: GenerationRequest) -> str:
        text = self.generate(
            self.backend,
            request.system_prompt,
            request.user_prompt,
            model=self.model,
            timeout=self.timeout,
        )
        if not isinstance(text, str) or not text.strip():
            raise GenerationFailed(self.backend, "response text is empty")
        return text

    def synthesize_query(self, user_request: str, schema: SchemaInput) -> QueryOutcome:
        """
        Raises ``InvalidSchema`` for malformed schema input; every other failure is
        absorbed into a fallback outcome.
        """
        description: SchemaDescription = coerce_schema(schema)
        request = build_query_prompt(user_request, format_schema(description))
        run = self._run_logger("query", user_request)
        if run:
            run.log_stage("prompt", {"system_prompt": request.system_prompt, "user_prompt": request.user_prompt})

        try:
            raw = self._call(request)
        except GenerationFailed as exc:
            logger.warning("query generation failed, using fallback: %s", exc)
            outcome = QueryOutcome(
                statement=select_fallback(user_request, description),
                succeeded=False,
                provenance=FALLBACK,
                backend=FALLBACK,
                model=FALLBACK,
                error=str(exc),
            )
            if run:
                run.log_stage("generate", {"error": str(exc)})
                run.finalize("generation_failed", outcome.to_dict())
            return outcome

        candidate = extract_candidate(raw)
        statement = normalize_statement(candidate.text)
        verdict = validate_statement(statement)
        logger.debug("raw=%r extracted=%r normalized=%r", raw, candidate.text, statement)
        if run:
            run.log_stage("generate", {"raw_response": raw})
            run.log_stage("extract", {"kind": candidate.kind.value, "statement": candidate.text, "completed": candidate.completed})
            run.log_stage("normalize", {"statement": statement})
            run.log_stage("validate", {"accepted": verdict.accepted, "reason": verdict.reason})

        provenance = GENERATED
        if not verdict.accepted:
            logger.warning("generated statement rejected (%s), using fallback", verdict.reason)
            statement = select_fallback(user_request, description)
            provenance = FALLBACK
            if run:
                run.log_stage("fallback", {"statement": statement})

        outcome = QueryOutcome(
            statement=statement,
            succeeded=True,
            provenance=provenance,
            backend=self.backend.value,
            model=self.model,
            raw_response=raw,
        )
        logger.info("final statement (%s): %s", provenance, statement)
        if run:
            run.finalize("rejected" if provenance == FALLBACK else "accepted", outcome.to_dict())
        return outcome

    def summarize_results(self, statement: str, result_set: Any, user_request: str) -> ExplanationOutcome:
        """Never raises for a generation failure; falls back to a templated record count."""
        request = build_request(statement, result_set, user_request)
        run = self._run_logger("explain", user_request)
        if run:
            run.log_stage(
                "prompt",
                {
                    "system_prompt": request.system_prompt,
                    "user_prompt": request.user_prompt,
                    "total_records": count_records(result_set),
                },
            )
        try:
            text = self._call(request).strip()
        except GenerationFailed as exc:
            logger.warning("explanation generation failed, using template: %s", exc)
            outcome = ExplanationOutcome(
                text=fallback_explanation(statement, result_set),
                succeeded=False,
                provenance=FALLBACK,
                backend=FALLBACK,
                model=FALLBACK,
            )
            if run:
                run.log_stage("generate", {"error": str(exc)})
                run.finalize("generation_failed", outcome.to_dict())
            return outcome

        outcome = ExplanationOutcome(
            text=text,
            succeeded=True,
            provenance=GENERATED,
            backend=self.backend.value,
            model=self.model,
        )
        if run:
            run.finalize("explained", outcome.to_dict())
        return outcome


def synthesize_query(
    user_request: str, schema: SchemaInput, *, backend: Union[Backend, str, None] = None, **kwargs: Any
) -> QueryOutcome:
    return NL2CypherPipeline(backend=backend, **kwargs).synthesize_query(user_request, schema)


def summarize_results(
    statement: str, result_set: Any, user_request: str, *, backend: Union[Backend, str, None] = None, **kwargs: Any
) -> ExplanationOutcome:
    return NL2CypherPipeline(backend=backend, **kwargs).summarize_results(statement, result_set, user_request)


__all__ = [
    "ExplanationOutcome",
    "FALLBACK",
    "GENERATED",
    "NL2CypherPipeline",
    "QueryOutcome",
    "summarize_results",
    "synthesize_query",
]
