from .pipeline import ExplanationOutcome, NL2CypherPipeline, QueryOutcome, summarize_results, synthesize_query
from .schema import InvalidSchema, NodeType, RelationshipType, SchemaDescription, SchemaProperty, format_schema
from .prompts import GenerationRequest, build_explanation_prompt, build_query_prompt
from .llm_client import Backend, GenerationFailed, backend_status, generate_text
from .extractor import UNIVERSAL_FALLBACK, CandidateStatement, extract_statement
from .normalizer import normalize_statement
from .validators import ValidationVerdict, validate_statement
from .fallback import select_fallback
from .explainer import extract_sample, fallback_explanation
from .samples import SAMPLE_SCHEMAS, sample_schema
from .run_logger import RunLogger

__all__ = [
    "NL2CypherPipeline",
    "QueryOutcome",
    "ExplanationOutcome",
    "synthesize_query",
    "summarize_results",
    "InvalidSchema",
    "NodeType",
    "RelationshipType",
    "SchemaDescription",
    "SchemaProperty",
    "format_schema",
    "GenerationRequest",
    "build_query_prompt",
    "build_explanation_prompt",
    "Backend",
    "GenerationFailed",
    "backend_status",
    "generate_text",
    "UNIVERSAL_FALLBACK",
    "CandidateStatement",
    "extract_statement",
    "normalize_statement",
    "ValidationVerdict",
    "validate_statement",
    "select_fallback",
    "extract_sample",
    "fallback_explanation",
    "SAMPLE_SCHEMAS",
    "sample_schema",
    "RunLogger",
]
