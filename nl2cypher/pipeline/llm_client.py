from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

import requests
from openai import APIError, OpenAI

from .config import (
    DEFAULT_ANTHROPIC_BASE_URL,
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_ANTHROPIC_VERSION,
    DEFAULT_GEMINI_BASE_URL,
    DEFAULT_GEMINI_MODEL,
    DEFAULT_GEMINI_TOP_K,
    DEFAULT_GROQ_BASE_URL,
    DEFAULT_GROQ_MODEL,
    DEFAULT_LLM_PROVIDER,
    DEFAULT_MAX_TOKENS,
    DEFAULT_OPENAI_BASE_URL,
    DEFAULT_OPENAI_MODEL,
    DEFAULT_TEMPERATURE,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_TOP_P,
    api_key_for,
)

logger = logging.getLogger(__name__)

_client_cache: Dict[Tuple[str, str], OpenAI] = {}
_client_lock = threading.Lock()
_USAGE_LOG = threading.local()


class Backend(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GROQ = "groq"

    @classmethod
    def parse(cls, value: Union[str, "Backend", None]) -> "Backend":
        if isinstance(value, Backend):
            return value
        name = (value or DEFAULT_LLM_PROVIDER).strip().lower()
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unsupported LLM provider: {value}") from None


class GenerationFailed(RuntimeError):
    """Backend unreachable, non-2xx, or a response without the expected text."""

    def __init__(self, backend: Backend, reason: str) -> None:
        super().__init__(f"{backend.value} generation failed: {reason}")
        self.backend = backend
        self.reason = reason


@dataclass(frozen=True)
class BackendSpec:
    model: str
    base_url: str


BACKEND_SPECS: Dict[Backend, BackendSpec] = {
    Backend.GEMINI: BackendSpec(DEFAULT_GEMINI_MODEL, DEFAULT_GEMINI_BASE_URL),
    Backend.OPENAI: BackendSpec(DEFAULT_OPENAI_MODEL, DEFAULT_OPENAI_BASE_URL),
    Backend.ANTHROPIC: BackendSpec(DEFAULT_ANTHROPIC_MODEL, DEFAULT_ANTHROPIC_BASE_URL),
    Backend.GROQ: BackendSpec(DEFAULT_GROQ_MODEL, DEFAULT_GROQ_BASE_URL),
}


def reset_usage_log() -> None:
    log = getattr(_USAGE_LOG, "entries", None)
    if log is None:
        _USAGE_LOG.entries = []
    else:
        log.clear()


def record_usage(usage: Dict[str, Any]) -> None:
    prompt = int(usage.get("prompt_tokens") or 0)
    completion = int(usage.get("completion_tokens") or 0)
    total = int(usage.get("total_tokens") or prompt + completion)
    log = getattr(_USAGE_LOG, "entries", None)
    if log is None:
        log = []
        _USAGE_LOG.entries = log
    log.append({"prompt_tokens": prompt, "completion_tokens": completion, "total_tokens": total})


def usage_totals() -> Dict[str, int]:
    log = getattr(_USAGE_LOG, "entries", []) or []
    totals = {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
    for entry in log:
        totals["prompt_tokens"] += int(entry.get("prompt_tokens", 0))
        totals["completion_tokens"] += int(entry.get("completion_tokens", 0))
        totals["total_tokens"] += int(entry.get("total_tokens", 0))
    return totals


def _client(backend: Backend, api_key: str, timeout: float) -> OpenAI:
    key = (backend.value, api_key)
    with _client_lock:
        client = _client_cache.get(key)
        if client is None:
            # Retries stay with the caller; a failed call falls back instead.
            client = OpenAI(
                api_key=api_key,
                base_url=BACKEND_SPECS[backend].base_url,
                timeout=timeout,
                max_retries=0,
            )
            _client_cache[key] = client
        return client


def _redact(text: str, secret: str) -> str:
    return text.replace(secret, "***") if secret else text


def _dig(backend: Backend, data: Any, path: Sequence[Union[str, int]]) -> str:
    node = data
    try:
        for step in path:
            node = node[step]
    except (KeyError, IndexError, TypeError):
        dotted = ".".join(str(p) for p in path)
        raise GenerationFailed(backend, f"response missing {dotted}") from None
    if not isinstance(node, str) or not node.strip():
        raise GenerationFailed(backend, "response text is empty")
    return node


def _post_json(
    backend: Backend,
    url: str,
    payload: Dict[str, Any],
    headers: Dict[str, str],
    *,
    api_key: str,
    timeout: float,
) -> Dict[str, Any]:
    try:
        response = requests.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.exceptions.RequestException as exc:
        raise GenerationFailed(backend, _redact(str(exc), api_key)) from exc
    if not 200 <= response.status_code < 300:
        raise GenerationFailed(backend, f"HTTP {response.status_code}")
    try:
        return response.json()
    except ValueError as exc:
        raise GenerationFailed(backend, "response body is not JSON") from exc


def _call_gemini(
    backend: Backend, system: str, user: str, *, model: str, api_key: str, temperature: float, max_tokens: int, timeout: float
) -> str:
    url = f"{BACKEND_SPECS[backend].base_url}/{model}:generateContent?key={api_key}"
    payload = {
        "contents": [{"parts": [{"text": f"{system}\n\n{user}"}]}],
        "generationConfig": {
            "temperature": temperature,
            "maxOutputTokens": max_tokens,
            "topP": DEFAULT_TOP_P,
            "topK": DEFAULT_GEMINI_TOP_K,
        },
    }
    data = _post_json(
        backend, url, payload, {"Content-Type": "application/json"}, api_key=api_key, timeout=timeout
    )
    meta = data.get("usageMetadata") if isinstance(data, dict) else None
    if isinstance(meta, dict):
        record_usage(
            {
                "prompt_tokens": meta.get("promptTokenCount"),
                "completion_tokens": meta.get("candidatesTokenCount"),
                "total_tokens": meta.get("totalTokenCount"),
            }
        )
    return _dig(backend, data, ("candidates", 0, "content", "parts", 0, "text"))


def _call_anthropic(
    backend: Backend, system: str, user: str, *, model: str, api_key: str, temperature: float, max_tokens: int, timeout: float
) -> str:
    url = f"{BACKEND_SPECS[backend].base_url}/messages"
    payload = {
        "model": model,
        "max_tokens": max_tokens,
        "temperature": temperature,
        "messages": [{"role": "user", "content": f"{system}\n\n{user}"}],
    }
    headers = {
        "x-api-key": api_key,
        "anthropic-version": DEFAULT_ANTHROPIC_VERSION,
        "Content-Type": "application/json",
    }
    data = _post_json(backend, url, payload, headers, api_key=api_key, timeout=timeout)
    usage = data.get("usage") if isinstance(data, dict) else None
    if isinstance(usage, dict):
        record_usage({"prompt_tokens": usage.get("input_tokens"), "completion_tokens": usage.get("output_tokens")})
    return _dig(backend, data, ("content", 0, "text"))


def _call_openai_compatible(
    backend: Backend, system: str, user: str, *, model: str, api_key: str, temperature: float, max_tokens: int, timeout: float
) -> str:
    params: Dict[str, Any] = {
        "model": model,
        "messages": [{"role": "system", "content": system}, {"role": "user", "content": user}],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if backend is Backend.GROQ:
        params["top_p"] = DEFAULT_TOP_P
    try:
        resp = _client(backend, api_key, timeout).chat.completions.create(**params)
    except APIError as exc:
        raise GenerationFailed(backend, _redact(str(exc), api_key)) from exc

    usage_data = getattr(resp, "usage", None)
    if usage_data:
        record_usage(
            {
                "prompt_tokens": getattr(usage_data, "prompt_tokens", 0),
                "completion_tokens": getattr(usage_data, "completion_tokens", 0),
                "total_tokens": getattr(usage_data, "total_tokens", 0),
            }
        )
    try:
        text = resp.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        raise GenerationFailed(backend, "response missing choices.0.message.content") from None
    if not isinstance(text, str) or not text.strip():
        raise GenerationFailed(backend, "response text is empty")
    return text


_DISPATCH: Dict[Backend, Callable[..., str]] = {
    Backend.GEMINI: _call_gemini,
    Backend.OPENAI: _call_openai_compatible,
    Backend.ANTHROPIC: _call_anthropic,
    Backend.GROQ: _call_openai_compatible,
}


def generate_text(
    backend: Union[Backend, str, None],
    system_prompt: str,
    user_prompt: str,
    *,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    temperature: float = DEFAULT_TEMPERATURE,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> str:
    """
    Single request/response round trip against the selected backend.

    Every failure (missing key, transport error, timeout, non-2xx, unexpected body)
    surfaces as ``GenerationFailed``. No call is retried here.
    """
    selected = Backend.parse(backend)
    key = api_key or api_key_for(selected.value)
    if not key:
        raise GenerationFailed(selected, "API key is not configured")
    chosen_model = model or BACKEND_SPECS[selected].model
    logger.debug("calling %s model=%s", selected.value, chosen_model)
    return _DISPATCH[selected](
        selected,
        system_prompt,
        user_prompt,
        model=chosen_model,
        api_key=key,
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=timeout,
    )


def backend_status(backend: Union[Backend, str, None] = None) -> Dict[str, Any]:
    selected = Backend.parse(backend)
    spec = BACKEND_SPECS[selected]
    return {
        "provider": selected.value,
        "model": spec.model,
        "api_key_configured": bool(api_key_for(selected.value)),
        "base_url": spec.base_url,
    }


__all__ = [
    "BACKEND_SPECS",
    "Backend",
    "BackendSpec",
    "GenerationFailed",
    "backend_status",
    "generate_text",
    "record_usage",
    "reset_usage_log",
    "usage_totals",
]
