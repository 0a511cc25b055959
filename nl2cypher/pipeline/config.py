from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_ENV_PATH = Path(__file__).resolve().parents[1] / "config.env"

if _ENV_PATH.exists():
    load_dotenv(_ENV_PATH)
else:
    load_dotenv()

DEFAULT_LLM_PROVIDER = os.getenv("LLM_PROVIDER", "gemini")

DEFAULT_GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
DEFAULT_OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4")
DEFAULT_ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-3-sonnet-20240229")
DEFAULT_GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")

DEFAULT_GEMINI_BASE_URL = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/models")
DEFAULT_OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
DEFAULT_ANTHROPIC_BASE_URL = os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com/v1")
DEFAULT_GROQ_BASE_URL = os.getenv("GROQ_BASE_URL", "https://api.groq.com/openai/v1")

DEFAULT_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))
DEFAULT_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.1"))
DEFAULT_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "1000"))
DEFAULT_TOP_P = float(os.getenv("LLM_TOP_P", "0.8"))
DEFAULT_GEMINI_TOP_K = int(os.getenv("GEMINI_TOP_K", "40"))
DEFAULT_ANTHROPIC_VERSION = os.getenv("ANTHROPIC_VERSION", "2023-06-01")

DEFAULT_LOG_DIR: Optional[str] = os.getenv("NL2CYPHER_LOG_DIR")
DEFAULT_LOG_RETAIN = int(os.getenv("NL2CYPHER_LOG_RETAIN", "20"))


def api_key_for(provider: str) -> Optional[str]:
    """Per-provider key (e.g. GROQ_API_KEY) wins over the shared LLM_API_KEY."""
    return os.getenv(f"{provider.upper()}_API_KEY") or os.getenv("LLM_API_KEY")
