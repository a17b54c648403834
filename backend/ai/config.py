"""
AI configuration parsing and validation.

Intent:
    Read the environment variables that control adapter selection, the model
    name, the request timeout and the local Ollama URL in one place.
"""
from __future__ import annotations

from dataclasses import dataclass
import os
import re
from urllib.parse import urlparse


@dataclass(frozen=True)
class AIConfig:
    backend: str  # "stub" | "local"
    confirmation_adapter_path: str
    rfq_model: str
    timeout_rfq_seconds: int
    ollama_base_url: str


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if value <= 0 or value > 300:
        raise ValueError(f"{name} out of range (1..300), got: {value}")
    return value


_HOST_RE = re.compile(r"^[a-z0-9._-]+$")


def _validate_ollama_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"}:
        raise ValueError("OLLAMA_BASE_URL must start with http:// or https://")
    host = (parsed.hostname or "").lower()
    if host in {"localhost"} or host.startswith("127.") or host.startswith("::1"):
        return
    # docker compose service names
    if "." not in host and _HOST_RE.match(host):
        return
    raise ValueError("OLLAMA_BASE_URL must point to localhost or a valid service hostname without dots")


def _is_prod_like() -> bool:
    env = (os.getenv("FREIGHTWISE_ENV") or "dev").lower()
    return env in {"prod", "production", "stage", "staging"}


def load_ai_config() -> AIConfig:
    """
    Parse and validate AI-related configuration from environment variables.

    Behavior:
        - `AI_BACKEND` selects the adapter: "stub" or "local" (default: stub).
        - `RFQ_CONFIRMATION_ADAPTER` (module path) overrides the selection.
        - Validates the timeout (1..300 seconds) and the Ollama base URL shape.
    """
    backend = (os.getenv("AI_BACKEND") or "stub").strip().lower()
    if backend not in {"stub", "local"}:
        raise ValueError("AI_BACKEND must be 'stub' or 'local'")
    if backend == "stub" and _is_prod_like():
        raise ValueError("AI_BACKEND=stub is not allowed in production/staging environments.")

    default_adapter = (
        "backend.ai.local_confirmation" if backend == "local" else "backend.ai.stub_confirmation"
    )
    adapter_path = os.getenv("RFQ_CONFIRMATION_ADAPTER", default_adapter)

    rfq_model = os.getenv("AI_RFQ_MODEL", "llama3.1")
    timeout_rfq = _int_env("AI_TIMEOUT_RFQ", 15)

    ollama_url = os.getenv("OLLAMA_BASE_URL", "http://ollama:11434")
    _validate_ollama_url(ollama_url)

    return AIConfig(
        backend=backend,
        confirmation_adapter_path=adapter_path,
        rfq_model=rfq_model,
        timeout_rfq_seconds=timeout_rfq,
        ollama_base_url=ollama_url,
    )
