"""AI configuration parsing: adapter selection, timeout and Ollama URL validation."""
from __future__ import annotations

import pytest

from backend.ai.config import load_ai_config


def test_defaults_select_the_stub_adapter():
    cfg = load_ai_config()
    assert cfg.backend == "stub"
    assert cfg.confirmation_adapter_path == "backend.ai.stub_confirmation"
    assert cfg.rfq_model == "llama3.1"
    assert cfg.timeout_rfq_seconds == 15
    assert cfg.ollama_base_url == "http://ollama:11434"


def test_local_backend_selects_the_ollama_adapter(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AI_BACKEND", "local")
    monkeypatch.setenv("AI_RFQ_MODEL", "qwen2.5")
    monkeypatch.setenv("AI_TIMEOUT_RFQ", "30")
    cfg = load_ai_config()
    assert cfg.confirmation_adapter_path == "backend.ai.local_confirmation"
    assert cfg.rfq_model == "qwen2.5"
    assert cfg.timeout_rfq_seconds == 30


def test_explicit_adapter_path_wins(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("RFQ_CONFIRMATION_ADAPTER", "custom.adapter")
    assert load_ai_config().confirmation_adapter_path == "custom.adapter"


@pytest.mark.parametrize("value", ["abc", "0", "301"])
def test_invalid_timeouts_are_rejected(monkeypatch: pytest.MonkeyPatch, value):
    monkeypatch.setenv("AI_TIMEOUT_RFQ", value)
    with pytest.raises(ValueError):
        load_ai_config()


@pytest.mark.parametrize(
    "url, ok",
    [
        ("http://localhost:11434", True),
        ("http://127.0.0.1:11434", True),
        ("http://ollama:11434", True),
        ("ftp://ollama:11434", False),
        ("http://models.example.com", False),
    ],
)
def test_ollama_url_validation(monkeypatch: pytest.MonkeyPatch, url, ok):
    monkeypatch.setenv("OLLAMA_BASE_URL", url)
    if ok:
        assert load_ai_config().ollama_base_url == url
    else:
        with pytest.raises(ValueError):
            load_ai_config()


def test_unknown_backend_is_rejected(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AI_BACKEND", "cloud")
    with pytest.raises(ValueError):
        load_ai_config()


def test_stub_backend_is_refused_in_production(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("FREIGHTWISE_ENV", "prod")
    with pytest.raises(ValueError):
        load_ai_config()
    monkeypatch.setenv("AI_BACKEND", "local")
    assert load_ai_config().backend == "local"
