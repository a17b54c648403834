"""
Local (Ollama) confirmation adapter.

Intent:
    Exercise the adapter against a fake `ollama` module so the tests stay
    network-free, and pin the error classification the RFQ flow relies on:
    timeouts and unreachable hosts are transient, a rejected request or an
    empty answer is permanent.
"""

from __future__ import annotations

import logging
import sys
from types import SimpleNamespace

import httpx
import pytest

from backend.ai.ports import ConfirmationPermanentError, ConfirmationTransientError
from backend.freight.models import FreightType, RfqSubmission


def _rfq(**overrides) -> RfqSubmission:
    data = dict(
        id="r-1",
        submission_id="RFQ-1720000000000-AB12C",
        name="Dana Shipper",
        email="dana@shipper.io",
        origin="Xiamen, CN",
        destination="Oakland, US",
        submitted_at="2024-07-01T00:00:00+00:00",
        company="Dana Imports",
        weight=800.0,
        freight_type=FreightType.SEA,
        message="Two 40ft containers",
    )
    data.update(overrides)
    return RfqSubmission(**data)


class _FakeClient:
    def __init__(self, behavior, seen: dict):
        self.behavior = behavior
        self.seen = seen

    def generate(self, model: str, prompt: str, options: dict | None = None, **_: object):
        self.seen.update(model=model, prompt=prompt, options=options)
        if isinstance(self.behavior, Exception):
            raise self.behavior
        return self.behavior


def _install_fake_ollama(monkeypatch: pytest.MonkeyPatch, behavior) -> dict:
    seen: dict = {}

    def _ctor(host=None, **kwargs):
        seen.update(host=host, client_kwargs=kwargs)
        return _FakeClient(behavior, seen)

    monkeypatch.setitem(sys.modules, "ollama", SimpleNamespace(Client=_ctor))
    return seen


def _adapter():
    from backend.ai import local_confirmation

    return local_confirmation.build()


def test_compose_returns_model_text_and_passes_configuration(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AI_RFQ_MODEL", "qwen2.5")
    monkeypatch.setenv("OLLAMA_BASE_URL", "http://localhost:11434")
    monkeypatch.setenv("AI_TIMEOUT_RFQ", "7")
    seen = _install_fake_ollama(monkeypatch, {"response": "  Thank you, Dana!  "})

    result = _adapter().compose(rfq=_rfq())

    assert result.message == "Thank you, Dana!"
    assert result.backend == "ollama"
    assert seen["host"] == "http://localhost:11434"
    assert seen["client_kwargs"] == {"timeout": 7}
    assert seen["model"] == "qwen2.5"
    assert seen["options"] == {"temperature": 0.3}


def test_response_objects_with_attribute_access_are_supported(monkeypatch: pytest.MonkeyPatch):
    _install_fake_ollama(monkeypatch, SimpleNamespace(response="Hello Dana"))
    assert _adapter().compose(rfq=_rfq()).message == "Hello Dana"


def test_prompt_includes_shipment_details_but_not_the_submission_id():
    from backend.ai.local_confirmation import build_prompt

    prompt = build_prompt(_rfq())
    assert "Name: Dana Shipper" in prompt
    assert "Company: Dana Imports" in prompt
    assert "Estimated Weight: 800 kg" in prompt
    assert "Freight Type: sea" in prompt
    assert "RFQ-1720000000000-AB12C" not in prompt


def test_prompt_omits_optional_lines_when_absent():
    from backend.ai.local_confirmation import build_prompt

    prompt = build_prompt(_rfq(company=None, weight=None, freight_type=FreightType.UNSPECIFIED, message=None))
    assert "Company:" not in prompt
    assert "Estimated Weight" not in prompt
    assert "Freight Type" not in prompt


@pytest.mark.parametrize(
    "error",
    [
        TimeoutError("slow"),
        httpx.ReadTimeout("slow"),
        httpx.ConnectError("refused"),
        RuntimeError("server exploded"),
    ],
)
def test_transport_failures_are_transient(monkeypatch: pytest.MonkeyPatch, error):
    _install_fake_ollama(monkeypatch, error)
    with pytest.raises(ConfirmationTransientError):
        _adapter().compose(rfq=_rfq())


def test_rejected_request_is_permanent(monkeypatch: pytest.MonkeyPatch):
    class _ResponseError(Exception):
        def __init__(self, msg: str, status_code: int) -> None:
            super().__init__(msg)
            self.status_code = status_code

    _install_fake_ollama(monkeypatch, _ResponseError("model 'nope' not found", 404))
    with pytest.raises(ConfirmationPermanentError):
        _adapter().compose(rfq=_rfq())


def test_server_errors_stay_transient(monkeypatch: pytest.MonkeyPatch):
    class _ResponseError(Exception):
        status_code = 503

    _install_fake_ollama(monkeypatch, _ResponseError("busy"))
    with pytest.raises(ConfirmationTransientError):
        _adapter().compose(rfq=_rfq())


def test_empty_answer_is_permanent(monkeypatch: pytest.MonkeyPatch):
    _install_fake_ollama(monkeypatch, {"response": "   "})
    with pytest.raises(ConfirmationPermanentError):
        _adapter().compose(rfq=_rfq())


def test_logs_never_contain_prompt_or_answer(monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture):
    caplog.set_level(logging.DEBUG, logger="freightwise.ai")
    _install_fake_ollama(monkeypatch, {"response": "Secret answer for Dana"})
    _adapter().compose(rfq=_rfq())
    assert "ai.rfq_confirmation.completed" in caplog.text
    assert "Dana" not in caplog.text
    assert "dana@shipper.io" not in caplog.text
