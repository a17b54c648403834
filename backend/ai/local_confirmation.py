"""
Local confirmation adapter using an Ollama model.

Intent:
    Phrase a friendly confirmation for a freshly stored RFQ. The model never
    sees or invents the submission id; the RFQ flow appends it afterwards.

Privacy:
    The prompt carries customer details, so neither the prompt nor the model
    output is logged; logs carry only the model name and outcome.
"""

from __future__ import annotations

import logging
import os

import httpx

from backend.ai.ports import (
    ConfirmationPermanentError,
    ConfirmationResult,
    ConfirmationTransientError,
)
from backend.freight.models import RfqSubmission


logger = logging.getLogger("freightwise.ai")


def build_prompt(rfq: RfqSubmission) -> str:
    customer = [f"Name: {rfq.name}", f"Email: {rfq.email}"]
    if rfq.company:
        customer.append(f"Company: {rfq.company}")
    shipment = [f"Origin: {rfq.origin}", f"Destination: {rfq.destination}"]
    if rfq.weight:
        shipment.append(f"Estimated Weight: {rfq.weight:g} kg")
    if rfq.freight_type.value:
        shipment.append(f"Freight Type: {rfq.freight_type.value}")
    if rfq.message:
        shipment.append(f"Additional Message: {rfq.message}")
    return (
        "You are a helpful sales assistant for FreightWise, a freight logistics company.\n"
        "A potential customer has just submitted a Request for Quotation (RFQ).\n"
        "Your task is to generate a friendly and professional confirmation message for them.\n\n"
        "Customer Details:\n" + "\n".join(customer) + "\n\n"
        "Shipment Details:\n" + "\n".join(shipment) + "\n\n"
        "Generate a confirmation message that:\n"
        "1. Thanks the customer by name for their inquiry.\n"
        "2. Acknowledges receipt of their RFQ.\n"
        "3. Mentions that a unique submission ID will be provided by our system (do not generate it yourself).\n"
        "4. Assures them that the sales team will review their details and contact them shortly "
        "with a personalized, preferential quote.\n"
        "5. If they mentioned specific details like weight or freight type, briefly acknowledge "
        "that those have been noted.\n"
        "6. Keeps the tone positive and reassuring.\n\n"
        "Return ONLY the confirmation message text."
    )


class _LocalConfirmationAdapter:
    def __init__(self) -> None:
        self._model = (os.getenv("AI_RFQ_MODEL") or "").strip() or "llama3.1"
        self._base_url = (os.getenv("OLLAMA_BASE_URL") or "").strip() or "http://ollama:11434"
        self._timeout = int(os.getenv("AI_TIMEOUT_RFQ", "15"))

    def compose(self, *, rfq: RfqSubmission) -> ConfirmationResult:
        """Generate the confirmation text for `rfq`.

        Raises:
            ConfirmationTransientError: timeouts, unreachable host, 5xx.
            ConfirmationPermanentError: model rejected the request (4xx) or
                returned no text.
        """
        # Imported lazily so tests can install a fake module.
        import ollama  # type: ignore

        try:
            client = ollama.Client(self._base_url, timeout=self._timeout)
            raw = client.generate(model=self._model, prompt=build_prompt(rfq), options={"temperature": 0.3})
        except (TimeoutError, httpx.TimeoutException) as exc:
            logger.warning("ai.rfq_confirmation.timeout model=%s", self._model)
            raise ConfirmationTransientError(str(exc)) from exc
        except httpx.TransportError as exc:
            logger.warning("ai.rfq_confirmation.unreachable model=%s", self._model)
            raise ConfirmationTransientError(str(exc)) from exc
        except Exception as exc:
            status = getattr(exc, "status_code", None)
            if isinstance(status, int) and 400 <= status < 500:
                logger.warning("ai.rfq_confirmation.rejected model=%s status=%s", self._model, status)
                raise ConfirmationPermanentError(str(exc)) from exc
            logger.warning("ai.rfq_confirmation.failed model=%s reason=%s", self._model, exc.__class__.__name__)
            raise ConfirmationTransientError(str(exc)) from exc

        if isinstance(raw, dict):
            text = str(raw.get("response") or "").strip()
        else:
            text = str(getattr(raw, "response", "") or "").strip()
        if not text:
            raise ConfirmationPermanentError("empty_response")
        logger.info("ai.rfq_confirmation.completed model=%s", self._model)
        return ConfirmationResult(message=text, backend="ollama", raw_metadata={"model": self._model})


def build() -> _LocalConfirmationAdapter:
    """Factory used by the web composition root."""
    return _LocalConfirmationAdapter()
