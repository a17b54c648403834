"""
Deterministic confirmation adapter for tests and offline development.

Produces the same wording as the RFQ flow's fallback so screens look alike
with and without a model host.
"""

from __future__ import annotations

from backend.ai.ports import ConfirmationResult
from backend.freight.models import RfqSubmission


class _StubConfirmationAdapter:
    def compose(self, *, rfq: RfqSubmission) -> ConfirmationResult:
        message = (
            f"Thank you for your inquiry, {rfq.name}! We have received your request for a shipment "
            f"from {rfq.origin} to {rfq.destination}. Our sales team will contact you shortly "
            "with a personalized, preferential quote."
        )
        return ConfirmationResult(message=message, backend="stub")


def build() -> _StubConfirmationAdapter:
    return _StubConfirmationAdapter()
