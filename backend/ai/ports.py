"""
Ports for AI adapters: result type, protocol and error taxonomy.

Intent:
    Keep the RFQ flow independent of the concrete text-generation backend
    (stub for tests and offline work, local Ollama in deployments).

Design:
    - Result dataclass: ConfirmationResult
    - Protocol: ConfirmationAdapterProtocol
    - Errors: transient (timeouts, unreachable host) vs. permanent (bad model
      configuration). Callers never fail an RFQ on either; they fall back to a
      deterministic message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from backend.freight.models import RfqSubmission


@dataclass
class ConfirmationResult:
    """Confirmation text for the customer.

    Parameters:
        message: Plain-text confirmation shown after the RFQ was accepted.
        backend: Adapter identifier ("stub", "ollama") for logs.
        raw_metadata: Optional adapter-specific diagnostics.
    """

    message: str
    backend: str
    raw_metadata: Optional[dict] = None


class ConfirmationAdapterProtocol(Protocol):
    """Adapter that phrases the confirmation message for a stored RFQ."""

    def compose(self, *, rfq: RfqSubmission) -> ConfirmationResult:
        ...


class ConfirmationError(Exception):
    """Base class for confirmation adapter failures."""


class ConfirmationTransientError(ConfirmationError):
    """Recoverable failure (timeout, model host unreachable)."""


class ConfirmationPermanentError(ConfirmationError):
    """Non-recoverable failure (unknown model, invalid configuration)."""


__all__ = [
    "ConfirmationResult",
    "ConfirmationAdapterProtocol",
    "ConfirmationError",
    "ConfirmationTransientError",
    "ConfirmationPermanentError",
]
