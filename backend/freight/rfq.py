"""
RFQ submission use case: persist the request, then phrase a confirmation.

Flow:
    1. Validate the payload and mint a user-facing submission id.
    2. Persist the RFQ with status `New`. A storage failure aborts the
       submission with `RfqSubmissionError`; nothing is confirmed.
    3. Ask the confirmation adapter for a message. Adapter errors or empty
       text fall back to a deterministic message. A message that does not
       mention the submission id gets it appended.

Privacy:
    Logs carry the submission id and outcome only, never customer details.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any, Mapping, Optional
from uuid import uuid4

from backend.ai.ports import ConfirmationAdapterProtocol, ConfirmationError
from backend.freight.models import RfqStatus, RfqSubmission, new_submission_id, validate_rfq_fields
from backend.freight.repo import FreightRepoProtocol


logger = logging.getLogger("freightwise.freight")


class RfqSubmissionError(RuntimeError):
    """The RFQ could not be stored; the customer must retry."""


@dataclass
class RfqOutcome:
    submission_id: str
    message: str
    rfq: RfqSubmission


def fallback_message(rfq: RfqSubmission) -> str:
    return (
        f"Thank you for your inquiry, {rfq.name}! Your request (ID: {rfq.submission_id}) has been received. "
        "Our sales team will review your details and contact you shortly with a personalized, preferential quote. "
        f"We have noted your shipment from {rfq.origin} to {rfq.destination}. "
        "A sales representative will be in touch soon to discuss potential preferential pricing."
    )


def _ensure_mentions_id(message: str, submission_id: str) -> str:
    if submission_id in message:
        return message
    return f"{message} Your submission ID is {submission_id}."


def submit_rfq(
    repo: FreightRepoProtocol,
    adapter: Optional[ConfirmationAdapterProtocol],
    payload: Mapping[str, Any],
) -> RfqOutcome:
    """Validate, store and confirm an RFQ.

    Raises:
        ValidationError: malformed payload (nothing stored).
        RfqSubmissionError: the repository failed to store the RFQ.
    """
    fields = validate_rfq_fields(payload)
    rfq = RfqSubmission(
        id=str(uuid4()),
        submission_id=new_submission_id(),
        submitted_at=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        status=RfqStatus.NEW,
        **fields,
    )
    try:
        stored = repo.save_rfq(rfq)
    except Exception as exc:
        logger.error("rfq.submission.save_failed submission_id=%s reason=%s", rfq.submission_id, exc.__class__.__name__)
        raise RfqSubmissionError(f"Failed to save RFQ: {exc}") from exc
    logger.info("rfq.submission.saved submission_id=%s", stored.submission_id)

    message = ""
    if adapter is not None:
        try:
            message = (adapter.compose(rfq=stored).message or "").strip()
        except ConfirmationError as exc:
            logger.warning(
                "rfq.submission.confirmation_failed submission_id=%s reason=%s",
                stored.submission_id,
                exc.__class__.__name__,
            )
    if message:
        message = _ensure_mentions_id(message, stored.submission_id)
    else:
        logger.info("rfq.submission.fallback_message submission_id=%s", stored.submission_id)
        message = fallback_message(stored)
    return RfqOutcome(submission_id=stored.submission_id, message=message, rfq=stored)


__all__ = ["RfqSubmissionError", "RfqOutcome", "fallback_message", "submit_rfq"]
