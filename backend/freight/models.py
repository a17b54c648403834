"""
Freight domain records: prices, announcements and RFQ submissions.

Validation lives next to the records so every repository (in-memory or
Postgres) applies the same rules. Violations raise `ValidationError` with the
offending field and a stable code the web layer maps to a 400 response.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
import re
import secrets
import string
import time
from typing import Any, Dict, Mapping, Optional


class ValidationError(ValueError):
    def __init__(self, field: str, code: str) -> None:
        super().__init__(f"{field}:{code}")
        self.field = field
        self.code = code


class PriceType(str, Enum):
    PUBLIC = "public"
    INTERNAL = "internal"


class FreightType(str, Enum):
    SEA = "sea"
    AIR = "air"
    LAND = "land"
    UNSPECIFIED = ""


class RfqStatus(str, Enum):
    NEW = "New"
    CONTACTED = "Contacted"
    QUOTED = "Quoted"
    CLOSED = "Closed"


@dataclass
class Price:
    id: str
    origin: str
    destination: str
    amount: Decimal
    currency: str
    type: PriceType
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    carrier: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "origin": self.origin,
            "destination": self.destination,
            "amount": float(self.amount),
            "currency": self.currency,
            "type": self.type.value,
            "valid_from": self.valid_from.isoformat() if self.valid_from else None,
            "valid_to": self.valid_to.isoformat() if self.valid_to else None,
            "carrier": self.carrier,
            "notes": self.notes,
        }


@dataclass
class Announcement:
    id: str
    title: str
    content: str
    created_at: str
    author_id: str
    author_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RfqSubmission:
    id: str
    submission_id: str
    name: str
    email: str
    origin: str
    destination: str
    submitted_at: str
    status: RfqStatus = RfqStatus.NEW
    company: Optional[str] = None
    weight: Optional[float] = None
    freight_type: FreightType = FreightType.UNSPECIFIED
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["freight_type"] = self.freight_type.value
        return data


# --- Field validation --------------------------------------------------------------

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def _opt_text(value: Any, *, field: str, max_len: int) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if len(text) > max_len:
        raise ValidationError(field, f"invalid_{field}")
    return text or None


def _req_text(value: Any, *, field: str, min_len: int, max_len: int) -> str:
    text = str(value or "").strip()
    if len(text) < min_len or len(text) > max_len:
        raise ValidationError(field, f"invalid_{field}")
    return text


def _parse_date(value: Any, *, field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError(field, f"invalid_{field}") from None


def _parse_amount(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, AttributeError):
        raise ValidationError("amount", "invalid_amount") from None
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("amount", "invalid_amount")
    return amount


def validate_price_fields(data: Mapping[str, Any], *, partial: bool = False) -> Dict[str, Any]:
    """Normalize price input; with `partial=True` only present keys are checked."""
    out: Dict[str, Any] = {}

    def present(key: str) -> bool:
        return (key in data) if partial else True

    if present("origin"):
        out["origin"] = _req_text(data.get("origin"), field="origin", min_len=2, max_len=200)
    if present("destination"):
        out["destination"] = _req_text(data.get("destination"), field="destination", min_len=2, max_len=200)
    if present("amount"):
        out["amount"] = _parse_amount(data.get("amount"))
    if present("currency"):
        currency = str(data.get("currency") or "").strip().upper()
        if not _CURRENCY_RE.match(currency):
            raise ValidationError("currency", "invalid_currency")
        out["currency"] = currency
    if present("type"):
        try:
            out["type"] = PriceType(str(getattr(data.get("type"), "value", data.get("type")) or "").strip().lower())
        except ValueError:
            raise ValidationError("type", "invalid_type") from None
    if present("valid_from"):
        out["valid_from"] = _parse_date(data.get("valid_from"), field="valid_from")
    if present("valid_to"):
        out["valid_to"] = _parse_date(data.get("valid_to"), field="valid_to")
    if present("carrier"):
        out["carrier"] = _opt_text(data.get("carrier"), field="carrier", max_len=200)
    if present("notes"):
        out["notes"] = _opt_text(data.get("notes"), field="notes", max_len=2000)

    vf, vt = out.get("valid_from"), out.get("valid_to")
    if vf and vt and vt < vf:
        raise ValidationError("valid_to", "invalid_validity_range")
    return out


def validate_announcement_fields(data: Mapping[str, Any], *, partial: bool = False) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    if not partial or "title" in data:
        out["title"] = _req_text(data.get("title"), field="title", min_len=5, max_len=200)
    if not partial or "content" in data:
        out["content"] = _req_text(data.get("content"), field="content", min_len=10, max_len=5000)
    return out


def validate_rfq_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
    email = str(data.get("email") or "").strip()
    if not _EMAIL_RE.match(email) or len(email) > 254:
        raise ValidationError("email", "invalid_email")
    weight = data.get("weight")
    if weight is not None and weight != "":
        try:
            weight = float(weight)
        except (TypeError, ValueError):
            raise ValidationError("weight", "invalid_weight") from None
        if weight <= 0:
            raise ValidationError("weight", "invalid_weight")
    else:
        weight = None
    try:
        freight_type = FreightType(str(getattr(data.get("freight_type"), "value", data.get("freight_type")) or "").strip().lower())
    except ValueError:
        raise ValidationError("freight_type", "invalid_freight_type") from None
    return {
        "name": _req_text(data.get("name"), field="name", min_len=1, max_len=200),
        "email": email,
        "company": _opt_text(data.get("company"), field="company", max_len=200),
        "origin": _req_text(data.get("origin"), field="origin", min_len=1, max_len=200),
        "destination": _req_text(data.get("destination"), field="destination", min_len=1, max_len=200),
        "weight": weight,
        "freight_type": freight_type,
        "message": _opt_text(data.get("message"), field="message", max_len=5000),
    }


def parse_rfq_status(value: Any) -> RfqStatus:
    raw = str(getattr(value, "value", value) or "").strip()
    for status in RfqStatus:
        if status.value.lower() == raw.lower():
            return status
    raise ValidationError("status", "invalid_status")


_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def new_submission_id(now_ms: Optional[int] = None) -> str:
    """User-facing RFQ id: ``RFQ-<epoch ms>-<5 upper alnum>``."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(5))
    return f"RFQ-{stamp}-{suffix}"


__all__ = [
    "ValidationError",
    "PriceType",
    "FreightType",
    "RfqStatus",
    "Price",
    "Announcement",
    "RfqSubmission",
    "validate_price_fields",
    "validate_announcement_fields",
    "validate_rfq_fields",
    "parse_rfq_status",
    "new_submission_id",
]
