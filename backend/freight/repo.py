"""
In-memory freight repository (prices, announcements, RFQs).

Why:
    Local development and tests run without Postgres. The repository is
    seeded with the demo data the product ships with so the public search
    and the dashboard have something to show on first start.

Contract:
    Mirrors `repo_db.DBFreightRepo` method for method; the web layer talks to
    either through `FreightRepoProtocol`. Inputs are validated with the shared
    helpers in `models`, so both implementations reject the same payloads.
"""
from __future__ import annotations

import csv
import io
import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Protocol
from uuid import uuid4

from backend.freight.models import (
    Announcement,
    Price,
    PriceType,
    RfqStatus,
    RfqSubmission,
    ValidationError,
    parse_rfq_status,
    validate_announcement_fields,
    validate_price_fields,
)


logger = logging.getLogger("freightwise.freight")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _contains(haystack: str, needle: Optional[str]) -> bool:
    if not needle:
        return True
    return needle.strip().lower() in (haystack or "").lower()


class FreightRepoProtocol(Protocol):
    def search_prices(self, *, price_type: PriceType, origin: Optional[str] = None, destination: Optional[str] = None) -> List[Price]:
        ...

    def list_all_prices(self) -> List[Price]:
        ...

    def get_price(self, price_id: str) -> Optional[Price]:
        ...

    def create_price(self, data: Mapping[str, Any]) -> Price:
        ...

    def update_price(self, price_id: str, data: Mapping[str, Any]) -> Optional[Price]:
        ...

    def delete_price(self, price_id: str) -> bool:
        ...

    def import_prices_csv(self, text: str) -> List[Price]:
        ...

    def list_announcements(self) -> List[Announcement]:
        ...

    def create_announcement(self, *, title: str, content: str, author_id: str, author_name: Optional[str]) -> Announcement:
        ...

    def update_announcement(self, announcement_id: str, data: Mapping[str, Any]) -> Optional[Announcement]:
        ...

    def delete_announcement(self, announcement_id: str) -> bool:
        ...

    def list_rfqs(self) -> List[RfqSubmission]:
        ...

    def save_rfq(self, submission: RfqSubmission) -> RfqSubmission:
        ...

    def update_rfq_status(self, rfq_id: str, status: Any) -> Optional[RfqSubmission]:
        ...


# --- CSV import ------------------------------------------------------------------

CSV_COLUMNS = ("origin", "destination", "amount", "currency", "type", "valid_from", "valid_to", "carrier", "notes")
_CSV_REQUIRED = frozenset({"origin", "destination", "amount", "currency", "type"})


def parse_price_csv(text: str) -> List[Dict[str, Any]]:
    """Parse a CSV price sheet into validated price payloads.

    The header row names the columns (`CSV_COLUMNS`, any order; unknown columns
    are ignored). A bad row raises ValidationError whose field is prefixed with
    the 1-based data row number, e.g. ``row 3:amount``. All rows are validated
    before any is stored.
    """
    reader = csv.DictReader(io.StringIO((text or "").lstrip("\ufeff")))
    header = {(h or "").strip().lower() for h in (reader.fieldnames or [])}
    missing = _CSV_REQUIRED - header
    if missing:
        raise ValidationError(sorted(missing)[0], "missing_column")
    rows: List[Dict[str, Any]] = []
    for index, raw in enumerate(reader, start=1):
        record = {(k or "").strip().lower(): (v or "").strip() for k, v in raw.items() if k}
        if not any(record.values()):
            continue
        payload = {k: record.get(k) or None for k in CSV_COLUMNS}
        try:
            rows.append(validate_price_fields(payload))
        except ValidationError as exc:
            raise ValidationError(f"row {index}:{exc.field}", exc.code) from None
    if not rows:
        raise ValidationError("file", "empty_import")
    return rows


# --- Seed data -------------------------------------------------------------------

def _seed_prices() -> List[Price]:
    rows = [
        ("1", "Shanghai, CN", "Los Angeles, US", "1200", "USD", PriceType.PUBLIC, "2024-08-01", "2024-08-31", "Oceanic Express (Sea)"),
        ("2", "Shanghai, CN", "Los Angeles, US", "950", "USD", PriceType.INTERNAL, "2024-08-01", "2024-08-31", "Oceanic Express (Sea)"),
        ("3", "Frankfurt, DE", "New York, US", "2500", "EUR", PriceType.PUBLIC, "2024-09-01", "2024-09-30", "Global Air Cargo (Air)"),
        ("4", "Frankfurt, DE", "New York, US", "2100", "EUR", PriceType.INTERNAL, "2024-09-01", "2024-09-30", "Global Air Cargo (Air)"),
        ("5", "Shenzhen, CN", "Rotterdam, NL", "1500", "USD", PriceType.PUBLIC, None, None, "East-West Logistics (Sea)"),
        ("6", "Shenzhen, CN", "Rotterdam, NL", "1250", "USD", PriceType.INTERNAL, None, None, "East-West Logistics (Sea)"),
    ]
    return [
        Price(
            id=pid,
            origin=origin,
            destination=dest,
            amount=Decimal(amount),
            currency=currency,
            type=ptype,
            valid_from=date.fromisoformat(vf) if vf else None,
            valid_to=date.fromisoformat(vt) if vt else None,
            carrier=carrier,
        )
        for pid, origin, dest, amount, currency, ptype, vf, vt, carrier in rows
    ]


def _seed_announcements() -> List[Announcement]:
    return [
        Announcement(
            id="1",
            title="New Peak Season Surcharges",
            content="Please be aware of new peak season surcharges effective from September 1st for all trans-pacific routes.",
            created_at="2024-07-15T10:00:00+00:00",
            author_id="1",
            author_name="Admin Freight",
        ),
        Announcement(
            id="2",
            title="System Maintenance Scheduled",
            content="The internal system will undergo scheduled maintenance on August 5th from 02:00 to 04:00 UTC. Access may be intermittent.",
            created_at="2024-07-20T14:30:00+00:00",
            author_id="1",
            author_name="Admin Freight",
        ),
    ]


# --- Repository ------------------------------------------------------------------

class InMemoryFreightRepo:
    def __init__(self, *, seed: bool = True) -> None:
        self.prices: Dict[str, Price] = {}
        self.announcements: Dict[str, Announcement] = {}
        self.rfqs: Dict[str, RfqSubmission] = {}
        if seed:
            for price in _seed_prices():
                self.prices[price.id] = price
            for ann in _seed_announcements():
                self.announcements[ann.id] = ann

    # --- Prices ------------------------------------------------------------------
    def search_prices(self, *, price_type: PriceType, origin: Optional[str] = None, destination: Optional[str] = None) -> List[Price]:
        items = [
            p for p in self.prices.values()
            if p.type is price_type and _contains(p.origin, origin) and _contains(p.destination, destination)
        ]
        items.sort(key=lambda p: p.amount)
        return items

    def list_all_prices(self) -> List[Price]:
        return sorted(self.prices.values(), key=lambda p: (p.origin, p.destination, p.type.value))

    def get_price(self, price_id: str) -> Optional[Price]:
        return self.prices.get(price_id)

    def create_price(self, data: Mapping[str, Any]) -> Price:
        fields = validate_price_fields(data)
        price = Price(id=str(uuid4()), **fields)
        self.prices[price.id] = price
        return price

    def update_price(self, price_id: str, data: Mapping[str, Any]) -> Optional[Price]:
        current = self.prices.get(price_id)
        if current is None:
            return None
        changes = validate_price_fields(data, partial=True)
        if not changes:
            return current
        merged = replace(current, **changes)
        if merged.valid_from and merged.valid_to and merged.valid_to < merged.valid_from:
            raise ValidationError("valid_to", "invalid_validity_range")
        self.prices[price_id] = merged
        return merged

    def delete_price(self, price_id: str) -> bool:
        return self.prices.pop(price_id, None) is not None

    def import_prices_csv(self, text: str) -> List[Price]:
        created = []
        for fields in parse_price_csv(text):
            price = Price(id=str(uuid4()), **fields)
            self.prices[price.id] = price
            created.append(price)
        logger.info("freight.prices.imported count=%s", len(created))
        return created

    # --- Announcements -----------------------------------------------------------
    def list_announcements(self) -> List[Announcement]:
        return sorted(self.announcements.values(), key=lambda a: a.created_at, reverse=True)

    def create_announcement(self, *, title: str, content: str, author_id: str, author_name: Optional[str]) -> Announcement:
        fields = validate_announcement_fields({"title": title, "content": content})
        ann = Announcement(
            id=str(uuid4()),
            created_at=_now_iso(),
            author_id=author_id,
            author_name=author_name,
            **fields,
        )
        self.announcements[ann.id] = ann
        return ann

    def update_announcement(self, announcement_id: str, data: Mapping[str, Any]) -> Optional[Announcement]:
        current = self.announcements.get(announcement_id)
        if current is None:
            return None
        changes = validate_announcement_fields(data, partial=True)
        if not changes:
            return current
        updated = replace(current, **changes)
        self.announcements[announcement_id] = updated
        return updated

    def delete_announcement(self, announcement_id: str) -> bool:
        return self.announcements.pop(announcement_id, None) is not None

    # --- RFQs --------------------------------------------------------------------
    def list_rfqs(self) -> List[RfqSubmission]:
        return sorted(self.rfqs.values(), key=lambda r: r.submitted_at, reverse=True)

    def save_rfq(self, submission: RfqSubmission) -> RfqSubmission:
        self.rfqs[submission.id] = submission
        return submission

    def update_rfq_status(self, rfq_id: str, status: Any) -> Optional[RfqSubmission]:
        new_status: RfqStatus = parse_rfq_status(status)
        current = self.rfqs.get(rfq_id)
        if current is None:
            return None
        updated = replace(current, status=new_status)
        self.rfqs[rfq_id] = updated
        return updated


__all__ = [
    "FreightRepoProtocol",
    "InMemoryFreightRepo",
    "CSV_COLUMNS",
    "parse_price_csv",
]
