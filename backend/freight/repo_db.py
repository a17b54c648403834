"""
Postgres-backed freight repository (psycopg3).

Design:
- Each call opens a short-lived connection; no pooling, no retries.
- Inputs run through the same validators as the in-memory repo before any SQL
  is issued, so the database only sees normalized values.
- Search filters use ILIKE substring matching and sort by amount ascending.
- Timestamps are rendered as UTC ISO strings in SQL for predictability.

Expected schema: `backend/sql/schema.sql`.
"""
from __future__ import annotations

import logging
import os
from typing import Any, List, Mapping, Optional, Tuple
from uuid import uuid4

import psycopg

from backend.freight.models import (
    Announcement,
    FreightType,
    Price,
    PriceType,
    RfqStatus,
    RfqSubmission,
    ValidationError,
    parse_rfq_status,
    validate_announcement_fields,
    validate_price_fields,
)
from backend.freight.repo import parse_price_csv


logger = logging.getLogger("freightwise.freight")

_ISO_UTC = "'YYYY-MM-DD\"T\"HH24:MI:SS\"+00:00\"'"

_PRICE_COLUMNS_SQL = (
    "id::text, origin, destination, amount, currency, type, valid_from, valid_to, carrier, notes"
)
_PRICE_INSERT_COLUMNS = ("origin", "destination", "amount", "currency", "type", "valid_from", "valid_to", "carrier", "notes")

_ANNOUNCEMENT_COLUMNS_SQL = (
    f"id::text, title, content, to_char(created_at at time zone 'utc', {_ISO_UTC}), author_id, author_name"
)

_RFQ_COLUMNS_SQL = (
    "id::text, submission_id, name, email, origin, destination, "
    f"to_char(submitted_at at time zone 'utc', {_ISO_UTC}), status, company, weight, freight_type, message"
)


def _dsn() -> str:
    dsn = os.getenv("FREIGHT_DATABASE_URL") or os.getenv("DATABASE_URL")
    if not dsn:
        raise RuntimeError("Database DSN unavailable for DBFreightRepo")
    return dsn


def _db_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _row_to_price(row: Tuple) -> Price:
    return Price(
        id=row[0],
        origin=row[1],
        destination=row[2],
        amount=row[3],
        currency=row[4],
        type=PriceType(row[5]),
        valid_from=row[6],
        valid_to=row[7],
        carrier=row[8],
        notes=row[9],
    )


def _row_to_announcement(row: Tuple) -> Announcement:
    return Announcement(
        id=row[0],
        title=row[1],
        content=row[2],
        created_at=row[3],
        author_id=row[4],
        author_name=row[5],
    )


def _row_to_rfq(row: Tuple) -> RfqSubmission:
    return RfqSubmission(
        id=row[0],
        submission_id=row[1],
        name=row[2],
        email=row[3],
        origin=row[4],
        destination=row[5],
        submitted_at=row[6],
        status=RfqStatus(row[7]),
        company=row[8],
        weight=float(row[9]) if row[9] is not None else None,
        freight_type=FreightType(row[10] or ""),
        message=row[11],
    )


class DBFreightRepo:
    def __init__(self, dsn: Optional[str] = None) -> None:
        self._dsn = dsn or _dsn()

    # --- Prices ------------------------------------------------------------------
    def search_prices(self, *, price_type: PriceType, origin: Optional[str] = None, destination: Optional[str] = None) -> List[Price]:
        clauses = ["type = %s"]
        params: list[Any] = [price_type.value]
        if origin and origin.strip():
            clauses.append("origin ilike %s")
            params.append(f"%{origin.strip()}%")
        if destination and destination.strip():
            clauses.append("destination ilike %s")
            params.append(f"%{destination.strip()}%")
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select {_PRICE_COLUMNS_SQL} from public.prices where {' and '.join(clauses)} order by amount asc",
                    tuple(params),
                )
                rows = cur.fetchall() or []
        return [_row_to_price(r) for r in rows]

    def list_all_prices(self) -> List[Price]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"select {_PRICE_COLUMNS_SQL} from public.prices order by origin, destination, type")
                rows = cur.fetchall() or []
        return [_row_to_price(r) for r in rows]

    def get_price(self, price_id: str) -> Optional[Price]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"select {_PRICE_COLUMNS_SQL} from public.prices where id::text = %s", (price_id,))
                row = cur.fetchone()
        return _row_to_price(row) if row else None

    def _insert_prices(self, payloads: List[Mapping[str, Any]]) -> List[Price]:
        created: List[Price] = []
        placeholders = ", ".join(["%s"] * (len(_PRICE_INSERT_COLUMNS) + 1))
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                for fields in payloads:
                    cur.execute(
                        f"insert into public.prices (id, {', '.join(_PRICE_INSERT_COLUMNS)}) "
                        f"values ({placeholders}) returning {_PRICE_COLUMNS_SQL}",
                        (str(uuid4()), *(_db_value(fields.get(c)) for c in _PRICE_INSERT_COLUMNS)),
                    )
                    created.append(_row_to_price(cur.fetchone()))
            conn.commit()
        return created

    def create_price(self, data: Mapping[str, Any]) -> Price:
        return self._insert_prices([validate_price_fields(data)])[0]

    def update_price(self, price_id: str, data: Mapping[str, Any]) -> Optional[Price]:
        changes = validate_price_fields(data, partial=True)
        if not changes:
            return self.get_price(price_id)
        set_sql = ", ".join(f"{column} = %s" for column in changes)
        values = [_db_value(v) for v in changes.values()]
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"update public.prices set {set_sql} where id::text = %s returning {_PRICE_COLUMNS_SQL}",
                    (*values, price_id),
                )
                row = cur.fetchone()
                if row is not None:
                    merged = _row_to_price(row)
                    if merged.valid_from and merged.valid_to and merged.valid_to < merged.valid_from:
                        raise ValidationError("valid_to", "invalid_validity_range")
            conn.commit()
        return _row_to_price(row) if row else None

    def delete_price(self, price_id: str) -> bool:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("delete from public.prices where id::text = %s", (price_id,))
                deleted = cur.rowcount or 0
            conn.commit()
        return deleted > 0

    def import_prices_csv(self, text: str) -> List[Price]:
        created = self._insert_prices(parse_price_csv(text))
        logger.info("freight.prices.imported count=%s", len(created))
        return created

    # --- Announcements -----------------------------------------------------------
    def list_announcements(self) -> List[Announcement]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"select {_ANNOUNCEMENT_COLUMNS_SQL} from public.announcements order by created_at desc")
                rows = cur.fetchall() or []
        return [_row_to_announcement(r) for r in rows]

    def create_announcement(self, *, title: str, content: str, author_id: str, author_name: Optional[str]) -> Announcement:
        fields = validate_announcement_fields({"title": title, "content": content})
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "insert into public.announcements (id, title, content, author_id, author_name) "
                    f"values (%s, %s, %s, %s, %s) returning {_ANNOUNCEMENT_COLUMNS_SQL}",
                    (str(uuid4()), fields["title"], fields["content"], author_id, author_name),
                )
                row = cur.fetchone()
            conn.commit()
        return _row_to_announcement(row)

    def update_announcement(self, announcement_id: str, data: Mapping[str, Any]) -> Optional[Announcement]:
        changes = validate_announcement_fields(data, partial=True)
        if not changes:
            current = [a for a in self.list_announcements() if a.id == announcement_id]
            return current[0] if current else None
        set_sql = ", ".join(f"{column} = %s" for column in changes)
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"update public.announcements set {set_sql} where id::text = %s returning {_ANNOUNCEMENT_COLUMNS_SQL}",
                    (*changes.values(), announcement_id),
                )
                row = cur.fetchone()
            conn.commit()
        return _row_to_announcement(row) if row else None

    def delete_announcement(self, announcement_id: str) -> bool:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("delete from public.announcements where id::text = %s", (announcement_id,))
                deleted = cur.rowcount or 0
            conn.commit()
        return deleted > 0

    # --- RFQs --------------------------------------------------------------------
    def list_rfqs(self) -> List[RfqSubmission]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"select {_RFQ_COLUMNS_SQL} from public.rfq_submissions order by submitted_at desc")
                rows = cur.fetchall() or []
        return [_row_to_rfq(r) for r in rows]

    def save_rfq(self, submission: RfqSubmission) -> RfqSubmission:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    insert into public.rfq_submissions
                      (id, submission_id, name, email, company, origin, destination,
                       weight, freight_type, message, submitted_at, status)
                    values (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s::timestamptz, %s)
                    """
                    + f" returning {_RFQ_COLUMNS_SQL}",
                    (
                        submission.id,
                        submission.submission_id,
                        submission.name,
                        submission.email,
                        submission.company,
                        submission.origin,
                        submission.destination,
                        submission.weight,
                        submission.freight_type.value,
                        submission.message,
                        submission.submitted_at,
                        submission.status.value,
                    ),
                )
                row = cur.fetchone()
            conn.commit()
        return _row_to_rfq(row)

    def update_rfq_status(self, rfq_id: str, status: Any) -> Optional[RfqSubmission]:
        new_status = parse_rfq_status(status)
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"update public.rfq_submissions set status = %s where id::text = %s returning {_RFQ_COLUMNS_SQL}",
                    (new_status.value, rfq_id),
                )
                row = cur.fetchone()
            conn.commit()
        return _row_to_rfq(row) if row else None


__all__ = ["DBFreightRepo"]
