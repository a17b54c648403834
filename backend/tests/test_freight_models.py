"""Freight record validation and the RFQ submission id format."""
from __future__ import annotations

from datetime import date
from decimal import Decimal
import re

import pytest

from backend.freight.models import (
    FreightType,
    PriceType,
    RfqStatus,
    ValidationError,
    new_submission_id,
    parse_rfq_status,
    validate_announcement_fields,
    validate_price_fields,
    validate_rfq_fields,
)


_PRICE = {
    "origin": "Ningbo, CN",
    "destination": "Hamburg, DE",
    "amount": "1800.50",
    "currency": "usd",
    "type": "Internal",
    "valid_from": "2024-10-01",
    "valid_to": "2024-10-31",
    "carrier": "  ",
    "notes": None,
}


def test_price_fields_are_normalized():
    out = validate_price_fields(_PRICE)
    assert out["amount"] == Decimal("1800.50")
    assert out["currency"] == "USD"
    assert out["type"] is PriceType.INTERNAL
    assert out["valid_from"] == date(2024, 10, 1)
    assert out["carrier"] is None
    assert out["notes"] is None


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"origin": "X"}, "origin"),
        ({"destination": ""}, "destination"),
        ({"amount": "0"}, "amount"),
        ({"amount": "-5"}, "amount"),
        ({"amount": "abc"}, "amount"),
        ({"amount": "NaN"}, "amount"),
        ({"currency": "US"}, "currency"),
        ({"type": "secret"}, "type"),
        ({"valid_from": "01/10/2024"}, "valid_from"),
        ({"valid_from": "2024-10-31", "valid_to": "2024-10-01"}, "valid_to"),
    ],
)
def test_price_validation_errors(overrides, field):
    data = dict(_PRICE, **overrides)
    with pytest.raises(ValidationError) as exc:
        validate_price_fields(data)
    assert exc.value.field == field


def test_partial_price_validation_only_checks_present_keys():
    assert validate_price_fields({"amount": 99}, partial=True) == {"amount": Decimal("99")}
    assert validate_price_fields({}, partial=True) == {}


def test_announcement_length_rules():
    ok = validate_announcement_fields({"title": "Port closure", "content": "Port of Yantian closed until Monday."})
    assert ok["title"] == "Port closure"
    with pytest.raises(ValidationError) as exc:
        validate_announcement_fields({"title": "Hi", "content": "Long enough content here."})
    assert exc.value.field == "title"
    with pytest.raises(ValidationError) as exc:
        validate_announcement_fields({"title": "Valid title", "content": "short"})
    assert exc.value.field == "content"


def test_rfq_fields_minimal_payload():
    out = validate_rfq_fields(
        {"name": "Dana", "email": "dana@shipper.io", "origin": "Xiamen", "destination": "Oakland"}
    )
    assert out["weight"] is None
    assert out["freight_type"] is FreightType.UNSPECIFIED
    assert out["company"] is None


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"email": "dana"}, "email"),
        ({"name": "  "}, "name"),
        ({"origin": ""}, "origin"),
        ({"weight": "heavy"}, "weight"),
        ({"weight": "-1"}, "weight"),
        ({"freight_type": "rail"}, "freight_type"),
    ],
)
def test_rfq_validation_errors(overrides, field):
    data = {"name": "Dana", "email": "dana@shipper.io", "origin": "Xiamen", "destination": "Oakland"}
    data.update(overrides)
    with pytest.raises(ValidationError) as exc:
        validate_rfq_fields(data)
    assert exc.value.field == field


def test_rfq_weight_and_freight_type_are_parsed():
    out = validate_rfq_fields(
        {
            "name": "Dana",
            "email": "dana@shipper.io",
            "origin": "Xiamen",
            "destination": "Oakland",
            "weight": "1250.5",
            "freight_type": "SEA",
        }
    )
    assert out["weight"] == 1250.5
    assert out["freight_type"] is FreightType.SEA


@pytest.mark.parametrize("raw, status", [("new", RfqStatus.NEW), ("Quoted", RfqStatus.QUOTED), (" closed ", RfqStatus.CLOSED)])
def test_parse_rfq_status(raw, status):
    assert parse_rfq_status(raw) is status


def test_parse_rfq_status_rejects_unknown_values():
    with pytest.raises(ValidationError) as exc:
        parse_rfq_status("Archived")
    assert exc.value.code == "invalid_status"


def test_submission_id_format():
    sid = new_submission_id(now_ms=1_720_000_000_000)
    assert re.fullmatch(r"RFQ-1720000000000-[A-Z0-9]{5}", sid)
    assert new_submission_id() != new_submission_id()
