from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.economy.payments.service.settlement import _amount_matches
from app.services.gateway_signatures import (
    extract_webhook_confirmation,
    is_valid_webhook_signature,
)


def _payload(**data_overrides: object) -> dict[str, object]:
    data: dict[str, object] = {
        "id": 998,
        "tx_ref": "CINE-7f1",
        "status": "successful",
        "amount": 1275,
        "currency": "RWF",
    }
    data.update(data_overrides)
    return {"event": "charge.completed", "data": data}


def test_is_valid_webhook_signature_requires_exact_secret() -> None:
    assert is_valid_webhook_signature(expected_secret="hash", received_signature="hash") is True
    assert is_valid_webhook_signature(expected_secret="hash", received_signature="other") is False
    assert is_valid_webhook_signature(expected_secret="hash", received_signature=None) is False
    assert is_valid_webhook_signature(expected_secret="", received_signature="") is False


def test_extract_webhook_confirmation_maps_charge_completed() -> None:
    confirmation = extract_webhook_confirmation(_payload())

    assert confirmation is not None
    assert confirmation.external_ref == "CINE-7f1"
    assert confirmation.success is True
    assert confirmation.provider_transaction_id == "998"
    assert confirmation.amount == 1275
    assert confirmation.currency == "RWF"


def test_extract_webhook_confirmation_marks_failed_charge_unsuccessful() -> None:
    confirmation = extract_webhook_confirmation(_payload(status="failed"))

    assert confirmation is not None
    assert confirmation.success is False


def test_extract_webhook_confirmation_ignores_other_events_and_bad_bodies() -> None:
    assert extract_webhook_confirmation({"event": "transfer.completed", "data": {"tx_ref": "x"}}) is None
    assert extract_webhook_confirmation({"event": "charge.completed", "data": {}}) is None
    assert extract_webhook_confirmation({"event": "charge.completed"}) is None
    assert extract_webhook_confirmation(["not", "a", "dict"]) is None


def test_extract_webhook_confirmation_reads_fractional_and_string_amounts() -> None:
    fractional = extract_webhook_confirmation(_payload(amount=999.5))
    textual = extract_webhook_confirmation(_payload(amount="10"))

    assert fractional is not None
    assert fractional.amount == Decimal("999.5")
    assert fractional.amount_unreadable is False
    assert textual is not None
    assert textual.amount == Decimal("10")


def test_extract_webhook_confirmation_flags_unreadable_amount() -> None:
    confirmation = extract_webhook_confirmation(_payload(amount="1,000 RWF"))

    assert confirmation is not None
    assert confirmation.amount is None
    assert confirmation.amount_unreadable is True


@pytest.mark.parametrize(
    ("amount", "expected"),
    [
        (999.5, False),
        ("10", False),
        (1.5, False),
        ("1,000 RWF", False),
        (1000, True),
        ("1000.00", True),
        (1000.5, True),
    ],
)
def test_webhook_amount_must_cover_pending_payment(amount: object, expected: bool) -> None:
    pending = SimpleNamespace(amount=1000, currency="RWF")
    confirmation = extract_webhook_confirmation(_payload(amount=amount))

    assert confirmation is not None
    assert _amount_matches(pending, confirmation) is expected


def test_webhook_without_amount_is_checked_on_currency_only() -> None:
    pending = SimpleNamespace(amount=1000, currency="RWF")
    payload = _payload(currency="USD")
    del payload["data"]["amount"]
    confirmation = extract_webhook_confirmation(payload)

    assert confirmation is not None
    assert confirmation.amount_unreadable is False
    assert _amount_matches(pending, confirmation) is False
