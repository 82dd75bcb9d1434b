from __future__ import annotations

import secrets

from app.economy.payments.types import GatewayConfirmation
from app.services.payment_gateway import SUCCESSFUL_TRANSACTION_STATUS, coerce_amount

WEBHOOK_SIGNATURE_HEADER = "verif-hash"
CHARGE_COMPLETED_EVENT = "charge.completed"


def is_valid_webhook_signature(*, expected_secret: str, received_signature: str | None) -> bool:
    if not expected_secret or not received_signature:
        return False
    return secrets.compare_digest(expected_secret, received_signature)


def extract_webhook_confirmation(payload: object) -> GatewayConfirmation | None:
    """Map a provider webhook body onto a confirmation; ``None`` for events we do not settle."""
    if not isinstance(payload, dict):
        return None

    event = payload.get("event")
    if event is not None and event != CHARGE_COMPLETED_EVENT:
        return None

    data = payload.get("data")
    if not isinstance(data, dict):
        return None

    external_ref = data.get("tx_ref")
    if not isinstance(external_ref, str) or not external_ref:
        return None

    provider_transaction_id = data.get("id")
    currency = data.get("currency")
    amount = coerce_amount(data.get("amount"))
    return GatewayConfirmation(
        external_ref=external_ref,
        success=data.get("status") == SUCCESSFUL_TRANSACTION_STATUS,
        provider_transaction_id=str(provider_transaction_id) if provider_transaction_id is not None else None,
        amount=amount,
        amount_unreadable="amount" in data and amount is None,
        currency=currency if isinstance(currency, str) else None,
        raw=data,
    )
