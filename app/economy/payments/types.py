from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from uuid import UUID


class PaymentPurpose(str, Enum):
    WALLET_TOPUP = "WALLET_TOPUP"
    CONTENT_PURCHASE = "CONTENT_PURCHASE"


class SettlementOutcome(str, Enum):
    TOPUP_CREDITED = "TOPUP_CREDITED"
    CONTENT_GRANTED = "CONTENT_GRANTED"
    REFUNDED_ALREADY_OWNED = "REFUNDED_ALREADY_OWNED"
    FAILED = "FAILED"
    IGNORED = "IGNORED"


EXTERNAL_REF_PREFIXES = {
    PaymentPurpose.WALLET_TOPUP: "WALLET",
    PaymentPurpose.CONTENT_PURCHASE: "CINE",
}


@dataclass(slots=True, frozen=True)
class GatewayConfirmation:
    external_ref: str
    success: bool
    provider_transaction_id: str | None = None
    amount: Decimal | int | None = None
    currency: str | None = None
    raw: dict[str, object] | None = None
    # Provider sent an amount that could not be read as a number.
    amount_unreadable: bool = False


@dataclass(slots=True)
class PaymentInitiationResult:
    payment_id: UUID
    external_ref: str
    purpose: str
    amount: int
    currency: str
    redirect_link: str


@dataclass(slots=True)
class SettlementResult:
    external_ref: str
    outcome: SettlementOutcome
    payment_status: str | None
    purpose: str | None
    user_id: int | None = None
    purchase_record_id: UUID | None = None
    idempotent_replay: bool = False
