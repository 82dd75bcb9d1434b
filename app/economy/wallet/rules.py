from __future__ import annotations

from dataclasses import replace

from app.economy.wallet.constants import TRANSACTION_KINDS
from app.economy.wallet.errors import InsufficientFundsError, InvalidAmountError
from app.economy.wallet.types import DebitSplit, WalletSnapshot


def validate_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(f"amount must be a positive integer, got {amount!r}")
    return amount


def validate_kind(kind: str) -> str:
    if kind not in TRANSACTION_KINDS:
        raise ValueError(f"unknown wallet transaction kind: {kind}")
    return kind


def split_debit(snapshot: WalletSnapshot, *, amount: int) -> DebitSplit:
    """Bonus pool is always drained first, primary covers the remainder."""
    validate_amount(amount)
    if snapshot.total < amount:
        raise InsufficientFundsError(required=amount, available=snapshot.total)

    from_bonus = min(snapshot.bonus, amount)
    return DebitSplit(bonus=from_bonus, primary=amount - from_bonus)


def apply_debit(snapshot: WalletSnapshot, split: DebitSplit) -> WalletSnapshot:
    return replace(
        snapshot,
        primary=snapshot.primary - split.primary,
        bonus=snapshot.bonus - split.bonus,
    )


def apply_credit(snapshot: WalletSnapshot, *, amount: int, to_bonus: bool) -> WalletSnapshot:
    validate_amount(amount)
    if to_bonus:
        return replace(snapshot, bonus=snapshot.bonus + amount)
    return replace(snapshot, primary=snapshot.primary + amount)
