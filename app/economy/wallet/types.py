from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class WalletSnapshot:
    primary: int
    bonus: int

    @property
    def total(self) -> int:
        return self.primary + self.bonus


@dataclass(slots=True, frozen=True)
class DebitSplit:
    bonus: int
    primary: int

    @property
    def total(self) -> int:
        return self.bonus + self.primary


@dataclass(slots=True)
class WalletBalance:
    user_id: int
    primary: int
    bonus: int
    total: int
    currency: str


@dataclass(slots=True)
class WalletMutationResult:
    user_id: int
    transaction_id: int | None
    kind: str
    delta: int
    primary_delta: int
    bonus_delta: int
    balance: WalletBalance
    idempotent_replay: bool
