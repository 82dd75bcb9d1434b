from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True, slots=True)
class WalletDrift:
    user_id: int
    primary_balance: int
    bonus_balance: int
    primary_sum: int
    bonus_sum: int

    @property
    def primary_gap(self) -> int:
        return self.primary_balance - self.primary_sum

    @property
    def bonus_gap(self) -> int:
        return self.bonus_balance - self.bonus_sum


def build_wallet_drifts(rows: Iterable[tuple[int, int, int, int, int]]) -> list[WalletDrift]:
    drifts = [
        WalletDrift(
            user_id=user_id,
            primary_balance=primary_balance,
            bonus_balance=bonus_balance,
            primary_sum=primary_sum,
            bonus_sum=bonus_sum,
        )
        for user_id, primary_balance, bonus_balance, primary_sum, bonus_sum in rows
    ]
    return [drift for drift in drifts if drift.primary_gap != 0 or drift.bonus_gap != 0]


def compute_reconciliation_diff(*, drifted_accounts: int, stuck_pending_count: int) -> int:
    return max(0, drifted_accounts) + max(0, stuck_pending_count)


def reconciliation_status(diff_count: int) -> str:
    return "OK" if diff_count == 0 else "DIFF"
