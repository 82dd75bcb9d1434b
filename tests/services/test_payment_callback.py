from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from app.economy.payments.service import callback
from app.economy.payments.types import GatewayConfirmation, SettlementOutcome

NOW_UTC = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


class _Gateway:
    def __init__(self, external_ref: str) -> None:
        self.external_ref = external_ref
        self.calls: list[str] = []

    async def verify(self, *, provider_transaction_id: str) -> GatewayConfirmation:
        self.calls.append(provider_transaction_id)
        return GatewayConfirmation(
            external_ref=self.external_ref,
            success=True,
            provider_transaction_id=provider_transaction_id,
            amount=1500,
            currency="RWF",
        )


@pytest.mark.asyncio
async def test_verify_callback_returns_confirmation_for_matching_reference() -> None:
    gateway = _Gateway("WALLET-abc")

    confirmation = await callback.verify_callback(
        gateway=gateway,
        external_ref="WALLET-abc",
        provider_transaction_id="77",
    )

    assert confirmation is not None
    assert confirmation.provider_transaction_id == "77"
    assert gateway.calls == ["77"]


@pytest.mark.asyncio
async def test_verify_callback_drops_confirmation_for_another_reference() -> None:
    confirmation = await callback.verify_callback(
        gateway=_Gateway("WALLET-other"),
        external_ref="WALLET-abc",
        provider_transaction_id="77",
    )

    assert confirmation is None


@pytest.mark.asyncio
async def test_settle_callback_without_confirmation_reports_current_status(monkeypatch) -> None:
    async def _fake_get_by_external_ref(session, external_ref: str):  # noqa: ARG001
        return SimpleNamespace(status="PENDING", purpose="WALLET_TOPUP", user_id=9)

    async def _fail_settle(*args, **kwargs):  # noqa: ARG001
        raise AssertionError("a mismatched callback must not be settled")

    monkeypatch.setattr(callback.PendingPaymentsRepo, "get_by_external_ref", _fake_get_by_external_ref)
    monkeypatch.setattr(callback, "settle_confirmation", _fail_settle)

    result = await callback.settle_callback(
        object(),
        external_ref="WALLET-abc",
        confirmation=None,
        now_utc=NOW_UTC,
    )

    assert result.outcome is SettlementOutcome.IGNORED
    assert (result.payment_status, result.user_id) == ("PENDING", 9)
