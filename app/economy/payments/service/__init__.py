from __future__ import annotations

from .callback import settle_callback, verify_callback
from .initiation import build_external_ref, initiate_content_purchase, initiate_wallet_topup
from .settlement import (
    record_verify_failure,
    remember_provider_transaction,
    settle_confirmation,
    settle_webhook,
)


class PaymentService:
    build_external_ref = staticmethod(build_external_ref)
    initiate_wallet_topup = staticmethod(initiate_wallet_topup)
    initiate_content_purchase = staticmethod(initiate_content_purchase)
    verify_callback = staticmethod(verify_callback)
    settle_callback = staticmethod(settle_callback)
    settle_confirmation = staticmethod(settle_confirmation)
    settle_webhook = staticmethod(settle_webhook)
    record_verify_failure = staticmethod(record_verify_failure)
    remember_provider_transaction = staticmethod(remember_provider_transaction)


__all__ = ["PaymentService"]
