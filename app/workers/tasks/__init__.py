from app.workers.tasks.payments_reliability import (
    recover_stale_pending_payments,
    run_wallet_reconciliation,
)

__all__ = [
    "recover_stale_pending_payments",
    "run_wallet_reconciliation",
]
