from app.db.repo.content_repo import ContentRepo
from app.db.repo.pending_payments_repo import PendingPaymentsRepo
from app.db.repo.purchase_records_repo import PurchaseRecordsRepo
from app.db.repo.reconciliation_runs_repo import ReconciliationRunsRepo
from app.db.repo.users_repo import UsersRepo
from app.db.repo.wallet_repo import WalletRepo

__all__ = [
    "ContentRepo",
    "PendingPaymentsRepo",
    "PurchaseRecordsRepo",
    "ReconciliationRunsRepo",
    "UsersRepo",
    "WalletRepo",
]
