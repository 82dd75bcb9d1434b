from app.db.models.content import ContentItem, Episode, Season
from app.db.models.pending_payments import PendingPayment
from app.db.models.purchases import PurchaseRecord
from app.db.models.reconciliation_runs import ReconciliationRun
from app.db.models.users import User
from app.db.models.wallet_accounts import WalletAccount
from app.db.models.wallet_transactions import WalletTransaction

__all__ = [
    "ContentItem",
    "Episode",
    "PendingPayment",
    "PurchaseRecord",
    "ReconciliationRun",
    "Season",
    "User",
    "WalletAccount",
    "WalletTransaction",
]
