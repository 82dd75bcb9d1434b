from app.economy.access.service import AccessService
from app.economy.catalog.service import CatalogService
from app.economy.payments.service import PaymentService
from app.economy.purchases.service import PurchaseService
from app.economy.wallet.service import WalletService

__all__ = [
    "AccessService",
    "CatalogService",
    "PaymentService",
    "PurchaseService",
    "WalletService",
]
