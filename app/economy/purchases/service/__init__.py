from __future__ import annotations

from .builder import _as_purchase_result, _build_record
from .coverage import find_covering_record, snapshot_for_target
from .grant import _ensure_not_owned, _price_target, grant_entitlement
from .history import list_purchases
from .purchase import purchase_with_wallet
from .refund import refund_purchase


class PurchaseService:
    _build_record = staticmethod(_build_record)
    _as_purchase_result = staticmethod(_as_purchase_result)
    _price_target = staticmethod(_price_target)
    _ensure_not_owned = staticmethod(_ensure_not_owned)
    find_covering_record = staticmethod(find_covering_record)
    snapshot_for_target = staticmethod(snapshot_for_target)
    grant_entitlement = staticmethod(grant_entitlement)
    purchase_with_wallet = staticmethod(purchase_with_wallet)
    list_purchases = staticmethod(list_purchases)
    refund_purchase = staticmethod(refund_purchase)


__all__ = ["PurchaseService"]
