KIND_WELCOME_BONUS = "WELCOME_BONUS"
KIND_ADMIN_ADJUSTMENT = "ADMIN_ADJUSTMENT"
KIND_PURCHASE = "PURCHASE"
KIND_REFUND = "REFUND"
KIND_TOPUP = "TOPUP"
KIND_BONUS = "BONUS"

TRANSACTION_KINDS = frozenset(
    {
        KIND_WELCOME_BONUS,
        KIND_ADMIN_ADJUSTMENT,
        KIND_PURCHASE,
        KIND_REFUND,
        KIND_TOPUP,
        KIND_BONUS,
    }
)

WELCOME_BONUS_DESCRIPTION = "Welcome bonus"
