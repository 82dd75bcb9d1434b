from app.economy.errors import EconomyError


class WalletError(EconomyError):
    pass


class InvalidAmountError(WalletError):
    pass


class InsufficientFundsError(WalletError):
    def __init__(self, *, required: int, available: int) -> None:
        super().__init__(f"required={required} available={available}")
        self.required = required
        self.available = available


class IdempotencyConflictError(WalletError):
    """The key already belongs to a different wallet mutation."""
