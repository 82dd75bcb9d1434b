from app.economy.errors import EconomyError, NotFoundError


class PurchaseError(EconomyError):
    pass


class AlreadyOwnedError(PurchaseError):
    pass


class FreeContentError(PurchaseError):
    pass


class PurchaseNotFoundError(NotFoundError):
    pass
