from app.economy.errors import EconomyError, NotFoundError


class ContentNotFoundError(NotFoundError):
    pass


class InvalidPricingError(EconomyError):
    pass
