from app.economy.errors import EconomyError


class PaymentError(EconomyError):
    pass


class InvalidSignatureError(PaymentError):
    pass


class DuplicateSettlementError(PaymentError):
    pass


class GatewayUnavailableError(PaymentError):
    pass


class GatewayRejectedError(PaymentError):
    pass
