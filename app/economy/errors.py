class EconomyError(Exception):
    pass


class NotFoundError(EconomyError):
    pass


class UserNotFoundError(NotFoundError):
    pass
