class ServiceError(Exception):
    """Base for expected, user-facing failures.

    The message is shown to the caller as-is.
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message


class NotAuthenticated(ServiceError):
    pass


class NotFound(ServiceError):
    """Record is absent or belongs to someone else."""


class Expired(ServiceError):
    """Record existed but its validity window has lapsed."""


class QuotaExceeded(ServiceError):
    def __init__(self, message: str, limit: int):
        super().__init__(message)
        self.limit = limit


class InvalidInput(ServiceError):
    pass


class ImmutableField(ServiceError):
    pass


class UpstreamError(ServiceError):
    """The store or an outside service failed."""


class AccountCreationError(UpstreamError):
    pass
