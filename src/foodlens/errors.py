"""Exception types shared across the data layer."""


class FoodLensError(Exception):
    """Base exception for data layer operations."""


class NoUserError(FoodLensError):
    """The operation needs an active user and none is set."""

    def __init__(self, message: str = "No user"):
        super().__init__(message)


class MissingIdError(FoodLensError):
    """A favorite record carries no usable meal id."""

    def __init__(self, message: str = "No meal id"):
        super().__init__(message)


class RemoteProcedureError(FoodLensError):
    """A remote procedure call returned an error."""

    def __init__(self, message: str | None = None,
                 procedure: str | None = None):
        self.message = message or ""
        self.procedure = procedure
        super().__init__(self.message)


class CacheDeserializationError(FoodLensError):
    """A cached lookup row holds JSON that cannot be decoded."""


class ProviderError(FoodLensError):
    """An external product lookup provider failed."""
