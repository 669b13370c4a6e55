"""Typed errors raised by the inventory core."""


class InventoryError(Exception):
    """Base class for inventory errors callers can match on."""


class IncompatibleUnitError(InventoryError):
    """Arithmetic was attempted across unit families."""


class InvalidRequestError(InventoryError):
    """A request exceeds what is available or changes nothing."""


class InsufficientQuantityError(InventoryError):
    """A subtraction would produce a negative quantity."""


class ConcurrencyConflictError(InventoryError):
    """Stored packages changed after the diff was planned."""


class TransferInvariantError(InventoryError):
    """A planned diff failed its conservation check."""

    def __init__(self, message: str, context: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


class ItemNotFoundError(InventoryError):
    """The referenced group, bucket or package does not exist."""


class EstimationError(Exception):
    """The nutrition estimator could not produce a result."""


class RateLimitExceededError(Exception):
    """The user made too many estimator requests in the current window."""
