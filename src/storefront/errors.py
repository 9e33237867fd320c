"""Error taxonomy for storefront operations.

Every error carries a ``messages`` dict keyed by field, like Protean's own
``ValidationError``. The HTTP layer maps them to status codes:

    ValidationError, InsufficientStockError -> 400
    NotFoundError                           -> 404
    ConflictError                           -> 409
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class InsufficientStockError(ValidationError):
    """Stock on hand is below the units a line item needs."""


class NotFoundError(ObjectNotFoundError):
    """A product, order or zone referenced by a command does not exist."""

    def __init__(self, messages, **kwargs):
        self.messages = messages
        super().__init__(messages, **kwargs)


class ConflictError(InvalidOperationError):
    """The requested transition is not allowed from the aggregate's current state."""

    def __init__(self, messages, **kwargs):
        self.messages = messages
        super().__init__(messages, **kwargs)


__all__ = [
    "ConflictError",
    "InsufficientStockError",
    "NotFoundError",
    "ValidationError",
]
