# backend/services/errors.py
"""Domain errors raised by the service layer.

Routes never see SQLAlchemy exceptions: persistence failures surface as
StorageError, everything else as one of the classes below. main.py maps
them onto HTTP status codes.
"""


class StoreError(Exception):
    """Base class for storefront domain errors."""


class ValidationError(StoreError):
    """Bad or duplicate input (duplicate serial, quantity < 1, ...)."""


class NotFoundError(StoreError):
    """A referenced product, order, unit or code does not exist."""


class EmptyCartError(ValidationError):
    """Checkout attempted with nothing in the cart."""


class InvalidStatusTransition(ValidationError):
    """Order status change not allowed from the current status."""


class OutOfStockError(StoreError):
    """No available inventory unit left to assign.

    Checkout recovers from this by shipping the line without a serial.
    """


class StorageError(StoreError):
    """Unclassified persistence failure; the unit of work was rolled back."""
