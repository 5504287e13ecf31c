# Overview: Exception types raised by the store, ledger, payment and account services.

from __future__ import annotations


class ShopError(Exception):
    """Base class for every error the services raise to their callers."""


class ValidationError(ShopError, ValueError):
    """400-level input problem."""


class NotFoundError(ShopError, LookupError):
    """A referenced record does not exist."""

    def __init__(self, collection: str, entity_id):
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(f"{collection} record {entity_id} not found")


class ReferentialIntegrityError(ShopError):
    """Delete blocked because another record still references the target."""


class ConflictError(ShopError, ValueError):
    """409-level business rule conflict (e.g., duplicate email)."""


class InsufficientBalanceError(ShopError):
    """Wallet payment exceeds the customer's wallet balance."""

    def __init__(self, available, requested):
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient wallet balance. Available: {available:.2f}, requested: {requested:.2f}")


class PartialWriteError(ShopError):
    """
    A multi-step operation failed after some of its writes were issued.

    completed_steps names the sub-steps that had already been written when the
    failure happened. rolled_back tells the caller whether those writes were
    undone by the enclosing transaction.
    """

    def __init__(self, operation: str, completed_steps: list[str], *, rolled_back: bool, cause: Exception | None = None):
        self.operation = operation
        self.completed_steps = list(completed_steps)
        self.rolled_back = rolled_back
        self.cause = cause
        state = "rolled back" if rolled_back else "left in place"
        done = ", ".join(self.completed_steps) or "none"
        super().__init__(f"{operation} failed after steps [{done}] ({state})")


class AuthenticationError(ShopError):
    """Bad credentials, expired token or deactivated account."""


class PermissionDeniedError(ShopError):
    """Authenticated user lacks the role an operation requires."""


class DeviceLimitError(ShopError):
    """Sign-in refused because the user already has the maximum number of devices."""

    def __init__(self, devices: list, limit: int):
        self.devices = devices
        self.limit = limit
        super().__init__("MAX_DEVICES_REACHED")
