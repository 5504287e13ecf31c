# Overview: Shared helpers for API routes; per-request entity store and error-to-status mapping.

from flask import current_app, g

from ..errors import (
    AuthenticationError,
    ConflictError,
    DeviceLimitError,
    InsufficientBalanceError,
    NotFoundError,
    PartialWriteError,
    PermissionDeniedError,
    ReferentialIntegrityError,
    ShopError,
    ValidationError,
)
from ..extensions import db
from ..services.entity_store import EntityStore

EVENT_BUS_KEY = "shopdesk.events"

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (ReferentialIntegrityError, 409),
    (ConflictError, 409),
    (DeviceLimitError, 409),
    (InsufficientBalanceError, 422),
    (PartialWriteError, 500),
)


def get_store() -> EntityStore:
    """One EntityStore per request, bound to the request's session and the app's event bus."""
    if "store" not in g:
        g.store = EntityStore(db.session, current_app.extensions[EVENT_BUS_KEY])
    return g.store


def error_response(exc: ShopError):
    status = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = code
            break

    body = {"error": str(exc)}
    if isinstance(exc, DeviceLimitError):
        body.update({"code": "MAX_DEVICES_REACHED", "devices": exc.devices, "limit": exc.limit})
    elif isinstance(exc, InsufficientBalanceError):
        body.update({"available": str(exc.available), "requested": str(exc.requested)})
    elif isinstance(exc, PartialWriteError):
        current_app.logger.error("Partial write in %s: %s", exc.operation, exc.completed_steps)
        body.update({"completed_steps": exc.completed_steps, "rolled_back": exc.rolled_back})
    return body, status


def parse_limit(raw, default: int, maximum: int = 100) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("limit must be an integer")
    if value < 1:
        raise ValidationError("limit must be at least 1")
    return min(value, maximum)
