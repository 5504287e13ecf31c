# Overview: System health and ledger journal endpoints.

import time

from flask import Blueprint, current_app, request

from ..decorators import require_auth, require_role
from ..errors import ShopError
from ..extensions import db
from ..models import Customer, Invoice, Product
from ..models.auth import ROLE_ADMIN, ROLE_SUB_ADMIN
from ..services import ledger_service
from ..time_utils import to_utc_z, utcnow
from . import error_response, parse_limit

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity with a few cheap counts.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        details = {
            "products": db.session.query(Product).count(),
            "customers": db.session.query(Customer).count(),
            "invoices": db.session.query(Invoice).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


@system_bp.get("/health")
def health():
    return {"status": "ok"}, 200


@system_bp.get("/api/health")
def api_health():
    database = check_database_health()
    status = 200 if database["status"] == "healthy" else 503
    return {
        "status": "ok" if status == 200 else "degraded",
        "timestamp": to_utc_z(utcnow()),
        "database": database,
    }, status


@system_bp.get("/api/ledger-events")
@require_auth
@require_role(ROLE_ADMIN, ROLE_SUB_ADMIN)
def ledger_events_route():
    """
    Query params: entity_type, entity_id, event_type, limit (default 100).
    """
    try:
        limit = parse_limit(request.args.get("limit"), 100, maximum=500)
    except ShopError as e:
        return error_response(e)
    events = ledger_service.list_ledger_events(
        entity_type=request.args.get("entity_type"),
        entity_id=request.args.get("entity_id"),
        event_type=request.args.get("event_type"),
        limit=limit,
    )
    return {"items": [e.to_dict() for e in events]}, 200
