# backend/simdesk/routes/system.py
"""
System health and version endpoints.
"""

import sys
import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import User, SessionToken
from ..services.app_store import get_app_store
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def check_database_health() -> dict:
    """
    Check database connectivity with a couple of cheap counts.
    """
    start_time = time.time()
    try:
        user_count = db.session.query(User).count()
        active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "users": user_count,
                "active_sessions": active_sessions,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_app_store_health() -> dict:
    """Report whether the cached collections are loaded and how big they are."""
    store = get_app_store()
    if not store.loaded:
        return {"status": "degraded", "warning": "Collections not loaded"}
    return {
        "status": "healthy",
        "details": {
            "product_types": len(store.product_types),
            "batches": len(store.batches),
            "customers": len(store.customers),
            "orders": len(store.orders),
            "transactions": len(store.transactions),
            "due_date_logs": len(store.due_date_logs),
        }
    }


@system_bp.get("/health")
def health():
    """
    Health check.

    Returns:
    - 200: healthy, or degraded (store not loaded yet; still operational)
    - 503: database unreachable
    """
    start_time = time.time()

    database_health = check_database_health()
    store_health = check_app_store_health()

    checks = [database_health, store_health]
    if any(check["status"] == "unhealthy" for check in checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "app_store": store_health,
        }
    }, http_status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment information."""
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": API_VERSION,
        "environment": env,
        "python_version": sys.version.split()[0],
        "server_time": to_utc_z(utcnow()),
    }
