# backend/nibso/routes/system.py
"""
System health and version endpoints.

Provides health checks for storage and the text-generation configuration,
plus version information for deployment debugging.
"""

import sys
import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..models import KeyValueEntry, SaleEvent
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    """
    Check database connectivity and the two tables the ledgers rely on.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        kv_count = db.session.query(KeyValueEntry).count()
        event_count = db.session.query(SaleEvent).count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "stored_keys": kv_count,
                "sale_events": event_count,
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


def check_text_service_health() -> dict:
    """
    Text generation is optional: a missing API key degrades receipts and
    insights but never blocks sales.
    """
    if not current_app.config.get("GEMINI_API_KEY"):
        return {"status": "degraded", "warning": "GEMINI_API_KEY not configured"}
    return {"status": "healthy", "details": {"model": current_app.config.get("GEMINI_MODEL")}}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: healthy or degraded (still operational)
    - 503: database unavailable
    """
    start_time = time.time()

    database_health = check_database_health()
    text_health = check_text_service_health()

    all_checks = [database_health, text_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "text_service": text_health,
        }
    }, http_status


@system_bp.get("/version")
def version():
    """
    Version endpoint for deployment debugging.

    Does NOT expose secret keys, API keys or database credentials.
    """
    env = "production" if not current_app.debug else "development"

    return {
        "api_version": "1.0.0",
        "environment": env,
        "business_type": current_app.config.get("BUSINESS_TYPE"),
        "python_version": sys.version.split()[0],
        "server_time": utcnow().isoformat() + "Z",
    }
