# backend/backoffice/routes/system.py
"""
System health endpoint.

Reports database connectivity and whether the stock ledger still explains
every product's stock.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..services.ledger_service import find_ledger_discrepancies
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2)}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


def check_ledger_health() -> dict:
    """Degraded (not unhealthy) when the ledger misses stock movements."""
    try:
        problems = find_ledger_discrepancies()
    except Exception:
        current_app.logger.exception("Ledger health check failed")
        return {"status": "unhealthy", "error": "Ledger check error"}

    if problems:
        return {
            "status": "degraded",
            "warning": f"{len(problems)} product(s) with unexplained stock movement",
            "details": {"product_ids": [p["product_id"] for p in problems]},
        }
    return {"status": "healthy"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    ledger_health = (
        check_ledger_health()
        if database_health["status"] == "healthy"
        else {"status": "unhealthy", "error": "Database unavailable"}
    )

    all_checks = [database_health, ledger_health]
    if any(check["status"] == "unhealthy" for check in all_checks):
        overall_status, http_status = "unhealthy", 503
    elif any(check["status"] == "degraded" for check in all_checks):
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": {
            "database": database_health,
            "stock_ledger": ledger_health,
        },
    }, http_status
