"""
Prompt Builder - Health & Version Router

Endpoints:
- GET /api/version - Name and version of the running build
- GET /health - Liveness probe
- GET /readiness - Readiness probe (database + LLM providers)
- GET /metrics - Prometheus metrics or JSON summary
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from sqlalchemy import text
from sqlalchemy.orm import Session

from constants import __version__, APP_NAME
from database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


def _database_reachable(db: Session) -> bool:
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database probe failed: {e}")
        return False


def _readiness_status(database_ok: bool, providers_ok: bool) -> str:
    if not database_ok:
        return "unhealthy"
    return "ready" if providers_ok else "degraded"


@router.get("/api/version")
async def get_version():
    return {"version": __version__, "name": APP_NAME}


@router.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Liveness probe. 503 when the database cannot answer a trivial query."""
    if not _database_reachable(db):
        return JSONResponse(status_code=503, content={"status": "unhealthy"})
    return {"status": "healthy", "version": __version__, "timestamp": datetime.utcnow().isoformat()}


@router.get("/readiness")
async def readiness_check(db: Session = Depends(get_db)):
    """
    Readiness probe.

    Only the database is critical. Losing every LLM provider reports
    "degraded" with a 200 so the instance stays in rotation for prompt CRUD.
    """
    checks = {"database": _database_reachable(db)}

    try:
        from llm_factory import get_llm_manager, is_skip_ai_request
        manager = get_llm_manager()
        checks["llm_providers"] = bool(manager.get_available_providers())
        checks["mock_mode"] = is_skip_ai_request()
    except Exception as e:
        logger.warning(f"LLM manager unavailable during readiness check: {e}")
        checks["llm_providers"] = False

    body = {
        "status": _readiness_status(checks["database"], checks["llm_providers"]),
        "version": __version__,
        "checks": checks,
    }
    return JSONResponse(status_code=200 if checks["database"] else 503, content=body)


@router.get("/metrics")
async def metrics_endpoint():
    """Prometheus text format when METRICS_ENABLED=true, otherwise a JSON summary."""
    from metrics import METRICS_ENABLED, CONTENT_TYPE_LATEST, generate_latest, get_metrics_summary

    if METRICS_ENABLED:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
    return get_metrics_summary()
