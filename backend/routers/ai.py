"""
Prompt Builder - AI Router

Endpoints:
- POST /api/ai/improve - Tighten or expand a prompt with an LLM
- POST /api/ai/generate - Create a prompt from a description
- GET  /api/ai/monitoring - Provider health and usage stats
- GET  /api/ai/usage - Caller's quota, usage stats and reset countdown

Request bodies for improve/generate are parsed by hand so every
validation failure returns its own 400 message.
"""

import logging
from datetime import datetime
from typing import Optional, Dict, Any
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ai_usage import (
    get_or_create_quota, can_use_operation, record_quota_usage,
    log_ai_usage, get_quota_status, get_usage_stats, get_recent_usage,
    get_time_until_reset,
)
from constants import MAX_TOKENS_LIMIT, MAX_TEMPERATURE
from database import get_db
from dependencies import get_current_user
from input_sanitizer import validate_prompt
from llm_factory import improve_prompt, generate_prompt, get_provider_health, get_provider_stats
from llm_types import ImproveMode, LLMResponse
from metrics import track_ai_call, track_quota_rejection
from schemas.ai import ImproveResponse, GenerateResponse, UsageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI"])

DEFAULT_MAX_TOKENS = 1000
DEFAULT_GENERATE_MAX_TOKENS = 500
DEFAULT_TEMPERATURE = 0.7
MONITORING_TYPES = ("health", "stats", "all")


# =============================================================================
# REQUEST PARSING
# =============================================================================

async def _read_json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON in request body")
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Invalid JSON in request body")
    return body


def _require_text(body: Dict[str, Any], key: str, label: str) -> str:
    value = body.get(key)
    if value is None or not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"{label} is required")
    if not value.strip():
        raise HTTPException(status_code=400, detail=f"{label} cannot be empty")
    return value


def _parse_generation_options(body: Dict[str, Any], default_max_tokens: int = DEFAULT_MAX_TOKENS) -> Dict[str, Any]:
    """Validate max_tokens / temperature / model, accepting camelCase keys too."""
    max_tokens = body.get("max_tokens", body.get("maxTokens"))
    if max_tokens is None:
        max_tokens = default_max_tokens
    elif (
        isinstance(max_tokens, bool)
        or not isinstance(max_tokens, int)
        or not 1 <= max_tokens <= MAX_TOKENS_LIMIT
    ):
        raise HTTPException(status_code=400, detail=f"maxTokens must be between 1 and {MAX_TOKENS_LIMIT}")

    temperature = body.get("temperature")
    if temperature is None:
        temperature = DEFAULT_TEMPERATURE
    elif (
        isinstance(temperature, bool)
        or not isinstance(temperature, (int, float))
        or not 0 <= temperature < MAX_TEMPERATURE
    ):
        raise HTTPException(status_code=400, detail="temperature must be between 0 and 2")

    model = body.get("model")
    if model is not None and not isinstance(model, str):
        raise HTTPException(status_code=400, detail="model must be a string")

    use_fallback = body.get("use_fallback", body.get("useFallback"))
    if use_fallback is None:
        use_fallback = False
    elif not isinstance(use_fallback, bool):
        raise HTTPException(status_code=400, detail="useFallback must be a boolean")

    return {
        "max_tokens": max_tokens,
        "temperature": float(temperature),
        "model": model or None,
        "use_fallback": use_fallback,
    }


def _sanitize(text: str) -> str:
    result = validate_prompt(text)
    if not result.valid:
        raise HTTPException(status_code=400, detail=result.reason)
    return result.sanitized


# =============================================================================
# SHARED CALL FLOW
# =============================================================================

def _check_quota(db: Session, current_user: dict, operation: str, message: str) -> None:
    quota = get_or_create_quota(db, current_user["id"], current_user.get("tier"))
    if not can_use_operation(quota, operation):
        track_quota_rejection(operation)
        logger.info(f"Quota exhausted for user {current_user['id']} ({operation})")
        raise HTTPException(status_code=429, detail=message)


def _record_success(db: Session, user_id: int, operation: str, response: LLMResponse) -> None:
    usage = response.usage
    log_ai_usage(
        db, user_id, operation,
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
        cost_cents=usage.cost_cents,
        provider=response.provider,
        model=response.model,
        success=True,
        response_time_ms=response.response_time_ms,
    )
    record_quota_usage(
        db, user_id, operation, usage.input_tokens, usage.output_tokens, usage.cost_cents
    )
    track_ai_call(
        response.provider, response.model,
        cost_cents=usage.cost_cents,
        duration=response.response_time_ms / 1000,
        success=True,
    )


def _record_failure(db: Session, user_id: int, operation: str, error: Exception) -> None:
    log_ai_usage(db, user_id, operation, success=False, error_message=str(error))
    track_ai_call("unknown", "unknown", success=False)


def _response_payload(response: LLMResponse, text_key: str) -> Dict[str, Any]:
    return {
        "success": True,
        text_key: response.content,
        "usage": response.usage.to_dict(),
        "provider": response.provider,
        "model": response.model,
        "response_time_ms": response.response_time_ms,
    }


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/improve", response_model=ImproveResponse)
async def improve(
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Tighten or expand a prompt. Counts against the monthly improve quota."""
    body = await _read_json_body(request)
    prompt = _require_text(body, "prompt", "Prompt")

    mode = body.get("mode")
    if mode not in (ImproveMode.TIGHTEN.value, ImproveMode.EXPAND.value):
        raise HTTPException(status_code=400, detail='Mode is required and must be "tighten" or "expand"')

    options = _parse_generation_options(body)
    prompt = _sanitize(prompt)

    _check_quota(db, current_user, mode, "Monthly AI improvement limit reached")

    try:
        response = await improve_prompt(prompt, mode, **options)
    except Exception as e:
        logger.error(f"AI improve failed for user {current_user['id']}: {e}")
        _record_failure(db, current_user["id"], mode, e)
        raise HTTPException(status_code=500, detail=f"Failed to improve prompt: {e}")

    _record_success(db, current_user["id"], mode, response)
    return _response_payload(response, "improved_prompt")


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a prompt from a description. Counts against the generate quota."""
    body = await _read_json_body(request)
    description = _require_text(body, "description", "Description")
    options = _parse_generation_options(body, default_max_tokens=DEFAULT_GENERATE_MAX_TOKENS)
    description = _sanitize(description)

    _check_quota(db, current_user, "generate", "Monthly AI generation limit reached")

    try:
        response = await generate_prompt(description, **options)
    except Exception as e:
        logger.error(f"AI generate failed for user {current_user['id']}: {e}")
        _record_failure(db, current_user["id"], "generate", e)
        raise HTTPException(status_code=500, detail=f"Failed to generate prompt: {e}")

    _record_success(db, current_user["id"], "generate", response)
    return _response_payload(response, "generated_prompt")


@router.get("/monitoring")
async def monitoring(
    type_: Optional[str] = Query(None, alias="type"),
    current_user: dict = Depends(get_current_user)
):
    """Provider health checks and/or usage stats. `type` defaults to all."""
    kind = (type_ or "all").lower()
    if kind not in MONITORING_TYPES:
        raise HTTPException(
            status_code=400,
            detail='Invalid type parameter. Must be "health", "stats", or "all"',
        )

    if kind == "health":
        try:
            health = await get_provider_health()
        except Exception as e:
            logger.error(f"Provider health check failed: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to get provider health: {e}")
        return {"success": True, "data": health["health"], "timestamp": health["timestamp"]}

    if kind == "stats":
        try:
            stats = await get_provider_stats()
        except Exception as e:
            logger.error(f"Provider stats lookup failed: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to get provider stats: {e}")
        return {"success": True, "data": stats}

    try:
        health = await get_provider_health()
        stats = await get_provider_stats()
    except Exception as e:
        logger.error(f"Provider monitoring failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to get monitoring data: {e}")
    return {
        "success": True,
        "data": {"health": health["health"], "stats": stats},
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/usage", response_model=UsageResponse)
def usage(
    days: int = Query(30, ge=1, le=365),
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Quota status, usage summary and the most recent AI calls."""
    quota = get_quota_status(db, current_user["id"], current_user.get("tier"))
    recent = get_recent_usage(db, current_user["id"], limit=10)
    return {
        "success": True,
        "tier": current_user.get("tier"),
        "quota": quota,
        "stats": get_usage_stats(db, current_user["id"], days=days),
        "time_until_reset": get_time_until_reset(get_or_create_quota(db, current_user["id"]).quota_reset_date),
        "recent": [
            {
                "operation_type": log.operation_type,
                "provider": log.provider,
                "model": log.model,
                "input_tokens": log.input_tokens,
                "output_tokens": log.output_tokens,
                "cost_cents": log.cost_cents,
                "success": log.success,
                "created_at": log.created_at.isoformat() if log.created_at else None,
            }
            for log in recent
        ],
    }
