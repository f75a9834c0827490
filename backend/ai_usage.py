"""
Prompt Builder - AI Usage & Quota Accounting
============================================

Monthly per-user quotas for AI calls and tokens, plus the usage log that
backs the usage dashboard.

Quota rules:
- improve / tighten / expand count against the improve-call limit
- generate counts against the generate-call limit
- every call also counts its tokens against the monthly token limit
- counters reset once `quota_reset_date` has passed, and the reset date
  moves one month ahead
"""

import logging
import math
from datetime import datetime, date, timedelta
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from constants import TIER_LIMITS
from database import AIUsageLog, UserQuota, add_months

logger = logging.getLogger(__name__)

IMPROVE_OPERATIONS = ("improve", "tighten", "expand")
GENERATE_OPERATIONS = ("generate",)


# =============================================================================
# QUOTAS
# =============================================================================

def _tier_limits(tier: Optional[str]) -> Dict[str, int]:
    return TIER_LIMITS.get(tier or "free", TIER_LIMITS["free"])


def get_or_create_quota(db: Session, user_id: int, tier: Optional[str] = "free") -> UserQuota:
    """Return the quota row for a user, creating it with tier defaults."""
    quota = db.query(UserQuota).filter(UserQuota.user_id == user_id).first()
    if quota is None:
        limits = _tier_limits(tier)
        quota = UserQuota(
            user_id=user_id,
            ai_improve_calls_used=0,
            ai_improve_calls_limit=limits["ai_calls_per_month"],
            ai_generate_calls_used=0,
            ai_generate_calls_limit=limits["ai_generate_calls_per_month"],
            total_tokens_used=0,
            total_tokens_limit=limits["tokens_per_month"],
            total_cost_cents=0,
            quota_reset_date=add_months(date.today(), 1),
        )
        db.add(quota)
        db.commit()
        db.refresh(quota)
    return reset_quota_if_due(db, quota)


def reset_quota_if_due(db: Session, quota: UserQuota, today: Optional[date] = None) -> UserQuota:
    today = today or date.today()
    if quota.quota_reset_date and quota.quota_reset_date < today:
        logger.info(f"Resetting monthly quota for user {quota.user_id}")
        quota.ai_improve_calls_used = 0
        quota.ai_generate_calls_used = 0
        quota.total_tokens_used = 0
        quota.total_cost_cents = 0
        quota.quota_reset_date = add_months(today, 1)
        db.commit()
        db.refresh(quota)
    return quota


def can_use_operation(quota: UserQuota, operation_type: str) -> bool:
    """Pre-flight check before calling a provider."""
    if quota.total_tokens_used >= quota.total_tokens_limit:
        return False
    if operation_type in IMPROVE_OPERATIONS:
        return quota.ai_improve_calls_used < quota.ai_improve_calls_limit
    if operation_type in GENERATE_OPERATIONS:
        return quota.ai_generate_calls_used < quota.ai_generate_calls_limit
    return False


def record_quota_usage(
    db: Session,
    user_id: int,
    operation_type: str,
    input_tokens: int,
    output_tokens: int,
    cost_cents: float,
) -> bool:
    """
    Count a completed call against the user's quota.

    The provider has already been paid for the call, so its call and tokens
    are always added, even when that pushes a counter past its limit. The
    next `can_use_operation` check then refuses further calls.

    Returns:
        False only for an unknown operation type (nothing is recorded).
    """
    if operation_type not in IMPROVE_OPERATIONS and operation_type not in GENERATE_OPERATIONS:
        logger.warning(f"Unknown AI operation type: {operation_type}")
        return False

    quota = get_or_create_quota(db, user_id)
    tokens = input_tokens + output_tokens

    if operation_type in IMPROVE_OPERATIONS:
        quota.ai_improve_calls_used += 1
    else:
        quota.ai_generate_calls_used += 1
    quota.total_tokens_used += tokens
    quota.total_cost_cents = (quota.total_cost_cents or 0) + cost_cents
    db.commit()

    if not can_use_operation(quota, operation_type):
        logger.info(f"User {user_id} has used up the monthly {operation_type} quota")
    return True


def get_quota_status(db: Session, user_id: int, tier: Optional[str] = "free") -> Dict[str, Any]:
    quota = get_or_create_quota(db, user_id, tier)
    improve_remaining = max(0, quota.ai_improve_calls_limit - quota.ai_improve_calls_used)
    limit = quota.ai_improve_calls_limit
    return {
        "user_id": quota.user_id,
        "ai_improve_calls_used": quota.ai_improve_calls_used,
        "ai_improve_calls_limit": quota.ai_improve_calls_limit,
        "ai_generate_calls_used": quota.ai_generate_calls_used,
        "ai_generate_calls_limit": quota.ai_generate_calls_limit,
        "total_tokens_used": quota.total_tokens_used,
        "total_tokens_limit": quota.total_tokens_limit,
        "total_cost_cents": quota.total_cost_cents,
        "quota_reset_date": quota.quota_reset_date.isoformat() if quota.quota_reset_date else None,
        "can_use_improve": quota.ai_improve_calls_used < quota.ai_improve_calls_limit,
        "can_use_generate": quota.ai_generate_calls_used < quota.ai_generate_calls_limit,
        "can_use_tokens": quota.total_tokens_used < quota.total_tokens_limit,
        "remaining": improve_remaining,
        "percentage_used": (quota.ai_improve_calls_used / limit) * 100 if limit > 0 else 0,
    }


# =============================================================================
# USAGE LOG
# =============================================================================

def log_ai_usage(
    db: Session,
    user_id: int,
    operation_type: str,
    input_tokens: int = 0,
    output_tokens: int = 0,
    cost_cents: float = 0,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    success: bool = True,
    error_message: Optional[str] = None,
    response_time_ms: Optional[int] = None,
    template_id: Optional[int] = None,
) -> Optional[AIUsageLog]:
    """Insert an ai_usage_logs row. Never raises; usage logging must not fail a request."""
    try:
        entry = AIUsageLog(
            user_id=user_id,
            template_id=template_id,
            operation_type=operation_type,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_cents=cost_cents,
            provider=provider,
            model=model,
            success=success,
            error_message=error_message,
            response_time_ms=response_time_ms,
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception as e:
        logger.error(f"Error logging AI usage: {e}")
        db.rollback()
        return None


def get_usage_stats(db: Session, user_id: int, days: int = 30) -> Dict[str, Any]:
    since = datetime.utcnow() - timedelta(days=days)
    logs = (
        db.query(AIUsageLog)
        .filter(AIUsageLog.user_id == user_id, AIUsageLog.created_at >= since)
        .all()
    )

    total_calls = len(logs)
    if not total_calls:
        return {
            "total_calls": 0,
            "total_tokens": 0,
            "total_cost": 0,
            "success_rate": 0,
            "average_response_time": 0,
        }

    return {
        "total_calls": total_calls,
        "total_tokens": sum((log.input_tokens or 0) + (log.output_tokens or 0) for log in logs),
        "total_cost": sum(log.cost_cents or 0 for log in logs),
        "success_rate": sum(1 for log in logs if log.success) / total_calls * 100,
        "average_response_time": sum(log.response_time_ms or 0 for log in logs) / total_calls,
    }


def get_recent_usage(db: Session, user_id: int, limit: int = 50, offset: int = 0):
    return (
        db.query(AIUsageLog)
        .filter(AIUsageLog.user_id == user_id)
        .order_by(AIUsageLog.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


# =============================================================================
# FORMATTING HELPERS
# =============================================================================

def get_time_until_reset(reset_date: datetime, now: Optional[datetime] = None) -> str:
    """Human readable time left until the quota resets."""
    if isinstance(reset_date, date) and not isinstance(reset_date, datetime):
        reset_date = datetime.combine(reset_date, datetime.min.time())
    now = now or datetime.utcnow()
    diff = (reset_date - now).total_seconds()

    if diff <= 0:
        return "Reset now"

    days = int(diff // 86400)
    hours = int((diff % 86400) // 3600)

    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} remaining"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} remaining"
    return "Less than 1 hour remaining"


def estimate_token_count(text: str) -> int:
    return math.ceil(len(text or "") / 4)


def calculate_token_cost(input_tokens: int, output_tokens: int,
                         input_cost_per_1k: float, output_cost_per_1k: float) -> int:
    """Cost in whole cents."""
    return round((input_tokens / 1000) * input_cost_per_1k + (output_tokens / 1000) * output_cost_per_1k)


def format_cost(cost_cents: float) -> str:
    return f"${cost_cents / 100:.4f}"
