"""
Prompt Builder - Database Module (SQLAlchemy)

Sync SQLAlchemy engine + declarative models for saved prompt templates,
AI usage logs and per-user monthly quotas.

USAGE:
------
    from database import get_db, SessionLocal
    @router.get("/items")
    def get_items(db: Session = Depends(get_db)):
        return db.query(PromptTemplate).all()
"""

from sqlalchemy import (
    create_engine, Column, Integer, String, Float, DateTime, Date, Text, Boolean,
    ForeignKey, Index, JSON, event,
)
from sqlalchemy.orm import sessionmaker, declarative_base
from datetime import datetime, date
import calendar
import os
import logging

logger = logging.getLogger(__name__)

# =============================================================================
# DATABASE URL CONFIGURATION
# =============================================================================

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./prompt_builder.db")

if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        pool_pre_ping=True,
        echo=os.getenv("DB_ECHO", "false").lower() == "true"
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
        max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "20")),
        pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
        pool_pre_ping=True,
        echo=os.getenv("DB_ECHO", "false").lower() == "true"
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    Database session dependency (FastAPI).

    Usage:
        @router.get("/items")
        def get_items(db: Session = Depends(get_db)):
            return db.query(Item).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def add_months(value: date, months: int = 1) -> date:
    """Same day `months` later, clamped to the end of shorter months."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _next_reset_date() -> date:
    return add_months(date.today(), 1)


# ============== Database Models ==============

class User(Base):
    """Account referenced by JWT `sub`. Created on first authenticated request."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)
    subscription_tier = Column(String, default="free")  # free, pro
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class PromptTemplate(Base):
    """A saved prompt with its {{variable}} slots and builder settings."""
    __tablename__ = "prompt_templates"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String, default="custom", index=True)
    tags = Column(JSON, default=list)
    variables = Column(JSON, default=dict)
    core_settings = Column(JSON, default=dict)
    advanced_settings = Column(JSON, default=dict)
    is_public = Column(Boolean, default=False)
    is_favorite = Column(Boolean, default=False)
    usage_count = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AIUsageLog(Base):
    """One row per AI call (successful or not)."""
    __tablename__ = "ai_usage_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    template_id = Column(Integer, ForeignKey("prompt_templates.id", ondelete="SET NULL"), nullable=True)
    operation_type = Column(String, nullable=False)  # tighten, expand, improve, generate
    input_tokens = Column(Integer, default=0)
    output_tokens = Column(Integer, default=0)
    cost_cents = Column(Float, default=0)
    provider = Column(String, nullable=True)
    model = Column(String, nullable=True)
    success = Column(Boolean, default=True)
    error_message = Column(Text, nullable=True)
    response_time_ms = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class UserQuota(Base):
    """Monthly AI call / token counters per user."""
    __tablename__ = "user_quotas"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    ai_improve_calls_used = Column(Integer, default=0)
    ai_improve_calls_limit = Column(Integer, default=10)
    ai_generate_calls_used = Column(Integer, default=0)
    ai_generate_calls_limit = Column(Integer, default=5)
    total_tokens_used = Column(Integer, default=0)
    total_tokens_limit = Column(Integer, default=10000)
    total_cost_cents = Column(Float, default=0)
    quota_reset_date = Column(Date, default=_next_reset_date)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


Index('ix_prompt_templates_user_created', PromptTemplate.user_id, PromptTemplate.created_at.desc())
Index('ix_ai_usage_logs_user_created', AIUsageLog.user_id, AIUsageLog.created_at.desc())


# =============================================================================
# TABLE CREATION
# =============================================================================

def init_db() -> None:
    """Create all tables on the configured engine."""
    Base.metadata.create_all(bind=engine)


if DATABASE_URL.startswith("sqlite"):
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """Enforce foreign keys on SQLite."""
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
