"""
Prompt Builder - Backend API
A FastAPI backend that:
1. Stores prompt templates and AI usage in SQL (SQLite by default)
2. Routes prompt improve/generate calls across OpenAI, Anthropic or a mock provider
3. Enforces monthly per-user AI quotas
4. Exposes provider health and usage stats for monitoring
"""
import os
import logging

from constants import __version__, APP_NAME  # noqa: E402

logger = logging.getLogger(__name__)


# ==============================================================================
# ENVIRONMENT LOADING
# ==============================================================================
def _load_env():
    """
    Load environment variables from .env.

    Values already present in the process environment win over the file,
    so deployments and tests can override anything.
    """
    from dotenv import load_dotenv

    loaded = load_dotenv()
    if loaded:
        logger.info("[ENV] Loaded environment variables from .env")
    else:
        logger.info("[ENV] No .env file found, using system environment variables")
    return loaded


_load_env()
logger.info(f"[ENV] Database URL: {os.getenv('DATABASE_URL', 'sqlite:///./prompt_builder.db')}")
# ==============================================================================

import uuid  # noqa: E402
from contextlib import asynccontextmanager  # noqa: E402

from pythonjsonlogger import jsonlogger  # noqa: E402

_log_level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

# Structured JSON logging for production
if os.getenv("JSON_LOGGING", "false").lower() == "true":
    _json_handler = logging.StreamHandler()
    _json_formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(name)s %(levelname)s %(message)s',
        rename_fields={"asctime": "timestamp", "levelname": "level"}
    )
    _json_handler.setFormatter(_json_formatter)
    logging.root.handlers = [_json_handler]
    logging.root.setLevel(_log_level)
    logger.info("JSON logging enabled")
else:
    logging.basicConfig(
        level=_log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from database import init_db, get_db  # noqa: E402,F401
from llm_factory import get_llm_manager, is_skip_ai_request  # noqa: E402
from routers import ai as ai_router  # noqa: E402
from routers import health as health_router  # noqa: E402
from routers import prompts as prompts_router  # noqa: E402


# ============== FastAPI App ==============

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"{APP_NAME} backend v{__version__} starting...")
    logger.info("=" * 60)

    if not os.getenv("SECRET_KEY"):
        logger.warning("[!] SECRET_KEY not set - tokens will not survive a restart")

    optional_features = {
        "OPENAI_API_KEY": "OpenAI provider",
        "ANTHROPIC_API_KEY": "Anthropic provider",
    }

    if is_skip_ai_request():
        logger.info("[OK] SKIP_AI_REQUEST=true - all AI calls served by the mock provider")
    else:
        for env_var, feature in optional_features.items():
            if os.getenv(env_var):
                logger.info(f"[OK] {feature} - ENABLED")
            else:
                logger.warning(f"[!] {feature} - DISABLED (set {env_var} to enable)")

    init_db()
    logger.info("Database tables ready")

    manager = get_llm_manager()
    logger.info(f"LLM providers registered: {[p.name for p in manager.list_providers()]}")

    if os.getenv("LLM_INITIAL_HEALTH_CHECK", "true").lower() == "true":
        try:
            results = await manager.check_all_providers()
            for status in results:
                tag = "[OK]" if status.healthy else "[!]"
                logger.info(f"  {tag} {status.provider} ({status.response_time_ms}ms)")
        except Exception as e:
            logger.error(f"Initial provider health check failed: {e}")

    logger.info("=" * 60)
    yield
    # Shutdown
    logger.info(f"{APP_NAME} backend shutting down")


app = FastAPI(
    title="AI Prompt Builder API",
    description="Prompt templates and multi-provider AI prompt improvement",
    version=__version__,
    lifespan=lifespan
)


@app.middleware("http")
async def correlation_id_middleware(request, call_next):
    """Add correlation ID to all requests for distributed tracing."""
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


app.include_router(health_router.router)  # Health & readiness probes
app.include_router(ai_router.router)  # Improve, generate, monitoring, usage
app.include_router(prompts_router.router)  # Prompt template CRUD

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==============================================================================
# Security Headers Middleware (configurable via SECURITY_HEADERS_ENABLED)
# ==============================================================================
from middleware.security import SecurityHeadersMiddleware  # noqa: E402

app.add_middleware(SecurityHeadersMiddleware)

# ==============================================================================
# Prometheus Metrics Middleware
# Tracks HTTP request count and duration. Zero overhead when METRICS_ENABLED=false.
# ==============================================================================
from middleware.metrics import MetricsMiddleware  # noqa: E402

app.add_middleware(MetricsMiddleware)


# ============== Start Server ==============
if __name__ == "__main__":
    import uvicorn
    logger.info("=" * 50)
    logger.info(f"{APP_NAME} Backend Starting...")
    logger.info("=" * 50)
    uvicorn.run(
        app,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=False
    )
