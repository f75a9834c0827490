"""
Prompt Builder - LLM Factory
============================

Wires the provider manager and adapters from static model price tables
and environment configuration, and exposes the convenience calls used by
the HTTP routers.

Config:
    SKIP_AI_REQUEST=false            Use the offline mock provider only
    OPENAI_API_KEY / ANTHROPIC_API_KEY
    OPENAI_BASE_URL / ANTHROPIC_BASE_URL (optional)
    LLM_LOAD_BALANCING_STRATEGY=cheapest
    LLM_MAX_COST_PER_REQUEST_CENTS=50
    MOCK_MIN_LATENCY_MS=200 / MOCK_MAX_LATENCY_MS=1200

Model pricing (cents per 1K tokens):
- gpt-4o-mini: 0.15 / 0.6      claude-3-haiku: 0.25 / 1.25
- gpt-4o: 2.5 / 10             claude-3-sonnet: 3 / 15
- gpt-3.5-turbo: 0.5 / 1.5     claude-3-opus: 15 / 75
"""

import os
import logging
from datetime import datetime
from typing import Optional, Dict, Any, List

from constants import (
    EXPAND_SYSTEM_PROMPT,
    GENERATE_SYSTEM_PROMPT,
    IMPROVE_SYSTEM_PROMPT,
    TIGHTEN_SYSTEM_PROMPT,
)
from llm_manager import LLMProviderManager
from llm_providers import create_provider
from llm_types import (
    AIOperation,
    ComplexityLevel,
    CostOptimizationConfig,
    ImproveMode,
    LLMConfig,
    LLMRequest,
    LLMResponse,
    LoadBalancingConfig,
    LoadBalancingStrategy,
    ModelConfig,
    MonitoringConfig,
    ProviderConfig,
)

logger = logging.getLogger(__name__)

LOW, MEDIUM, HIGH = ComplexityLevel.LOW, ComplexityLevel.MEDIUM, ComplexityLevel.HIGH

_GENERAL_OPERATIONS = [
    AIOperation.PROMPT_IMPROVE.value,
    AIOperation.PROMPT_GENERATE.value,
    AIOperation.CONTENT_SUMMARIZE.value,
    AIOperation.CONTENT_EXPAND.value,
]


# =============================================================================
# MODEL TABLES
# =============================================================================

OPENAI_MODELS: List[ModelConfig] = [
    ModelConfig(
        name="gpt-4o-mini",
        provider="openai",
        max_tokens=4096,
        input_cost_per_1k=0.15,
        output_cost_per_1k=0.6,
        context_window=128_000,
        capabilities=[LOW, MEDIUM, HIGH],
        recommended_for=list(_GENERAL_OPERATIONS),
    ),
    ModelConfig(
        name="gpt-4o",
        provider="openai",
        max_tokens=4096,
        input_cost_per_1k=2.5,
        output_cost_per_1k=10,
        context_window=128_000,
        capabilities=[MEDIUM, HIGH],
        recommended_for=["code-review", "analysis", "translation"],
    ),
    ModelConfig(
        name="gpt-3.5-turbo",
        provider="openai",
        max_tokens=4096,
        input_cost_per_1k=0.5,
        output_cost_per_1k=1.5,
        context_window=16_385,
        capabilities=[LOW, MEDIUM],
        recommended_for=["prompt-improve", "content-summarize"],
    ),
]

ANTHROPIC_MODELS: List[ModelConfig] = [
    ModelConfig(
        name="claude-3-haiku-20240307",
        provider="anthropic",
        max_tokens=4096,
        input_cost_per_1k=0.25,
        output_cost_per_1k=1.25,
        context_window=200_000,
        capabilities=[LOW, MEDIUM, HIGH],
        recommended_for=list(_GENERAL_OPERATIONS),
    ),
    ModelConfig(
        name="claude-3-sonnet-20240229",
        provider="anthropic",
        max_tokens=4096,
        input_cost_per_1k=3,
        output_cost_per_1k=15,
        context_window=200_000,
        capabilities=[MEDIUM, HIGH],
        recommended_for=["code-review", "analysis", "translation"],
    ),
    ModelConfig(
        name="claude-3-opus-20240229",
        provider="anthropic",
        max_tokens=4096,
        input_cost_per_1k=15,
        output_cost_per_1k=75,
        context_window=200_000,
        capabilities=[HIGH],
        recommended_for=["analysis", "code-review"],
    ),
]

MOCK_MODELS: List[ModelConfig] = [
    ModelConfig(
        name="gpt-4o-mini",
        provider="mock",
        max_tokens=4096,
        input_cost_per_1k=0.15,
        output_cost_per_1k=0.6,
        context_window=128_000,
        capabilities=[LOW, MEDIUM, HIGH],
        recommended_for=list(_GENERAL_OPERATIONS),
    ),
]


# =============================================================================
# CONFIGURATION
# =============================================================================

def is_skip_ai_request() -> bool:
    """True when the offline mock provider should replace real vendors."""
    return os.getenv("SKIP_AI_REQUEST", "false").lower() == "true"


def build_provider_configs(skip_ai_request: Optional[bool] = None) -> Dict[str, ProviderConfig]:
    """Provider configs keyed by name, from the current environment."""
    if skip_ai_request is None:
        skip_ai_request = is_skip_ai_request()

    openai_key = os.getenv("OPENAI_API_KEY", "")
    anthropic_key = os.getenv("ANTHROPIC_API_KEY", "")

    return {
        "openai": ProviderConfig(
            name="openai",
            api_key=openai_key,
            base_url=os.getenv("OPENAI_BASE_URL") or None,
            timeout=30000,
            max_retries=3,
            models=OPENAI_MODELS,
            priority=1,
            enabled=bool(openai_key) and not skip_ai_request,
        ),
        "anthropic": ProviderConfig(
            name="anthropic",
            api_key=anthropic_key,
            base_url=os.getenv("ANTHROPIC_BASE_URL") or None,
            timeout=30000,
            max_retries=3,
            models=ANTHROPIC_MODELS,
            priority=2,
            enabled=bool(anthropic_key) and not skip_ai_request,
        ),
        "mock": ProviderConfig(
            name="mock",
            api_key="",
            timeout=5000,
            max_retries=0,
            models=MOCK_MODELS,
            priority=0,
            enabled=skip_ai_request,
        ),
    }


def build_llm_config(skip_ai_request: Optional[bool] = None) -> LLMConfig:
    if skip_ai_request is None:
        skip_ai_request = is_skip_ai_request()

    configs = build_provider_configs(skip_ai_request)

    strategy_name = os.getenv("LLM_LOAD_BALANCING_STRATEGY", "cheapest").lower()
    try:
        strategy = LoadBalancingStrategy(strategy_name)
    except ValueError:
        logger.warning(f"Unknown LLM_LOAD_BALANCING_STRATEGY '{strategy_name}', using cheapest")
        strategy = LoadBalancingStrategy.CHEAPEST

    return LLMConfig(
        providers=[configs["mock"]] if skip_ai_request else [configs["openai"], configs["anthropic"]],
        default_provider="mock" if skip_ai_request else "openai",
        fallback_provider="mock" if skip_ai_request else "anthropic",
        max_retries=0 if skip_ai_request else 3,
        timeout=5000 if skip_ai_request else 30000,
        cost_optimization=CostOptimizationConfig(
            enabled=not skip_ai_request,
            max_cost_per_request=float(os.getenv("LLM_MAX_COST_PER_REQUEST_CENTS", "50")),
            preferred_providers=["mock"] if skip_ai_request else ["openai", "anthropic"],
        ),
        load_balancing=LoadBalancingConfig(
            enabled=not skip_ai_request,
            strategy=strategy,
        ),
        monitoring=MonitoringConfig(
            enabled=True,
            log_requests=True,
            log_responses=False,
            track_costs=not skip_ai_request,
        ),
    )


# =============================================================================
# MANAGER SINGLETON
# =============================================================================

_manager: Optional[LLMProviderManager] = None


def create_llm_manager(skip_ai_request: Optional[bool] = None) -> LLMProviderManager:
    """
    Build a manager with every enabled adapter registered.

    The initial health check is async and is run by the application
    lifespan (see main.py), not here.
    """
    if skip_ai_request is None:
        skip_ai_request = is_skip_ai_request()

    config = build_llm_config(skip_ai_request)
    provider_configs = build_provider_configs(skip_ai_request)
    manager = LLMProviderManager(config)

    if skip_ai_request:
        manager.add_provider(create_provider(
            provider_configs["mock"],
            min_latency_ms=int(os.getenv("MOCK_MIN_LATENCY_MS", "200")),
            max_latency_ms=int(os.getenv("MOCK_MAX_LATENCY_MS", "1200")),
        ))
        logger.info("Mock AI provider enabled - no actual API calls will be made")
    else:
        for key in ("openai", "anthropic"):
            if provider_configs[key].enabled:
                manager.add_provider(create_provider(provider_configs[key]))

        if not manager.list_providers():
            logger.warning(
                "No LLM providers configured. Set OPENAI_API_KEY or ANTHROPIC_API_KEY, "
                "or SKIP_AI_REQUEST=true for offline mode."
            )

    logger.info(f"LLM providers registered: {[p.name for p in manager.list_providers()]}")
    return manager


def get_llm_manager() -> LLMProviderManager:
    """Get or create the LLM manager instance."""
    global _manager
    if _manager is None:
        _manager = create_llm_manager()
    return _manager


def reset_llm_manager() -> None:
    """Drop the singleton so the next call rebuilds it from the environment."""
    global _manager
    _manager = None


# =============================================================================
# CONVENIENCE OPERATIONS
# =============================================================================

def _system_prompt_for_mode(mode: Optional[str]) -> str:
    if mode == ImproveMode.TIGHTEN:
        return TIGHTEN_SYSTEM_PROMPT
    if mode == ImproveMode.EXPAND:
        return EXPAND_SYSTEM_PROMPT
    return IMPROVE_SYSTEM_PROMPT


async def improve_prompt(
    prompt: str,
    mode: Optional[str] = None,
    max_tokens: Optional[int] = None,
    temperature: Optional[float] = None,
    model: Optional[str] = None,
    use_fallback: bool = False,
) -> LLMResponse:
    """
    Rewrite a prompt, tightened or expanded when `mode` is given.

    Raises:
        NoProvidersAvailableError / AllProvidersFailedError / LLMProviderError
    """
    manager = get_llm_manager()
    verb = ImproveMode(mode).value if mode in (ImproveMode.TIGHTEN, ImproveMode.EXPAND) else "improve"

    request = LLMRequest(
        system_prompt=_system_prompt_for_mode(mode),
        user_prompt=f'Please {verb} this prompt:\n\n"{prompt}"',
        max_tokens=max_tokens or 1000,
        temperature=0.7 if temperature is None else temperature,
        model=model,
        operation=AIOperation.PROMPT_IMPROVE.value,
    )

    try:
        if use_fallback:
            return await manager.generate_with_fallback(request)
        return await manager.generate(request)
    except Exception as e:
        logger.error(f"Failed to improve prompt: {e}")
        raise


async def generate_prompt(
    description: str,
    max_tokens: Optional[int] = None,
    temperature: Optional[float] = None,
    model: Optional[str] = None,
    use_fallback: bool = False,
) -> LLMResponse:
    """Create a new prompt from a free-text description."""
    manager = get_llm_manager()

    request = LLMRequest(
        system_prompt=GENERATE_SYSTEM_PROMPT,
        user_prompt=f"Create a prompt for: {description}",
        max_tokens=max_tokens or 500,
        temperature=0.7 if temperature is None else temperature,
        model=model,
        operation=AIOperation.PROMPT_GENERATE.value,
    )

    try:
        if use_fallback:
            return await manager.generate_with_fallback(request)
        return await manager.generate(request)
    except Exception as e:
        logger.error(f"Failed to generate prompt: {e}")
        raise


async def get_provider_health() -> Dict[str, Any]:
    """Run health checks now and return them with the current stats."""
    manager = get_llm_manager()
    health = await manager.check_all_providers()
    stats = manager.get_provider_stats()
    return {
        "health": [h.to_dict() for h in health],
        "stats": [s.to_dict() for s in stats],
        "timestamp": datetime.utcnow().isoformat(),
    }


async def get_provider_stats() -> List[Dict[str, Any]]:
    manager = get_llm_manager()
    return [s.to_dict() for s in manager.get_provider_stats()]
