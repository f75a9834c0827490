"""
Prompt Builder - LLM Provider Manager
=====================================

Routes chat-completion requests across registered provider adapters.

Features:
- Provider registry (add / remove / lookup)
- In-memory per-provider stats (requests, failures, avg latency, cost)
- Health tracking from concurrent health checks
- Operation/complexity aware provider selection
- Load balancing strategies: round-robin, least-used, fastest, cheapest
- Fallback mode that walks providers in registration order

All state is process-local and rebuilt on restart.
"""

import asyncio
import logging
import math
import time
from datetime import datetime
from typing import Dict, List, Optional

from llm_providers import BaseLLMProvider
from llm_types import (
    AllProvidersFailedError,
    ComplexityLevel,
    LLMConfig,
    LLMRequest,
    LLMResponse,
    LoadBalancingStrategy,
    NoProvidersAvailableError,
    ProviderHealthStatus,
    ProviderStats,
    TokenUsage,
)

logger = logging.getLogger(__name__)


class LLMProviderManager:
    """
    Select a provider per request and keep running statistics.

    Usage:
        manager = LLMProviderManager(config)
        manager.add_provider(OpenAIProvider(openai_config))

        response = await manager.generate(request)
        response = await manager.generate_with_fallback(request)
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self.providers: Dict[str, BaseLLMProvider] = {}
        self.stats: Dict[str, ProviderStats] = {}
        self.health_status: Dict[str, ProviderHealthStatus] = {}
        self._round_robin_index = 0

        for provider_config in config.providers:
            self.stats[provider_config.name] = ProviderStats(provider=provider_config.name)

    # -------------------------------------------------------------------------
    # Registry
    # -------------------------------------------------------------------------

    def add_provider(self, provider: BaseLLMProvider) -> None:
        self.providers[provider.name] = provider
        self.stats[provider.name] = ProviderStats(provider=provider.name)

    def remove_provider(self, name: str) -> None:
        self.providers.pop(name, None)
        self.stats.pop(name, None)
        self.health_status.pop(name, None)

    def get_provider(self, name: str) -> Optional[BaseLLMProvider]:
        return self.providers.get(name)

    def list_providers(self) -> List[BaseLLMProvider]:
        return list(self.providers.values())

    def get_available_providers(self) -> List[BaseLLMProvider]:
        """Enabled providers not marked unhealthy, in registration order."""
        available = []
        for provider in self.providers.values():
            if not provider.config.enabled:
                continue
            status = self.health_status.get(provider.name)
            if status is not None and status.healthy is False:
                continue
            available.append(provider)
        return available

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Generate with the selected provider.

        Raises:
            NoProvidersAvailableError: nothing is enabled and healthy.
            Exception: the provider's failure, after recording it.
        """
        provider = self.select_provider(request)

        try:
            response = await provider.generate(request)
        except Exception as e:
            self.update_stats(provider.name, self._failed_response(provider, request, str(e)), False)
            raise

        self.update_stats(provider.name, response, True)
        self._check_cost_ceiling(response)
        return response

    async def generate_with_fallback(self, request: LLMRequest) -> LLMResponse:
        """Try each available provider in order until one succeeds."""
        for provider in self.get_available_providers():
            try:
                response = await provider.generate(request)
            except Exception as e:
                logger.warning(f"Provider {provider.name} failed: {e}")
                self.update_stats(provider.name, self._failed_response(provider, request, str(e)), False)
                continue

            self.update_stats(provider.name, response, True)
            self._check_cost_ceiling(response)
            return response

        raise AllProvidersFailedError()

    def _failed_response(self, provider: BaseLLMProvider, request: LLMRequest,
                         error: str = "Unknown error") -> LLMResponse:
        return LLMResponse(
            content="",
            usage=TokenUsage(),
            provider=provider.name,
            model=request.model or "unknown",
            response_time_ms=0,
            success=False,
            error=error,
        )

    def _check_cost_ceiling(self, response: LLMResponse) -> None:
        cost_config = self.config.cost_optimization
        if cost_config.enabled and response.usage.cost_cents > cost_config.max_cost_per_request:
            logger.warning(
                f"Request on {response.provider}/{response.model} cost "
                f"{response.usage.cost_cents} cents (limit {cost_config.max_cost_per_request})"
            )

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def select_provider(self, request: LLMRequest) -> BaseLLMProvider:
        available = self.get_available_providers()
        if not available:
            raise NoProvidersAvailableError()

        if request.operation and self.config.load_balancing.enabled:
            best = self.get_best_provider(request.operation, self.assess_complexity(request))
            if best:
                return best

        strategy = self.config.load_balancing.strategy
        if strategy == LoadBalancingStrategy.ROUND_ROBIN:
            return self._select_round_robin(available)
        if strategy == LoadBalancingStrategy.LEAST_USED:
            return self._select_least_used(available)
        if strategy == LoadBalancingStrategy.FASTEST:
            return self._select_fastest(available)
        if strategy == LoadBalancingStrategy.CHEAPEST:
            return self._select_cheapest(available)
        return available[0]

    def get_best_provider(self, operation: str, complexity: ComplexityLevel) -> Optional[BaseLLMProvider]:
        available = self.get_available_providers()
        if not available:
            return None

        suitable = [
            provider for provider in available
            if any(
                operation in model.recommended_for or complexity in model.capabilities
                for model in provider.config.models
            )
        ]

        if not suitable:
            return available[0]

        if self.config.cost_optimization.enabled:
            return self._select_cheapest(suitable)

        return suitable[0]

    def assess_complexity(self, request: LLMRequest) -> ComplexityLevel:
        total_length = len(request.system_prompt or "") + len(request.user_prompt or "")
        estimated_tokens = math.ceil(total_length / 4)

        if estimated_tokens < 500:
            return ComplexityLevel.LOW
        if estimated_tokens < 2000:
            return ComplexityLevel.MEDIUM
        return ComplexityLevel.HIGH

    def _select_round_robin(self, providers: List[BaseLLMProvider]) -> BaseLLMProvider:
        provider = providers[self._round_robin_index % len(providers)]
        self._round_robin_index = (self._round_robin_index + 1) % len(providers)
        return provider

    def _select_least_used(self, providers: List[BaseLLMProvider]) -> BaseLLMProvider:
        best = providers[0]
        for current in providers[1:]:
            best_stats = self.stats.get(best.name)
            current_stats = self.stats.get(current.name)
            if best_stats and current_stats and current_stats.total_requests < best_stats.total_requests:
                best = current
        return best

    def _select_fastest(self, providers: List[BaseLLMProvider]) -> BaseLLMProvider:
        best = providers[0]
        for current in providers[1:]:
            best_stats = self.stats.get(best.name)
            current_stats = self.stats.get(current.name)
            if best_stats and current_stats and current_stats.average_response_time < best_stats.average_response_time:
                best = current
        return best

    def _select_cheapest(self, providers: List[BaseLLMProvider]) -> BaseLLMProvider:
        best = providers[0]
        for current in providers[1:]:
            if not best.config.models or not current.config.models:
                continue
            best_model = best.config.models[0]
            current_model = current.config.models[0]
            best_cost = best_model.input_cost_per_1k + best_model.output_cost_per_1k
            current_cost = current_model.input_cost_per_1k + current_model.output_cost_per_1k
            if current_cost < best_cost:
                best = current
        return best

    # -------------------------------------------------------------------------
    # Health & stats
    # -------------------------------------------------------------------------

    async def _check_provider(self, provider: BaseLLMProvider) -> ProviderHealthStatus:
        start = time.time()
        healthy = await provider.health_check()
        status = ProviderHealthStatus(
            provider=provider.name,
            healthy=healthy,
            response_time_ms=int((time.time() - start) * 1000),
            last_checked=datetime.utcnow(),
            error=None if healthy else "Health check failed",
        )
        self.health_status[provider.name] = status
        return status

    async def check_all_providers(self) -> List[ProviderHealthStatus]:
        """Run every provider's health check concurrently and record the results."""
        providers = list(self.providers.values())
        results = await asyncio.gather(
            *(self._check_provider(p) for p in providers),
            return_exceptions=True,
        )

        statuses = []
        for provider, result in zip(providers, results):
            if isinstance(result, BaseException):
                logger.error(f"Health check raised for {provider.name}: {result}")
                result = ProviderHealthStatus(
                    provider=provider.name,
                    healthy=False,
                    response_time_ms=0,
                    last_checked=datetime.utcnow(),
                    error="Health check failed",
                )
                self.health_status[provider.name] = result
            statuses.append(result)
        return statuses

    def get_provider_stats(self) -> List[ProviderStats]:
        return list(self.stats.values())

    def update_stats(self, provider_name: str, response: LLMResponse, success: bool) -> None:
        stats = self.stats.get(provider_name)
        if stats is None:
            return

        stats.total_requests += 1
        if success:
            stats.successful_requests += 1
            stats.total_cost_cents += response.usage.cost_cents
            total_time = stats.average_response_time * (stats.successful_requests - 1) + response.response_time_ms
            stats.average_response_time = total_time / stats.successful_requests
        else:
            stats.failed_requests += 1

        stats.last_used = datetime.utcnow()
