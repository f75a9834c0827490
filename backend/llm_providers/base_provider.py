"""
Prompt Builder - Base LLM Provider Abstract Class

Abstract base for all chat-completion provider adapters.
Each adapter inherits from this class and implements request formatting,
response parsing and error classification for one vendor API.

All providers:
- Receive a ProviderConfig (API key, timeout, model price table)
- Return a normalized LLMResponse with token usage and cost in cents
- Classify upstream failures as retryable or not
- Log request metadata (never prompt content)
"""

import asyncio
import logging
import math
import time
from abc import ABC, abstractmethod
from typing import Optional, Any

from constants import HEALTH_CHECK_SYSTEM_PROMPT, HEALTH_CHECK_USER_PROMPT
from llm_types import (
    LLMProviderError,
    LLMRequest,
    LLMResponse,
    TokenUsage,
    ModelConfig,
    ProviderConfig,
    ProviderError,
    ProviderErrorCode,
)

logger = logging.getLogger(__name__)


class BaseLLMProvider(ABC):
    """
    Abstract base class for LLM provider adapters.

    Subclasses must define class attributes:
        provider_name: str - Registry name (e.g., "openai")
        preferred_models: tuple - Model names eligible to be the default model
        fallback_model: str - Model used when none of the preferred models is configured

    And implement abstract methods:
        generate() - Run one request against the vendor API
        format_prompt() - Build the vendor request payload
        parse_response() - Normalize the vendor response
        handle_error() - Map an exception to a user-facing message
        is_retryable_error() - Whether a failure is worth retrying elsewhere
    """

    provider_name: str = ""
    preferred_models: tuple = ("gpt-4o-mini", "claude-3-haiku")
    fallback_model: str = ""

    def __init__(self, config: ProviderConfig, name: Optional[str] = None):
        self.name = name or self.provider_name or config.name
        self.config = config

    # -------------------------------------------------------------------------
    # Abstract interface
    # -------------------------------------------------------------------------

    @abstractmethod
    async def generate(self, request: LLMRequest) -> LLMResponse:
        """
        Send a request to the provider.

        Raises:
            Exception: any upstream failure, after logging it.
        """
        pass

    @abstractmethod
    def format_prompt(self, request: LLMRequest) -> Any:
        pass

    @abstractmethod
    def parse_response(self, response: Any) -> LLMResponse:
        pass

    @abstractmethod
    def handle_error(self, error: Exception) -> str:
        pass

    @abstractmethod
    def is_retryable_error(self, error: Exception) -> bool:
        pass

    # -------------------------------------------------------------------------
    # Token / cost helpers
    # -------------------------------------------------------------------------

    def estimate_tokens(self, text: str) -> int:
        """Rough estimate: one token per four characters of English text."""
        return math.ceil(len(text or "") / 4)

    def calculate_cost(self, usage: TokenUsage) -> float:
        """Cost in cents, priced against the default model, rounded to 2 places."""
        model = self.get_default_model()
        if model is None:
            return 0

        input_cost = (usage.input_tokens / 1000) * model.input_cost_per_1k
        output_cost = (usage.output_tokens / 1000) * model.output_cost_per_1k
        return round(input_cost + output_cost, 2)

    def get_default_model(self) -> Optional[ModelConfig]:
        """
        First configured model, in configuration order, that is a preferred model.

        None when no configured model qualifies; costs are then reported as 0.
        """
        for model in self.config.models:
            if self.is_preferred_model(model.name):
                return model
        return None

    def is_preferred_model(self, model_name: str) -> bool:
        return any(preferred in model_name for preferred in self.preferred_models)

    def default_model_name(self) -> str:
        model = self.get_default_model()
        return model.name if model else self.fallback_model

    def get_model_by_name(self, model_name: str) -> Optional[ModelConfig]:
        for model in self.config.models:
            if model.name == model_name:
                return model
        return None

    def create_token_usage(self, input_tokens: int, output_tokens: int, model: str) -> TokenUsage:
        usage = TokenUsage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
        )
        # Unknown models are not priced
        if self.get_model_by_name(model):
            usage.cost_cents = self.calculate_cost(usage)
        return usage

    def create_response(
        self,
        content: str,
        usage: TokenUsage,
        model: str,
        response_time_ms: int,
        success: bool = True,
        error: Optional[str] = None,
    ) -> LLMResponse:
        return LLMResponse(
            content=content,
            usage=usage,
            provider=self.name,
            model=model,
            response_time_ms=response_time_ms,
            success=success,
            error=error,
        )

    async def _timed_generate(self, request: LLMRequest, call) -> LLMResponse:
        """
        Run `call()` (a coroutine returning the raw vendor payload as a dict),
        parse it, stamp latency and log the outcome.

        Failures are logged as a failed response and re-raised as
        LLMProviderError carrying the classified ProviderError.
        """
        start = time.time()
        model = request.model or self.default_model_name()
        try:
            raw = await call()
            result = self.parse_response(raw)
            result.response_time_ms = int((time.time() - start) * 1000)
            self.log_request(request, result)
            return result
        except Exception as e:
            message = self.handle_error(e)
            failed = self.create_response(
                "",
                self.create_token_usage(0, 0, model),
                model,
                int((time.time() - start) * 1000),
                success=False,
                error=message,
            )
            self.log_request(request, failed)
            raise LLMProviderError(message, self.parse_provider_error(e)) from e

    # -------------------------------------------------------------------------
    # Health / errors / logging
    # -------------------------------------------------------------------------

    async def health_check(self) -> bool:
        """Issue a canned "say hello" request and check the echoed text."""
        request = LLMRequest(
            system_prompt=HEALTH_CHECK_SYSTEM_PROMPT,
            user_prompt=HEALTH_CHECK_USER_PROMPT,
            max_tokens=10,
            operation="health-check",
        )
        try:
            response = await self.generate(request)
            return response.success and "hello" in response.content.lower()
        except Exception as e:
            logger.error(f"Health check failed for {self.name}: {e}")
            return False

    def _error_status(self, error: Exception) -> Optional[int]:
        status = getattr(error, "status_code", None)
        if status is None:
            status = getattr(error, "status", None)
        return status if isinstance(status, int) else None

    def _is_timeout(self, error: Exception) -> bool:
        if isinstance(error, asyncio.TimeoutError):
            return True
        return "timeout" in type(error).__name__.lower()

    def _http_error_message(self, error: Exception, label: str) -> str:
        """User-facing message for an HTTP vendor failure."""
        if self._is_timeout(error):
            return "Request timeout"

        status = self._error_status(error)
        if status is not None:
            if status == 401:
                return "Invalid API key"
            if status == 429:
                return "Rate limit exceeded"
            if status == 500:
                return f"{label} server error"
            if status == 503:
                return f"{label} service unavailable"
            return f"{label} API error ({status})"

        return str(error) or "Unknown error occurred"

    def _is_retryable_http_error(self, error: Exception) -> bool:
        """Rate limits, server errors, service unavailable and timeouts."""
        if self._is_timeout(error):
            return True
        status = self._error_status(error)
        if status is not None:
            return status == 429 or status >= 500
        message = str(error).lower()
        return any(
            marker in message
            for marker in ("rate limit", "server error", "timeout", "service unavailable")
        )

    def parse_provider_error(self, error: Exception) -> ProviderError:
        message = str(error) or "Unknown error occurred"
        status = self._error_status(error)

        if status == 429:
            return ProviderError.rate_limited(self.name, message)
        if status == 401:
            return ProviderError(self.name, ProviderErrorCode.AUTHENTICATION_ERROR, message, retryable=False)
        if status is not None and status >= 500:
            return ProviderError(self.name, ProviderErrorCode.SERVER_ERROR, message, retryable=True)
        if self._is_timeout(error):
            return ProviderError(self.name, ProviderErrorCode.TIMEOUT, message, retryable=True)

        return ProviderError(self.name, ProviderErrorCode.UNKNOWN_ERROR, message, retryable=False)

    def log_request(self, request: LLMRequest, response: LLMResponse) -> None:
        if not self.config.enabled:
            return
        logger.info(
            f"[{self.name}] operation={request.operation} "
            f"model={request.model or self.default_model_name()} "
            f"input_tokens={response.usage.input_tokens} "
            f"output_tokens={response.usage.output_tokens} "
            f"cost_cents={response.usage.cost_cents} "
            f"response_time_ms={response.response_time_ms} "
            f"success={response.success}"
        )
