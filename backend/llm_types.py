"""
Prompt Builder - LLM Routing Types
==================================

Dataclasses, enums and exceptions shared by the provider adapters, the
provider manager and the factory.

Costs are expressed in cents throughout. Timeouts are milliseconds.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, List, Dict, Any


# =============================================================================
# ENUMERATIONS
# =============================================================================

class AIOperation(str, Enum):
    """Operations a request can be tagged with for routing."""
    PROMPT_IMPROVE = "prompt-improve"
    PROMPT_GENERATE = "prompt-generate"
    CONTENT_SUMMARIZE = "content-summarize"
    CONTENT_EXPAND = "content-expand"
    CODE_REVIEW = "code-review"
    TRANSLATION = "translation"
    ANALYSIS = "analysis"


class ComplexityLevel(str, Enum):
    """Rough size class of a request, derived from its token estimate."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class LoadBalancingStrategy(str, Enum):
    ROUND_ROBIN = "round-robin"
    LEAST_USED = "least-used"
    FASTEST = "fastest"
    CHEAPEST = "cheapest"


class ImproveMode(str, Enum):
    TIGHTEN = "tighten"
    EXPAND = "expand"


class ProviderErrorCode(str, Enum):
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    RATE_LIMIT = "RATE_LIMIT"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    TIMEOUT = "TIMEOUT"


# =============================================================================
# REQUEST / RESPONSE
# =============================================================================

@dataclass
class LLMRequest:
    """A single chat-completion request."""
    system_prompt: str
    user_prompt: str
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    model: Optional[str] = None
    operation: Optional[str] = None


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cost_cents: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class LLMResponse:
    """Normalized response returned by every provider adapter."""
    content: str
    usage: TokenUsage
    provider: str
    model: str
    response_time_ms: int = 0
    success: bool = True
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class ModelConfig:
    """Price and capability entry for one model."""
    name: str
    provider: str
    max_tokens: int
    input_cost_per_1k: float            # cents per 1K input tokens
    output_cost_per_1k: float           # cents per 1K output tokens
    context_window: int
    capabilities: List[ComplexityLevel] = field(default_factory=list)
    recommended_for: List[str] = field(default_factory=list)


@dataclass
class ProviderConfig:
    name: str
    api_key: str = ""
    base_url: Optional[str] = None
    timeout: int = 30000                # milliseconds
    max_retries: int = 3
    models: List[ModelConfig] = field(default_factory=list)
    priority: int = 1                   # lower = higher priority
    enabled: bool = True


@dataclass
class CostOptimizationConfig:
    enabled: bool = False
    max_cost_per_request: float = 50.0  # cents
    preferred_providers: List[str] = field(default_factory=list)


@dataclass
class LoadBalancingConfig:
    enabled: bool = False
    strategy: LoadBalancingStrategy = LoadBalancingStrategy.CHEAPEST


@dataclass
class MonitoringConfig:
    enabled: bool = True
    log_requests: bool = True
    log_responses: bool = False
    track_costs: bool = True


@dataclass
class LLMConfig:
    """Top-level routing configuration consumed by the provider manager."""
    providers: List[ProviderConfig] = field(default_factory=list)
    default_provider: str = "openai"
    fallback_provider: Optional[str] = None
    max_retries: int = 3
    timeout: int = 30000
    cost_optimization: CostOptimizationConfig = field(default_factory=CostOptimizationConfig)
    load_balancing: LoadBalancingConfig = field(default_factory=LoadBalancingConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)


# =============================================================================
# STATS & HEALTH
# =============================================================================

@dataclass
class ProviderStats:
    provider: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time: float = 0.0
    total_cost_cents: float = 0.0
    last_used: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_used"] = self.last_used.isoformat() if self.last_used else None
        return data


@dataclass
class ProviderHealthStatus:
    provider: str
    healthy: bool
    response_time_ms: int = 0
    last_checked: datetime = field(default_factory=datetime.utcnow)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_checked"] = self.last_checked.isoformat()
        return data


# =============================================================================
# ERRORS
# =============================================================================

@dataclass
class RateLimitInfo:
    reset_time: datetime
    limit: Optional[int] = None
    remaining: Optional[int] = None


@dataclass
class ProviderError:
    """Coarse classification of an upstream failure."""
    provider: str
    code: ProviderErrorCode
    message: str
    retryable: bool = False
    rate_limit: Optional[RateLimitInfo] = None

    @classmethod
    def rate_limited(cls, provider: str, message: str) -> "ProviderError":
        return cls(
            provider=provider,
            code=ProviderErrorCode.RATE_LIMIT,
            message=message,
            retryable=True,
            rate_limit=RateLimitInfo(
                reset_time=datetime.utcnow() + timedelta(minutes=1),
                limit=0,
                remaining=0,
            ),
        )


class LLMProviderError(Exception):
    """Raised by a provider adapter when a generation fails."""

    def __init__(self, message: str, error: Optional[ProviderError] = None):
        super().__init__(message)
        self.error = error

    @property
    def retryable(self) -> bool:
        return bool(self.error and self.error.retryable)


class NoProvidersAvailableError(Exception):
    """Raised when no enabled, healthy provider is registered."""

    def __init__(self, message: str = "No available LLM providers"):
        super().__init__(message)


class AllProvidersFailedError(Exception):
    """Raised when every provider failed during a fallback run."""

    def __init__(self, message: str = "All LLM providers failed"):
        super().__init__(message)
