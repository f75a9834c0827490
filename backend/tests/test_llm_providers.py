"""
Prompt Builder - LLM Provider Adapter Tests
============================================

Tests for the OpenAI / Anthropic adapters and the shared base class.

Coverage:
- Request payload formatting
- Response parsing and cost calculation (cents)
- Error message mapping and retry classification
- Health check behaviour
- Provider registry

Run:
    pytest tests/test_llm_providers.py -v
"""

import asyncio
import pytest
from unittest.mock import AsyncMock, MagicMock

from llm_factory import ANTHROPIC_MODELS, OPENAI_MODELS
from llm_providers import (
    ALL_PROVIDERS,
    AnthropicProvider,
    BaseLLMProvider,
    MockProvider,
    OpenAIProvider,
    create_provider,
)
from llm_types import (
    LLMProviderError,
    LLMRequest,
    ModelConfig,
    ProviderConfig,
    ProviderErrorCode,
    TokenUsage,
)


class FakeStatusError(Exception):
    """Stand-in for an SDK APIStatusError."""

    def __init__(self, status_code, message="upstream failure"):
        super().__init__(message)
        self.status_code = status_code


class APITimeoutError(Exception):
    pass


def _openai_config(**overrides):
    values = dict(name="openai", api_key="sk-test", models=list(OPENAI_MODELS), enabled=True)
    values.update(overrides)
    return ProviderConfig(**values)


def _anthropic_config(**overrides):
    values = dict(name="anthropic", api_key="sk-ant-test", models=list(ANTHROPIC_MODELS), enabled=True)
    values.update(overrides)
    return ProviderConfig(**values)


def _sdk_result(payload):
    result = MagicMock()
    result.model_dump.return_value = payload
    return result


def _openai_with_client(payload=None, error=None):
    client = MagicMock()
    if error is not None:
        client.chat.completions.create = AsyncMock(side_effect=error)
    else:
        client.chat.completions.create = AsyncMock(return_value=_sdk_result(payload))
    return OpenAIProvider(_openai_config(), client=client), client


def _request(**overrides):
    values = dict(system_prompt="You are terse.", user_prompt="Summarize this.", operation="prompt-improve")
    values.update(overrides)
    return LLMRequest(**values)


# =============================================================================
# TEST: Base Provider helpers
# =============================================================================

class _EchoProvider(BaseLLMProvider):
    provider_name = "echo"

    async def generate(self, request):
        return self.create_response(request.user_prompt, TokenUsage(), "echo-1", 0)

    def format_prompt(self, request):
        return request

    def parse_response(self, response):
        return response

    def handle_error(self, error):
        return self._http_error_message(error, "Echo")

    def is_retryable_error(self, error):
        return self._is_retryable_http_error(error)


def _model(name, input_cost=1.0, output_cost=2.0):
    return ModelConfig(
        name=name, provider="echo", max_tokens=1000,
        input_cost_per_1k=input_cost, output_cost_per_1k=output_cost, context_window=8000,
    )


class TestBaseProvider:
    """Helpers shared by every adapter."""

    def test_estimate_tokens_rounds_up(self):
        provider = _EchoProvider(ProviderConfig(name="echo"))
        assert provider.estimate_tokens("") == 0
        assert provider.estimate_tokens("abcd") == 1
        assert provider.estimate_tokens("abcde") == 2

    def test_default_model_prefers_known_names(self):
        config = ProviderConfig(name="echo", models=[_model("big-model"), _model("gpt-4o-mini-2024")])
        provider = _EchoProvider(config)
        assert provider.get_default_model().name == "gpt-4o-mini-2024"

    def test_default_model_follows_configuration_order(self):
        config = ProviderConfig(name="echo", models=[
            _model("claude-3-haiku-20240307"), _model("gpt-4o-mini"),
        ])
        assert _EchoProvider(config).get_default_model().name == "claude-3-haiku-20240307"

    def test_no_preferred_model_is_not_priced(self):
        config = ProviderConfig(name="echo", models=[_model("alpha", 1.0, 2.0), _model("beta")])
        provider = _EchoProvider(config)
        assert provider.get_default_model() is None
        assert provider.default_model_name() == provider.fallback_model
        assert provider.calculate_cost(TokenUsage(input_tokens=1000, output_tokens=1000)) == 0

    def test_no_models_means_zero_cost(self):
        provider = _EchoProvider(ProviderConfig(name="echo"))
        assert provider.get_default_model() is None
        assert provider.calculate_cost(TokenUsage(input_tokens=1000, output_tokens=1000)) == 0

    def test_calculate_cost_uses_default_model_rates(self):
        config = ProviderConfig(name="echo", models=[_model("gpt-4o-mini", 1.0, 2.0)])
        provider = _EchoProvider(config)
        assert provider.calculate_cost(TokenUsage(input_tokens=2000, output_tokens=500)) == pytest.approx(3.0)

    def test_unknown_model_is_not_priced(self):
        config = ProviderConfig(name="echo", models=[_model("alpha")])
        usage = _EchoProvider(config).create_token_usage(1000, 1000, "not-configured")
        assert usage.total_tokens == 2000
        assert usage.cost_cents == 0

    def test_name_override(self):
        provider = _EchoProvider(ProviderConfig(name="echo"), name="echo-secondary")
        assert provider.name == "echo-secondary"

    def test_status_error_classification(self):
        provider = _EchoProvider(ProviderConfig(name="echo"))

        assert provider.parse_provider_error(FakeStatusError(429)).code == ProviderErrorCode.RATE_LIMIT
        assert provider.parse_provider_error(FakeStatusError(401)).code == ProviderErrorCode.AUTHENTICATION_ERROR
        assert provider.parse_provider_error(FakeStatusError(502)).code == ProviderErrorCode.SERVER_ERROR
        assert provider.parse_provider_error(APITimeoutError("slow")).code == ProviderErrorCode.TIMEOUT
        assert provider.parse_provider_error(ValueError("odd")).code == ProviderErrorCode.UNKNOWN_ERROR

    def test_rate_limit_error_carries_reset_info(self):
        provider = _EchoProvider(ProviderConfig(name="echo"))
        error = provider.parse_provider_error(FakeStatusError(429))
        assert error.retryable is True
        assert error.rate_limit is not None
        assert error.rate_limit.remaining == 0


# =============================================================================
# TEST: OpenAI adapter
# =============================================================================

class TestOpenAIProvider:
    """OpenAI chat completions adapter."""

    def test_format_prompt_defaults(self):
        provider = OpenAIProvider(_openai_config())
        payload = provider.format_prompt(_request())

        assert payload["model"] == "gpt-4o-mini"
        assert payload["messages"] == [
            {"role": "system", "content": "You are terse."},
            {"role": "user", "content": "Summarize this."},
        ]
        assert payload["max_tokens"] == 1000
        assert payload["temperature"] == 0.7
        assert payload["stream"] is False

    def test_format_prompt_keeps_zero_temperature(self):
        provider = OpenAIProvider(_openai_config())
        payload = provider.format_prompt(_request(temperature=0, max_tokens=50, model="gpt-4o"))
        assert payload["temperature"] == 0
        assert payload["max_tokens"] == 50
        assert payload["model"] == "gpt-4o"

    def test_default_model_is_exact_match(self):
        models = [m for m in OPENAI_MODELS if m.name != "gpt-4o-mini"]
        provider = OpenAIProvider(_openai_config(models=models))
        assert provider.default_model_name() == "gpt-4o"

    def test_default_model_uses_configuration_order(self):
        by_name = {m.name: m for m in OPENAI_MODELS}
        models = [by_name["gpt-3.5-turbo"], by_name["gpt-4o-mini"]]
        provider = OpenAIProvider(_openai_config(models=models))
        assert provider.default_model_name() == "gpt-3.5-turbo"

    def test_unlisted_model_names_have_no_default(self):
        models = [_model("gpt-4o-2024-08-06", 2.5, 10.0)]
        provider = OpenAIProvider(_openai_config(models=models))
        assert provider.get_default_model() is None
        assert provider.default_model_name() == "gpt-4o-mini"
        assert provider.calculate_cost(TokenUsage(input_tokens=1000, output_tokens=1000)) == 0

    def test_parse_response(self, mock_openai_response):
        provider = OpenAIProvider(_openai_config())
        response = provider.parse_response(mock_openai_response)

        assert response.content == "Write a haiku about autumn leaves."
        assert response.provider == "openai"
        assert response.model == "gpt-4o-mini"
        assert response.usage.input_tokens == 100
        assert response.usage.output_tokens == 50
        assert response.usage.total_tokens == 150
        expected = round((100 / 1000) * 0.15 + (50 / 1000) * 0.6, 2)
        assert response.usage.cost_cents == pytest.approx(expected)

    def test_parse_response_estimates_missing_usage(self):
        provider = OpenAIProvider(_openai_config())
        response = provider.parse_response({
            "model": "gpt-4o-mini",
            "choices": [{"message": {"content": "12345678"}}],
        })
        assert response.usage.input_tokens == 2
        assert response.usage.output_tokens == 2

    def test_parse_response_without_choices(self):
        provider = OpenAIProvider(_openai_config())
        response = provider.parse_response({"model": "gpt-4o-mini", "choices": []})
        assert response.content == ""
        assert response.success is True

    @pytest.mark.asyncio
    async def test_generate_calls_sdk(self, mock_openai_response):
        provider, client = _openai_with_client(mock_openai_response)
        response = await provider.generate(_request())

        client.chat.completions.create.assert_awaited_once()
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert response.content == "Write a haiku about autumn leaves."
        assert response.response_time_ms >= 0

    @pytest.mark.asyncio
    async def test_generate_wraps_rate_limit(self):
        provider, _ = _openai_with_client(error=FakeStatusError(429))

        with pytest.raises(LLMProviderError) as exc_info:
            await provider.generate(_request())

        assert str(exc_info.value) == "Rate limit exceeded"
        assert exc_info.value.error.code == ProviderErrorCode.RATE_LIMIT
        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_generate_wraps_auth_failure(self):
        provider, _ = _openai_with_client(error=FakeStatusError(401))

        with pytest.raises(LLMProviderError) as exc_info:
            await provider.generate(_request())

        assert str(exc_info.value) == "Invalid API key"
        assert exc_info.value.retryable is False

    @pytest.mark.parametrize("status,message", [
        (500, "OpenAI server error"),
        (503, "OpenAI service unavailable"),
        (418, "OpenAI API error (418)"),
    ])
    def test_handle_error_messages(self, status, message):
        provider = OpenAIProvider(_openai_config())
        assert provider.handle_error(FakeStatusError(status)) == message

    def test_handle_error_timeout(self):
        provider = OpenAIProvider(_openai_config())
        assert provider.handle_error(asyncio.TimeoutError()) == "Request timeout"
        assert provider.handle_error(APITimeoutError()) == "Request timeout"

    def test_handle_error_plain_exception(self):
        provider = OpenAIProvider(_openai_config())
        assert provider.handle_error(RuntimeError("socket closed")) == "socket closed"
        assert provider.handle_error(RuntimeError()) == "Unknown error occurred"

    def test_retryable_errors(self):
        provider = OpenAIProvider(_openai_config())
        assert provider.is_retryable_error(FakeStatusError(429)) is True
        assert provider.is_retryable_error(FakeStatusError(500)) is True
        assert provider.is_retryable_error(APITimeoutError()) is True
        assert provider.is_retryable_error(FakeStatusError(400)) is False
        assert provider.is_retryable_error(RuntimeError("Service unavailable, retry")) is True
        assert provider.is_retryable_error(RuntimeError("bad prompt")) is False

    @pytest.mark.asyncio
    async def test_health_check_ok(self):
        payload = {"model": "gpt-4o-mini", "choices": [{"message": {"content": "Hello!"}}]}
        provider, client = _openai_with_client(payload)
        assert await provider.health_check() is True
        assert client.chat.completions.create.await_args.kwargs["max_tokens"] == 10

    @pytest.mark.asyncio
    async def test_health_check_wrong_answer(self):
        payload = {"model": "gpt-4o-mini", "choices": [{"message": {"content": "Goodbye"}}]}
        provider, _ = _openai_with_client(payload)
        assert await provider.health_check() is False

    @pytest.mark.asyncio
    async def test_health_check_failure(self):
        provider, _ = _openai_with_client(error=FakeStatusError(500))
        assert await provider.health_check() is False


# =============================================================================
# TEST: Anthropic adapter
# =============================================================================

class TestAnthropicProvider:
    """Anthropic messages adapter."""

    def test_format_prompt_uses_system_parameter(self):
        provider = AnthropicProvider(_anthropic_config())
        payload = provider.format_prompt(_request())

        assert payload["model"] == "claude-3-haiku-20240307"
        assert payload["system"] == "You are terse."
        assert payload["messages"] == [{"role": "user", "content": "Summarize this."}]
        assert payload["max_tokens"] == 1000

    def test_format_prompt_without_system(self):
        provider = AnthropicProvider(_anthropic_config())
        payload = provider.format_prompt(_request(system_prompt=""))
        assert "system" not in payload

    def test_parse_response(self, mock_anthropic_response):
        provider = AnthropicProvider(_anthropic_config())
        response = provider.parse_response(mock_anthropic_response)

        assert response.content == "Hello there."
        assert response.provider == "anthropic"
        assert response.usage.input_tokens == 200
        assert response.usage.output_tokens == 80
        expected = round((200 / 1000) * 0.25 + (80 / 1000) * 1.25, 2)
        assert response.usage.cost_cents == pytest.approx(expected)

    @pytest.mark.asyncio
    async def test_generate_calls_sdk(self, mock_anthropic_response):
        client = MagicMock()
        client.messages.create = AsyncMock(return_value=_sdk_result(mock_anthropic_response))
        provider = AnthropicProvider(_anthropic_config(), client=client)

        response = await provider.generate(_request(max_tokens=300))

        kwargs = client.messages.create.await_args.kwargs
        assert kwargs["max_tokens"] == 300
        assert kwargs["system"] == "You are terse."
        assert response.content == "Hello there."

    @pytest.mark.asyncio
    async def test_generate_wraps_server_error(self):
        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=FakeStatusError(500))
        provider = AnthropicProvider(_anthropic_config(), client=client)

        with pytest.raises(LLMProviderError) as exc_info:
            await provider.generate(_request())

        assert str(exc_info.value) == "Anthropic server error"
        assert exc_info.value.error.code == ProviderErrorCode.SERVER_ERROR
        assert exc_info.value.retryable is True


# =============================================================================
# TEST: Registry
# =============================================================================

class TestProviderRegistry:
    """create_provider / ALL_PROVIDERS."""

    def test_registry_contents(self):
        assert set(ALL_PROVIDERS) == {"openai", "anthropic", "mock"}

    def test_create_provider_by_name(self):
        provider = create_provider(_anthropic_config(name="Anthropic"))
        assert isinstance(provider, AnthropicProvider)

    def test_create_mock_provider_with_kwargs(self):
        provider = create_provider(ProviderConfig(name="mock"), min_latency_ms=0, max_latency_ms=0)
        assert isinstance(provider, MockProvider)
        assert provider.max_latency_ms == 0

    def test_create_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown LLM provider"):
            create_provider(ProviderConfig(name="gemini"))
