"""
Tests for the offline mock provider and its data generator.

CI-safe: No external dependencies or API keys required.
"""

import random
from unittest.mock import MagicMock

import pytest

from constants import EXPAND_SYSTEM_PROMPT, IMPROVE_SYSTEM_PROMPT, TIGHTEN_SYSTEM_PROMPT
from llm_providers.mock_generator import EXPANSIONS, MockDataGenerator, get_mock_generator
from llm_providers.mock_provider import GENERIC_RESPONSES, MockProvider
from llm_types import LLMRequest, LLMResponse, ProviderConfig, TokenUsage


def _provider(generator=None):
    return MockProvider(
        ProviderConfig(name="mock", enabled=True),
        generator=generator or MockDataGenerator(rng=random.Random(42)),
        min_latency_ms=0,
        max_latency_ms=0,
    )


# ---------------------------------------------------------------------------
# MockDataGenerator
# ---------------------------------------------------------------------------

class TestMockDataGenerator:
    """Canned rewrites and responses."""

    def test_tighten_removes_fillers_and_politeness(self):
        gen = MockDataGenerator(rng=random.Random(1))
        result = gen.generate_improved_prompt(
            "I would really like you to please write a very short poem about the sea", "tighten"
        )
        assert "really" not in result
        assert "very" not in result
        assert "please" not in result.lower()
        assert "poem about the sea" in result
        assert result == result.strip()

    def test_tighten_keeps_original_when_too_short(self):
        gen = MockDataGenerator()
        assert gen.generate_improved_prompt("Please, thanks", "tighten") == "Please, thanks"

    def test_tighten_all_fillers_returns_original(self):
        gen = MockDataGenerator()
        assert gen.generate_improved_prompt("very very very", "tighten") == "very very very"

    def test_expand_appends_two_sentences(self):
        gen = MockDataGenerator(rng=random.Random(7))
        result = gen.generate_improved_prompt("Explain recursion", "expand")

        assert result.startswith("Explain recursion\n\n")
        added = [sentence for sentence in EXPANSIONS if sentence in result]
        assert len(added) == 2

    def test_request_count_increments(self):
        gen = MockDataGenerator()
        gen.generate_improved_prompt("one two three", "expand")
        gen.generate_improved_prompt("one two three", "tighten")
        assert gen.request_count == 2
        assert gen.get_mock_stats()["total_requests"] == 2

    def test_calculate_mock_cost(self):
        gen = MockDataGenerator()
        assert gen.calculate_mock_cost(1000, 1000, "gpt-4o-mini") == 75
        assert gen.calculate_mock_cost(1000, 1000, "unknown-model") == 75
        assert gen.calculate_mock_cost(1000, 1000, "claude-3-opus-20240229") == 9000

    def test_generate_mock_response_usage(self):
        gen = MockDataGenerator(rng=random.Random(3))
        response = gen.generate_mock_response("a" * 12)

        assert response.success is True
        assert response.provider == "mock"
        assert response.usage.input_tokens == 3
        assert response.usage.output_tokens == 4
        assert response.usage.total_tokens == 7
        assert 500 <= response.response_time_ms < 2500

    def test_generate_mock_error(self):
        response = MockDataGenerator().generate_mock_error("boom")
        assert response.success is False
        assert response.error == "boom"
        assert response.content == ""

    def test_singleton(self):
        assert get_mock_generator() is get_mock_generator()


# ---------------------------------------------------------------------------
# MockProvider
# ---------------------------------------------------------------------------

class TestMockProvider:
    """MockProvider behaviour."""

    @pytest.mark.asyncio
    async def test_improve_tighten(self):
        provider = _provider()
        request = LLMRequest(
            system_prompt=TIGHTEN_SYSTEM_PROMPT,
            user_prompt='Please tighten this prompt:\n\n"Could you really explain the water cycle"',
            operation="prompt-improve",
        )
        response = await provider.generate(request)

        assert response.success is True
        assert response.provider == "mock"
        assert response.model == "gpt-4o-mini"
        assert "really" not in response.content
        assert not any(sentence in response.content for sentence in EXPANSIONS)

    @pytest.mark.asyncio
    async def test_improve_expand(self):
        provider = _provider()
        request = LLMRequest(
            system_prompt=EXPAND_SYSTEM_PROMPT,
            user_prompt="Explain recursion",
            operation="prompt-improve",
        )
        response = await provider.generate(request)
        assert sum(sentence in response.content for sentence in EXPANSIONS) == 2

    @pytest.mark.asyncio
    async def test_generic_operation(self):
        provider = _provider()
        request = LLMRequest(system_prompt="x", user_prompt="Create a prompt for: jokes",
                             operation="prompt-generate")
        response = await provider.generate(request)

        assert response.content.endswith("Original request: Create a prompt for: jokes")
        assert any(response.content.startswith(r) for r in GENERIC_RESPONSES)

    @pytest.mark.asyncio
    async def test_requested_model_is_echoed(self):
        response = await _provider().generate(
            LLMRequest(system_prompt="", user_prompt="hi", model="gpt-4o", operation="analysis")
        )
        assert response.model == "gpt-4o"

    @pytest.mark.asyncio
    async def test_generator_failure_is_raised(self):
        generator = MagicMock()
        generator.generate_improved_prompt.side_effect = RuntimeError("generator broke")
        generator.generate_mock_error.return_value = LLMResponse(
            content="", usage=TokenUsage(), provider="mock", model="gpt-4o-mini", success=False
        )
        provider = _provider(generator)

        with pytest.raises(RuntimeError, match="generator broke"):
            await provider.generate(LLMRequest(system_prompt="", user_prompt="x", operation="prompt-improve"))
        generator.generate_mock_error.assert_called_once()

    @pytest.mark.asyncio
    async def test_health_check_always_true(self):
        assert await _provider().health_check() is True

    def test_mode_extraction(self):
        provider = _provider()
        assert provider._extract_mode(TIGHTEN_SYSTEM_PROMPT) == "tighten"
        assert provider._extract_mode(EXPAND_SYSTEM_PROMPT) == "expand"
        assert provider._extract_mode(IMPROVE_SYSTEM_PROMPT) == "expand"
        assert provider._extract_mode("") == "expand"

    def test_never_retryable(self):
        assert _provider().is_retryable_error(RuntimeError("x")) is False
