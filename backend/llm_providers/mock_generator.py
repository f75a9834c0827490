"""
Prompt Builder - Mock Data Generator

Produces canned LLM output for development and tests when
SKIP_AI_REQUEST=true, so the app runs without API keys.
"""

import logging
import math
import random
import re
from datetime import datetime
from typing import Dict, Any, Optional

from llm_types import LLMResponse, TokenUsage

logger = logging.getLogger(__name__)

FILLER_WORDS = {
    "very", "really", "quite", "rather", "somewhat",
    "kind of", "sort of", "basically", "actually", "literally",
}

# Applied in order after filler removal
_TIGHTEN_PATTERNS = [
    re.compile(r"\b(please|kindly|if you could|would you mind)\b", re.IGNORECASE),
    re.compile(r"\b(I would like|I want|I need)\b", re.IGNORECASE),
    re.compile(r"\b(can you|could you)\b", re.IGNORECASE),
    re.compile(r"\b(thank you|thanks)\b", re.IGNORECASE),
    re.compile(r"\b(write|create|generate|produce)\s+(a|an)\s+", re.IGNORECASE),
    re.compile(r"\b(that is|which is|who is)\b", re.IGNORECASE),
]

EXPANSIONS = [
    "Provide detailed and comprehensive information.",
    "Include specific examples and practical applications.",
    "Consider different perspectives and approaches.",
    "Ensure the response is well-structured and easy to understand.",
    "Focus on actionable insights and practical recommendations.",
    "Address potential challenges and provide solutions.",
    "Include relevant context and background information.",
    "Make sure to cover all important aspects thoroughly.",
]

# cents per 1K tokens
MOCK_RATES: Dict[str, Dict[str, float]] = {
    "gpt-4o-mini": {"input": 0.15, "output": 0.6},
    "gpt-4o": {"input": 2.5, "output": 10},
    "gpt-3.5-turbo": {"input": 0.5, "output": 1.5},
    "claude-3-haiku-20240307": {"input": 0.25, "output": 1.25},
    "claude-3-sonnet-20240229": {"input": 3, "output": 15},
    "claude-3-opus-20240229": {"input": 15, "output": 75},
}


class MockDataGenerator:
    """Canned prompt rewrites and responses with realistic token usage."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.request_count = 0
        self._rng = rng or random.Random()

    def generate_improved_prompt(self, original_prompt: str, mode: str) -> str:
        self.request_count += 1
        if mode == "tighten":
            return self._tighten(original_prompt)
        return self._expand(original_prompt)

    def _tighten(self, original_prompt: str) -> str:
        words = [w for w in original_prompt.split(" ") if w.lower() not in FILLER_WORDS]
        result = " ".join(words)
        for pattern in _TIGHTEN_PATTERNS:
            result = pattern.sub("", result)

        # Too aggressive, keep the original
        if len(result.split(" ")) < 3:
            result = original_prompt

        return result.strip() or original_prompt

    def _expand(self, original_prompt: str) -> str:
        picked = self._rng.sample(EXPANSIONS, 2)
        return f"{original_prompt}\n\n{' '.join(picked)}"

    def calculate_mock_cost(self, input_tokens: int, output_tokens: int, model: str) -> int:
        rate = MOCK_RATES.get(model, MOCK_RATES["gpt-4o-mini"])
        input_cost = (input_tokens / 1000) * rate["input"]
        output_cost = (output_tokens / 1000) * rate["output"]
        return round((input_cost + output_cost) * 100)

    def generate_mock_response(self, content: str, model: str = "gpt-4o-mini") -> LLMResponse:
        input_tokens = math.floor(len(content) / 4)
        output_tokens = math.floor(len(content) / 3)
        return LLMResponse(
            content=content,
            usage=TokenUsage(
                input_tokens=input_tokens,
                output_tokens=output_tokens,
                total_tokens=input_tokens + output_tokens,
                cost_cents=self.calculate_mock_cost(input_tokens, output_tokens, model),
            ),
            provider="mock",
            model=model,
            response_time_ms=self._rng.randint(500, 2499),
            success=True,
        )

    def generate_mock_error(self, error_message: str, model: str = "gpt-4o-mini") -> LLMResponse:
        return LLMResponse(
            content="",
            usage=TokenUsage(),
            provider="mock",
            model=model,
            response_time_ms=self._rng.randint(100, 1099),
            success=False,
            error=error_message,
        )

    def get_mock_stats(self) -> Dict[str, Any]:
        return {
            "total_requests": self.request_count,
            "success_rate": 0.95,
            "average_response_time": 1500,
            "last_used": datetime.utcnow().isoformat(),
        }


_generator: Optional[MockDataGenerator] = None


def get_mock_generator() -> MockDataGenerator:
    """Get or create the process-wide mock generator."""
    global _generator
    if _generator is None:
        _generator = MockDataGenerator()
    return _generator
