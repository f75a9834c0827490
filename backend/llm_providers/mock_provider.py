"""
Prompt Builder - Mock LLM Provider
===================================
Offline provider used when SKIP_AI_REQUEST=true. Simulates network latency
and returns output from MockDataGenerator.

Config:
    MOCK_MIN_LATENCY_MS=200
    MOCK_MAX_LATENCY_MS=1200
"""

import asyncio
import logging
import random
import time
from typing import Optional

from llm_providers.base_provider import BaseLLMProvider
from llm_providers.mock_generator import MockDataGenerator, get_mock_generator
from llm_types import LLMRequest, LLMResponse

logger = logging.getLogger(__name__)

GENERIC_RESPONSES = [
    "This is a mock response for development purposes.",
    "Mock data generated for testing.",
    "Development mode: This would be the actual AI response.",
    "Test response - no actual AI processing performed.",
    "Mock content generated based on your request.",
]


class MockProvider(BaseLLMProvider):
    """Always-healthy provider that never leaves the process."""

    provider_name = "mock"
    fallback_model = "gpt-4o-mini"

    def __init__(
        self,
        config,
        generator: Optional[MockDataGenerator] = None,
        min_latency_ms: int = 200,
        max_latency_ms: int = 1200,
    ):
        super().__init__(config)
        self.generator = generator or get_mock_generator()
        self.min_latency_ms = min_latency_ms
        self.max_latency_ms = max(min_latency_ms, max_latency_ms)

    async def generate(self, request: LLMRequest) -> LLMResponse:
        start = time.time()
        model = request.model or self.default_model_name()

        try:
            if self.max_latency_ms > 0:
                delay = random.uniform(self.min_latency_ms, self.max_latency_ms) / 1000
                await asyncio.sleep(delay)

            if request.operation == "prompt-improve":
                mode = self._extract_mode(request.system_prompt)
                content = self.generator.generate_improved_prompt(request.user_prompt, mode)
            else:
                content = self._generic_response(request)

            response = self.generator.generate_mock_response(content, model)
            response.provider = self.name
            response.response_time_ms = int((time.time() - start) * 1000)
            self.log_request(request, response)
            return response
        except Exception as e:
            failed = self.generator.generate_mock_error(self.handle_error(e), model)
            failed.response_time_ms = int((time.time() - start) * 1000)
            self.log_request(request, failed)
            raise

    def format_prompt(self, request: LLMRequest) -> LLMRequest:
        return request

    def parse_response(self, response: LLMResponse) -> LLMResponse:
        return response

    def handle_error(self, error: Exception) -> str:
        return str(error) or "Mock error occurred"

    def is_retryable_error(self, error: Exception) -> bool:
        return False

    async def health_check(self) -> bool:
        return True

    def _extract_mode(self, system_prompt: str) -> str:
        lowered = (system_prompt or "").lower()
        if "tighten" in lowered or "concise" in lowered:
            return "tighten"
        return "expand"

    def _generic_response(self, request: LLMRequest) -> str:
        return f"{random.choice(GENERIC_RESPONSES)}\n\nOriginal request: {request.user_prompt}"
