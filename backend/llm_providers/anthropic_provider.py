"""
Prompt Builder - Anthropic Messages Provider
=============================================
Wraps the Anthropic messages endpoint via the official async SDK.

Config:
    ANTHROPIC_API_KEY=sk-ant-...
"""

import logging
from typing import Any, Dict

from llm_providers.base_provider import BaseLLMProvider
from llm_types import LLMRequest, LLMResponse

logger = logging.getLogger(__name__)

ANTHROPIC_API_VERSION = "2023-06-01"


class AnthropicProvider(BaseLLMProvider):
    """Anthropic Claude models via messages.create."""

    provider_name = "anthropic"
    preferred_models = (
        "claude-3-haiku-20240307",
        "claude-3-sonnet-20240229",
        "claude-3-opus-20240229",
    )
    fallback_model = "claude-3-haiku-20240307"

    def __init__(self, config, client=None):
        super().__init__(config)
        self._client = client

    def _get_client(self):
        if self._client is None:
            from anthropic import AsyncAnthropic
            self._client = AsyncAnthropic(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout / 1000,
                max_retries=self.config.max_retries,
                default_headers={"anthropic-version": ANTHROPIC_API_VERSION},
            )
        return self._client

    def is_preferred_model(self, model_name: str) -> bool:
        return model_name in self.preferred_models

    async def generate(self, request: LLMRequest) -> LLMResponse:
        payload = self.format_prompt(request)

        async def call():
            client = self._get_client()
            response = await client.messages.create(**payload)
            return response.model_dump()

        return await self._timed_generate(request, call)

    def format_prompt(self, request: LLMRequest) -> Dict[str, Any]:
        kwargs = {
            "model": request.model or self.default_model_name(),
            "max_tokens": request.max_tokens or 1000,
            "temperature": 0.7 if request.temperature is None else request.temperature,
            "messages": [{"role": "user", "content": request.user_prompt}],
        }
        if request.system_prompt:
            kwargs["system"] = request.system_prompt
        return kwargs

    def parse_response(self, response: Dict[str, Any]) -> LLMResponse:
        blocks = response.get("content") or []
        raw_text = (blocks[0].get("text") or "") if blocks else ""
        content = raw_text.strip()
        model = response.get("model") or self.default_model_name()

        usage = response.get("usage") or {}
        input_tokens = usage.get("input_tokens") or self.estimate_tokens(raw_text)
        output_tokens = usage.get("output_tokens") or self.estimate_tokens(content)

        return self.create_response(
            content,
            self.create_token_usage(input_tokens, output_tokens, model),
            model,
            0,
            True,
        )

    def handle_error(self, error: Exception) -> str:
        return self._http_error_message(error, "Anthropic")

    def is_retryable_error(self, error: Exception) -> bool:
        return self._is_retryable_http_error(error)
