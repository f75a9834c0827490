"""
Prompt Builder - OpenAI Chat Completions Provider
==================================================
Wraps the OpenAI chat completions endpoint via the official async SDK.

Config:
    OPENAI_API_KEY=sk-...
    OPENAI_BASE_URL=https://api.openai.com/v1 (optional, for proxies)
"""

import logging
from typing import Any, Dict

from llm_providers.base_provider import BaseLLMProvider
from llm_types import LLMRequest, LLMResponse

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseLLMProvider):
    """OpenAI GPT models via chat.completions."""

    provider_name = "openai"
    preferred_models = ("gpt-4o-mini", "gpt-4o", "gpt-3.5-turbo")
    fallback_model = "gpt-4o-mini"

    def __init__(self, config, client=None):
        super().__init__(config)
        self._client = client

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout / 1000,
                max_retries=self.config.max_retries,
            )
        return self._client

    def is_preferred_model(self, model_name: str) -> bool:
        # Exact names only; "gpt-4o" must not match "gpt-4o-mini"
        return model_name in self.preferred_models

    async def generate(self, request: LLMRequest) -> LLMResponse:
        payload = self.format_prompt(request)

        async def call():
            client = self._get_client()
            response = await client.chat.completions.create(**payload)
            return response.model_dump()

        return await self._timed_generate(request, call)

    def format_prompt(self, request: LLMRequest) -> Dict[str, Any]:
        return {
            "model": request.model or self.default_model_name(),
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            "max_tokens": request.max_tokens or 1000,
            "temperature": 0.7 if request.temperature is None else request.temperature,
            "stream": False,
        }

    def parse_response(self, response: Dict[str, Any]) -> LLMResponse:
        choices = response.get("choices") or []
        message = (choices[0].get("message") or {}) if choices else {}
        raw_content = message.get("content") or ""
        content = raw_content.strip()
        model = response.get("model") or self.default_model_name()

        usage = response.get("usage") or {}
        input_tokens = usage.get("prompt_tokens") or self.estimate_tokens(raw_content)
        output_tokens = usage.get("completion_tokens") or self.estimate_tokens(content)

        return self.create_response(
            content,
            self.create_token_usage(input_tokens, output_tokens, model),
            model,
            0,  # stamped by the caller
            True,
        )

    def handle_error(self, error: Exception) -> str:
        return self._http_error_message(error, "OpenAI")

    def is_retryable_error(self, error: Exception) -> bool:
        return self._is_retryable_http_error(error)
