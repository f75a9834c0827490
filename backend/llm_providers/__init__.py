"""
LLM Provider Registry for Prompt Builder.

Each provider is an adapter that inherits from BaseLLMProvider and wraps
one vendor's chat-completion API (or the offline mock).

Usage:
    from llm_providers import create_provider

    provider = create_provider(provider_config)
    response = await provider.generate(request)
"""

from typing import Dict, Type

from llm_types import ProviderConfig

from .base_provider import BaseLLMProvider  # noqa: F401
from .openai_provider import OpenAIProvider  # noqa: F401
from .anthropic_provider import AnthropicProvider  # noqa: F401
from .mock_provider import MockProvider  # noqa: F401
from .mock_generator import MockDataGenerator, get_mock_generator  # noqa: F401

ALL_PROVIDERS: Dict[str, Type[BaseLLMProvider]] = {
    OpenAIProvider.provider_name: OpenAIProvider,
    AnthropicProvider.provider_name: AnthropicProvider,
    MockProvider.provider_name: MockProvider,
}


def create_provider(config: ProviderConfig, **kwargs) -> BaseLLMProvider:
    """
    Build the adapter registered for `config.name` (case-insensitive).

    Raises:
        ValueError: no adapter is registered under that name.
    """
    provider_class = ALL_PROVIDERS.get(config.name.lower())
    if provider_class is None:
        raise ValueError(f"Unknown LLM provider: {config.name}")
    return provider_class(config, **kwargs)
