"""
Prompt Builder - Shared Constants

Centralizes version string, canned system prompts, and subscription tier
limits used across multiple modules.
"""

__version__ = "1.4.0"

APP_NAME = "AI Prompt Builder"

# =============================================================================
# SYSTEM PROMPTS
# Sent with every AI improve / generate request.
# =============================================================================
TIGHTEN_SYSTEM_PROMPT = (
    "You are an expert at making prompts more concise and focused. Your task is "
    "to tighten the given prompt by removing unnecessary words, making it more "
    "direct, and ensuring it gets straight to the point while maintaining all "
    "essential information. Return only the improved prompt without any explanations."
)

EXPAND_SYSTEM_PROMPT = (
    "You are an expert at expanding prompts with more detail and context. Your task "
    "is to enhance the given prompt by adding relevant details, clarifying "
    "instructions, and providing more context to help get better results from AI "
    "models. Return only the improved prompt without any explanations."
)

IMPROVE_SYSTEM_PROMPT = """You are an expert at improving AI prompts. Your task is to enhance the given prompt by making it more clear, specific, and effective. Focus on:
- Making instructions clearer and more actionable
- Adding relevant context where needed
- Improving structure and flow
- Ensuring the prompt will generate better results from AI models

Return only the improved prompt without any explanations."""

GENERATE_SYSTEM_PROMPT = (
    "You are an expert at creating effective AI prompts. Create a well-structured "
    "prompt based on the user's description. The prompt should be clear, specific, "
    "and optimized for AI models. Return only the generated prompt without any explanations."
)

HEALTH_CHECK_SYSTEM_PROMPT = "You are a helpful assistant."
HEALTH_CHECK_USER_PROMPT = 'Say "Hello"'

# =============================================================================
# SUBSCRIPTION TIERS
# -1 means unlimited.
# =============================================================================
TIER_LIMITS = {
    "free": {
        "ai_calls_per_month": 10,
        "ai_generate_calls_per_month": 5,
        "tokens_per_month": 10000,
        "max_prompts": 20,
        "max_categories": 3,
    },
    "pro": {
        "ai_calls_per_month": 200,
        "ai_generate_calls_per_month": 100,
        "tokens_per_month": 200000,
        "max_prompts": -1,
        "max_categories": -1,
    },
}

# Request validation bounds for AI endpoints
MAX_TOKENS_LIMIT = 4000
MAX_TEMPERATURE = 2.0
MAX_TEMPLATE_LENGTH = 10000
