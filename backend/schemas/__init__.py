"""
Prompt Builder - Pydantic Schema Models

Organized by domain for use across routers.
"""

from schemas.prompts import (  # noqa: F401
    PromptTemplateBase,
    PromptTemplateCreate,
    PromptTemplateUpdate,
    PromptTemplateResponse,
    TemplateProcessRequest,
    TemplateValidateRequest,
)
from schemas.ai import (  # noqa: F401
    TokenUsageResponse,
    ImproveResponse,
    GenerateResponse,
    UsageResponse,
)
