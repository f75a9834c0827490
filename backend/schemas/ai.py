"""
Prompt Builder - AI Endpoint Pydantic Schemas

Request bodies for /api/ai/improve and /api/ai/generate are validated by
hand in the router so each failure carries its own 400 message; these
models describe the responses.
"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel


class TokenUsageResponse(BaseModel):
    input_tokens: int
    output_tokens: int
    total_tokens: int
    cost_cents: float


class ImproveResponse(BaseModel):
    success: bool = True
    improved_prompt: str
    usage: TokenUsageResponse
    provider: str
    model: str
    response_time_ms: int


class GenerateResponse(BaseModel):
    success: bool = True
    generated_prompt: str
    usage: TokenUsageResponse
    provider: str
    model: str
    response_time_ms: int


class UsageResponse(BaseModel):
    success: bool = True
    quota: Dict[str, Any]
    stats: Dict[str, Any]
    time_until_reset: str
    recent: List[Dict[str, Any]] = []
    tier: Optional[str] = None
