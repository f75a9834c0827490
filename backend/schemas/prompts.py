"""
Prompt Builder - Prompt Template Pydantic Schemas
"""

from datetime import datetime
from typing import Optional, Dict, List, Any
from pydantic import BaseModel, Field


class PromptTemplateBase(BaseModel):
    # Required fields are checked in the router so missing values map to 400
    title: Optional[str] = None
    template_content: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    variables: Dict[str, Any] = Field(default_factory=dict)
    tags: List[str] = Field(default_factory=list)
    core_settings: Dict[str, Any] = Field(default_factory=dict)
    advanced_settings: Dict[str, Any] = Field(default_factory=dict)
    is_public: bool = False


class PromptTemplateCreate(PromptTemplateBase):
    pass


class PromptTemplateUpdate(PromptTemplateBase):
    id: Optional[int] = None
    is_favorite: Optional[bool] = None


class PromptTemplateResponse(BaseModel):
    id: int
    user_id: int
    title: str
    template_content: str = Field(validation_alias="content")
    description: Optional[str] = None
    category: Optional[str] = None
    variables: Optional[Dict[str, Any]] = None
    tags: Optional[List[str]] = None
    core_settings: Optional[Dict[str, Any]] = None
    advanced_settings: Optional[Dict[str, Any]] = None
    is_public: bool = False
    is_favorite: bool = False
    usage_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TemplateProcessRequest(BaseModel):
    template: str
    variables: Dict[str, str] = Field(default_factory=dict)


class TemplateValidateRequest(BaseModel):
    template: str
