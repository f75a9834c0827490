"""
Prompt Builder - Prompt Templates Router

Endpoints:
- GET    /api/prompts - List the caller's prompts (newest first)
- POST   /api/prompts - Save a new prompt
- PUT    /api/prompts - Update a prompt (id in body)
- GET    /api/prompts/{prompt_id} - Get one prompt
- PUT    /api/prompts/{prompt_id} - Update one prompt
- DELETE /api/prompts/{prompt_id} - Delete one prompt
- POST   /api/prompts/process - Fill {{variables}} in a template
- POST   /api/prompts/validate - Check template syntax
- GET    /api/prompts/defaults/{category} - Starter template for a category
"""

import os
import logging
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from constants import TIER_LIMITS
from database import get_db, PromptTemplate
from dependencies import get_current_user
from prompt_processing import (
    process_template, extract_variables, validate_template,
    generate_default_template, get_character_count,
)
from schemas.prompts import (
    PromptTemplateCreate, PromptTemplateUpdate, PromptTemplateResponse,
    TemplateProcessRequest, TemplateValidateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/prompts", tags=["Prompts"])

PROMPT_LIMIT_MESSAGE = "You have reached your prompt limit. Upgrade to Pro for unlimited prompts."
NOT_FOUND_MESSAGE = "Prompt not found or access denied"


def _serialize(prompt: PromptTemplate) -> dict:
    return PromptTemplateResponse.model_validate(prompt).model_dump(mode="json")


def get_prompt_limit(tier: Optional[str]) -> int:
    """Max saved prompts for a tier; -1 means unlimited."""
    limits = TIER_LIMITS.get(tier or "free", TIER_LIMITS["free"])
    if (tier or "free") == "free":
        return int(os.getenv("FREE_TIER_MAX_PROMPTS", str(limits["max_prompts"])))
    return limits["max_prompts"]


def _get_owned_prompt(db: Session, prompt_id: int, user_id: int) -> PromptTemplate:
    prompt = db.query(PromptTemplate).filter(
        PromptTemplate.id == prompt_id,
        PromptTemplate.user_id == user_id,
    ).first()
    if not prompt:
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
    return prompt


def _apply_update(prompt: PromptTemplate, data: PromptTemplateUpdate) -> None:
    fields = data.model_dump(exclude_unset=True, exclude={"id"})

    if "title" in fields:
        title = (fields.pop("title") or "").strip()
        if not title:
            raise HTTPException(status_code=400, detail="Title is required")
        prompt.title = title
    if "template_content" in fields:
        content = (fields.pop("template_content") or "").strip()
        if not content:
            raise HTTPException(status_code=400, detail="Template content is required")
        prompt.content = content
    if "description" in fields:
        description = fields.pop("description")
        prompt.description = description.strip() if description else None

    for key, value in fields.items():
        if value is not None:
            setattr(prompt, key, value)
    prompt.updated_at = datetime.utcnow()


# =============================================================================
# CRUD
# =============================================================================

@router.get("")
def list_prompts(
    category: Optional[str] = None,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the caller's prompts, optionally filtered by category."""
    query = db.query(PromptTemplate).filter(PromptTemplate.user_id == current_user["id"])
    if category:
        query = query.filter(PromptTemplate.category == category)
    prompts = query.order_by(PromptTemplate.created_at.desc(), PromptTemplate.id.desc()).all()
    return {"prompts": [_serialize(p) for p in prompts]}


@router.post("")
def create_prompt(
    data: PromptTemplateCreate,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    title = (data.title or "").strip()
    content = (data.template_content or "").strip()

    if not title:
        raise HTTPException(status_code=400, detail="Title is required")
    if not content:
        raise HTTPException(status_code=400, detail="Template content is required")

    limit = get_prompt_limit(current_user.get("tier"))
    if limit != -1:
        count = db.query(PromptTemplate).filter(PromptTemplate.user_id == current_user["id"]).count()
        if count >= limit:
            logger.info(f"User {current_user['id']} hit prompt limit ({limit})")
            raise HTTPException(status_code=429, detail=PROMPT_LIMIT_MESSAGE)

    prompt = PromptTemplate(
        user_id=current_user["id"],
        title=title,
        content=content,
        description=data.description.strip() if data.description else None,
        category=data.category or "custom",
        variables=data.variables,
        tags=data.tags,
        core_settings=data.core_settings,
        advanced_settings=data.advanced_settings,
        is_public=data.is_public,
        usage_count=0,
    )
    db.add(prompt)
    db.commit()
    db.refresh(prompt)

    return {"prompt": _serialize(prompt), "message": "Prompt saved successfully"}


@router.put("")
def update_prompt_by_body(
    data: PromptTemplateUpdate,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a prompt whose id is carried in the request body."""
    if not data.id:
        raise HTTPException(status_code=400, detail="Prompt ID is required")
    return update_prompt(data.id, data, current_user, db)


# =============================================================================
# TEMPLATE UTILITIES
# =============================================================================

@router.post("/process")
def process_prompt_template(
    data: TemplateProcessRequest,
    current_user: dict = Depends(get_current_user)
):
    """Fill a template's {{variables}} and report what remains unfilled."""
    result = process_template(data.template, data.variables)
    return {
        "result": result,
        "variables": extract_variables(data.template),
        "missing": extract_variables(result),
        "counts": get_character_count(result),
    }


@router.post("/validate")
def validate_prompt_template(
    data: TemplateValidateRequest,
    current_user: dict = Depends(get_current_user)
):
    validation = validate_template(data.template)
    validation["variables"] = extract_variables(data.template)
    validation["counts"] = get_character_count(data.template)
    return validation


@router.get("/defaults/{category}")
def get_default_template(category: str):
    template = generate_default_template(category)
    return {"category": category, "template": template, "variables": extract_variables(template)}


# =============================================================================
# SINGLE PROMPT
# =============================================================================

@router.get("/{prompt_id}")
def get_prompt(
    prompt_id: int,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return {"prompt": _serialize(_get_owned_prompt(db, prompt_id, current_user["id"]))}


@router.put("/{prompt_id}")
def update_prompt(
    prompt_id: int,
    data: PromptTemplateUpdate,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    prompt = _get_owned_prompt(db, prompt_id, current_user["id"])
    _apply_update(prompt, data)
    db.commit()
    db.refresh(prompt)
    return {"prompt": _serialize(prompt), "message": "Prompt updated successfully"}


@router.delete("/{prompt_id}")
def delete_prompt(
    prompt_id: int,
    current_user: dict = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    prompt = _get_owned_prompt(db, prompt_id, current_user["id"])
    db.delete(prompt)
    db.commit()
    logger.info(f"Deleted prompt {prompt_id} for user {current_user['id']}")
    return {"message": "Prompt deleted successfully"}
