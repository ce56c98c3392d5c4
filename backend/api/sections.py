from typing import Optional

from fastapi import APIRouter, Depends, Query

from models.db import (
    create_section,
    list_sections,
    update_section,
    set_section_completion,
    get_section_for_user,
)
from models.schemas import StepSection
from schemas.requests import SectionCreate, SectionUpdate
from .auth import get_current_user
from .common import require_idea, require_section


router = APIRouter()


@router.get("/step-sections")
def list_sections_route(ideaId: Optional[str] = Query(None), user=Depends(get_current_user)):
    idea = require_idea(ideaId, user)
    rows = list_sections(idea["id"])
    return {"success": True, "data": [StepSection.from_row(r).model_dump(by_alias=True) for r in rows]}


@router.post("/step-sections", status_code=201)
def create_section_route(payload: SectionCreate, user=Depends(get_current_user)):
    idea = require_idea(payload.idea_id, user)
    section_id = create_section(idea["id"], payload.title, payload.description, payload.order)
    row = get_section_for_user(section_id, user["id"])
    return {"success": True, "data": StepSection.from_row(row).model_dump(by_alias=True)}


@router.get("/step-sections/{section_id}")
def get_section_route(section_id: str, user=Depends(get_current_user)):
    row = require_section(section_id, user)
    return {"success": True, "data": StepSection.from_row(row).model_dump(by_alias=True)}


@router.patch("/step-sections/{section_id}")
def update_section_route(section_id: str, payload: SectionUpdate, user=Depends(get_current_user)):
    section = require_section(section_id, user)
    update_section(section["id"], title=payload.title, description=payload.description, order=payload.order)
    if payload.is_completed is not None:
        # Toggling a section applies the same state to every todo in it
        set_section_completion(section["id"], payload.is_completed)
    row = get_section_for_user(section["id"], user["id"])
    return {"success": True, "data": StepSection.from_row(row).model_dump(by_alias=True)}
