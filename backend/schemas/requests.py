"""Request bodies accepted by the HTTP API."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ProjectIn(BaseModel):
    """Body of POST /api/new and PUT /api/projects/{id}."""

    name: str = Field(min_length=1)
    description: Optional[str] = None
    tech_stack: Optional[str] = None
    timeline: Optional[str] = None
    additional_notes: Optional[str] = None
    target_deadline: Optional[datetime] = None


class _CamelIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class IdeaCreate(_CamelIn):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    content: Optional[str] = None
    is_final: bool = Field(default=False, alias="isFinal")


class IdeaUpdate(_CamelIn):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    content: Optional[str] = None
    is_final: Optional[bool] = Field(default=None, alias="isFinal")


class SectionCreate(_CamelIn):
    idea_id: int = Field(alias="ideaId")
    title: str = Field(min_length=1)
    description: Optional[str] = None
    order: Optional[int] = None


class SectionUpdate(_CamelIn):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    order: Optional[int] = None
    is_completed: Optional[bool] = Field(default=None, alias="isCompleted")


class TodoCreate(_CamelIn):
    section_id: int = Field(alias="sectionId")
    title: str = Field(min_length=1)
    description: Optional[str] = None


class TodoUpdate(_CamelIn):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    is_completed: Optional[bool] = Field(default=None, alias="isCompleted")
    order: Optional[int] = None


class ChatTurn(BaseModel):
    role: Literal["user", "assistant", "system"] = "user"
    content: str


class ChatRequest(BaseModel):
    """Chat POST body; the last entry is the new user message."""

    messages: List[ChatTurn] = Field(min_length=1)
    tools: bool = True

    def latest_user_message(self) -> str:
        return self.messages[-1].content.strip()
