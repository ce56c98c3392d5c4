from __future__ import annotations

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from utils.text import decode_chat_message


def _get(row, key: str, default=None):
    try:
        return row[key]
    except (IndexError, KeyError):
        return default


class Project(BaseModel):
    id: int | None = Field(default=None)
    user_id: int
    name: str
    description: Optional[str] = None
    tech_stack: Optional[str] = None
    timeline: Optional[str] = None
    additional_notes: Optional[str] = None
    target_deadline: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row) -> "Project":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            description=row["description"],
            tech_stack=row["tech_stack"],
            timeline=row["timeline"],
            additional_notes=row["additional_notes"],
            target_deadline=row["target_deadline"],
            created_at=_get(row, "created_at"),
            updated_at=_get(row, "updated_at"),
        )


class _CamelModel(BaseModel):
    # Step-planning payloads are consumed by the UI in camelCase
    model_config = ConfigDict(populate_by_name=True)


class Idea(_CamelModel):
    id: int | None = Field(default=None)
    project_id: int = Field(alias="projectId")
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    is_final: bool = Field(default=False, alias="isFinal")
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    @classmethod
    def from_row(cls, row) -> "Idea":
        return cls(
            id=row["id"],
            project_id=row["project_id"],
            title=row["title"],
            description=row["description"],
            content=row["content"],
            is_final=bool(row["is_final"]),
            created_at=_get(row, "created_at"),
        )


class StepSection(_CamelModel):
    id: int | None = Field(default=None)
    idea_id: int = Field(alias="ideaId")
    title: str
    description: Optional[str] = None
    order: int = 0
    is_completed: bool = Field(default=False, alias="isCompleted")
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    @classmethod
    def from_row(cls, row) -> "StepSection":
        return cls(
            id=row["id"],
            idea_id=row["idea_id"],
            title=row["title"],
            description=row["description"],
            order=row["sort_order"],
            is_completed=bool(row["is_completed"]),
            created_at=_get(row, "created_at"),
        )


class StepTodo(_CamelModel):
    id: int | None = Field(default=None)
    section_id: int = Field(alias="sectionId")
    title: str
    description: Optional[str] = None
    is_completed: bool = Field(default=False, alias="isCompleted")
    order: int = 0
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    @classmethod
    def from_row(cls, row) -> "StepTodo":
        return cls(
            id=row["id"],
            section_id=row["section_id"],
            title=row["title"],
            description=row["description"],
            is_completed=bool(row["is_completed"]),
            order=row["sort_order"],
            created_at=_get(row, "created_at"),
        )


class ChatMessage(_CamelModel):
    """A chat log row decoded for replay or display."""

    id: str
    role: str  # 'user' or 'assistant'
    content: str
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    @classmethod
    def from_row(cls, row) -> "ChatMessage":
        role, content = decode_chat_message(row["message"], _get(row, "role"))
        return cls(
            id=str(row["id"]),
            role=role,
            content=content,
            created_at=_get(row, "created_at"),
        )
