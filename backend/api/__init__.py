from fastapi import APIRouter

# Subrouters are imported and re-exported for convenience
from .projects import router as projects_router  # noqa: F401
from .ideas import router as ideas_router  # noqa: F401
from .sections import router as sections_router  # noqa: F401
from .todos import router as todos_router  # noqa: F401
from .chat import router as chat_router  # noqa: F401

__all__ = [
    "APIRouter",
    "projects_router",
    "ideas_router",
    "sections_router",
    "todos_router",
    "chat_router",
]
