from fastapi import APIRouter

# Re-export generate_stream symbol so tests monkeypatch it via `import router as router_module`
from llm import generate_stream as generate_stream  # noqa: F401

# Compose modular sub-routers
from api import (
    projects_router,
    ideas_router,
    sections_router,
    todos_router,
    chat_router,
)


router = APIRouter()

# main.py applies the `/api` prefix
router.include_router(projects_router)
router.include_router(ideas_router)
router.include_router(sections_router)
router.include_router(todos_router)
router.include_router(chat_router)
