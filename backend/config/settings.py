"""Runtime configuration, read once from the environment."""

import os
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


BACKEND_DIR = Path(__file__).resolve().parents[1]

# Storage
DATA_DIR = BACKEND_DIR / "data"
DEFAULT_DB_PATH = DATA_DIR / "app.db"
DB_PATH = os.getenv("BUILDFAST_DB_PATH", str(DEFAULT_DB_PATH))
MIGRATIONS_DIR = BACKEND_DIR / "migrations"

# LLM provider (any OpenAI-compatible endpoint; OpenRouter by default)
LLM_BASE_URL = os.getenv("LLM_BASE_URL", "https://openrouter.ai/api/v1")
LLM_API_KEY = os.getenv("LLM_API_KEY") or os.getenv("OPENROUTER_API_KEY") or "sk-no-key"
LLM_MODEL = os.getenv("LLM_MODEL", "mistralai/mistral-small-3.2-24b-instruct:free")
LLM_TEMPERATURE = _env_float("LLM_TEMPERATURE", 0.7)
LLM_MAX_TOKENS = _env_int("LLM_MAX_TOKENS", 1024)
LLM_MAX_TOOL_ROUNDS = _env_int("LLM_MAX_TOOL_ROUNDS", 5)

# Chat context sizes
CHAT_HISTORY_LIMIT = _env_int("CHAT_HISTORY_LIMIT", 20)
PLANNING_HISTORY_WINDOW = _env_int("PLANNING_HISTORY_WINDOW", 10)

# Projects
DEFAULT_DEADLINE_DAYS = _env_int("DEFAULT_DEADLINE_DAYS", 7)

# HTTP
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

# Diagnostics
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
DEBUG_STREAM = os.getenv("DEBUG_STREAM", "0").lower() in ("1", "true", "yes")
