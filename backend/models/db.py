from __future__ import annotations

import logging
import secrets
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence

from config import settings


logger = logging.getLogger(__name__)

settings.DATA_DIR.mkdir(parents=True, exist_ok=True)

_DB_PATH: Path = Path(settings.DB_PATH)

CHAT_ROLES = ("user", "assistant")


def set_db_path(path: Path | str) -> None:
    global _DB_PATH
    _DB_PATH = Path(path)
    _DB_PATH.parent.mkdir(parents=True, exist_ok=True)


def get_db_path() -> Path:
    return _DB_PATH


def _connect(path: Optional[Path] = None) -> sqlite3.Connection:
    target = Path(path) if path else get_db_path()
    conn = sqlite3.connect(target, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    # Enforce foreign keys
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def get_connection(path: Optional[Path] = None) -> Iterator[sqlite3.Connection]:
    conn = _connect(path)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def _ensure_schema_migrations_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            applied_at TEXT NOT NULL DEFAULT (datetime('now'))
        );
        """
    )


def _get_applied_versions(conn: sqlite3.Connection) -> set[str]:
    _ensure_schema_migrations_table(conn)
    cur = conn.execute("SELECT version FROM schema_migrations")
    return {row[0] for row in cur.fetchall()}


def _record_applied(conn: sqlite3.Connection, version: str) -> None:
    conn.execute("INSERT OR IGNORE INTO schema_migrations(version) VALUES (?)", (version,))


def _migration_files() -> Sequence[Path]:
    migrations_dir = settings.MIGRATIONS_DIR
    if not migrations_dir.exists():
        return []
    return sorted(p for p in migrations_dir.iterdir() if p.suffix == ".sql")


def run_migrations(path: Optional[Path] = None) -> None:
    """Run pending SQL migrations found in backend/migrations/*.sql in sorted order."""
    with get_connection(path) as conn:
        applied = _get_applied_versions(conn)
        for sql_file in _migration_files():
            version = sql_file.stem
            if version in applied:
                continue
            logger.info("Applying migration %s", version)
            conn.executescript(sql_file.read_text(encoding="utf-8"))
            _record_applied(conn, version)


def init_db(path: Optional[Path] = None) -> None:
    """Initialize database by running migrations. Safe to call multiple times."""
    run_migrations(path)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- Users and sessions (read by the session provider) ---

def create_user(email: str, name: Optional[str] = None) -> int:
    with get_connection() as conn:
        cur = conn.execute("INSERT INTO users(email, name) VALUES(?, ?)", (email, name))
        return int(cur.lastrowid)


def get_user(user_id: int) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        return conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()


def create_session(user_id: int, ttl_days: int = 30, token: Optional[str] = None) -> str:
    """Issue a bearer token for a user and return it."""
    token = token or secrets.token_urlsafe(32)
    expires_at = (_utcnow() + timedelta(days=ttl_days)).isoformat()
    with get_connection() as conn:
        conn.execute(
            "INSERT INTO sessions(token, user_id, expires_at) VALUES(?, ?, ?)",
            (token, user_id, expires_at),
        )
    return token


def get_session_by_token(token: str) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        return conn.execute("SELECT * FROM sessions WHERE token = ?", (token,)).fetchone()


# --- Projects ---

PROJECT_FIELDS = ("name", "description", "tech_stack", "timeline", "additional_notes", "target_deadline")


def create_project(
    user_id: int,
    name: str,
    description: Optional[str] = None,
    tech_stack: Optional[str] = None,
    timeline: Optional[str] = None,
    additional_notes: Optional[str] = None,
    target_deadline: Optional[str] = None,
) -> int:
    with get_connection() as conn:
        cur = conn.execute(
            """
            INSERT INTO projects(user_id, name, description, tech_stack, timeline, additional_notes, target_deadline)
            VALUES(?, ?, ?, ?, ?, ?, ?)
            """,
            (user_id, name, description, tech_stack, timeline, additional_notes, target_deadline),
        )
        return int(cur.lastrowid)


def get_project(project_id: int, user_id: int) -> Optional[sqlite3.Row]:
    """Return the project only when it belongs to user_id."""
    with get_connection() as conn:
        cur = conn.execute(
            "SELECT * FROM projects WHERE id = ? AND user_id = ?", (project_id, user_id)
        )
        return cur.fetchone()


def list_projects(user_id: int) -> list[sqlite3.Row]:
    with get_connection() as conn:
        cur = conn.execute(
            "SELECT * FROM projects WHERE user_id = ? ORDER BY created_at DESC, id DESC", (user_id,)
        )
        return list(cur.fetchall())


def update_project(project_id: int, user_id: int, **fields: Any) -> Optional[sqlite3.Row]:
    """Update the given columns on a project owned by user_id.

    Returns the updated row, or None when no row matches the id/owner pair.
    """
    sets = []
    params: list[Any] = []
    for key in PROJECT_FIELDS:
        if key in fields:
            sets.append(f"{key} = ?")
            params.append(fields[key])
    with get_connection() as conn:
        if sets:
            sql = "UPDATE projects SET " + ", ".join(sets) + ", updated_at = datetime('now') WHERE id = ? AND user_id = ?"
            cur = conn.execute(sql, params + [project_id, user_id])
            if cur.rowcount == 0:
                return None
        return conn.execute(
            "SELECT * FROM projects WHERE id = ? AND user_id = ?", (project_id, user_id)
        ).fetchone()


# --- Ideas ---

def create_idea(
    project_id: int,
    title: str,
    description: Optional[str] = None,
    content: Optional[str] = None,
    is_final: bool = False,
) -> int:
    with get_connection() as conn:
        cur = conn.execute(
            "INSERT INTO ideas(project_id, title, description, content, is_final) VALUES(?, ?, ?, ?, ?)",
            (project_id, title, description, content, 1 if is_final else 0),
        )
        return int(cur.lastrowid)


def list_ideas(project_id: int) -> list[sqlite3.Row]:
    with get_connection() as conn:
        cur = conn.execute("SELECT * FROM ideas WHERE project_id = ? ORDER BY id ASC", (project_id,))
        return list(cur.fetchall())


def get_idea_for_user(idea_id: int, user_id: int) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        cur = conn.execute(
            """
            SELECT i.* FROM ideas i
            JOIN projects p ON p.id = i.project_id
            WHERE i.id = ? AND p.user_id = ?
            """,
            (idea_id, user_id),
        )
        return cur.fetchone()


def update_idea(
    idea_id: int,
    title: Optional[str] = None,
    description: Optional[str] = None,
    content: Optional[str] = None,
    is_final: Optional[bool] = None,
) -> bool:
    # is_final is not exclusive per project; several ideas may carry it
    fields = []
    params: list[Any] = []
    if title is not None:
        fields.append("title = ?")
        params.append(title)
    if description is not None:
        fields.append("description = ?")
        params.append(description)
    if content is not None:
        fields.append("content = ?")
        params.append(content)
    if is_final is not None:
        fields.append("is_final = ?")
        params.append(1 if is_final else 0)
    if not fields:
        return False
    sql = "UPDATE ideas SET " + ", ".join(fields) + ", updated_at = datetime('now') WHERE id = ?"
    with get_connection() as conn:
        cur = conn.execute(sql, params + [idea_id])
        return cur.rowcount > 0


# --- Step sections ---

def create_section(
    idea_id: int,
    title: str,
    description: Optional[str] = None,
    order: Optional[int] = None,
) -> int:
    with get_connection() as conn:
        if order is None:
            cur = conn.execute(
                """
                INSERT INTO step_sections(idea_id, title, description, sort_order)
                SELECT ?, ?, ?, COALESCE(MAX(sort_order), 0) + 1 FROM step_sections WHERE idea_id = ?
                """,
                (idea_id, title, description, idea_id),
            )
        else:
            cur = conn.execute(
                "INSERT INTO step_sections(idea_id, title, description, sort_order) VALUES(?, ?, ?, ?)",
                (idea_id, title, description, order),
            )
        return int(cur.lastrowid)


def list_sections(idea_id: int) -> list[sqlite3.Row]:
    with get_connection() as conn:
        cur = conn.execute(
            "SELECT * FROM step_sections WHERE idea_id = ? ORDER BY sort_order ASC, id ASC", (idea_id,)
        )
        return list(cur.fetchall())


def get_section(section_id: int) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        return conn.execute("SELECT * FROM step_sections WHERE id = ?", (section_id,)).fetchone()


def get_section_for_user(section_id: int, user_id: int) -> Optional[sqlite3.Row]:
    """Return the section joined with its idea title, if the caller owns the project."""
    with get_connection() as conn:
        cur = conn.execute(
            """
            SELECT s.*, i.title AS idea_title, i.project_id AS project_id
            FROM step_sections s
            JOIN ideas i ON i.id = s.idea_id
            JOIN projects p ON p.id = i.project_id
            WHERE s.id = ? AND p.user_id = ?
            """,
            (section_id, user_id),
        )
        return cur.fetchone()


def update_section(
    section_id: int,
    title: Optional[str] = None,
    description: Optional[str] = None,
    order: Optional[int] = None,
) -> bool:
    fields = []
    params: list[Any] = []
    if title is not None:
        fields.append("title = ?")
        params.append(title)
    if description is not None:
        fields.append("description = ?")
        params.append(description)
    if order is not None:
        fields.append("sort_order = ?")
        params.append(order)
    if not fields:
        return False
    sql = "UPDATE step_sections SET " + ", ".join(fields) + ", updated_at = datetime('now') WHERE id = ?"
    with get_connection() as conn:
        cur = conn.execute(sql, params + [section_id])
        return cur.rowcount > 0


def set_section_completion(section_id: int, completed: bool) -> bool:
    """Set a section's completion flag and push the same flag to all of its todos."""
    flag = 1 if completed else 0
    with get_connection() as conn:
        cur = conn.execute(
            "UPDATE step_sections SET is_completed = ?, updated_at = datetime('now') WHERE id = ?",
            (flag, section_id),
        )
        if cur.rowcount == 0:
            return False
        conn.execute(
            "UPDATE step_todos SET is_completed = ?, updated_at = datetime('now') WHERE section_id = ?",
            (flag, section_id),
        )
        return True


def recompute_section_completion(section_id: int) -> Optional[bool]:
    """Derive a section's completion from its todos: complete iff it has todos and all are done.

    Returns the new flag, or None if the section does not exist.
    """
    with get_connection() as conn:
        row = conn.execute(
            """
            SELECT COUNT(*) AS total, COALESCE(SUM(is_completed), 0) AS done
            FROM step_todos WHERE section_id = ?
            """,
            (section_id,),
        ).fetchone()
        completed = bool(row["total"]) and row["done"] == row["total"]
        cur = conn.execute(
            "UPDATE step_sections SET is_completed = ?, updated_at = datetime('now') WHERE id = ? AND is_completed != ?",
            (1 if completed else 0, section_id, 1 if completed else 0),
        )
        if cur.rowcount == 0:
            exists = conn.execute("SELECT 1 FROM step_sections WHERE id = ?", (section_id,)).fetchone()
            if exists is None:
                return None
        return completed


# --- Step todos ---

def list_todos_db(section_id: int) -> list[sqlite3.Row]:
    with get_connection() as conn:
        cur = conn.execute(
            "SELECT * FROM step_todos WHERE section_id = ? ORDER BY sort_order ASC, id ASC", (section_id,)
        )
        return list(cur.fetchall())


def get_todo(todo_id: int, section_id: Optional[int] = None) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        if section_id is not None:
            cur = conn.execute(
                "SELECT * FROM step_todos WHERE id = ? AND section_id = ?", (todo_id, section_id)
            )
        else:
            cur = conn.execute("SELECT * FROM step_todos WHERE id = ?", (todo_id,))
        return cur.fetchone()


def get_todo_for_user(todo_id: int, user_id: int) -> Optional[sqlite3.Row]:
    with get_connection() as conn:
        cur = conn.execute(
            """
            SELECT t.* FROM step_todos t
            JOIN step_sections s ON s.id = t.section_id
            JOIN ideas i ON i.id = s.idea_id
            JOIN projects p ON p.id = i.project_id
            WHERE t.id = ? AND p.user_id = ?
            """,
            (todo_id, user_id),
        )
        return cur.fetchone()


def add_todo_db(section_id: int, title: str, description: Optional[str] = None) -> int:
    """Insert a todo at the end of the section.

    The next order (max + 1, or 1 for an empty section) is computed inside the
    INSERT itself so two concurrent inserts cannot read the same maximum.
    """
    with get_connection() as conn:
        cur = conn.execute(
            """
            INSERT INTO step_todos(section_id, title, description, is_completed, sort_order)
            SELECT ?, ?, ?, 0, COALESCE(MAX(sort_order), 0) + 1 FROM step_todos WHERE section_id = ?
            """,
            (section_id, title, description, section_id),
        )
        return int(cur.lastrowid)


def update_todo_db(
    todo_id: int,
    section_id: Optional[int] = None,
    title: Optional[str] = None,
    description: Optional[str] = None,
    is_completed: Optional[bool] = None,
    order: Optional[int] = None,
) -> bool:
    """Update only the supplied fields. Returns True if the todo exists."""
    fields = []
    params: list[Any] = []
    if title is not None:
        fields.append("title = ?")
        params.append(title)
    if description is not None:
        fields.append("description = ?")
        params.append(description)
    if is_completed is not None:
        fields.append("is_completed = ?")
        params.append(1 if is_completed else 0)
    if order is not None:
        fields.append("sort_order = ?")
        params.append(order)
    where_clause = "id = ?"
    params.append(todo_id)
    if section_id is not None:
        where_clause += " AND section_id = ?"
        params.append(section_id)
    with get_connection() as conn:
        if not fields:
            chk = conn.execute("SELECT 1 FROM step_todos WHERE " + where_clause, params).fetchone()
            return chk is not None
        sql = "UPDATE step_todos SET " + ", ".join(fields) + ", updated_at = datetime('now') WHERE " + where_clause
        cur = conn.execute(sql, params)
        return cur.rowcount > 0


def delete_todo_db(todo_id: int, section_id: Optional[int] = None) -> bool:
    with get_connection() as conn:
        if section_id is not None:
            cur = conn.execute("DELETE FROM step_todos WHERE id = ? AND section_id = ?", (todo_id, section_id))
        else:
            cur = conn.execute("DELETE FROM step_todos WHERE id = ?", (todo_id,))
        return cur.rowcount > 0


# --- Chat logs ---
# Both logs share one shape; the table and its parent column are fixed per scope.

_CHAT_TABLES = {
    "section": ("step_section_chats", "section_id"),
    "planning": ("step_planning_chats", "idea_id"),
}


def _add_chat_row(scope: str, parent_id: int, role: str, message: str) -> int:
    if role not in CHAT_ROLES:
        raise ValueError(f"Invalid chat role: {role!r}")
    table, parent_col = _CHAT_TABLES[scope]
    with get_connection() as conn:
        cur = conn.execute(
            f"INSERT INTO {table}({parent_col}, role, message) VALUES(?, ?, ?)",
            (parent_id, role, message),
        )
        return int(cur.lastrowid)


def _get_chat_rows(scope: str, parent_id: int, limit: Optional[int] = None) -> list[sqlite3.Row]:
    """Rows oldest first. With a limit, the most recent `limit` rows are kept."""
    table, parent_col = _CHAT_TABLES[scope]
    with get_connection() as conn:
        if limit:
            cur = conn.execute(
                f"SELECT * FROM {table} WHERE {parent_col} = ? ORDER BY created_at DESC, id DESC LIMIT ?",
                (parent_id, limit),
            )
            rows = list(cur.fetchall())
            rows.reverse()
            return rows
        cur = conn.execute(
            f"SELECT * FROM {table} WHERE {parent_col} = ? ORDER BY created_at ASC, id ASC",
            (parent_id,),
        )
        return list(cur.fetchall())


def add_section_chat_message(section_id: int, role: str, message: str) -> int:
    return _add_chat_row("section", section_id, role, message)


def get_section_chat_messages(section_id: int, limit: Optional[int] = None) -> list[sqlite3.Row]:
    return _get_chat_rows("section", section_id, limit)


def add_planning_chat_message(idea_id: int, role: str, message: str) -> int:
    return _add_chat_row("planning", idea_id, role, message)


def get_planning_chat_messages(idea_id: int, limit: Optional[int] = None) -> list[sqlite3.Row]:
    return _get_chat_rows("planning", idea_id, limit)


def add_legacy_chat_row(scope: str, parent_id: int, message: str) -> int:
    """Insert a row in the old prefix encoding (role NULL), for seeding pre-role history."""
    table, parent_col = _CHAT_TABLES[scope]
    with get_connection() as conn:
        cur = conn.execute(
            f"INSERT INTO {table}({parent_col}, role, message) VALUES(?, NULL, ?)",
            (parent_id, message),
        )
        return int(cur.lastrowid)
