from __future__ import annotations

from typing import Optional, Tuple


ASSISTANT_PREFIX = "AI: "
USER_PREFIX = "User: "
_ROLE_PREFIXES = (ASSISTANT_PREFIX, USER_PREFIX)


def strip_role_prefix(text: str) -> str:
    """Remove leading "AI: " / "User: " prefixes. Applying it twice equals applying it once."""
    if not text:
        return text
    stripped = text
    while stripped.startswith(_ROLE_PREFIXES):
        for prefix in _ROLE_PREFIXES:
            if stripped.startswith(prefix):
                stripped = stripped[len(prefix):]
                break
    return stripped


def decode_chat_message(message: str, role: Optional[str] = None) -> Tuple[str, str]:
    """Return (role, content) for a stored chat row.

    Rows carrying an explicit role are returned as stored. Legacy rows (role is
    None) are classified by prefix: assistant iff the text starts with "AI: ".
    """
    if role:
        return role, message or ""
    text = message or ""
    legacy_role = "assistant" if text.startswith(ASSISTANT_PREFIX) else "user"
    return legacy_role, strip_role_prefix(text)


def shorten(text: str, limit: int = 220) -> str:
    return (text[: limit - 3] + "...") if len(text) > limit else text
