from __future__ import annotations

import re


def normalize_user_id(user_id: str | None) -> str:
    raw = (user_id or "").strip().lower()
    if not raw:
        return "anonymous"
    sanitized = re.sub(r"[^a-z0-9_.@-]+", "_", raw).strip("_")
    if not sanitized:
        return "anonymous"
    return sanitized[:64]


def normalize_project_id(project_id: str | None) -> str:
    return (project_id or "").strip()
