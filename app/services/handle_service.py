# app/services/handle_service.py
import re
from typing import Optional

from supabase import Client

HANDLE_MIN_LENGTH = 3
HANDLE_MAX_LENGTH = 30
# Used with fullmatch: "$" would also accept a trailing newline
_HANDLE_RE = re.compile(r"[a-z0-9-]+")


def validate_handle(handle: str) -> Optional[str]:
    """Returns the first rule the handle breaks, or None when the format is fine."""
    if len(handle) < HANDLE_MIN_LENGTH:
        return f"Handle must be at least {HANDLE_MIN_LENGTH} characters"
    if len(handle) > HANDLE_MAX_LENGTH:
        return f"Handle must be at most {HANDLE_MAX_LENGTH} characters"
    if not _HANDLE_RE.fullmatch(handle):
        return "Handle can only contain lowercase letters, numbers, and hyphens"
    if handle.startswith("-") or handle.endswith("-"):
        return "Handle cannot start or end with a hyphen"
    if "--" in handle:
        return "Handle cannot contain consecutive hyphens"
    return None


def is_handle_taken(supabase: Client, handle: str) -> bool:
    response = supabase.table("profiles").select("handle").eq(
        "handle", handle
    ).limit(1).execute()
    return bool(response.data)
