# app/services/profile_service.py
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from fastapi import HTTPException, status
from loguru import logger
from postgrest.exceptions import APIError
from supabase import Client

from app.core.banned_handles import is_banned_handle
from app.schemas.profile_schema import ProfileCreate, ProfileUpdate
from app.services.handle_service import is_handle_taken, validate_handle

PROFILES_TABLE = "profiles"
UNIQUE_VIOLATION = "23505"

# Columns shown when a profile appears inside another resource (connections, invites)
SUMMARY_COLUMNS = "id, full_name, handle, specialty, profile_photo_url, is_verified"


class ProfileNotFoundError(Exception):
    pass


def get_profile(supabase: Client, profile_id: str, columns: str = "*") -> Optional[Dict[str, Any]]:
    response = supabase.table(PROFILES_TABLE).select(columns).eq(
        "id", profile_id
    ).limit(1).execute()
    return response.data[0] if response.data else None


def get_profile_by_user(supabase: Client, user_id: str) -> Optional[Dict[str, Any]]:
    response = supabase.table(PROFILES_TABLE).select("*").eq(
        "user_id", user_id
    ).limit(1).execute()
    return response.data[0] if response.data else None


def get_profile_summaries(supabase: Client, profile_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """id -> summary row, for the ids that exist."""
    ids = sorted({str(profile_id) for profile_id in profile_ids})
    if not ids:
        return {}
    response = supabase.table(PROFILES_TABLE).select(SUMMARY_COLUMNS).in_("id", ids).execute()
    return {str(row["id"]): row for row in response.data or []}


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def create_profile(supabase: Client, user_id: str, body: ProfileCreate) -> Dict[str, Any]:
    """
    Claims a handle for a doctor who has no profile yet.

    The checks run before the insert, but `handle` and `user_id` are unique
    in the database, so a concurrent claim surfaces as a 409 from the insert.
    """
    handle = body.handle

    error = validate_handle(handle)
    if error:
        raise _bad_request(error)

    if is_banned_handle(handle):
        raise _bad_request("This handle is not available")

    if is_handle_taken(supabase, handle):
        raise _bad_request("This handle is already taken")

    if get_profile_by_user(supabase, user_id):
        raise _bad_request("You already have a profile")

    row = body.model_dump(mode="json", exclude={"handle", "invite_code", "profile_template"})
    # Empty form fields are stored as NULL
    row = {column: (value if value not in ("", None) else None) for column, value in row.items()}
    row.update({
        "user_id": user_id,
        "handle": handle,
        "profile_template": body.profile_template.value,
        "is_verified": False,
        "verification_status": "none",
        "recommendation_count": 0,
        "connection_count": 0,
        "view_count": 0,
    })

    try:
        response = supabase.table(PROFILES_TABLE).insert(row).execute()
    except APIError as e:
        if e.code == UNIQUE_VIOLATION:
            message = e.message or ""
            if "handle" in message:
                detail = "This handle was just claimed by someone else. Please try a different one."
            elif "user_id" in message:
                detail = "You already have a profile"
            else:
                detail = "This handle is already taken"
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
        logger.error(f"Profile insert failed (user {user_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create profile"
        )

    if not response.data:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create profile"
        )

    logger.info(f"Profile created: {handle} (user {user_id})")
    return response.data[0]


def update_profile(supabase: Client, profile_id: str, user_id: str, body: ProfileUpdate) -> None:
    profile = get_profile(supabase, profile_id, columns="id, user_id, handle")
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    if str(profile["user_id"]) != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    updates = body.model_dump(mode="json", exclude_unset=True)
    # Cleared form fields are stored as NULL
    updates = {column: (value if value != "" else None) for column, value in updates.items()}
    updates["updated_at"] = datetime.now(timezone.utc).isoformat()

    try:
        supabase.table(PROFILES_TABLE).update(updates).eq("id", profile_id).execute()
    except Exception as e:
        logger.error(f"Profile update failed ({profile_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile"
        )
