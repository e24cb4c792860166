# app/services/invite_service.py
"""
Invite links. A doctor creates a single-use code; whoever redeems it is
connected to the inviter straight away, with no pending request.
"""
import secrets
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from loguru import logger
from supabase import Client

from app.services.connection_service import CONNECTIONS_TABLE, ConnectionStatus, find_connection_between
from app.services.profile_service import get_profile_summaries

INVITES_TABLE = "invites"
INVITE_CODE_BYTES = 6


def generate_invite_code() -> str:
    """12 hex characters."""
    return secrets.token_hex(INVITE_CODE_BYTES)


def build_invite_url(app_url: str, code: str) -> str:
    return f"{app_url.rstrip('/')}/sign-up?invite={code}"


def create_invite(supabase: Client, profile_id: str, email: Optional[str] = None) -> Dict[str, Any]:
    try:
        response = supabase.table(INVITES_TABLE).insert({
            "inviter_profile_id": profile_id,
            "invite_code": generate_invite_code(),
            "invitee_email": email,
        }).execute()
    except Exception as e:
        logger.error(f"Invite creation error ({profile_id}): {e}")
        response = None

    if not response or not response.data:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create invite"
        )

    return response.data[0]


def list_invites(supabase: Client, profile_id: str) -> List[Dict[str, Any]]:
    """The doctor's invites, newest first, with the profile that used each one."""
    response = supabase.table(INVITES_TABLE).select("*").eq(
        "inviter_profile_id", profile_id
    ).order("created_at", desc=True).execute()
    invites = response.data or []

    used_by = get_profile_summaries(
        supabase, [invite["used_by_profile_id"] for invite in invites if invite.get("used_by_profile_id")]
    )
    return [
        {**invite, "used_by": used_by.get(str(invite.get("used_by_profile_id")))}
        for invite in invites
    ]


def _is_expired(invite: Dict[str, Any]) -> bool:
    expires_at = invite.get("expires_at")
    if not expires_at:
        return False
    return datetime.fromisoformat(str(expires_at).replace("Z", "+00:00")) < datetime.now(timezone.utc)


def get_usable_invite(supabase: Client, code: str) -> Dict[str, Any]:
    """Invite row for `code`; 404 when unknown, 400 when used or expired."""
    response = supabase.table(INVITES_TABLE).select("*").eq(
        "invite_code", code
    ).limit(1).execute()

    if not response.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invalid invite code")

    invite = response.data[0]
    if invite.get("used"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This invite has already been used")
    if _is_expired(invite):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This invite has expired")

    return invite


def get_inviter(supabase: Client, invite: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    inviter_id = str(invite["inviter_profile_id"])
    return get_profile_summaries(supabase, [inviter_id]).get(inviter_id)


def redeem_invite(supabase: Client, profile_id: str, code: str) -> Dict[str, Any]:
    """
    Connects `profile_id` with the inviter and marks the invite used.
    Returns the inviter's profile summary.
    """
    invite = get_usable_invite(supabase, code)
    inviter_id = str(invite["inviter_profile_id"])

    if inviter_id == profile_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot use your own invite")

    if find_connection_between(supabase, inviter_id, profile_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You are already connected with this doctor"
        )

    try:
        supabase.table(CONNECTIONS_TABLE).insert({
            "requester_id": inviter_id,
            "receiver_id": profile_id,
            "status": ConnectionStatus.ACCEPTED.value,
        }).execute()
    except Exception as e:
        logger.error(f"Connection from invite failed ({invite['id']}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create connection"
        )

    # The connection exists from here on; the bookkeeping below is best-effort
    try:
        supabase.table(INVITES_TABLE).update({
            "used": True,
            "used_by_profile_id": profile_id,
        }).eq("id", invite["id"]).execute()
    except Exception as e:
        logger.error(f"Could not mark invite {invite['id']} as used: {e}")

    try:
        supabase.rpc("increment_connection_counts", {
            "profile1_uuid": inviter_id,
            "profile2_uuid": profile_id,
        }).execute()
    except Exception as e:
        logger.error(f"increment_connection_counts failed ({inviter_id}, {profile_id}): {e}")

    return get_inviter(supabase, invite) or {"id": inviter_id}
