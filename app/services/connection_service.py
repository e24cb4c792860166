# app/services/connection_service.py
"""
Doctor-to-doctor connections.

A connection is a row (requester_id, receiver_id, status). It starts
`pending` and becomes `accepted` when the receiver accepts; a rejected
request is deleted. Invites skip the pending step. There is at most one row
per unordered pair of profiles, in either direction.

`profiles.connection_count` is maintained by RPCs on accept and removal;
a failed RPC is logged and leaves the count behind.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from loguru import logger
from supabase import Client

from app.schemas.connection_schema import ConnectionAction
from app.services.profile_service import get_profile, get_profile_summaries

CONNECTIONS_TABLE = "connections"


class ConnectionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"


def _adjust_connection_count(supabase: Client, rpc: str, *profile_ids: str) -> None:
    for profile_id in profile_ids:
        try:
            supabase.rpc(rpc, {"profile_uuid": profile_id}).execute()
        except Exception as e:
            logger.error(f"{rpc} failed for profile {profile_id}: {e}")


def find_connection_between(supabase: Client, profile_a: str, profile_b: str) -> Optional[Dict[str, Any]]:
    """The row linking two profiles, whichever of them sent the request."""
    for requester, receiver in ((profile_a, profile_b), (profile_b, profile_a)):
        response = supabase.table(CONNECTIONS_TABLE).select("id, status").eq(
            "requester_id", requester
        ).eq(
            "receiver_id", receiver
        ).limit(1).execute()
        if response.data:
            return response.data[0]
    return None


def _get_connection(supabase: Client, connection_id: str) -> Optional[Dict[str, Any]]:
    response = supabase.table(CONNECTIONS_TABLE).select("*").eq(
        "id", connection_id
    ).limit(1).execute()
    return response.data[0] if response.data else None


def list_connections(supabase: Client, profile_id: str) -> Dict[str, List[Dict[str, Any]]]:
    """
    Accepted connections, newest first, each shown as the other doctor's
    profile, plus the pending requests this profile has received.
    """
    accepted: List[Dict[str, Any]] = []
    for column in ("requester_id", "receiver_id"):
        response = supabase.table(CONNECTIONS_TABLE).select("*").eq(
            column, profile_id
        ).eq(
            "status", ConnectionStatus.ACCEPTED.value
        ).execute()
        accepted.extend(response.data or [])
    accepted.sort(key=lambda row: row.get("created_at") or "", reverse=True)

    pending_response = supabase.table(CONNECTIONS_TABLE).select("*").eq(
        "receiver_id", profile_id
    ).eq(
        "status", ConnectionStatus.PENDING.value
    ).order("created_at", desc=True).execute()
    pending = pending_response.data or []

    def other_side(row: Dict[str, Any]) -> str:
        if str(row["requester_id"]) == profile_id:
            return str(row["receiver_id"])
        return str(row["requester_id"])

    summaries = get_profile_summaries(
        supabase,
        [other_side(row) for row in accepted] + [str(row["requester_id"]) for row in pending],
    )

    return {
        "connections": [
            {
                "id": row["id"],
                "connectedAt": row.get("created_at"),
                "profile": summaries.get(other_side(row)),
            }
            for row in accepted
        ],
        "pendingRequests": [
            {
                "id": row["id"],
                "createdAt": row.get("created_at"),
                "requester": summaries.get(str(row["requester_id"])),
            }
            for row in pending
        ],
    }


def request_connection(supabase: Client, profile_id: str, receiver_id: str) -> Dict[str, Any]:
    if profile_id == receiver_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot connect to yourself")

    if not get_profile(supabase, receiver_id, columns="id"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    existing = find_connection_between(supabase, profile_id, receiver_id)
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Connection already exists ({existing['status']})"
        )

    try:
        response = supabase.table(CONNECTIONS_TABLE).insert({
            "requester_id": profile_id,
            "receiver_id": receiver_id,
            "status": ConnectionStatus.PENDING.value,
        }).execute()
    except Exception as e:
        logger.error(f"Create connection error ({profile_id} -> {receiver_id}): {e}")
        response = None

    if not response or not response.data:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create connection request"
        )

    return response.data[0]


def respond_to_request(supabase: Client, profile_id: str, connection_id: str, action: ConnectionAction) -> str:
    """Accept or reject a pending request. Only its receiver may answer it."""
    connection = _get_connection(supabase, connection_id)
    if not connection:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Connection request not found")

    if str(connection["receiver_id"]) != profile_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    if connection["status"] != ConnectionStatus.PENDING.value:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Connection request already processed")

    if action is ConnectionAction.ACCEPT:
        try:
            supabase.table(CONNECTIONS_TABLE).update({
                "status": ConnectionStatus.ACCEPTED.value
            }).eq("id", connection_id).execute()
        except Exception as e:
            logger.error(f"Accept connection error ({connection_id}): {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to accept connection"
            )

        _adjust_connection_count(
            supabase, "increment_connection_count",
            str(connection["requester_id"]), str(connection["receiver_id"]),
        )
        return ConnectionStatus.ACCEPTED.value

    try:
        supabase.table(CONNECTIONS_TABLE).delete().eq("id", connection_id).execute()
    except Exception as e:
        logger.error(f"Reject connection error ({connection_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reject connection"
        )
    return "rejected"


def remove_connection(supabase: Client, profile_id: str, connection_id: str) -> None:
    """Either side may remove a connection or withdraw a request."""
    connection = _get_connection(supabase, connection_id)
    if not connection:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Connection not found")

    if profile_id not in (str(connection["requester_id"]), str(connection["receiver_id"])):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    try:
        supabase.table(CONNECTIONS_TABLE).delete().eq("id", connection_id).execute()
    except Exception as e:
        logger.error(f"Delete connection error ({connection_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete connection"
        )

    if connection["status"] == ConnectionStatus.ACCEPTED.value:
        _adjust_connection_count(
            supabase, "decrement_connection_count",
            str(connection["requester_id"]), str(connection["receiver_id"]),
        )
