# app/api/v1/connection_router.py
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from supabase import Client
import uuid

from app.core.security import get_current_profile
from app.core.supabase_client import get_supabase_client
from app.schemas.connection_schema import ConnectionCreate, ConnectionUpdate
from app.services.connection_service import (
    list_connections,
    remove_connection,
    request_connection,
    respond_to_request,
)

router = APIRouter(
    prefix="/connections",
    tags=["Connections"]
)

def _internal_error(action: str, e: Exception) -> HTTPException:
    logger.exception(f"{action} error: {e}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error"
    )

@router.get("")
def get_connections(
    profile: Dict[str, Any] = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_client),
):
    """Accepted connections plus the requests waiting for this doctor's answer."""
    try:
        return list_connections(supabase, str(profile["id"]))
    except Exception as e:
        logger.error(f"Get connections error ({profile['id']}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch connections"
        )

@router.post("")
def create_connection_request(
    body: ConnectionCreate,
    profile: Dict[str, Any] = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_client),
):
    try:
        connection = request_connection(supabase, str(profile["id"]), str(body.receiver_id))
    except HTTPException as he:
        raise he
    except Exception as e:
        raise _internal_error("Create connection", e)

    return {"connection": connection}

@router.patch("/{connection_id}")
def answer_connection_request(
    connection_id: uuid.UUID,
    body: ConnectionUpdate,
    profile: Dict[str, Any] = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_client),
):
    try:
        new_status = respond_to_request(supabase, str(profile["id"]), str(connection_id), body.action)
    except HTTPException as he:
        raise he
    except Exception as e:
        raise _internal_error("Update connection", e)

    return {"success": True, "status": new_status}

@router.delete("/{connection_id}")
def delete_connection(
    connection_id: uuid.UUID,
    profile: Dict[str, Any] = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_client),
):
    try:
        remove_connection(supabase, str(profile["id"]), str(connection_id))
    except HTTPException as he:
        raise he
    except Exception as e:
        raise _internal_error("Delete connection", e)

    return {"success": True}
