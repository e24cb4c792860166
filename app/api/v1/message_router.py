# app/api/v1/message_router.py
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from loguru import logger
from supabase import Client
import uuid

from app.core.identity import extract_client_ip
from app.core.limiter import SlidingWindowLimiter, format_retry_after, get_message_limiter
from app.core.security import get_current_profile
from app.core.supabase_client import get_supabase_client
from app.schemas.message_schema import (
    MessageCreate,
    MessageCreateResponse,
    MessageItem,
    MessageListResponse,
    MessageUpdate,
)

router = APIRouter(
    prefix="/messages",
    tags=["Messages"]
)

# Handlers are plain `def`: supabase-py is blocking, FastAPI runs them in its threadpool.

@router.post("", response_model=MessageCreateResponse)
def send_message(
    body: MessageCreate,
    request: Request,
    supabase: Client = Depends(get_supabase_client),
    message_limiter: SlidingWindowLimiter = Depends(get_message_limiter),
):
    """
    Public inquiry form on a doctor's profile page.
    Limited to a few messages per hour per IP.
    """
    ip = extract_client_ip(request.headers)
    rate = message_limiter.check(ip)
    if not rate.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many messages. Please try again in {format_retry_after(rate.retry_after_seconds or 0)}.",
            headers={"Retry-After": str(rate.retry_after_seconds or 0)},
        )

    profile_id = str(body.profile_id)

    try:
        # 1. Profile must exist
        profile_response = supabase.table("profiles").select("id").eq(
            "id", profile_id
        ).limit(1).execute()

        if not profile_response.data:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

        # 2. Store the message, unread
        try:
            insert_response = supabase.table("messages").insert({
                "profile_id": profile_id,
                "sender_name": body.sender_name,
                "sender_phone": body.sender_phone,
                "message_content": body.message_content,
                "is_read": False,
            }).execute()
        except Exception as e:
            logger.error(f"Message insert failed ({profile_id}): {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to send message"
            )

        if not insert_response.data:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to send message"
            )

        return MessageCreateResponse(
            message="Message sent successfully",
            message_id=insert_response.data[0]["id"],
        )

    except HTTPException as he:
        raise he
    except Exception as e:
        logger.exception(f"Message error ({profile_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

@router.get("", response_model=MessageListResponse)
def list_messages(
    profile: Dict[str, Any] = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_client),
):
    """Inbox of the logged-in doctor, newest first."""
    try:
        response = supabase.table("messages").select("*").eq(
            "profile_id", profile["id"]
        ).order(
            "created_at", desc=True
        ).execute()

        if not response.data:
            return MessageListResponse(messages=[])

        return MessageListResponse(messages=[MessageItem.model_validate(item) for item in response.data])

    except Exception as e:
        logger.error(f"Message list could not be fetched (profile {profile['id']}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch messages"
        )

@router.patch("/{message_id}")
def update_message(
    message_id: uuid.UUID,
    body: MessageUpdate,
    profile: Dict[str, Any] = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_client),
):
    """
    Marks a message read/unread.
    Only messages sent to the caller's own profile; anything else is 404.
    """
    updates = {}
    if body.is_read is not None:
        updates["is_read"] = body.is_read

    try:
        query = supabase.table("messages")
        query = query.update(updates) if updates else query.select("id")
        response = query.eq(
            "id", str(message_id)
        ).eq(
            "profile_id", profile["id"]
        ).execute()
    except Exception as e:
        logger.error(f"Message could not be updated ({message_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update message"
        )

    if not response.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found")

    return {"success": True}
