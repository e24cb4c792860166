# app/api/v1/analytics_router.py
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from loguru import logger
from pydantic import ValidationError
from supabase import Client

from app.core.identity import compute_visitor_id, detect_device_type, extract_client_ip
from app.core.security import get_current_profile
from app.core.supabase_client import get_supabase_client
from app.schemas.analytics_schema import TrackEventRequest, TrackEventResponse
from app.services.analytics_service import build_dashboard

router = APIRouter(
    prefix="/analytics",
    tags=["Analytics"]
)

def build_event_row(event: TrackEventRequest, headers) -> dict:
    """Analytics row for an event, filling device type and visitor id from headers when missing."""
    user_agent = headers.get("user-agent") or ""

    device_type = event.device_type.value if event.device_type else detect_device_type(user_agent)
    visitor_id = event.visitor_id or compute_visitor_id(headers)

    return {
        "profile_id": str(event.profile_id),
        "event_type": event.event_type.value,
        "visitor_id": visitor_id,
        "visitor_ip": extract_client_ip(headers),
        "viewer_profile_id": str(event.viewer_profile_id) if event.viewer_profile_id else None,
        "is_verified_viewer": bool(event.is_verified_viewer),
        "referrer": event.referrer or None,
        "user_agent": user_agent,
        "device_type": device_type,
        "session_id": event.session_id or None,
    }

def _insert_event(supabase: Client, row: dict) -> None:
    supabase.table("analytics_events").insert(row).execute()

@router.post("/track", response_model=TrackEventResponse)
async def track_event(
    request: Request,
    supabase: Client = Depends(get_supabase_client),
):
    """
    Records a profile page event. Public.
    Always answers success: tracking must never break the page that fired it.
    """
    try:
        payload = await request.json()
        event = TrackEventRequest.model_validate(payload)
    except (ValidationError, ValueError) as e:
        logger.warning(f"Analytics event rejected: {e}")
        return TrackEventResponse()

    try:
        # supabase-py is blocking
        await run_in_threadpool(_insert_event, supabase, build_event_row(event, request.headers))
    except Exception as e:
        logger.error(f"Failed to track analytics event ({event.event_type.value}): {e}")

    return TrackEventResponse()

@router.get("/dashboard")
def get_dashboard(
    days: int = Query(30, ge=1, le=365),
    profile: Dict[str, Any] = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_client),
):
    """Aggregated profile analytics for the logged-in doctor over the last `days` days."""
    try:
        return build_dashboard(supabase, profile["id"], days)
    except Exception as e:
        logger.exception(f"Analytics dashboard error ({profile['id']}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch analytics"
        )
