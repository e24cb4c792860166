# app/api/v1/invite_router.py
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from loguru import logger
from supabase import Client

from app.core.config import Settings, get_settings
from app.core.security import get_current_profile
from app.core.supabase_client import get_supabase_client
from app.schemas.invite_schema import (
    InviteAccept,
    InviteAcceptResponse,
    InviteCreate,
    InviteCreateResponse,
    InviteListResponse,
)
from app.services.invite_service import (
    build_invite_url,
    create_invite,
    get_inviter,
    get_usable_invite,
    list_invites,
    redeem_invite,
)

router = APIRouter(
    prefix="/invites",
    tags=["Invites"]
)

@router.post("", response_model=InviteCreateResponse)
def create_invite_link(
    body: InviteCreate,
    profile: Dict[str, Any] = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_client),
    settings: Settings = Depends(get_settings),
):
    """
    Creates a single-use invite link for the logged-in doctor.
    The optional email is stored on the invite; sending it is the mail
    service's job.
    """
    try:
        invite = create_invite(supabase, str(profile["id"]), body.email)
    except HTTPException as he:
        raise he
    except Exception as e:
        logger.exception(f"Create invite error ({profile['id']}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    return InviteCreateResponse(
        invite=invite,
        invite_url=build_invite_url(settings.APP_URL, invite["invite_code"]),
        inviter={"name": profile.get("full_name"), "handle": profile.get("handle")},
    )

@router.get("", response_model=InviteListResponse)
def get_invites(
    profile: Dict[str, Any] = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_client),
):
    try:
        return InviteListResponse(invites=list_invites(supabase, str(profile["id"])))
    except Exception as e:
        logger.error(f"Get invites error ({profile['id']}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch invites"
        )

@router.post("/accept", response_model=InviteAcceptResponse)
def accept_invite(
    body: InviteAccept,
    profile: Dict[str, Any] = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_client),
):
    """Redeems an invite for a doctor who already has a profile."""
    try:
        inviter = redeem_invite(supabase, str(profile["id"]), body.invite_code)
    except HTTPException as he:
        raise he
    except Exception as e:
        logger.exception(f"Accept invite error ({body.invite_code}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    name = inviter.get("full_name") or "your colleague"
    return InviteAcceptResponse(
        connected_with=inviter,
        message=f"You are now connected with Dr. {name}!",
    )

@router.get("/{code}")
def validate_invite(
    code: str,
    supabase: Client = Depends(get_supabase_client),
):
    """Public: lets the sign-up page show who sent the invite."""
    try:
        invite = get_usable_invite(supabase, code)
        inviter = get_inviter(supabase, invite)
    except HTTPException as he:
        # The sign-up page reads `valid` on failures too
        return JSONResponse(status_code=he.status_code, content={"error": he.detail, "valid": False})
    except Exception as e:
        logger.exception(f"Validate invite error ({code}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    return {"valid": True, "invite": {"code": invite["invite_code"], "inviter": inviter}}
