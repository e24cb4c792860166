# app/api/v1/profile_router.py
from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger
from supabase import Client
from supabase_auth.types import User
import uuid

from app.core.security import get_current_user
from app.core.supabase_client import get_supabase_client
from app.schemas.profile_schema import (
    ProfileCreate,
    ProfileCreateResponse,
    ProfileResponse,
    ProfileUpdate,
)
from app.services.invite_service import redeem_invite
from app.services.profile_service import create_profile, get_profile, get_profile_by_user, update_profile

router = APIRouter(
    prefix="/profiles",
    tags=["Profiles"]
)

@router.post("", response_model=ProfileCreateResponse)
def create_own_profile(
    body: ProfileCreate,
    user: User = Depends(get_current_user),
    supabase: Client = Depends(get_supabase_client),
):
    """
    Onboarding: claims a handle for the LOGGED-IN doctor.
    An invite code, when given, connects the new profile with the inviter.
    A failed invite never fails the profile creation; it is reported in
    `connectionError`.
    """
    try:
        profile = create_profile(supabase, str(user.id), body)
    except HTTPException as he:
        raise he
    except Exception as e:
        logger.exception(f"Create profile error (user {user.id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    connected_with = None
    connection_error = None
    if body.invite_code:
        try:
            connected_with = redeem_invite(supabase, str(profile["id"]), body.invite_code)
        except HTTPException as he:
            connection_error = he.detail
        except Exception as e:
            logger.error(f"Invite processing error ({body.invite_code}): {e}")
            connection_error = "Failed to process invite"

    return ProfileCreateResponse(
        profile=profile,
        connected_with=connected_with,
        connection_error=connection_error,
        message=f"Your profile is live at verified.doctor/{profile['handle']}",
    )

@router.get("", response_model=ProfileResponse)
def get_own_profile(
    user: User = Depends(get_current_user),
    supabase: Client = Depends(get_supabase_client),
):
    """The logged-in doctor's profile, or null before onboarding."""
    try:
        return ProfileResponse(profile=get_profile_by_user(supabase, str(user.id)))
    except Exception as e:
        logger.error(f"Get profile error (user {user.id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch profile"
        )

@router.get("/{profile_id}", response_model=ProfileResponse)
def get_public_profile(
    profile_id: uuid.UUID,
    supabase: Client = Depends(get_supabase_client),
):
    try:
        profile = get_profile(supabase, str(profile_id))
    except Exception as e:
        logger.error(f"Get profile error ({profile_id}): {e}")
        profile = None

    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    return ProfileResponse(profile=profile)

@router.patch("/{profile_id}")
def update_own_profile(
    profile_id: uuid.UUID,
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    supabase: Client = Depends(get_supabase_client),
):
    """Profile builder save. Only the owner may edit."""
    try:
        update_profile(supabase, str(profile_id), str(user.id), body)
    except HTTPException as he:
        raise he
    except Exception as e:
        logger.exception(f"Profile update error ({profile_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    return {"success": True}
