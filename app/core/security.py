# app/core/security.py

from typing import Any, Dict

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from loguru import logger
from supabase import Client
from supabase_auth.types import User

from app.core.config import Settings, get_settings
from app.core.supabase_client import get_supabase_client

# Tokens are issued by Supabase Auth on the frontend; this API only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/v1/token")

def get_current_user(
    token: str = Depends(oauth2_scheme),
    supabase: Client = Depends(get_supabase_client),
) -> User:
    try:
        user_response = supabase.auth.get_user(token)
    except Exception as e:
        logger.warning(f"Token verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user_response or not user_response.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return user_response.user

def get_current_profile(
    user: User = Depends(get_current_user),
    supabase: Client = Depends(get_supabase_client),
) -> Dict[str, Any]:
    """Profile row of the logged-in doctor, 404 if they have not created one yet."""
    try:
        response = supabase.table("profiles").select("*").eq(
            "user_id", str(user.id)
        ).limit(1).execute()
    except Exception as e:
        logger.error(f"Profile lookup failed (user {user.id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch profile"
        )

    if not response.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    return response.data[0]

def get_admin_user(
    user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> User:
    """Logged-in user whose email is listed in ADMIN_EMAILS."""
    email = (user.email or "").lower()
    if not email or email not in settings.admin_emails:
        logger.warning(f"Admin access denied for user {user.id}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return user
