# app/api/v1/handle_router.py
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from supabase import Client

from app.core.limiter import HANDLE_CHECK_LIMIT, limiter
from app.core.supabase_client import get_supabase_client
from app.schemas.profile_schema import HandleCheckRequest, HandleCheckResponse
from app.core.banned_handles import is_banned_handle
from app.services.handle_service import is_handle_taken, validate_handle

router = APIRouter(
    tags=["Handles (Public)"]
)

@router.post("/check-handle", response_model=HandleCheckResponse, response_model_exclude_none=True)
@limiter.limit(HANDLE_CHECK_LIMIT)
def check_handle(
    request: Request,
    body: HandleCheckRequest,
    supabase: Client = Depends(get_supabase_client),
):
    """
    Tells the onboarding form whether a profile URL handle can be claimed.
    Throttled per IP so the endpoint cannot be used to enumerate handles.
    """
    handle = body.handle

    # 1. Format rules
    error = validate_handle(handle)
    if error:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"available": False, "error": error},
        )

    # 2. Reserved words
    if is_banned_handle(handle):
        return HandleCheckResponse(available=False, error="This handle is not available")

    # 3. Already claimed?
    try:
        taken = is_handle_taken(supabase, handle)
    except Exception as e:
        logger.error(f"Handle lookup failed ({handle}): {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"available": False, "error": "Error checking availability"},
        )

    if taken:
        return HandleCheckResponse(available=False, error="This handle is already taken")

    return HandleCheckResponse(available=True, message="This handle is available!")
