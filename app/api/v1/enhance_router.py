# app/api/v1/enhance_router.py
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from supabase_auth.types import User

from app.core.limiter import ENHANCE_LIMIT, limiter
from app.core.security import get_current_user
from app.schemas.enhance_schema import EnhanceRequest, EnhanceResponse
from app.services.ai_service import AINotConfiguredError, AIUnavailableError, enhance_text

router = APIRouter(
    prefix="/enhance",
    tags=["AI Enhancement (Locked)"]
)

@router.post("", response_model=EnhanceResponse)
@limiter.limit(ENHANCE_LIMIT)
async def enhance_profile_text(
    request: Request,
    body: EnhanceRequest,
    user: User = Depends(get_current_user),
):
    """
    Polishes a profile builder section (bio, approach, first visit guide, ...)
    for the LOGGED-IN doctor.
    """
    try:
        # The Gemini SDK is blocking
        enhanced = await run_in_threadpool(enhance_text, body.text, body.type, body.length)
    except AINotConfiguredError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI enhancement not configured. Please add GOOGLE_API_KEY to environment variables."
        )
    except AIUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="AI enhancement temporarily unavailable. Please try again later."
        )

    return EnhanceResponse(enhanced_text=enhanced)
