# app/api/v1/recommendation_router.py
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from loguru import logger
from supabase import Client

from app.core.identity import extract_identity
from app.core.limiter import SlidingWindowLimiter, get_recommendation_limiter
from app.core.supabase_client import get_supabase_client
from app.schemas.recommendation_schema import RecommendationRequest, RecommendationResponse
from app.services.recommendation_service import (
    ProfileNotFoundError,
    RecommendationGate,
    RecommendationInsertError,
    RecommendationOutcome,
    default_deduplicators,
)

router = APIRouter(
    prefix="/recommendations",
    tags=["Recommendations (Public)"]
)

@router.post("", response_model=RecommendationResponse)
def recommend_profile(
    body: RecommendationRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    supabase: Client = Depends(get_supabase_client),
    rate_limiter: SlidingWindowLimiter = Depends(get_recommendation_limiter),
):
    """
    Registers an anonymous recommendation for a doctor profile.

    No login: the visitor is identified by IP + header fingerprint.
    A repeat attempt is not an error, it answers with alreadyRecommended=true.
    The profile counter is incremented after the response is sent.
    """
    profile_id = str(body.profile_id)
    identity = extract_identity(request.headers)

    gate = RecommendationGate(
        supabase,
        default_deduplicators(supabase, rate_limiter),
        dispatch=background_tasks.add_task,
    )

    try:
        outcome = gate.evaluate(profile_id, identity)
    except ProfileNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    except RecommendationInsertError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit recommendation"
        )
    except Exception as e:
        logger.exception(f"Recommend error ({profile_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    return RecommendationResponse(
        success=True,
        already_recommended=outcome is RecommendationOutcome.ALREADY_RECOMMENDED,
        message=outcome.message,
    )
