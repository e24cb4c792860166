# app/api/v1/verification_router.py
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from loguru import logger
from supabase import Client
from supabase_auth.types import User
import uuid

from app.core.security import get_admin_user, get_current_profile
from app.core.supabase_client import get_supabase_client
from app.schemas.verification_schema import (
    ReviewRequest,
    ReviewResponse,
    VerificationStatusResponse,
    VerificationSubmitResponse,
)
from app.services.verification_service import (
    VerificationDocument,
    list_documents,
    list_pending,
    review_verification,
    submit_verification,
)

router = APIRouter(
    tags=["Verification"]
)

@router.post("/verification", response_model=VerificationSubmitResponse)
def submit_documents(
    documents: Optional[List[UploadFile]] = File(None),
    profile: Dict[str, Any] = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_client),
):
    """
    Uploads 1-3 credential documents (JPG, PNG, WebP or PDF, 5MB each)
    for the LOGGED-IN doctor and puts the profile in the review queue.
    """
    try:
        files = [
            VerificationDocument(
                filename=upload.filename or "document",
                content_type=upload.content_type or "",
                content=upload.file.read(),
            )
            for upload in documents or []
        ]
        count = submit_verification(supabase, profile, files)
    except HTTPException as he:
        raise he
    except Exception as e:
        logger.exception(f"Verification upload error ({profile['id']}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    return VerificationSubmitResponse(
        message="Documents uploaded successfully. Your verification is now under review.",
        documents_uploaded=count,
    )

@router.get("/verification", response_model=VerificationStatusResponse)
def get_verification_status(
    profile: Dict[str, Any] = Depends(get_current_profile),
    supabase: Client = Depends(get_supabase_client),
):
    try:
        documents = list_documents(supabase, str(profile["id"]))
    except Exception as e:
        logger.error(f"Verification documents fetch failed ({profile['id']}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch documents"
        )

    return VerificationStatusResponse(
        verification_status=profile.get("verification_status"),
        is_verified=bool(profile.get("is_verified")),
        documents=documents,
    )

# --- Admin review queue ---

@router.get("/admin/verifications")
def get_pending_verifications(
    admin: User = Depends(get_admin_user),
    supabase: Client = Depends(get_supabase_client),
):
    try:
        return {"verifications": list_pending(supabase)}
    except Exception as e:
        logger.error(f"Admin verifications error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch verifications"
        )

@router.patch("/admin/verifications/{profile_id}", response_model=ReviewResponse)
def review_profile_verification(
    profile_id: uuid.UUID,
    body: ReviewRequest,
    admin: User = Depends(get_admin_user),
    supabase: Client = Depends(get_supabase_client),
):
    """Approves or rejects a pending verification."""
    try:
        new_status = review_verification(supabase, str(profile_id), body.action, admin.email or str(admin.id))
    except HTTPException as he:
        raise he
    except Exception as e:
        logger.exception(f"Admin verification action error ({profile_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    return ReviewResponse(status=new_status.value)
