# app/services/verification_service.py
"""
Credential verification for doctor profiles.

    none / rejected --(doctor uploads documents)--> pending
    pending --(admin approves)--> approved   (is_verified = true)
    pending --(admin rejects)---> rejected   (documents deleted)

Documents go to a private storage bucket; `verification_documents` keeps
one row per uploaded file.
"""
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Sequence

from fastapi import HTTPException, status
from loguru import logger
from supabase import Client

from app.schemas.verification_schema import ReviewAction
from app.services.profile_service import PROFILES_TABLE, get_profile

DOCUMENTS_TABLE = "verification_documents"
AUDIT_TABLE = "admin_audit_logs"
DOCUMENTS_BUCKET = "verification-docs"

MAX_DOCUMENTS = 3
MAX_DOCUMENT_SIZE = 5 * 1024 * 1024
ALLOWED_CONTENT_TYPES = ("image/jpeg", "image/png", "image/webp", "application/pdf")


class VerificationStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class VerificationDocument:
    filename: str
    content_type: str
    content: bytes


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def validate_documents(documents: Sequence[VerificationDocument]) -> None:
    if not documents:
        raise _bad_request("At least one document is required")
    if len(documents) > MAX_DOCUMENTS:
        raise _bad_request(f"Maximum {MAX_DOCUMENTS} documents allowed")

    for document in documents:
        if document.content_type not in ALLOWED_CONTENT_TYPES:
            raise _bad_request(
                f"Invalid file type: {document.filename}. Only JPG, PNG, WebP, and PDF are allowed."
            )
        if len(document.content) > MAX_DOCUMENT_SIZE:
            raise _bad_request(f"File too large: {document.filename}. Maximum size is 5MB.")


def _storage_path(profile_id: str, document: VerificationDocument, index: int, millis: int) -> str:
    extension = document.filename.rsplit(".", 1)[-1] if "." in document.filename else "bin"
    return f"{profile_id}/{millis}-{index}.{extension.lower()}"


def submit_verification(
    supabase: Client,
    profile: Dict[str, Any],
    documents: Sequence[VerificationDocument],
    clock: Callable[[], float] = time.time,
) -> int:
    """Uploads the documents and moves the profile to `pending`. Returns the number stored."""
    if profile.get("is_verified"):
        raise _bad_request("Profile is already verified")
    if profile.get("verification_status") == VerificationStatus.PENDING.value:
        raise _bad_request("Verification is already pending")

    validate_documents(documents)

    profile_id = str(profile["id"])
    millis = int(clock() * 1000)
    bucket = supabase.storage.from_(DOCUMENTS_BUCKET)
    paths: List[str] = []

    for index, document in enumerate(documents):
        path = _storage_path(profile_id, document, index, millis)
        try:
            bucket.upload(
                path=path,
                file=document.content,
                file_options={"content-type": document.content_type, "upsert": "false"},
            )
        except Exception as e:
            logger.error(f"Verification upload failed ({profile_id}, {document.filename}): {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to upload {document.filename}"
            )
        paths.append(path)

    try:
        supabase.table(DOCUMENTS_TABLE).insert([
            {"profile_id": profile_id, "document_url": path} for path in paths
        ]).execute()
    except Exception as e:
        logger.error(f"Verification document rows failed ({profile_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save document records"
        )

    try:
        supabase.table(PROFILES_TABLE).update({
            "verification_status": VerificationStatus.PENDING.value
        }).eq("id", profile_id).execute()
    except Exception as e:
        logger.error(f"Verification status update failed ({profile_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update verification status"
        )

    logger.info(f"Verification submitted for profile {profile_id} ({len(paths)} documents)")
    return len(paths)


def list_documents(supabase: Client, profile_id: str) -> List[Dict[str, Any]]:
    response = supabase.table(DOCUMENTS_TABLE).select("*").eq(
        "profile_id", profile_id
    ).order("uploaded_at", desc=True).execute()
    return response.data or []


def list_pending(supabase: Client) -> List[Dict[str, Any]]:
    """Profiles awaiting review, newest first, each with its documents."""
    response = supabase.table(PROFILES_TABLE).select(
        "id, handle, full_name, specialty, clinic_name, verification_status, created_at"
    ).eq(
        "verification_status", VerificationStatus.PENDING.value
    ).order("created_at", desc=True).execute()
    profiles = response.data or []
    if not profiles:
        return []

    documents: List[Dict[str, Any]] = []
    try:
        docs_response = supabase.table(DOCUMENTS_TABLE).select("*").in_(
            "profile_id", [str(profile["id"]) for profile in profiles]
        ).execute()
        documents = docs_response.data or []
    except Exception as e:
        logger.error(f"Error fetching verification documents: {e}")

    return [
        {**profile, "documents": [doc for doc in documents if str(doc["profile_id"]) == str(profile["id"])]}
        for profile in profiles
    ]


def _audit(supabase: Client, action: str, profile: Dict[str, Any], admin_email: str) -> None:
    logger.info(f"[AUDIT] {action} profile={profile['id']} handle={profile.get('handle')} admin={admin_email}")
    try:
        supabase.table(AUDIT_TABLE).insert({
            "action": action,
            "target_id": str(profile["id"]),
            "target_type": "profile",
            "details": {"doctorName": profile.get("full_name"), "handle": profile.get("handle"), "admin": admin_email},
        }).execute()
    except Exception as e:
        logger.warning(f"Audit log insert failed ({action}, {profile['id']}): {e}")


def review_verification(supabase: Client, profile_id: str, action: ReviewAction, admin_email: str) -> VerificationStatus:
    """Approves or rejects a pending verification."""
    profile = get_profile(supabase, profile_id, columns="id, full_name, handle, verification_status")
    if not profile:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")

    if profile.get("verification_status") != VerificationStatus.PENDING.value:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Verification is not pending")

    if action is ReviewAction.APPROVE:
        new_status, is_verified = VerificationStatus.APPROVED, True
    else:
        new_status, is_verified = VerificationStatus.REJECTED, False

    try:
        supabase.table(PROFILES_TABLE).update({
            "is_verified": is_verified,
            "verification_status": new_status.value,
        }).eq("id", profile_id).execute()
    except Exception as e:
        logger.error(f"Verification {action.value} failed ({profile_id}): {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action.value} verification"
        )

    if new_status is VerificationStatus.REJECTED:
        # The doctor uploads a fresh set on resubmission
        try:
            removed = supabase.table(DOCUMENTS_TABLE).delete().eq("profile_id", profile_id).execute()
            paths = [row["document_url"] for row in removed.data or [] if row.get("document_url")]
            if paths:
                supabase.storage.from_(DOCUMENTS_BUCKET).remove(paths)
        except Exception as e:
            logger.warning(f"Could not delete verification documents ({profile_id}): {e}")

    _audit(supabase, f"verification_{new_status.value}", profile, admin_email)
    return new_status
