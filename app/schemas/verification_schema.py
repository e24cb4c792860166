# app/schemas/verification_schema.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

class VerificationSubmitResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    documents_uploaded: int = Field(..., alias="documentsUploaded")

class VerificationStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    verification_status: Optional[str] = Field(None, alias="verificationStatus")
    is_verified: bool = Field(False, alias="isVerified")
    documents: List[Dict[str, Any]]

class ReviewRequest(BaseModel):
    action: ReviewAction

class ReviewResponse(BaseModel):
    success: bool = True
    status: str
