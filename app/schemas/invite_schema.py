# app/schemas/invite_schema.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Any, Dict, List, Optional

class InviteCreate(BaseModel):
    email: Optional[EmailStr] = None

class InviteCreateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    invite: Dict[str, Any]
    invite_url: str = Field(..., alias="inviteUrl")
    inviter: Dict[str, Any]

class InviteListResponse(BaseModel):
    invites: List[Dict[str, Any]]

class InviteAccept(BaseModel):
    invite_code: str = Field(..., alias="inviteCode", min_length=1)

class InviteAcceptResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    connected_with: Dict[str, Any] = Field(..., alias="connectedWith")
    message: str
