# app/schemas/message_schema.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
import uuid
from datetime import datetime

class MessageCreate(BaseModel):
    """Inquiry sent by a patient from a public profile page."""
    profile_id: uuid.UUID = Field(..., alias="profileId")
    sender_name: str = Field(..., alias="senderName", min_length=2, max_length=100)
    sender_phone: str = Field(..., alias="senderPhone", min_length=10, max_length=20)
    message_content: str = Field(..., alias="messageContent", min_length=10, max_length=500)

class MessageCreateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    message_id: uuid.UUID = Field(..., alias="messageId")

class MessageItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    profile_id: uuid.UUID = Field(..., alias="profileId")
    sender_name: str = Field(..., alias="senderName")
    sender_phone: str = Field(..., alias="senderPhone")
    message_content: str = Field(..., alias="messageContent")
    is_read: bool = Field(False, alias="isRead")
    created_at: datetime = Field(..., alias="createdAt")

class MessageListResponse(BaseModel):
    messages: List[MessageItem]

class MessageUpdate(BaseModel):
    is_read: Optional[bool] = Field(None, alias="isRead")
