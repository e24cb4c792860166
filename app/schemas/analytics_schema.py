# app/schemas/analytics_schema.py
from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
import uuid

class AnalyticsEventType(str, Enum):
    PROFILE_VIEW = "profile_view"
    CLICK_SAVE_CONTACT = "click_save_contact"
    CLICK_BOOK_APPOINTMENT = "click_book_appointment"
    CLICK_SEND_INQUIRY = "click_send_inquiry"
    CLICK_RECOMMEND = "click_recommend"
    CLICK_SHARE = "click_share"
    INQUIRY_SENT = "inquiry_sent"
    RECOMMENDATION_GIVEN = "recommendation_given"

class DeviceType(str, Enum):
    MOBILE = "mobile"
    TABLET = "tablet"
    DESKTOP = "desktop"

class TrackEventRequest(BaseModel):
    profile_id: uuid.UUID = Field(..., alias="profileId")
    event_type: AnalyticsEventType = Field(..., alias="eventType")
    viewer_profile_id: Optional[uuid.UUID] = Field(None, alias="viewerProfileId")
    is_verified_viewer: Optional[bool] = Field(None, alias="isVerifiedViewer")
    session_id: Optional[str] = Field(None, alias="sessionId")
    visitor_id: Optional[str] = Field(None, alias="visitorId")
    device_type: Optional[DeviceType] = Field(None, alias="deviceType")
    referrer: Optional[str] = None

class TrackEventResponse(BaseModel):
    success: bool = True
