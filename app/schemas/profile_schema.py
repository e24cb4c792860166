# app/schemas/profile_schema.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, HttpUrl
from typing import Any, Dict, Literal, Optional, Union

class HandleCheckRequest(BaseModel):
    # Format rules are checked in the handle service so the error can be
    # returned in the {available, error} envelope.
    handle: str

class HandleCheckResponse(BaseModel):
    available: bool
    message: Optional[str] = None
    error: Optional[str] = None

class ProfileTemplate(str, Enum):
    CLASSIC = "classic"
    MODERN = "modern"
    MINIMAL = "minimal"
    PROFESSIONAL = "professional"
    OCEAN = "ocean"
    SAGE = "sage"
    WARM = "warm"
    EXECUTIVE = "executive"
    HERO = "hero"
    TIMELINE = "timeline"

# An empty string clears a link in the onboarding form
OptionalUrl = Optional[Union[HttpUrl, Literal[""]]]

class ProfileCreate(BaseModel):
    """
    Onboarding form. Field names are the `profiles` column names.
    The handle is validated by the handle service, not here, so its
    error messages match /check-handle.
    """
    handle: str
    full_name: str = Field(..., alias="fullName", min_length=2, max_length=100)
    specialty: str = Field(..., min_length=2)
    clinic_name: Optional[str] = Field(None, alias="clinicName")
    clinic_location: Optional[str] = Field(None, alias="clinicLocation")
    years_experience: Optional[int] = Field(None, alias="yearsExperience", ge=0, le=70)
    profile_photo_url: OptionalUrl = Field(None, alias="profilePhotoUrl")
    external_booking_url: OptionalUrl = Field(None, alias="externalBookingUrl")
    bio: Optional[str] = Field(None, max_length=500)
    qualifications: Optional[str] = Field(None, max_length=200)
    languages: Optional[str] = Field(None, max_length=200)
    registration_number: Optional[str] = Field(None, alias="registrationNumber", max_length=100)
    consultation_fee: Optional[str] = Field(None, alias="consultationFee", max_length=50)
    services: Optional[str] = Field(None, max_length=500)
    profile_template: ProfileTemplate = Field(ProfileTemplate.CLASSIC, alias="profileTemplate")
    invite_code: Optional[str] = Field(None, alias="inviteCode")

class ProfileUpdate(BaseModel):
    """Profile builder. Only the fields sent are written; null clears a field."""
    full_name: Optional[str] = Field(None, alias="fullName", min_length=2, max_length=100)
    specialty: Optional[str] = None
    clinic_name: Optional[str] = Field(None, alias="clinicName")
    clinic_location: Optional[str] = Field(None, alias="clinicLocation")
    years_experience: Optional[int] = Field(None, alias="yearsExperience", ge=0, le=70)
    profile_photo_url: OptionalUrl = Field(None, alias="profilePhotoUrl")
    external_booking_url: OptionalUrl = Field(None, alias="externalBookingUrl")
    profile_template: Optional[ProfileTemplate] = Field(None, alias="profileTemplate")
    bio: Optional[str] = Field(None, max_length=2000)
    qualifications: Optional[str] = Field(None, max_length=1000)
    languages: Optional[str] = Field(None, max_length=500)
    consultation_fee: Optional[str] = Field(None, alias="consultationFee", max_length=100)
    services: Optional[str] = Field(None, max_length=1000)
    registration_number: Optional[str] = Field(None, alias="registrationNumber", max_length=100)
    approach_to_care: Optional[str] = Field(None, alias="approachToCare", max_length=2000)
    first_visit_guide: Optional[str] = Field(None, alias="firstVisitGuide", max_length=2000)
    availability_note: Optional[str] = Field(None, alias="availabilityNote", max_length=500)
    conditions_treated: Optional[str] = Field(None, alias="conditionsTreated", max_length=2000)
    procedures_performed: Optional[str] = Field(None, alias="proceduresPerformed", max_length=2000)
    is_available: Optional[bool] = Field(None, alias="isAvailable")
    offers_telemedicine: Optional[bool] = Field(None, alias="offersTelemedicine")

class ProfileResponse(BaseModel):
    profile: Optional[Dict[str, Any]] = None

class ProfileCreateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    profile: Dict[str, Any]
    connected_with: Optional[Dict[str, Any]] = Field(None, alias="connectedWith")
    connection_error: Optional[str] = Field(None, alias="connectionError")
    message: str
