# app/schemas/enhance_schema.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

class ContentType(str, Enum):
    BIO = "bio"
    APPROACH = "approach"
    FIRST_VISIT = "first_visit"
    CONDITIONS = "conditions"
    PROCEDURES = "procedures"

class EnhanceLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"

class EnhanceRequest(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)
    type: ContentType
    length: EnhanceLength = EnhanceLength.MEDIUM

class EnhanceResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enhanced_text: str = Field(..., alias="enhancedText")
