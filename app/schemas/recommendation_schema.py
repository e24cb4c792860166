# app/schemas/recommendation_schema.py
from pydantic import BaseModel, ConfigDict, Field
import uuid

class RecommendationRequest(BaseModel):
    """Body of POST /recommendations. Anonymous: identity comes from headers."""
    profile_id: uuid.UUID = Field(..., alias="profileId")

class RecommendationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    already_recommended: bool = Field(..., alias="alreadyRecommended")
    message: str
