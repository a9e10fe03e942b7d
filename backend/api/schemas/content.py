"""
Content generation API schemas.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from core.interfaces.services import ContentType


class NicheProfileSchema(BaseModel):
    """Audience and voice for the generated copy."""

    name: str = Field(..., min_length=1, max_length=200)
    target_audience: str = Field(..., min_length=1, max_length=500)
    content_goal: str = Field(..., min_length=1, max_length=300)
    tone_of_voice: str = Field(..., min_length=1, max_length=100)
    keywords: list[str] = Field(default_factory=list, max_length=20)

    @field_validator("keywords", mode="before")
    @classmethod
    def split_keywords(cls, value: Any) -> Any:
        """Accept a comma-separated string as well as a list."""
        if isinstance(value, str):
            return [k.strip() for k in value.split(",") if k.strip()]
        return value


class GenerateContentRequest(BaseModel):
    """Request to generate one piece of content."""

    content_type: ContentType
    niche_profile: NicheProfileSchema
    input_data: dict[str, Any] = Field(default_factory=dict)
    language: str = Field(default="en", min_length=2, max_length=10)

    model_config = {
        "json_schema_extra": {
            "example": {
                "content_type": "instagram",
                "niche_profile": {
                    "name": "Home baking",
                    "target_audience": "Busy parents",
                    "content_goal": "Grow followers",
                    "tone_of_voice": "Friendly",
                    "keywords": ["sourdough", "weekend"],
                },
                "input_data": {"topic": "Easy weekend sourdough", "cta": "Save this post"},
                "language": "en",
            }
        }
    }


class EntitlementInfo(BaseModel):
    """Charge result rendered next to the generated content."""

    granted: bool
    remaining: int | None = Field(None, description="Credits left this week (null means unlimited)")
    plan: str


class GenerateContentResponse(BaseModel):
    """Generated content together with the updated entitlement."""

    content: str
    content_type: ContentType
    ai_model: str
    generation_id: str
    entitlement: EntitlementInfo
