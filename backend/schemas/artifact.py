"""
Pydantic Schemas for artifacts, personas and voice call logging
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional
from datetime import datetime


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for the mobile client"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PersonaAttributes(CamelModel):
    """Identification attributes the persona prompt is built from"""
    name: str = Field(..., min_length=1, description="Artifact name")
    category: str = Field(..., min_length=1, description="Category (keramik, senjata, perhiasan, tekstil, ...)")
    description: str = Field(..., min_length=1, description="Short description")
    history: str = Field(default="", description="History and cultural context")
    estimated_age: Optional[str] = Field(None, description="Estimated age or period")
    materials: Optional[str] = Field(None, description="Materials the artifact is made of")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    is_recognized: bool = Field(default=False)

    @field_validator("name", "category", "description")
    @classmethod
    def strip_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value


class ArtifactSummary(CamelModel):
    """Artifact fields sent along with joined_chat"""
    id: str
    name: str
    category: str
    description: str
    image_url: str = ""


class ArtifactResponse(CamelModel):
    """Full artifact record"""
    id: str
    user_id: Optional[str] = None
    image_url: str = ""
    original_filename: str = ""
    identification_result: PersonaAttributes
    created_at: Optional[datetime] = None


class IdentifiedArtifactRequest(CamelModel):
    """
    Request body for registering an already-identified artifact

    The photo upload and the vision-model call happen upstream; this
    endpoint receives their result.
    """
    identification_result: PersonaAttributes
    image_url: str = Field(default="", max_length=1024)
    original_filename: str = Field(default="", max_length=255)


class VoiceCallStartResponse(CamelModel):
    """Returned when a voice call interaction is opened"""
    interaction_id: str
    artifact_info: ArtifactSummary


class VoiceCallEndRequest(CamelModel):
    """Transcript and duration reported when a voice call ends"""
    transcript: str = Field(default="")
    duration: int = Field(default=0, ge=0, description="Call duration in seconds")


class VoiceCallEndResponse(CamelModel):
    """Summary of a closed voice call"""
    duration: int
    transcript_length: int


class QuickQuestionList(CamelModel):
    """Suggested opening questions for an artifact"""
    quick_questions: List[str]
