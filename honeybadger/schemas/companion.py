"""
Pydantic schemas for companions and personalities.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from honeybadger.core.agents.companion.personalities import PersonalityType
from honeybadger.models.enums import ChallengeStatus


class PersonalityTraitsSchema(BaseModel):
    persistence: int
    encouragement: int
    competitiveness: int
    humor: int
    empathy: int


class PersonalityInfo(BaseModel):
    """Presentation data for a personality."""

    name: str
    avatar: str
    traits: PersonalityTraitsSchema


class PersonalityTypeInfo(PersonalityInfo):
    type: PersonalityType
    description: str


class CompanionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    # Plain string so unknown keys reach the catalog and fail with its error
    personality: str


class CompanionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)


class AssignedChallenge(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    status: ChallengeStatus
    deadline: Optional[datetime] = None


class Companion(BaseModel):
    """Companion response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    name: str
    personality: PersonalityType
    avatar: Optional[str] = None
    level: int
    experience: int
    successful_challenges: int
    challenge_id: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None
    challenge: Optional[AssignedChallenge] = None
    personality_info: Optional[PersonalityInfo] = None
