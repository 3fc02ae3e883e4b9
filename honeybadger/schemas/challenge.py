"""
Pydantic schemas for challenges and progress updates.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, model_validator

from honeybadger.models.enums import (
    ChallengeStatus,
    ChallengeType,
    Difficulty,
    ProgressUpdateType,
    RewardType,
    VerificationMethod,
)
from honeybadger.schemas.companion import Companion
from honeybadger.schemas.user import UserSummary


class ChallengeCreate(BaseModel):
    """Request to send a challenge to another user."""

    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    type: ChallengeType
    difficulty: Difficulty = Difficulty.MEDIUM
    deadline: Optional[datetime] = None
    verification_method: VerificationMethod
    verification_data: Optional[Dict[str, Any]] = None
    reward_type: RewardType
    reward_amount: Optional[float] = Field(None, ge=0)
    reward_message: Optional[str] = Field(None, max_length=500)
    reward_media: List[str] = Field(default_factory=list)
    recipient_email: EmailStr
    companion_id: int

    @model_validator(mode="after")
    def check_reward_and_deadline(self):
        if self.reward_type in (RewardType.MONEY, RewardType.GIFT_CARD) and self.reward_amount is None:
            raise ValueError("reward_amount is required for MONEY and GIFT_CARD rewards")
        if self.deadline is not None:
            deadline = self.deadline
            if deadline.tzinfo is None:
                deadline = deadline.replace(tzinfo=timezone.utc)
            if deadline <= datetime.now(timezone.utc):
                raise ValueError("deadline must be in the future")
        return self


class ProgressCreate(BaseModel):
    content: Optional[str] = Field(None, max_length=2000)
    media_urls: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    progress_percent: int = Field(0, ge=0, le=100)


class ProgressUpdate(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    challenge_id: int
    update_type: ProgressUpdateType
    content: str
    media_urls: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias=AliasChoices("extra", "metadata"))
    progress_percent: int
    created_at: Optional[datetime] = None


class Challenge(BaseModel):
    """Challenge response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str
    type: ChallengeType
    difficulty: Difficulty
    deadline: Optional[datetime] = None
    verification_method: VerificationMethod
    verification_data: Optional[Dict[str, Any]] = None
    reward_type: RewardType
    reward_amount: Optional[float] = None
    reward_message: Optional[str] = None
    reward_media: Optional[List[str]] = None
    status: ChallengeStatus
    sender: UserSummary
    recipient: UserSummary
    companion: Optional[Companion] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ChallengeCreated(BaseModel):
    challenge: Challenge
    payment_client_secret: Optional[str] = None


class ProgressResult(BaseModel):
    progress_update: ProgressUpdate
    challenge_status: ChallengeStatus


class PaymentConfirm(BaseModel):
    payment_intent_id: str


class PaymentHistoryItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    amount: Optional[float] = Field(None, validation_alias=AliasChoices("reward_amount", "amount"))
    recipient: UserSummary
    status: ChallengeStatus
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    payment_intent_id: Optional[str] = None
