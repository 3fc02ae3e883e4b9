"""
Challenge and progress update models.
"""
from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from honeybadger.db.base import Base
from honeybadger.models.enums import (
    ChallengeStatus,
    ChallengeType,
    Difficulty,
    ProgressUpdateType,
    RewardType,
    VerificationMethod,
)


def _enum(enum_cls):
    return Enum(enum_cls, native_enum=False, length=30)


class Challenge(Base):
    """A sender-to-recipient task with a verification method and optional reward."""

    __tablename__ = "challenges"

    id = Column(Integer, primary_key=True, index=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    type = Column(_enum(ChallengeType), nullable=False)
    difficulty = Column(_enum(Difficulty), default=Difficulty.MEDIUM, nullable=False)
    deadline = Column(DateTime(timezone=True), nullable=True)
    verification_method = Column(_enum(VerificationMethod), nullable=False)
    verification_data = Column(JSON, nullable=True)

    reward_type = Column(_enum(RewardType), nullable=False)
    reward_amount = Column(Float, nullable=True)
    reward_message = Column(String(500), nullable=True)
    reward_media = Column(JSON, nullable=True)  # list of media URLs

    status = Column(_enum(ChallengeStatus), default=ChallengeStatus.PENDING, nullable=False, index=True)
    payment_intent_id = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    sender = relationship("User", back_populates="sent_challenges", foreign_keys=[sender_id])
    recipient = relationship("User", back_populates="received_challenges", foreign_keys=[recipient_id])
    companion = relationship(
        "Companion",
        back_populates="challenge",
        uselist=False,
        foreign_keys="Companion.challenge_id",
    )
    progress_updates = relationship(
        "ProgressUpdate", back_populates="challenge", cascade="all, delete-orphan"
    )
    chat_messages = relationship(
        "ChatMessage", back_populates="challenge", cascade="all, delete-orphan"
    )

    def is_participant(self, user_id: int) -> bool:
        return user_id in (self.sender_id, self.recipient_id)

    def other_participant_id(self, user_id: int) -> int:
        return self.recipient_id if user_id == self.sender_id else self.sender_id


class ProgressUpdate(Base):
    """Recipient-submitted evidence of progress. Append-only."""

    __tablename__ = "progress_updates"

    id = Column(Integer, primary_key=True, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    update_type = Column(_enum(ProgressUpdateType), default=ProgressUpdateType.PROGRESS, nullable=False)
    content = Column(Text, nullable=False)
    media_urls = Column(JSON, nullable=False, default=list)
    extra = Column("metadata", JSON, nullable=False, default=dict)  # "metadata" is reserved on declarative models
    progress_percent = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    challenge = relationship("Challenge", back_populates="progress_updates")
