"""
Companion (honey badger) model.
"""
from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from honeybadger.core.agents.companion.personalities import PersonalityType
from honeybadger.db.base import Base

COMPLETION_XP = 100
XP_PER_LEVEL = 500


class Companion(Base):
    """
    A honey badger owned by a user.

    A companion works on at most one challenge at a time: ``challenge_id`` is
    set on assignment and cleared on release (cancellation). Retirement is a
    soft delete through ``is_active``.
    """

    __tablename__ = "companions"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    personality = Column(Enum(PersonalityType, native_enum=False, length=20), nullable=False)
    avatar = Column(String, nullable=True)

    level = Column(Integer, default=1, nullable=False)
    experience = Column(Integer, default=0, nullable=False)
    successful_challenges = Column(Integer, default=0, nullable=False)

    challenge_id = Column(
        Integer, ForeignKey("challenges.id", ondelete="SET NULL"), unique=True, nullable=True
    )
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    owner = relationship("User", back_populates="companions")
    challenge = relationship("Challenge", back_populates="companion", foreign_keys=[challenge_id])

    @property
    def is_available(self) -> bool:
        return bool(self.is_active) and self.challenge_id is None

    def record_success(self, xp: int = COMPLETION_XP) -> None:
        """Count a completed challenge and recompute the level from experience."""
        self.successful_challenges = (self.successful_challenges or 0) + 1
        self.experience = (self.experience or 0) + xp
        self.level = 1 + self.experience // XP_PER_LEVEL
