"""
User model for authentication and authorization.
"""
from sqlalchemy import Boolean, Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from honeybadger.db.base import Base


class User(Base):
    """User model."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=False)
    avatar = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    is_verified = Column(Boolean, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    companions = relationship("Companion", back_populates="owner", cascade="all, delete-orphan")
    sent_challenges = relationship(
        "Challenge", back_populates="sender", foreign_keys="Challenge.sender_id"
    )
    received_challenges = relationship(
        "Challenge", back_populates="recipient", foreign_keys="Challenge.recipient_id"
    )

    @property
    def display_name(self) -> str:
        return str(self.first_name or self.username)
