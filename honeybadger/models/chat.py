"""
Chat message model.

A message is sent either by a human participant or by the challenge's
companion, never both and never neither. The two nullable foreign keys are
an implementation detail behind the ``sender`` sum type; the check
constraint keeps the store honest.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from honeybadger.db.base import Base
from honeybadger.models.enums import MessageType


@dataclass(frozen=True)
class HumanSender:
    user_id: int


@dataclass(frozen=True)
class CompanionSender:
    companion_id: int


MessageSender = Union[HumanSender, CompanionSender]


class ChatMessage(Base):
    """Append-only message in a challenge room."""

    __tablename__ = "chat_messages"
    __table_args__ = (
        CheckConstraint(
            "(sender_id IS NULL) <> (companion_id IS NULL)",
            name="ck_chat_messages_single_sender",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    challenge_id = Column(Integer, ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    message_type = Column(Enum(MessageType, native_enum=False, length=30), default=MessageType.TEXT, nullable=False)
    media_url = Column(String, nullable=True)

    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    companion_id = Column(Integer, ForeignKey("companions.id", ondelete="CASCADE"), nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)

    # Relationships
    challenge = relationship("Challenge", back_populates="chat_messages")
    sender_user = relationship("User", foreign_keys=[sender_id])
    sender_companion = relationship("Companion", foreign_keys=[companion_id])

    @classmethod
    def create(
        cls,
        challenge_id: int,
        sender: MessageSender,
        content: str,
        message_type: MessageType = MessageType.TEXT,
        media_url: Optional[str] = None,
    ) -> "ChatMessage":
        """Build a message attributed to exactly one sender."""
        if isinstance(sender, HumanSender):
            return cls(
                challenge_id=challenge_id,
                sender_id=sender.user_id,
                content=content,
                message_type=message_type,
                media_url=media_url,
            )
        if isinstance(sender, CompanionSender):
            return cls(
                challenge_id=challenge_id,
                companion_id=sender.companion_id,
                content=content,
                message_type=message_type,
                media_url=media_url,
            )
        raise TypeError(f"Unsupported message sender: {sender!r}")

    @property
    def sender(self) -> MessageSender:
        if self.companion_id is not None:
            return CompanionSender(companion_id=int(self.companion_id))
        return HumanSender(user_id=int(self.sender_id))

    @property
    def is_companion_message(self) -> bool:
        return self.companion_id is not None
