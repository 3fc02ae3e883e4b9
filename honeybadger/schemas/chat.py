"""
Chat schemas.

These describe the socket wire contract, which uses camelCase field names;
inputs also accept snake_case.
"""
from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from honeybadger.core.agents.companion.personalities import PersonalityType
from honeybadger.models.chat import ChatMessage
from honeybadger.models.enums import MessageType


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ============= Socket events (client -> server) =============

class ChallengeRef(CamelModel):
    """Payload of join/leave/poke/typing events."""

    challenge_id: int


class SendMessage(CamelModel):
    challenge_id: int
    content: str = Field(..., min_length=1, max_length=2000)
    message_type: MessageType = MessageType.TEXT
    media_url: Optional[str] = None


# ============= Messages (server -> client) =============

class HumanSenderOut(CamelModel):
    kind: Literal["human"] = "human"
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None


class CompanionSenderOut(CamelModel):
    kind: Literal["companion"] = "companion"
    id: int
    name: str
    personality: PersonalityType
    avatar: Optional[str] = None


SenderOut = Union[HumanSenderOut, CompanionSenderOut]


class ChatMessageOut(CamelModel):
    id: int
    challenge_id: int
    content: str
    message_type: MessageType
    media_url: Optional[str] = None
    sender: SenderOut = Field(..., discriminator="kind")
    created_at: Optional[datetime] = None
    is_own: bool = False
    is_badger: bool = False


def serialize_message(message: ChatMessage, is_own: bool = False) -> dict:
    """Wire form of a persisted message."""
    if message.is_companion_message:
        companion = message.sender_companion
        sender: SenderOut = CompanionSenderOut(
            id=companion.id,
            name=companion.name,
            personality=companion.personality,
            avatar=companion.avatar,
        )
    else:
        sender = HumanSenderOut.model_validate(message.sender_user)

    out = ChatMessageOut(
        id=message.id,
        challenge_id=message.challenge_id,
        content=message.content,
        message_type=message.message_type,
        media_url=message.media_url,
        sender=sender,
        created_at=message.created_at,
        is_own=is_own,
        is_badger=message.is_companion_message,
    )
    return out.model_dump(mode="json", by_alias=True)


class TypingOut(CamelModel):
    user_id: int
    username: str
    is_typing: bool
