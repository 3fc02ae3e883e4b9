"""Models module - Import all models here so metadata.create_all sees them."""
from honeybadger.db.base import Base
from honeybadger.models.user import User
from honeybadger.models.companion import Companion
from honeybadger.models.challenge import Challenge, ProgressUpdate
from honeybadger.models.chat import ChatMessage, CompanionSender, HumanSender, MessageSender

__all__ = [
    "Base",
    "User",
    "Companion",
    "Challenge",
    "ProgressUpdate",
    "ChatMessage",
    "CompanionSender",
    "HumanSender",
    "MessageSender",
]
