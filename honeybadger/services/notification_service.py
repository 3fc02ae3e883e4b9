"""
In-app notifications pushed to a user's live connection.
"""
import logging
from typing import Any, Dict, Optional

from honeybadger.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class NotificationService:
    """Fire-and-forget notifications; a user who is offline simply misses them."""

    def __init__(self, sessions: SessionRegistry):
        self.sessions = sessions

    async def notify(
        self,
        user_id: int,
        type: str,
        title: str,
        body: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> bool:
        notification = {
            "type": type,
            "title": title,
            "body": body,
            "payload": payload or {},
        }
        delivered = await self.sessions.deliver(user_id, "notification", notification)
        if not delivered:
            logger.debug(f"User {user_id} offline, '{type}' notification not delivered")
        return delivered
