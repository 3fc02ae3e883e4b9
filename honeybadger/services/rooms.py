"""
Challenge rooms: which live connections follow which challenge's chat.
"""
import logging
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.orm import Session

from honeybadger.core.permissions import require_challenge_participant
from honeybadger.models.challenge import Challenge

logger = logging.getLogger(__name__)


class RoomManager:
    """
    Membership of challenge rooms.

    Only the sender and the recipient of a challenge may join its room.
    Membership is per connection and lives only as long as the connection.
    """

    def __init__(self):
        self._rooms: Dict[int, Set[Any]] = {}

    def join(self, db: Session, connection: Any, challenge_id: int) -> Challenge:
        """
        Add a connection to a challenge room after checking access.

        Raises:
            NotFound: Challenge does not exist
            AccessDenied: Connection's user is not a participant
        """
        challenge = require_challenge_participant(challenge_id, connection.user_id, db)
        self._rooms.setdefault(challenge_id, set()).add(connection)
        logger.info(f"User {connection.user_id} joined challenge {challenge_id}")
        return challenge

    def leave(self, connection: Any, challenge_id: int) -> None:
        members = self._rooms.get(challenge_id)
        if not members:
            return
        members.discard(connection)
        if not members:
            del self._rooms[challenge_id]

    def leave_all(self, connection: Any) -> List[int]:
        """Drop a connection from every room; returns the rooms it was in."""
        left = [challenge_id for challenge_id, members in self._rooms.items() if connection in members]
        for challenge_id in left:
            self.leave(connection, challenge_id)
        return left

    def is_member(self, connection: Any, challenge_id: int) -> bool:
        return connection in self._rooms.get(challenge_id, ())

    def members(self, challenge_id: int) -> List[Any]:
        return list(self._rooms.get(challenge_id, ()))

    def has_user(self, challenge_id: int, user_id: int) -> bool:
        return any(member.user_id == user_id for member in self._rooms.get(challenge_id, ()))

    async def broadcast(self, challenge_id: int, event: str, data: dict, exclude: Optional[Any] = None) -> int:
        """
        Send an event to every member except ``exclude``.

        A member whose send fails is skipped; the others still get the event.

        Returns:
            Number of members the event was delivered to
        """
        delivered = 0
        for member in self.members(challenge_id):
            if member is exclude:
                continue
            try:
                await member.emit(event, data)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping '{event}' for user {member.user_id} in challenge {challenge_id}: {e}")
        return delivered
