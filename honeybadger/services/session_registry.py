"""
Registry of live chat connections, one per user.
"""
import logging
import threading
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Maps a user id to that user's live connection.

    A connection is any object with an async ``emit(event, data)`` method.
    Registering again replaces the previous connection (last one wins).
    Created once per application and shared through ``app.state``.
    """

    def __init__(self):
        self._connections: Dict[int, Any] = {}
        self._lock = threading.Lock()

    def register(self, user_id: int, connection: Any) -> Optional[Any]:
        """
        Store the user's connection.

        Returns:
            The connection it replaced, if any
        """
        with self._lock:
            previous = self._connections.get(user_id)
            self._connections[user_id] = connection
        if previous is not None and previous is not connection:
            logger.info(f"User {user_id} reconnected, replacing previous connection")
        return previous

    def unregister(self, user_id: int, connection: Optional[Any] = None) -> bool:
        """
        Forget the user's connection.

        When ``connection`` is given, only remove it if it is still the
        registered one, so a stale socket closing late cannot drop a newer one.
        """
        with self._lock:
            current = self._connections.get(user_id)
            if current is None:
                return False
            if connection is not None and current is not connection:
                return False
            del self._connections[user_id]
            return True

    def lookup(self, user_id: int) -> Optional[Any]:
        with self._lock:
            return self._connections.get(user_id)

    def is_online(self, user_id: int) -> bool:
        return self.lookup(user_id) is not None

    async def deliver(self, user_id: int, event: str, data: dict) -> bool:
        """
        Best-effort direct delivery to one user.

        Returns:
            True if the event was handed to a live connection
        """
        connection = self.lookup(user_id)
        if connection is None:
            return False
        try:
            await connection.emit(event, data)
            return True
        except Exception as e:
            logger.warning(f"Direct delivery of '{event}' to user {user_id} failed: {e}")
            return False

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)
