"""
Challenge chat WebSocket endpoint.

Frames are JSON objects ``{"event": <name>, "data": {...}}`` in both
directions.
"""
import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from honeybadger.core.errors import AuthenticationFailure
from honeybadger.core.security import user_id_from_token
from honeybadger.db.base import session_scope
from honeybadger.models.user import User
from honeybadger.services.chat_orchestrator import ChatOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


class SocketConnection:
    """One authenticated WebSocket, as seen by rooms and the session registry."""

    def __init__(self, websocket: WebSocket, user_id: int, username: str):
        self.websocket = websocket
        self.user_id = user_id
        self.username = username

    async def emit(self, event: str, data: Any) -> None:
        await self.websocket.send_json({"event": event, "data": data})


def _bearer_token(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    """Token from the query string, else from an ``Authorization: Bearer`` header."""
    if token:
        return token
    authorization = websocket.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def authenticate(orchestrator: ChatOrchestrator, token: Optional[str]) -> User:
    """
    Resolve the connecting user.

    Raises:
        AuthenticationFailure: Missing/invalid/expired token, or unknown/inactive user
    """
    user_id = user_id_from_token(token)
    with session_scope(orchestrator.session_factory) as db:
        user = db.query(User).filter(User.id == user_id).first()
        if user is None or not user.is_active:
            raise AuthenticationFailure("Authentication error: User not found")
        db.expunge(user)
    return user


@router.websocket("/ws")
async def chat_websocket(websocket: WebSocket, token: Optional[str] = Query(None)):
    """
    WebSocket endpoint for challenge chat.

    Args:
        websocket: WebSocket connection
        token: JWT access token (or send it as a Bearer Authorization header)

    Note:
        Connections without a valid credential are closed with code 1008
        before they are accepted.
    """
    orchestrator: ChatOrchestrator = websocket.app.state.orchestrator

    try:
        user = authenticate(orchestrator, _bearer_token(websocket, token))
    except AuthenticationFailure as e:
        logger.info(f"WebSocket connection refused: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return

    await websocket.accept()
    connection = SocketConnection(websocket, user.id, user.username)
    orchestrator.connect(connection)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                frame = None
            if not isinstance(frame, dict):
                await connection.emit("error", {"message": "Malformed frame", "code": "validation_failed"})
                continue

            await orchestrator.dispatch(connection, frame.get("event"), frame.get("data"))

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error for user {user.id}: {e}")
    finally:
        orchestrator.disconnect(connection)
