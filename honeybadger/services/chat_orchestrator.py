"""
Live challenge chat.

Handles socket events (room membership, chat messages, pokes, typing) and
pushes challenge lifecycle changes made over REST to the people watching.
Every socket event is processed in its own database session; errors are
reported to the connection that caused them and never reach other members.
"""
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from honeybadger.core.agents.companion.personalities import PhraseCategory, pick_phrase, resolve
from honeybadger.core.agents.companion.responder import CompanionResponder
from honeybadger.core.errors import DomainError
from honeybadger.core.permissions import require_challenge_participant
from honeybadger.db.base import session_scope
from honeybadger.models.challenge import Challenge
from honeybadger.models.chat import ChatMessage, CompanionSender, HumanSender
from honeybadger.models.companion import Companion
from honeybadger.models.enums import ChallengeStatus
from honeybadger.models.user import User
from honeybadger.schemas.challenge import ChallengeCreate, ProgressCreate
from honeybadger.schemas.chat import ChallengeRef, SendMessage, TypingOut, serialize_message
from honeybadger.services import challenge_service
from honeybadger.services.notification_service import NotificationService
from honeybadger.services.payment_service import PaymentService
from honeybadger.services.reply_scheduler import ReplyScheduler, random_reply_delay
from honeybadger.services.rooms import RoomManager
from honeybadger.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any, Dict[str, Any]], Awaitable[None]]

# Verb used in the generic "Failed to ..." error per event
_EVENT_ACTIONS = {
    "join_challenge": "join challenge",
    "leave_challenge": "leave challenge",
    "send_message": "send message",
    "poke_badger": "poke honey badger",
    "typing_start": "send typing status",
    "typing_stop": "send typing status",
}


def _status_payload(challenge: Challenge) -> dict:
    return {"challengeId": challenge.id, "status": challenge.status.value}


class ChatOrchestrator:
    """
    Coordinates rooms, companion replies and notifications.

    A connection is any object with ``user_id``, ``username`` and an async
    ``emit(event, data)``.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        rooms: RoomManager,
        sessions: SessionRegistry,
        responder: CompanionResponder,
        scheduler: ReplyScheduler,
        notifier: NotificationService,
        reply_delay: Callable[[], float] = random_reply_delay,
    ):
        self.session_factory = session_factory
        self.rooms = rooms
        self.sessions = sessions
        self.responder = responder
        self.scheduler = scheduler
        self.notifier = notifier
        self.reply_delay = reply_delay
        self._handlers: Dict[str, EventHandler] = {
            "join_challenge": self.join_challenge,
            "leave_challenge": self.leave_challenge,
            "send_message": self.send_message,
            "poke_badger": self.poke_companion,
            "typing_start": self.typing_start,
            "typing_stop": self.typing_stop,
        }

    # ============= Connection lifecycle =============

    def connect(self, connection: Any) -> None:
        self.sessions.register(connection.user_id, connection)
        logger.info(f"User connected: {connection.username} ({connection.user_id})")

    def disconnect(self, connection: Any) -> None:
        self.sessions.unregister(connection.user_id, connection)
        rooms = self.rooms.leave_all(connection)
        logger.info(f"User disconnected: {connection.username} ({connection.user_id}), left rooms {rooms}")

    async def dispatch(self, connection: Any, event: Optional[str], data: Any) -> None:
        """
        Route one incoming event to its handler.

        Any failure is turned into an ``error`` event for this connection only.
        """
        handler = self._handlers.get(event or "")
        if handler is None:
            await self._emit_error(connection, f"Unknown event: {event}", "unknown_event")
            return

        try:
            await handler(connection, data if isinstance(data, dict) else {})
        except ValidationError as e:
            await self._emit_error(connection, f"Invalid payload for {event}: {e.errors()[0]['msg']}", "validation_failed")
        except DomainError as e:
            await self._emit_error(connection, e.message, e.code)
        except SQLAlchemyError as e:
            logger.error(f"Database error handling '{event}' for user {connection.user_id}: {e}")
            await self._emit_error(connection, f"Failed to {_EVENT_ACTIONS[event]}", "operation_failed")
        except Exception as e:
            logger.error(f"Error handling '{event}' for user {connection.user_id}: {e}", exc_info=True)
            await self._emit_error(connection, f"Failed to {_EVENT_ACTIONS[event]}", "operation_failed")

    async def _emit_error(self, connection: Any, message: str, code: str) -> None:
        try:
            await connection.emit("error", {"message": message, "code": code})
        except Exception as e:
            logger.warning(f"Could not report error to user {connection.user_id}: {e}")

    # ============= Socket events =============

    async def join_challenge(self, connection: Any, data: Dict[str, Any]) -> None:
        ref = ChallengeRef.model_validate(data)
        with session_scope(self.session_factory) as db:
            challenge = self.rooms.join(db, connection, ref.challenge_id)
            payload = _status_payload(challenge)
        await connection.emit("joined_challenge", payload)

    async def leave_challenge(self, connection: Any, data: Dict[str, Any]) -> None:
        ref = ChallengeRef.model_validate(data)
        self.rooms.leave(connection, ref.challenge_id)
        await connection.emit("left_challenge", {"challengeId": ref.challenge_id})

    async def send_message(self, connection: Any, data: Dict[str, Any]) -> None:
        """
        Persist a chat message and fan it out.

        Other room members get ``new_message``, the sender gets
        ``message_sent``. An ACTIVE challenge with a companion also gets a
        delayed companion reply.
        """
        request = SendMessage.model_validate(data)

        with session_scope(self.session_factory) as db:
            challenge = require_challenge_participant(request.challenge_id, connection.user_id, db)
            message = ChatMessage.create(
                challenge_id=challenge.id,
                sender=HumanSender(user_id=connection.user_id),
                content=request.content,
                message_type=request.message_type,
                media_url=request.media_url,
            )
            db.add(message)
            db.commit()
            db.refresh(message)

            incoming = serialize_message(message, is_own=False)
            own = serialize_message(message, is_own=True)
            companion = challenge.companion
            companion_id = companion.id if companion is not None and challenge.status == ChallengeStatus.ACTIVE else None
            other_user_id = challenge.other_participant_id(connection.user_id)
            sender_name = message.sender_user.display_name
            challenge_title = challenge.title

        await self.rooms.broadcast(request.challenge_id, "new_message", incoming, exclude=connection)
        await connection.emit("message_sent", own)

        if companion_id is not None:
            challenge_id = request.challenge_id
            user_id = connection.user_id
            content = request.content

            async def reply() -> None:
                await self._companion_reply(challenge_id, companion_id, user_id, content, connection)

            self.scheduler.schedule(challenge_id, self.reply_delay(), reply)

        if not self.rooms.has_user(request.challenge_id, other_user_id):
            await self.notifier.notify(
                other_user_id,
                "new_message",
                f"New message in {challenge_title}",
                f"{sender_name}: {request.content[:100]}",
                {"challengeId": request.challenge_id, "messageId": incoming["id"]},
            )

    async def _companion_reply(
        self,
        challenge_id: int,
        companion_id: int,
        user_id: int,
        user_message: str,
        origin: Any,
    ) -> None:
        """
        Deferred job: generate, persist and deliver the companion's answer.

        Runs even if the challenge changed since it was scheduled. Never raises.
        """
        try:
            with session_scope(self.session_factory) as db:
                challenge = db.get(Challenge, challenge_id)
                companion = db.get(Companion, companion_id)
                user = db.get(User, user_id)
                if challenge is None or companion is None or user is None:
                    logger.info(f"Skipping companion reply for challenge {challenge_id}: records gone")
                    return
                # Detached so no pooled connection is held across the model call
                db.expunge_all()

            profile = resolve(companion.personality)
            text = await self.responder.generate(companion, profile, user_message, challenge, user)

            with session_scope(self.session_factory) as db:
                message = ChatMessage.create(
                    challenge_id=challenge_id,
                    sender=CompanionSender(companion_id=companion_id),
                    content=text,
                )
                db.add(message)
                db.commit()
                db.refresh(message)
                payload = serialize_message(message)

            await self.rooms.broadcast(challenge_id, "new_message", payload, exclude=origin)
            await origin.emit("new_message", payload)
        except Exception as e:
            logger.error(f"Error generating honey badger response for challenge {challenge_id}: {e}")

    async def poke_companion(self, connection: Any, data: Dict[str, Any]) -> None:
        """
        Ask the companion for a check-in, answered to the poker only.

        Silently ignored unless the poker is the recipient of an ACTIVE
        challenge that has a companion.
        """
        ref = ChallengeRef.model_validate(data)

        with session_scope(self.session_factory) as db:
            challenge = db.get(Challenge, ref.challenge_id)
            if (
                challenge is None
                or challenge.recipient_id != connection.user_id
                or challenge.status != ChallengeStatus.ACTIVE
                or challenge.companion is None
            ):
                logger.debug(f"Ignoring poke on challenge {ref.challenge_id} from user {connection.user_id}")
                return

            companion = challenge.companion
            profile = resolve(companion.personality)
            message = ChatMessage.create(
                challenge_id=challenge.id,
                sender=CompanionSender(companion_id=companion.id),
                content=pick_phrase(profile, PhraseCategory.CHECK_IN),
            )
            db.add(message)
            db.commit()
            db.refresh(message)
            payload = serialize_message(message)

        await connection.emit("new_message", payload)

    async def typing_start(self, connection: Any, data: Dict[str, Any]) -> None:
        await self._relay_typing(connection, data, True)

    async def typing_stop(self, connection: Any, data: Dict[str, Any]) -> None:
        await self._relay_typing(connection, data, False)

    async def _relay_typing(self, connection: Any, data: Dict[str, Any], is_typing: bool) -> None:
        ref = ChallengeRef.model_validate(data)
        if not self.rooms.is_member(connection, ref.challenge_id):
            return
        payload = TypingOut(
            user_id=connection.user_id,
            username=connection.username,
            is_typing=is_typing,
        ).model_dump(by_alias=True)
        await self.rooms.broadcast(ref.challenge_id, "user_typing", payload, exclude=connection)

    # ============= Lifecycle changes made over REST =============

    async def _push(self, challenge: Challenge, messages=()) -> None:
        await self.rooms.broadcast(challenge.id, "challenge_updated", _status_payload(challenge))
        for message in messages:
            if message is not None:
                await self.rooms.broadcast(challenge.id, "new_message", serialize_message(message))

    async def create_challenge(self, db: Session, sender: User, data: ChallengeCreate, payments: PaymentService):
        challenge, intent = challenge_service.create_challenge(db, sender, data, payments)
        await self.notifier.notify(
            challenge.recipient_id,
            "challenge_received",
            "New challenge!",
            f"{sender.display_name} challenged you: {challenge.title}",
            {"challengeId": challenge.id},
        )
        return challenge, intent

    async def accept_challenge(self, db: Session, user: User, challenge_id: int) -> Challenge:
        challenge, message = challenge_service.accept_challenge(db, user, challenge_id)
        await self._push(challenge, [message])
        await self.notifier.notify(
            challenge.sender_id,
            "challenge_accepted",
            "Challenge accepted",
            f"{user.display_name} accepted: {challenge.title}",
            {"challengeId": challenge.id},
        )
        return challenge

    async def cancel_challenge(self, db: Session, user: User, challenge_id: int) -> Challenge:
        challenge = challenge_service.cancel_challenge(db, user, challenge_id)
        await self._push(challenge)
        await self.notifier.notify(
            challenge.recipient_id,
            "challenge_cancelled",
            "Challenge cancelled",
            f"{user.display_name} cancelled: {challenge.title}",
            {"challengeId": challenge.id},
        )
        return challenge

    async def submit_progress(self, db: Session, user: User, challenge_id: int, progress: ProgressCreate):
        update, message, challenge = challenge_service.submit_progress(db, user, challenge_id, progress)
        await self._push(challenge, [message])
        if challenge.status == ChallengeStatus.COMPLETED:
            await self.notifier.notify(
                challenge.sender_id,
                "challenge_completed",
                "Challenge completed!",
                f"{user.display_name} completed: {challenge.title}",
                {"challengeId": challenge.id},
            )
        return update, challenge
