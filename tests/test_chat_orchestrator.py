"""
Tests for the chat orchestrator.

Tests cover:
- Room join/leave and access checks
- Message fan-out, acknowledgement and delayed companion replies
- Pokes, typing relays and disconnects
- Error reporting to the offending connection only
- Lifecycle pushes for changes made over REST
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool

from honeybadger.core.agents.companion.personalities import PersonalityType, PhraseCategory, resolve
from honeybadger.core.agents.companion.responder import CompanionResponder
from honeybadger.models import Base, Challenge, ChatMessage, Companion, User
from honeybadger.models.enums import ChallengeStatus, ChallengeType, RewardType, VerificationMethod
from honeybadger.schemas.challenge import ProgressCreate
from honeybadger.services import challenge_service
from honeybadger.services.chat_orchestrator import ChatOrchestrator
from honeybadger.services.notification_service import NotificationService
from honeybadger.services.reply_scheduler import ReplyScheduler
from honeybadger.services.rooms import RoomManager
from honeybadger.services.session_registry import SessionRegistry

from .conftest import FakeConnection


async def _drain(orchestrator, challenge_id):
    """Wait for every companion reply scheduled for a challenge."""
    await asyncio.gather(*orchestrator.scheduler.pending(challenge_id))
    await asyncio.sleep(0)


def _messages(db_session, challenge_id):
    db_session.expire_all()
    return (
        db_session.query(ChatMessage)
        .filter(ChatMessage.challenge_id == challenge_id)
        .order_by(ChatMessage.id)
        .all()
    )


# =============================================================================
# Rooms
# =============================================================================


class TestJoinLeave:
    async def test_join_acknowledges(self, orchestrator, connect, active_challenge, recipient):
        connection = connect(recipient)

        await orchestrator.dispatch(connection, "join_challenge", {"challengeId": active_challenge.id})

        assert connection.events("joined_challenge") == [
            {"challengeId": active_challenge.id, "status": "ACTIVE"}
        ]
        assert orchestrator.rooms.is_member(connection, active_challenge.id)

    async def test_outsider_join_reports_access_denied(self, orchestrator, connect, active_challenge, outsider):
        connection = connect(outsider)

        await orchestrator.dispatch(connection, "join_challenge", {"challengeId": active_challenge.id})

        assert connection.events("error") == [{"message": "Access denied to challenge", "code": "access_denied"}]
        assert not orchestrator.rooms.is_member(connection, active_challenge.id)

    async def test_join_missing_challenge(self, orchestrator, connect, sender):
        connection = connect(sender)

        await orchestrator.dispatch(connection, "join_challenge", {"challengeId": 404})

        assert connection.events("error")[0]["code"] == "not_found"

    async def test_leave(self, orchestrator, connect, active_challenge, sender):
        connection = connect(sender)
        await orchestrator.dispatch(connection, "join_challenge", {"challengeId": active_challenge.id})

        await orchestrator.dispatch(connection, "leave_challenge", {"challengeId": active_challenge.id})
        await orchestrator.dispatch(connection, "leave_challenge", {"challengeId": active_challenge.id})

        assert not orchestrator.rooms.is_member(connection, active_challenge.id)
        assert len(connection.events("left_challenge")) == 2

    async def test_disconnect_clears_registry_and_rooms(self, orchestrator, connect, active_challenge, sender):
        connection = connect(sender)
        await orchestrator.dispatch(connection, "join_challenge", {"challengeId": active_challenge.id})

        orchestrator.disconnect(connection)

        assert orchestrator.sessions.lookup(sender.id) is None
        assert orchestrator.rooms.members(active_challenge.id) == []


# =============================================================================
# Messages
# =============================================================================


class TestSendMessage:
    async def _joined(self, orchestrator, connect, challenge, *users):
        connections = []
        for user in users:
            connection = connect(user)
            await orchestrator.dispatch(connection, "join_challenge", {"challengeId": challenge.id})
            connections.append(connection)
        return connections

    async def test_fan_out_and_acknowledgement(
        self, orchestrator, connect, db_session, make_challenge, sender, recipient
    ):
        # No companion: no reply, only the human message
        challenge = make_challenge(sender, recipient, status=ChallengeStatus.ACTIVE)
        a, b = await self._joined(orchestrator, connect, challenge, sender, recipient)

        await orchestrator.dispatch(a, "send_message", {"challengeId": challenge.id, "content": "Ready?"})

        messages = _messages(db_session, challenge.id)
        assert [m.content for m in messages] == ["Ready?"]
        assert messages[0].sender_id == sender.id

        incoming = b.events("new_message")
        assert len(incoming) == 1
        assert incoming[0]["content"] == "Ready?"
        assert incoming[0]["isOwn"] is False
        assert incoming[0]["sender"] == {
            "kind": "human",
            "id": sender.id,
            "username": "sender",
            "firstName": "Sender",
            "lastName": None,
            "avatar": None,
        }

        assert a.events("new_message") == []
        own = a.events("message_sent")
        assert len(own) == 1
        assert own[0]["isOwn"] is True
        assert own[0]["id"] == incoming[0]["id"]
        assert orchestrator.scheduler.pending(challenge.id) == []

    async def test_companion_replies_on_active_challenge(
        self, orchestrator, connect, db_session, active_challenge, companion, sender, recipient, mock_responder
    ):
        a, b = await self._joined(orchestrator, connect, active_challenge, sender, recipient)

        await orchestrator.dispatch(b, "send_message", {"challengeId": active_challenge.id, "content": "So tired"})
        await _drain(orchestrator, active_challenge.id)

        mock_responder.generate.assert_awaited_once()
        args = mock_responder.generate.await_args.args
        assert args[0].id == companion.id
        assert args[1] is resolve(PersonalityType.RELENTLESS)
        assert args[2] == "So tired"

        messages = _messages(db_session, active_challenge.id)
        assert len(messages) == 2
        assert messages[1].companion_id == companion.id
        assert messages[1].content == "Honey badger don't care about excuses!"

        # Reply reaches everyone, the original sender exactly once
        for connection in (a, b):
            replies = [m for m in connection.events("new_message") if m["isBadger"]]
            assert len(replies) == 1
            assert replies[0]["sender"]["kind"] == "companion"
            assert replies[0]["sender"]["name"] == "Badger"

    async def test_sender_outside_room_still_gets_reply(
        self, orchestrator, connect, db_session, active_challenge, recipient
    ):
        connection = connect(recipient)

        await orchestrator.dispatch(connection, "send_message", {"challengeId": active_challenge.id, "content": "hi"})
        await _drain(orchestrator, active_challenge.id)

        assert len(connection.events("message_sent")) == 1
        assert len(connection.events("new_message")) == 1

    async def test_no_reply_while_pending(
        self, orchestrator, connect, make_challenge, sender, recipient, companion, mock_responder
    ):
        challenge = make_challenge(sender, recipient, companion=companion)
        connection = connect(recipient)

        await orchestrator.dispatch(connection, "send_message", {"challengeId": challenge.id, "content": "hi"})

        assert orchestrator.scheduler.pending(challenge.id) == []
        mock_responder.generate.assert_not_awaited()

    async def test_generation_failure_is_swallowed(
        self, orchestrator, connect, db_session, active_challenge, recipient, mock_responder
    ):
        mock_responder.generate.side_effect = RuntimeError("provider down")
        connection = connect(recipient)

        await orchestrator.dispatch(connection, "send_message", {"challengeId": active_challenge.id, "content": "hi"})
        await _drain(orchestrator, active_challenge.id)

        # Human message stays, no error surfaced
        assert [m.content for m in _messages(db_session, active_challenge.id)] == ["hi"]
        assert connection.events("error") == []

    async def test_outsider_cannot_send(self, orchestrator, connect, db_session, active_challenge, outsider, sender):
        watcher = connect(sender)
        await orchestrator.dispatch(watcher, "join_challenge", {"challengeId": active_challenge.id})
        intruder = connect(outsider)

        await orchestrator.dispatch(intruder, "send_message", {"challengeId": active_challenge.id, "content": "hi"})

        assert intruder.events("error")[0]["code"] == "access_denied"
        assert _messages(db_session, active_challenge.id) == []
        assert watcher.events("new_message") == []

    @pytest.mark.parametrize(
        "payload",
        [
            {"content": "no challenge id"},
            {"challengeId": 1, "content": ""},
            {"challengeId": 1, "content": "x" * 2001},
            {"challengeId": "abc", "content": "hi"},
        ],
    )
    async def test_invalid_payload(self, orchestrator, connect, sender, payload):
        connection = connect(sender)

        await orchestrator.dispatch(connection, "send_message", payload)

        errors = connection.events("error")
        assert len(errors) == 1
        assert errors[0]["code"] == "validation_failed"

    async def test_database_error_reports_generic_failure(self, orchestrator, connect, active_challenge, sender):
        connection = connect(sender)

        with patch(
            "honeybadger.services.chat_orchestrator.require_challenge_participant",
            side_effect=SQLAlchemyError("database is locked"),
        ):
            await orchestrator.dispatch(connection, "send_message", {"challengeId": active_challenge.id, "content": "hi"})

        assert connection.events("error") == [{"message": "Failed to send message", "code": "operation_failed"}]

    async def test_offline_room_notifies_other_participant(
        self, orchestrator, connect, make_challenge, sender, recipient
    ):
        challenge = make_challenge(sender, recipient, status=ChallengeStatus.ACTIVE)
        a = connect(sender)
        b = connect(recipient)  # online, but not watching the room

        await orchestrator.dispatch(a, "send_message", {"challengeId": challenge.id, "content": "Where are you?"})

        notifications = b.events("notification")
        assert len(notifications) == 1
        assert notifications[0]["type"] == "new_message"
        assert notifications[0]["body"] == "Sender: Where are you?"
        assert notifications[0]["payload"]["challengeId"] == challenge.id

    async def test_reply_fires_after_cancellation(
        self, orchestrator, connect, db_session, active_challenge, companion, sender, recipient
    ):
        """Known gap: cancelling a challenge does not cancel an already scheduled reply."""
        orchestrator.reply_delay = lambda: 0.05
        connection = connect(recipient)

        await orchestrator.dispatch(connection, "send_message", {"challengeId": active_challenge.id, "content": "hi"})
        assert len(orchestrator.scheduler.pending(active_challenge.id)) == 1

        challenge_service.cancel_challenge(db_session, sender, active_challenge.id)
        await _drain(orchestrator, active_challenge.id)

        messages = _messages(db_session, active_challenge.id)
        assert messages[-1].companion_id == companion.id
        assert len(connection.events("new_message")) == 1

    async def test_scheduler_can_cancel_pending_reply(
        self, orchestrator, connect, db_session, active_challenge, recipient
    ):
        orchestrator.reply_delay = lambda: 10
        connection = connect(recipient)

        await orchestrator.dispatch(connection, "send_message", {"challengeId": active_challenge.id, "content": "hi"})
        assert orchestrator.scheduler.cancel(active_challenge.id) == 1
        await asyncio.sleep(0)

        assert len(_messages(db_session, active_challenge.id)) == 1


# =============================================================================
# Poke and typing
# =============================================================================


class TestPoke:
    async def test_poke_answers_poker_only(
        self, orchestrator, connect, db_session, active_challenge, companion, sender, recipient
    ):
        watcher = connect(sender)
        await orchestrator.dispatch(watcher, "join_challenge", {"challengeId": active_challenge.id})
        poker = connect(recipient)
        await orchestrator.dispatch(poker, "join_challenge", {"challengeId": active_challenge.id})

        await orchestrator.dispatch(poker, "poke_badger", {"challengeId": active_challenge.id})

        replies = poker.events("new_message")
        assert len(replies) == 1
        assert replies[0]["content"] in resolve(PersonalityType.RELENTLESS).phrases[PhraseCategory.CHECK_IN]
        assert watcher.events("new_message") == []
        assert len(_messages(db_session, active_challenge.id)) == 1

    async def test_sender_poke_is_ignored(self, orchestrator, connect, db_session, active_challenge, sender):
        connection = connect(sender)

        await orchestrator.dispatch(connection, "poke_badger", {"challengeId": active_challenge.id})

        assert connection.emitted == []
        assert _messages(db_session, active_challenge.id) == []

    async def test_poke_on_pending_is_ignored(
        self, orchestrator, connect, db_session, make_challenge, sender, recipient, companion
    ):
        challenge = make_challenge(sender, recipient, companion=companion)
        connection = connect(recipient)

        await orchestrator.dispatch(connection, "poke_badger", {"challengeId": challenge.id})

        assert connection.emitted == []
        assert _messages(db_session, challenge.id) == []

    async def test_poke_without_companion_is_ignored(
        self, orchestrator, connect, db_session, make_challenge, sender, recipient
    ):
        challenge = make_challenge(sender, recipient, status=ChallengeStatus.ACTIVE)
        connection = connect(recipient)

        await orchestrator.dispatch(connection, "poke_badger", {"challengeId": challenge.id})

        assert connection.emitted == []
        assert _messages(db_session, challenge.id) == []

    async def test_poke_missing_challenge_is_ignored(self, orchestrator, connect, recipient):
        connection = connect(recipient)

        await orchestrator.dispatch(connection, "poke_badger", {"challengeId": 999})

        assert connection.emitted == []


class TestTyping:
    async def test_typing_relayed_to_others(self, orchestrator, connect, active_challenge, sender, recipient):
        a, b = connect(sender), connect(recipient)
        for connection in (a, b):
            await orchestrator.dispatch(connection, "join_challenge", {"challengeId": active_challenge.id})

        await orchestrator.dispatch(a, "typing_start", {"challengeId": active_challenge.id})
        await orchestrator.dispatch(a, "typing_stop", {"challengeId": active_challenge.id})

        assert b.events("user_typing") == [
            {"userId": sender.id, "username": "sender", "isTyping": True},
            {"userId": sender.id, "username": "sender", "isTyping": False},
        ]
        assert a.events("user_typing") == []

    async def test_typing_from_outside_room_is_dropped(self, orchestrator, connect, active_challenge, sender, outsider):
        watcher = connect(sender)
        await orchestrator.dispatch(watcher, "join_challenge", {"challengeId": active_challenge.id})
        stranger = connect(outsider)

        await orchestrator.dispatch(stranger, "typing_start", {"challengeId": active_challenge.id})

        assert watcher.events("user_typing") == []


class TestDispatch:
    async def test_unknown_event(self, orchestrator, connect, sender):
        connection = connect(sender)

        await orchestrator.dispatch(connection, "dance", {})

        assert connection.events("error") == [{"message": "Unknown event: dance", "code": "unknown_event"}]

    async def test_non_object_payload(self, orchestrator, connect, sender):
        connection = connect(sender)

        await orchestrator.dispatch(connection, "join_challenge", "oops")

        assert connection.events("error")[0]["code"] == "validation_failed"

    async def test_unexpected_handler_error_is_reported(self, orchestrator, connect, active_challenge, sender):
        connection = connect(sender)

        with patch.object(orchestrator.rooms, "join", side_effect=RuntimeError("boom")):
            await orchestrator.dispatch(connection, "join_challenge", {"challengeId": active_challenge.id})

        assert connection.events("error") == [{"message": "Failed to join challenge", "code": "operation_failed"}]

        # The connection keeps working afterwards
        await orchestrator.dispatch(connection, "join_challenge", {"challengeId": active_challenge.id})
        assert connection.events("joined_challenge") == [{"challengeId": active_challenge.id, "status": "ACTIVE"}]


# =============================================================================
# Lifecycle pushes
# =============================================================================


class TestLifecyclePush:
    async def test_accept_pushes_status_and_kickoff(
        self, orchestrator, connect, db_session, make_challenge, sender, recipient, companion
    ):
        challenge = make_challenge(sender, recipient, companion=companion)
        watcher = connect(sender)
        await orchestrator.dispatch(watcher, "join_challenge", {"challengeId": challenge.id})

        await orchestrator.accept_challenge(db_session, recipient, challenge.id)

        assert watcher.events("challenge_updated") == [{"challengeId": challenge.id, "status": "ACTIVE"}]
        kickoff = watcher.events("new_message")
        assert len(kickoff) == 1
        assert kickoff[0]["messageType"] == "SYSTEM"
        assert kickoff[0]["content"].startswith("Great! Let's get started! ")
        assert watcher.events("notification")[0]["type"] == "challenge_accepted"

    async def test_completion_notifies_sender(
        self, orchestrator, connect, db_session, active_challenge, sender, recipient
    ):
        watcher = connect(sender)

        update, challenge = await orchestrator.submit_progress(
            db_session, recipient, active_challenge.id, ProgressCreate(progress_percent=100)
        )

        assert challenge.status == ChallengeStatus.COMPLETED
        assert update.progress_percent == 100
        assert [n["type"] for n in watcher.events("notification")] == ["challenge_completed"]

    async def test_cancel_pushes_status(self, orchestrator, connect, db_session, active_challenge, sender, recipient):
        watcher = connect(recipient)
        await orchestrator.dispatch(watcher, "join_challenge", {"challengeId": active_challenge.id})

        await orchestrator.cancel_challenge(db_session, sender, active_challenge.id)

        assert watcher.events("challenge_updated") == [{"challengeId": active_challenge.id, "status": "CANCELLED"}]
        assert watcher.events("new_message") == []


# =============================================================================
# Deferred replies on a small connection pool
# =============================================================================


class TestReplyConnectionUse:
    @pytest.fixture
    def small_pool_factory(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'replies.db'}",
            connect_args={"check_same_thread": False},
            poolclass=QueuePool,
            pool_size=1,
            max_overflow=0,
            pool_timeout=1,
        )
        Base.metadata.create_all(bind=engine)
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
        engine.dispose()

    async def test_replies_in_flight_do_not_hold_connections(self, small_pool_factory):
        with small_pool_factory() as db:
            sender = User(email="s@example.com", username="s", first_name="S", hashed_password="x")
            recipient = User(email="r@example.com", username="r", first_name="R", hashed_password="x")
            db.add_all([sender, recipient])
            db.flush()
            challenge_ids = []
            for title in ("Run 5k", "Read a book"):
                challenge = Challenge(
                    sender_id=sender.id,
                    recipient_id=recipient.id,
                    title=title,
                    description=title,
                    type=ChallengeType.FITNESS,
                    verification_method=VerificationMethod.MANUAL,
                    reward_type=RewardType.MESSAGE,
                    status=ChallengeStatus.ACTIVE,
                )
                db.add(challenge)
                db.flush()
                profile = resolve(PersonalityType.BUDDY)
                db.add(
                    Companion(
                        owner_id=sender.id,
                        name=f"Badger {challenge.id}",
                        personality=profile.key,
                        avatar=profile.avatar,
                        challenge_id=challenge.id,
                    )
                )
                challenge_ids.append(challenge.id)
            db.commit()
            db.refresh(recipient)
            connection = FakeConnection(recipient)

        async def slow_generate(*args):
            await asyncio.sleep(0.3)
            return "Keep going!"

        responder = MagicMock(spec=CompanionResponder)
        responder.generate = AsyncMock(side_effect=slow_generate)
        sessions = SessionRegistry()
        orchestrator = ChatOrchestrator(
            session_factory=small_pool_factory,
            rooms=RoomManager(),
            sessions=sessions,
            responder=responder,
            scheduler=ReplyScheduler(),
            notifier=NotificationService(sessions),
            reply_delay=lambda: 0.0,
        )
        orchestrator.connect(connection)

        for challenge_id in challenge_ids:
            await orchestrator.dispatch(connection, "send_message", {"challengeId": challenge_id, "content": "Done"})
        for challenge_id in challenge_ids:
            await _drain(orchestrator, challenge_id)

        with small_pool_factory() as db:
            replies = db.query(ChatMessage).filter(ChatMessage.companion_id.isnot(None)).all()
        assert sorted(m.challenge_id for m in replies) == challenge_ids
        assert len(connection.events("error")) == 0
