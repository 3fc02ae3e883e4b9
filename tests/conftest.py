import itertools
import os
from typing import Any, List, Tuple
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment variables before the application modules read settings
os.environ["ENV"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["OPENAI_API_KEY"] = ""
os.environ["STRIPE_SECRET_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"

from honeybadger.core.agents.companion.personalities import PersonalityType, resolve  # noqa: E402
from honeybadger.core.agents.companion.responder import CompanionResponder  # noqa: E402
from honeybadger.db.base import SessionLocal, engine  # noqa: E402
from honeybadger.models import Base, Challenge, Companion, User  # noqa: E402
from honeybadger.models.enums import (  # noqa: E402
    ChallengeStatus,
    ChallengeType,
    RewardType,
    VerificationMethod,
)
from honeybadger.services.chat_orchestrator import ChatOrchestrator  # noqa: E402
from honeybadger.services.notification_service import NotificationService  # noqa: E402
from honeybadger.services.reply_scheduler import ReplyScheduler  # noqa: E402
from honeybadger.services.rooms import RoomManager  # noqa: E402
from honeybadger.services.session_registry import SessionRegistry  # noqa: E402


class FakeConnection:
    """Stand-in for a socket connection that records what it was sent."""

    def __init__(self, user: User):
        self.user_id = user.id
        self.username = user.username
        self.emitted: List[Tuple[str, Any]] = []

    async def emit(self, event: str, data: Any) -> None:
        self.emitted.append((event, data))

    def events(self, name: str) -> List[Any]:
        return [data for event, data in self.emitted if event == name]


class BrokenConnection(FakeConnection):
    """Connection whose transport is gone."""

    async def emit(self, event: str, data: Any) -> None:
        raise ConnectionError("socket closed")


@pytest.fixture
def db_session():
    """Fresh in-memory schema per test."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db_session):
    counter = itertools.count(1)

    def _make(username=None, **kwargs):
        username = username or f"user{next(counter)}"
        user = User(
            email=f"{username}@example.com",
            username=username,
            first_name=username.title(),
            hashed_password=kwargs.pop("hashed_password", "not-a-real-hash"),
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_companion(db_session):
    def _make(owner, personality=PersonalityType.RELENTLESS, name="Badger", **kwargs):
        profile = resolve(personality)
        companion = Companion(
            owner_id=owner.id,
            name=name,
            personality=profile.key,
            avatar=profile.avatar,
            **kwargs,
        )
        db_session.add(companion)
        db_session.commit()
        db_session.refresh(companion)
        return companion

    return _make


@pytest.fixture
def make_challenge(db_session):
    def _make(
        sender,
        recipient,
        companion=None,
        status=ChallengeStatus.PENDING,
        verification_method=VerificationMethod.MANUAL,
        **kwargs,
    ):
        challenge = Challenge(
            sender_id=sender.id,
            recipient_id=recipient.id,
            title=kwargs.pop("title", "Run 5k"),
            description=kwargs.pop("description", "Run five kilometres before Sunday"),
            type=kwargs.pop("type", ChallengeType.FITNESS),
            verification_method=verification_method,
            reward_type=kwargs.pop("reward_type", RewardType.MESSAGE),
            status=status,
            **kwargs,
        )
        db_session.add(challenge)
        db_session.flush()
        if companion is not None:
            companion.challenge_id = challenge.id
        db_session.commit()
        db_session.refresh(challenge)
        return challenge

    return _make


@pytest.fixture
def sender(make_user):
    return make_user("sender")


@pytest.fixture
def recipient(make_user):
    return make_user("recipient")


@pytest.fixture
def outsider(make_user):
    return make_user("outsider")


@pytest.fixture
def companion(make_companion, sender):
    return make_companion(sender)


@pytest.fixture
def active_challenge(make_challenge, sender, recipient, companion):
    return make_challenge(sender, recipient, companion=companion, status=ChallengeStatus.ACTIVE)


@pytest.fixture
def mock_responder():
    responder = MagicMock(spec=CompanionResponder)
    responder.generate = AsyncMock(return_value="Honey badger don't care about excuses!")
    return responder


@pytest.fixture
def orchestrator(db_session, mock_responder):
    """Orchestrator on the test database with instant companion replies."""
    sessions = SessionRegistry()
    return ChatOrchestrator(
        session_factory=SessionLocal,
        rooms=RoomManager(),
        sessions=sessions,
        responder=mock_responder,
        scheduler=ReplyScheduler(),
        notifier=NotificationService(sessions),
        reply_delay=lambda: 0.0,
    )


@pytest.fixture
def connect(orchestrator):
    """Register a fake connection for a user, as the socket endpoint does."""

    def _connect(user):
        connection = FakeConnection(user)
        orchestrator.connect(connection)
        return connection

    return _connect
