"""
Challenge lifecycle: creation, acceptance, progress and cancellation.

These functions only touch the database. Live side effects (room broadcasts,
notifications) are layered on top by the chat orchestrator.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from honeybadger.core.agents.companion.personalities import (
    PersonalityProfile,
    PhraseCategory,
    has_phrases,
    pick_phrase,
    resolve,
)
from honeybadger.core.errors import NotFound, ValidationFailed
from honeybadger.core.permissions import ChallengeRole, check_challenge_access
from honeybadger.models.challenge import Challenge, ProgressUpdate
from honeybadger.models.chat import ChatMessage, CompanionSender
from honeybadger.models.companion import Companion
from honeybadger.models.enums import (
    ChallengeStatus,
    MessageType,
    ProgressUpdateType,
    RewardType,
)
from honeybadger.models.user import User
from honeybadger.schemas.challenge import ChallengeCreate, ProgressCreate
from honeybadger.services.payment_service import PaymentService, RewardIntent

logger = logging.getLogger(__name__)

COMPLETION_PERCENT = 100
HALFWAY_PERCENT = 50


def progress_phrase_category(profile: PersonalityProfile, progress_percent: int) -> PhraseCategory:
    """Which phrase bank the companion answers a progress report from."""
    if progress_percent >= COMPLETION_PERCENT:
        return PhraseCategory.CELEBRATION
    if progress_percent >= HALFWAY_PERCENT:
        return PhraseCategory.MOTIVATION
    if has_phrases(profile, PhraseCategory.ENCOURAGEMENT):
        return PhraseCategory.ENCOURAGEMENT
    return PhraseCategory.MOTIVATION


def _companion_says(
    db: Session,
    challenge: Challenge,
    companion: Companion,
    content: str,
    message_type: MessageType = MessageType.TEXT,
) -> ChatMessage:
    message = ChatMessage.create(
        challenge_id=challenge.id,
        sender=CompanionSender(companion_id=companion.id),
        content=content,
        message_type=message_type,
    )
    db.add(message)
    return message


# ============= Queries =============

def list_challenges(
    db: Session,
    user: User,
    status: Optional[ChallengeStatus] = None,
    challenge_type: Optional[str] = None,
    role: Optional[str] = None,
) -> List[Challenge]:
    query = db.query(Challenge)
    if role == "sent":
        query = query.filter(Challenge.sender_id == user.id)
    elif role == "received":
        query = query.filter(Challenge.recipient_id == user.id)
    else:
        query = query.filter((Challenge.sender_id == user.id) | (Challenge.recipient_id == user.id))

    if status:
        query = query.filter(Challenge.status == status)
    if challenge_type:
        query = query.filter(Challenge.type == challenge_type)

    return query.order_by(Challenge.created_at.desc(), Challenge.id.desc()).all()


def get_challenge(db: Session, user: User, challenge_id: int) -> Challenge:
    challenge, _ = check_challenge_access(challenge_id, user.id, db, conceal=True)
    return challenge


def recent_messages(db: Session, challenge_id: int, limit: int = 50) -> List[ChatMessage]:
    """Last ``limit`` messages, oldest first."""
    messages = db.query(ChatMessage).filter(
        ChatMessage.challenge_id == challenge_id
    ).order_by(
        ChatMessage.created_at.desc(), ChatMessage.id.desc()
    ).limit(limit).all()
    return list(reversed(messages))


def list_progress(db: Session, challenge_id: int, limit: int = 20) -> List[ProgressUpdate]:
    return db.query(ProgressUpdate).filter(
        ProgressUpdate.challenge_id == challenge_id
    ).order_by(
        ProgressUpdate.created_at.desc(), ProgressUpdate.id.desc()
    ).limit(limit).all()


# ============= Lifecycle =============

def create_challenge(
    db: Session,
    sender: User,
    data: ChallengeCreate,
    payments: PaymentService,
) -> Tuple[Challenge, Optional[RewardIntent]]:
    """
    Create a PENDING challenge, assign the sender's companion and let it say hello.

    MONEY rewards are reserved with the payment processor first; if that
    fails nothing is created.

    Raises:
        NotFound: No user with the recipient email
        ValidationFailed: Challenging yourself, or companion unavailable
        UpstreamUnavailable: Payment setup failed
    """
    recipient = db.query(User).filter(User.email == data.recipient_email).first()
    if not recipient or not recipient.is_active:
        raise NotFound("No user found with the provided email address")
    if recipient.id == sender.id:
        raise ValidationFailed("You cannot send a challenge to yourself")

    companion = db.query(Companion).filter(
        Companion.id == data.companion_id,
        Companion.owner_id == sender.id,
        Companion.is_active == True,  # noqa: E712
        Companion.challenge_id.is_(None),
    ).first()
    if not companion:
        raise ValidationFailed(
            "The selected honey badger is not available or does not belong to you"
        )

    intent: Optional[RewardIntent] = None
    if data.reward_type == RewardType.MONEY and (data.reward_amount or 0) > 0:
        intent = payments.create_reward_intent(data.reward_amount, sender.id, recipient.id)

    challenge = Challenge(
        sender_id=sender.id,
        recipient_id=recipient.id,
        title=data.title,
        description=data.description,
        type=data.type,
        difficulty=data.difficulty,
        deadline=data.deadline,
        verification_method=data.verification_method,
        verification_data=data.verification_data,
        reward_type=data.reward_type,
        reward_amount=data.reward_amount,
        reward_message=data.reward_message,
        reward_media=data.reward_media,
        payment_intent_id=intent.id if intent else None,
        status=ChallengeStatus.PENDING,
        created_at=datetime.now(timezone.utc),
    )
    db.add(challenge)
    db.flush()

    companion.challenge_id = challenge.id
    profile = resolve(companion.personality)
    _companion_says(db, challenge, companion, pick_phrase(profile, PhraseCategory.GREETING))

    db.commit()
    db.refresh(challenge)

    logger.info(f"New challenge created: {challenge.id} by user {sender.id}")
    return challenge, intent


def accept_challenge(db: Session, user: User, challenge_id: int) -> Tuple[Challenge, Optional[ChatMessage]]:
    """
    Recipient accepts a PENDING challenge, which becomes ACTIVE.

    Returns:
        The challenge and the companion's kickoff message, if it has a companion
    """
    challenge, _ = check_challenge_access(
        challenge_id, user.id, db,
        require_role=ChallengeRole.RECIPIENT,
        allowed_statuses=[ChallengeStatus.PENDING],
        conceal=True,
    )

    challenge.status = ChallengeStatus.ACTIVE
    challenge.started_at = datetime.now(timezone.utc)

    message = None
    if challenge.companion is not None:
        profile = resolve(challenge.companion.personality)
        motivation = pick_phrase(profile, PhraseCategory.MOTIVATION)
        message = _companion_says(
            db, challenge, challenge.companion,
            f"Great! Let's get started! {motivation}",
            message_type=MessageType.SYSTEM,
        )

    db.commit()
    db.refresh(challenge)
    if message is not None:
        db.refresh(message)

    logger.info(f"Challenge accepted: {challenge.id} by user {user.id}")
    return challenge, message


def cancel_challenge(db: Session, user: User, challenge_id: int) -> Challenge:
    """
    Sender cancels a PENDING or ACTIVE challenge and gets the companion back.

    Replies already scheduled for the challenge are not cancelled.
    """
    challenge, _ = check_challenge_access(
        challenge_id, user.id, db,
        require_role=ChallengeRole.SENDER,
        allowed_statuses=[ChallengeStatus.PENDING, ChallengeStatus.ACTIVE],
        conceal=True,
    )

    challenge.status = ChallengeStatus.CANCELLED
    if challenge.companion is not None:
        challenge.companion.challenge_id = None

    db.commit()
    db.refresh(challenge)

    logger.info(f"Challenge cancelled: {challenge.id} by user {user.id}")
    return challenge


def submit_progress(
    db: Session,
    user: User,
    challenge_id: int,
    progress: ProgressCreate,
) -> Tuple[ProgressUpdate, Optional[ChatMessage], Challenge]:
    """
    Record progress on an ACTIVE challenge; 100% completes it.

    Completion stamps ``completed_at`` and credits the companion with a
    success and experience. The companion stays assigned. A completed
    challenge is no longer ACTIVE, so later submissions fail with
    InvalidState.

    Returns:
        The progress update, the companion's reaction (if any) and the challenge
    """
    challenge, _ = check_challenge_access(
        challenge_id, user.id, db,
        require_role=ChallengeRole.RECIPIENT,
        allowed_statuses=[ChallengeStatus.ACTIVE],
        conceal=True,
    )

    now = datetime.now(timezone.utc)
    update = ProgressUpdate(
        challenge_id=challenge.id,
        update_type=ProgressUpdateType.for_verification(challenge.verification_method),
        content=progress.content or "Progress update submitted",
        media_urls=list(progress.media_urls),
        extra=dict(progress.metadata),
        progress_percent=progress.progress_percent,
        created_at=now,
    )
    db.add(update)

    companion = challenge.companion
    message = None
    if companion is not None:
        profile = resolve(companion.personality)
        category = progress_phrase_category(profile, progress.progress_percent)
        message = _companion_says(db, challenge, companion, pick_phrase(profile, category))

    if progress.progress_percent >= COMPLETION_PERCENT:
        challenge.status = ChallengeStatus.COMPLETED
        challenge.completed_at = now
        if companion is not None:
            companion.record_success()
        logger.info(f"Challenge completed: {challenge.id}")

    db.commit()
    db.refresh(update)
    db.refresh(challenge)
    if message is not None:
        db.refresh(message)

    return update, message, challenge


# ============= Payments =============

def payment_history(db: Session, user: User) -> List[Challenge]:
    return db.query(Challenge).filter(
        Challenge.sender_id == user.id,
        Challenge.payment_intent_id.isnot(None),
    ).order_by(Challenge.created_at.desc(), Challenge.id.desc()).all()


def confirm_reward_payment(
    db: Session,
    user: User,
    challenge_id: int,
    payment_intent_id: str,
    payments: PaymentService,
) -> str:
    """
    Release the reward of a COMPLETED challenge.

    Raises:
        NotFound: Not the sender, not completed, or the intent does not match
        ValidationFailed: The processor did not report success
    """
    challenge = db.query(Challenge).filter(
        Challenge.id == challenge_id,
        Challenge.sender_id == user.id,
        Challenge.status == ChallengeStatus.COMPLETED,
        Challenge.payment_intent_id == payment_intent_id,
    ).first()
    if not challenge:
        raise NotFound("Challenge not found or not eligible for payment")

    payment_status = payments.confirm_intent(payment_intent_id)
    if payment_status != "succeeded":
        raise ValidationFailed(f"Payment failed: Payment status: {payment_status}")

    logger.info(f"Payment confirmed for challenge {challenge_id}: {payment_intent_id}")
    return payment_status
