"""
Challenge endpoints: create, read, and drive the challenge lifecycle.

State changes go through the chat orchestrator so people watching the
challenge room see them live.
"""
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from honeybadger.core.dependencies import (
    get_current_active_user,
    get_db,
    get_orchestrator,
    get_payment_service,
)
from honeybadger.core.errors import DomainError
from honeybadger.models.enums import ChallengeStatus, ChallengeType
from honeybadger.models.user import User
from honeybadger.schemas.challenge import (
    Challenge as ChallengeSchema,
    ChallengeCreate,
    ChallengeCreated,
    ProgressCreate,
    ProgressResult,
    ProgressUpdate as ProgressUpdateSchema,
)
from honeybadger.schemas.chat import ChatMessageOut, serialize_message
from honeybadger.services import challenge_service
from honeybadger.services.chat_orchestrator import ChatOrchestrator
from honeybadger.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=List[ChallengeSchema])
def list_challenges(
    status_filter: Optional[ChallengeStatus] = Query(None, alias="status"),
    type_filter: Optional[ChallengeType] = Query(None, alias="type"),
    role: Optional[str] = Query(None, pattern="^(sent|received)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Get challenges the current user sent or received, newest first.

    Args:
        status_filter: Only challenges in this status
        type_filter: Only challenges of this type
        role: "sent" or "received" to restrict to one side
    """
    return challenge_service.list_challenges(
        db, current_user, status=status_filter, challenge_type=type_filter, role=role
    )


@router.get("/{challenge_id}", response_model=ChallengeSchema)
def get_challenge(
    challenge_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return challenge_service.get_challenge(db, current_user, challenge_id)


@router.get("/{challenge_id}/messages", response_model=List[ChatMessageOut])
def get_messages(
    challenge_id: int,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Recent chat history, oldest first.
    """
    challenge = challenge_service.get_challenge(db, current_user, challenge_id)
    return [
        serialize_message(m, is_own=m.sender_id == current_user.id)
        for m in challenge_service.recent_messages(db, challenge.id, limit=limit)
    ]


@router.get("/{challenge_id}/progress", response_model=List[ProgressUpdateSchema])
def get_progress(
    challenge_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    challenge = challenge_service.get_challenge(db, current_user, challenge_id)
    return challenge_service.list_progress(db, challenge.id)


@router.post("/", response_model=ChallengeCreated, status_code=status.HTTP_201_CREATED)
async def create_challenge(
    challenge_in: ChallengeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
    payments: PaymentService = Depends(get_payment_service),
) -> Any:
    """
    Send a challenge to another user.

    Args:
        challenge_in: Challenge details, recipient email and honey badger id
        db: Database session
        current_user: Sender
        orchestrator: Chat orchestrator (notifies the recipient)
        payments: Payment service for MONEY rewards

    Returns:
        Created challenge and, for MONEY rewards, the payment client secret

    Raises:
        NotFound: Recipient does not exist
        ValidationFailed: Self-challenge or honey badger unavailable
        UpstreamUnavailable: Payment setup failed
    """
    try:
        challenge, intent = await orchestrator.create_challenge(db, current_user, challenge_in, payments)
        return ChallengeCreated(
            challenge=ChallengeSchema.model_validate(challenge),
            payment_client_secret=intent.client_secret if intent else None,
        )
    except DomainError:
        raise
    except Exception as e:
        logger.error(f"Error creating challenge for user {current_user.id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create challenge",
        )


@router.post("/{challenge_id}/accept", response_model=ChallengeSchema)
async def accept_challenge(
    challenge_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> Any:
    """
    Accept a pending challenge (recipient only).
    """
    return await orchestrator.accept_challenge(db, current_user, challenge_id)


@router.post("/{challenge_id}/progress", response_model=ProgressResult, status_code=status.HTTP_201_CREATED)
async def submit_progress(
    challenge_id: int,
    progress_in: ProgressCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> Any:
    """
    Report progress on an active challenge (recipient only).

    100% completes the challenge and credits the honey badger.

    Raises:
        NotFound: Challenge missing or not the caller's
        InvalidState: Challenge is not active
    """
    try:
        update, challenge = await orchestrator.submit_progress(db, current_user, challenge_id, progress_in)
        return ProgressResult(
            progress_update=ProgressUpdateSchema.model_validate(update),
            challenge_status=challenge.status,
        )
    except DomainError:
        raise
    except Exception as e:
        logger.error(f"Error submitting progress on challenge {challenge_id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit progress",
        )


@router.post("/{challenge_id}/cancel", response_model=ChallengeSchema)
async def cancel_challenge(
    challenge_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> Any:
    """
    Cancel a pending or active challenge (sender only); the honey badger is released.
    """
    return await orchestrator.cancel_challenge(db, current_user, challenge_id)
