"""
Companion (honey badger) management.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from honeybadger.core.agents.companion.personalities import resolve
from honeybadger.core.config import settings
from honeybadger.core.errors import InvalidState, NotFound
from honeybadger.models.companion import Companion
from honeybadger.models.user import User

logger = logging.getLogger(__name__)


def list_companions(db: Session, owner: User) -> List[Companion]:
    return (
        db.query(Companion)
        .filter(Companion.owner_id == owner.id, Companion.is_active == True)  # noqa: E712
        .order_by(Companion.created_at.desc(), Companion.id.desc())
        .all()
    )


def get_owned_companion(db: Session, owner: User, companion_id: int) -> Companion:
    companion = db.query(Companion).filter(
        Companion.id == companion_id,
        Companion.owner_id == owner.id,
    ).first()
    if not companion:
        raise NotFound("The requested honey badger does not exist or does not belong to you")
    return companion


def create_companion(db: Session, owner: User, name: str, personality: str) -> Companion:
    """
    Create a companion with the chosen personality.

    Raises:
        UnknownPersonality: Personality outside the catalog
        InvalidState: Owner already has the maximum number of active companions
    """
    profile = resolve(personality)

    active_count = db.query(Companion).filter(
        Companion.owner_id == owner.id,
        Companion.is_active == True,  # noqa: E712
    ).count()
    if active_count >= settings.MAX_ACTIVE_COMPANIONS:
        raise InvalidState(
            f"You can only have up to {settings.MAX_ACTIVE_COMPANIONS} active honey badgers at a time"
        )

    companion = Companion(
        owner_id=owner.id,
        name=name,
        personality=profile.key,
        avatar=profile.avatar,
    )
    db.add(companion)
    db.commit()
    db.refresh(companion)

    logger.info(f"New honey badger created: {companion.id} for user {owner.id}")
    return companion


def rename_companion(db: Session, owner: User, companion_id: int, name: Optional[str]) -> Companion:
    companion = get_owned_companion(db, owner, companion_id)
    if name:
        companion.name = name
        db.commit()
        db.refresh(companion)
    return companion


def retire_companion(db: Session, owner: User, companion_id: int) -> Companion:
    """
    Soft-delete a companion.

    Raises:
        InvalidState: Companion is working on a PENDING or ACTIVE challenge
    """
    companion = get_owned_companion(db, owner, companion_id)

    if companion.challenge is not None and not companion.challenge.status.is_terminal:
        raise InvalidState("This honey badger is currently working on an active challenge")

    companion.is_active = False
    db.commit()
    db.refresh(companion)

    logger.info(f"Honey badger retired: {companion.id}")
    return companion
