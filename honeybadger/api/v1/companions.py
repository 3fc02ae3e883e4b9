"""
Honey badger (companion) endpoints.
"""
import logging
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from honeybadger.core.agents.companion.personalities import catalog, describe, resolve
from honeybadger.core.dependencies import get_current_active_user, get_db
from honeybadger.core.errors import DomainError
from honeybadger.models.companion import Companion
from honeybadger.models.user import User
from honeybadger.schemas.common import Message
from honeybadger.schemas.companion import (
    Companion as CompanionSchema,
    CompanionCreate,
    CompanionUpdate,
    PersonalityInfo,
    PersonalityTypeInfo,
)
from honeybadger.services import companion_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_schema(companion: Companion) -> CompanionSchema:
    """Response model enriched with the personality's presentation data."""
    out = CompanionSchema.model_validate(companion)
    out.personality_info = PersonalityInfo(**describe(resolve(companion.personality)))
    return out


@router.get("/personalities/types", response_model=List[PersonalityTypeInfo])
def list_personality_types() -> Any:
    """
    Get available personality types.
    """
    return [
        PersonalityTypeInfo(type=profile.key, description=profile.description, **describe(profile))
        for profile in catalog()
    ]


@router.get("/", response_model=List[CompanionSchema])
def list_companions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Get all active honey badgers of the current user, newest first.
    """
    return [_to_schema(c) for c in companion_service.list_companions(db, current_user)]


@router.get("/{companion_id}", response_model=CompanionSchema)
def get_companion(
    companion_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return _to_schema(companion_service.get_owned_companion(db, current_user, companion_id))


@router.post("/", response_model=CompanionSchema, status_code=status.HTTP_201_CREATED)
def create_companion(
    companion_in: CompanionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Create a new honey badger.

    Args:
        companion_in: Name and personality type
        db: Database session
        current_user: Owner of the new honey badger

    Returns:
        Created honey badger

    Raises:
        UnknownPersonality: Personality type not in the catalog
        InvalidState: Too many active honey badgers
    """
    try:
        companion = companion_service.create_companion(
            db, current_user, companion_in.name, companion_in.personality
        )
        return _to_schema(companion)
    except DomainError:
        raise
    except Exception as e:
        logger.error(f"Error creating honey badger for user {current_user.id}: {e}")
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create honey badger",
        )


@router.put("/{companion_id}", response_model=CompanionSchema)
def update_companion(
    companion_id: int,
    companion_in: CompanionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    companion = companion_service.rename_companion(db, current_user, companion_id, companion_in.name)
    return _to_schema(companion)


@router.delete("/{companion_id}", response_model=Message)
def retire_companion(
    companion_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """
    Retire (soft delete) a honey badger.

    Raises:
        InvalidState: The honey badger is working on a pending or active challenge
    """
    companion_service.retire_companion(db, current_user, companion_id)
    return {"message": "Honey badger retired successfully"}
