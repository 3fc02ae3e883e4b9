"""
Challenge access control.

A challenge has exactly two participants: the sender, who created it and may
cancel it, and the recipient, who may accept it and report progress. Nobody
else can read or write anything about it.
"""

from typing import Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from honeybadger.core.errors import AccessDenied, InvalidState, NotFound
from honeybadger.models.challenge import Challenge
from honeybadger.models.enums import ChallengeStatus


class ChallengeRole:
    """
    Roles a user can hold on a challenge.
    """
    SENDER = "sender"
    RECIPIENT = "recipient"


def check_challenge_access(
    challenge_id: int,
    user_id: int,
    db: Session,
    require_role: Optional[str] = None,
    allowed_statuses: Optional[Iterable[ChallengeStatus]] = None,
    conceal: bool = False,
) -> Tuple[Challenge, str]:
    """
    Check that a user takes part in a challenge and return their role.

    This is the function every challenge operation goes through, REST and socket alike.

    Args:
        challenge_id: ID of the challenge to check
        user_id: ID of the acting user
        db: Database session
        require_role: If set, reject participants holding the other role
        allowed_statuses: If set, reject challenges in any other status
        conceal: If True, outsiders get NotFound instead of AccessDenied

    Returns:
        Tuple of (Challenge object, role string)

    Raises:
        NotFound: Challenge does not exist (or is concealed from an outsider)
        AccessDenied: User is not a participant, or holds the wrong role
        InvalidState: Challenge status is not in allowed_statuses

    Example usage:
        ```python
        # Chat and reads (sender OR recipient)
        challenge, role = check_challenge_access(challenge_id, user.id, db)

        # Progress (recipient ONLY, while ACTIVE)
        challenge, _ = check_challenge_access(
            challenge_id, user.id, db,
            require_role=ChallengeRole.RECIPIENT,
            allowed_statuses=[ChallengeStatus.ACTIVE],
            conceal=True,
        )
        ```
    """
    challenge = db.query(Challenge).filter(Challenge.id == challenge_id).first()
    if not challenge:
        raise NotFound(f"Challenge with ID {challenge_id} not found")

    if user_id == challenge.sender_id:
        role = ChallengeRole.SENDER
    elif user_id == challenge.recipient_id:
        role = ChallengeRole.RECIPIENT
    elif conceal:
        raise NotFound(f"Challenge with ID {challenge_id} not found")
    else:
        raise AccessDenied("Access denied to challenge")

    if require_role and role != require_role:
        raise AccessDenied(f"Only the challenge {require_role} can perform this action")

    if allowed_statuses is not None:
        allowed = tuple(allowed_statuses)
        if challenge.status not in allowed:
            raise InvalidState(
                f"Challenge is {challenge.status.value}; expected "
                + " or ".join(s.value for s in allowed)
            )

    return challenge, role


def require_challenge_participant(challenge_id: int, user_id: int, db: Session) -> Challenge:
    """
    Require the user is the sender or the recipient.

    Use this for reads, chat, and room membership.
    """
    challenge, _ = check_challenge_access(challenge_id, user_id, db)
    return challenge
