"""
Database initialization and seeding.
"""
import logging

from sqlalchemy.orm import Session

from honeybadger.core.agents.companion.personalities import PersonalityType, resolve
from honeybadger.core.security import get_password_hash
from honeybadger.models.companion import Companion
from honeybadger.models.user import User

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "honeybadger123"

DEMO_USERS = [
    ("demo@honeybadger.app", "demo", "Demo", PersonalityType.RELENTLESS),
    ("friend@honeybadger.app", "friend", "Friend", PersonalityType.CHEERLEADER),
]


def init_db(db: Session) -> None:
    """
    Seed two demo users, each with one honey badger, so a challenge can be
    sent straight away.

    Args:
        db: Database session
    """
    for email, username, first_name, personality in DEMO_USERS:
        user = db.query(User).filter(User.email == email).first()
        if user:
            continue

        user = User(
            email=email,
            username=username,
            first_name=first_name,
            hashed_password=get_password_hash(DEMO_PASSWORD),
            is_active=True,
            is_verified=True,
        )
        db.add(user)
        db.flush()

        profile = resolve(personality)
        db.add(Companion(owner_id=user.id, name=f"{first_name}'s Badger", personality=profile.key, avatar=profile.avatar))
        db.commit()
        logger.info(f"Demo user {username} created")


def main() -> None:
    """Create the tables, seed the demo data and list what can be used to log in."""
    from honeybadger.db.base import SessionLocal, engine
    from honeybadger.models import Base

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        init_db(db)
        for email, _, _, _ in DEMO_USERS:
            user = db.query(User).filter(User.email == email).one()
            badgers = ", ".join(
                f"{c.name} ({c.personality.value})" for c in user.companions if c.is_active
            )
            logger.info(f"🦡 {user.email} / {DEMO_PASSWORD}  badgers: {badgers or 'none'}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
