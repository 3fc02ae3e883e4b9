"""
Closed enumerations shared by models, schemas and services.
"""
import enum


class ChallengeType(str, enum.Enum):
    FITNESS = "FITNESS"
    HABIT = "HABIT"
    LEARNING = "LEARNING"
    CREATIVE = "CREATIVE"
    SOCIAL = "SOCIAL"
    CUSTOM = "CUSTOM"


class Difficulty(str, enum.Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"
    EXTREME = "EXTREME"


class VerificationMethod(str, enum.Enum):
    PHOTO = "PHOTO"
    VIDEO = "VIDEO"
    FITNESS_TRACKER = "FITNESS_TRACKER"
    LOCATION = "LOCATION"
    MANUAL = "MANUAL"
    TIME_BASED = "TIME_BASED"
    CHECKIN = "CHECKIN"


class RewardType(str, enum.Enum):
    MONEY = "MONEY"
    GIFT_CARD = "GIFT_CARD"
    MESSAGE = "MESSAGE"
    PHOTO = "PHOTO"
    VIDEO = "VIDEO"
    CUSTOM = "CUSTOM"


class ChallengeStatus(str, enum.Enum):
    """Challenge lifecycle. COMPLETED, CANCELLED and FAILED are sinks."""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (ChallengeStatus.COMPLETED, ChallengeStatus.CANCELLED, ChallengeStatus.FAILED)


class MessageType(str, enum.Enum):
    TEXT = "TEXT"
    SYSTEM = "SYSTEM"
    IMAGE = "IMAGE"
    PHOTO_VERIFICATION = "PHOTO_VERIFICATION"
    VIDEO_VERIFICATION = "VIDEO_VERIFICATION"


class ProgressUpdateType(str, enum.Enum):
    PROGRESS = "PROGRESS"
    PHOTO_VERIFICATION = "PHOTO_VERIFICATION"
    VIDEO_VERIFICATION = "VIDEO_VERIFICATION"

    @classmethod
    def for_verification(cls, method: VerificationMethod) -> "ProgressUpdateType":
        if method == VerificationMethod.PHOTO:
            return cls.PHOTO_VERIFICATION
        if method == VerificationMethod.VIDEO:
            return cls.VIDEO_VERIFICATION
        return cls.PROGRESS
