"""
Typed domain errors.

Services raise these instead of HTTPException so the same rules can be
reported over REST (mapped to a status code in main.py) and over the chat
socket (sent as an ``error`` event to the offending connection only).
"""
from fastapi import status


class DomainError(Exception):
    """Base class for all domain-specific errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AccessDenied(DomainError):
    """The user's role on the resource does not allow the operation."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "access_denied"


class NotFound(DomainError):
    """The requested entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class InvalidState(DomainError):
    """The entity exists but is in the wrong lifecycle state."""

    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state"


class ValidationFailed(DomainError):
    """Input passed schema validation but breaks a business rule."""

    code = "validation_failed"


class UpstreamUnavailable(DomainError):
    """An external collaborator (payment processor, LLM, storage) failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_unavailable"


class AuthenticationFailure(DomainError):
    """Missing, invalid or expired credential, or the user no longer exists."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_failed"


class UnknownPersonality(DomainError):
    """Personality key outside the companion catalog."""

    code = "unknown_personality"

    def __init__(self, key: object) -> None:
        self.key = key
        super().__init__(f"Invalid personality type: {key}")
