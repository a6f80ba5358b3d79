"""
Error taxonomy for the ring admission flow.

Every failure the enrollment engine can report is one of these classes.
The transport layer only ever sees a RingError; collaborator errors are
translated before they leave the service layer.
"""

from fastapi import status


class RingError(Exception):
    """Base class for classified ring admission errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal error"
    retryable: bool = False

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


# NotFound


class VoteNotFoundError(RingError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Vote not found"


class KeyNotFoundError(RingError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Key not found"


# Unauthorized


class InvalidCredentialError(RingError):
    """
    Credential verification failed.

    The message is deliberately the same for every cryptographic cause.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Unauthorized"


# Forbidden


class VoteInactiveError(RingError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Vote is not active"


class NotEligibleError(RingError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Access denied"


# Conflict


class IdentityAlreadyEnrolledError(RingError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Key already exists for this identity"


class KeyConflictError(RingError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Key already exists"


class VoteAlreadyExistsError(RingError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Vote with this id already exists"


# Unprocessable


class EnrollmentRejectedError(RingError):
    """The key or the verified identity claims do not fit the key ring columns."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    detail = "Key or identity claims exceed storage limits"


# Transient


class ServiceUnavailableError(RingError):
    """A collaborator timed out or was unreachable. Safe to retry."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "Service temporarily unavailable, please retry"
    retryable = True
