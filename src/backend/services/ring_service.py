"""
Ring enrollment service.

Admits a public key into a vote's ring once per verified, eligible identity.

Checks run in a fixed order, and the order decides which error a bad request
receives:

1. vote exists             -> VoteNotFoundError
2. vote is active          -> VoteInactiveError
3. credential verifies     -> InvalidCredentialError
4. identity is eligible    -> NotEligibleError
5. identity not enrolled   -> IdentityAlreadyEnrolledError
6. insert succeeds         -> KeyConflictError
                              EnrollmentRejectedError (values exceed column limits)

Step 5 is only an early rejection. Two requests can both pass it, so the
key store's uniqueness constraints decide the winner in step 6.
"""

import asyncio
from typing import Any, Awaitable, Optional, TypeVar

import structlog

from core.exceptions import (
    EnrollmentRejectedError,
    IdentityAlreadyEnrolledError,
    InvalidCredentialError,
    KeyConflictError,
    KeyNotFoundError,
    NotEligibleError,
    ServiceUnavailableError,
    VoteInactiveError,
    VoteNotFoundError,
)
from repositories.errors import (
    KeyConstraintViolation,
    KeyValueRejected,
    StoreUnavailableError,
)
from repositories.provider import KeyStoreProtocol, VoteStoreProtocol
from services.eligibility import is_eligible, same_identity
from services.identity_service import (
    CredentialVerificationError,
    IdentityProviderUnavailableError,
    IdentityVerifier,
    VerifiedIdentity,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    return f"{local[:2]}***@{domain}"


class RingService:
    """Enrollment and read access for vote rings."""

    def __init__(
        self,
        vote_store: VoteStoreProtocol,
        key_store: KeyStoreProtocol,
        verifier: IdentityVerifier,
        operation_timeout: float = 10.0,
    ):
        self.vote_store = vote_store
        self.key_store = key_store
        self.verifier = verifier
        self.operation_timeout = operation_timeout

    # ========================================================================
    # Read Operations
    # ========================================================================

    async def list_keys(self, vote_id: str) -> list[str]:
        """Get the public keys enrolled in a vote. Does not require an active vote."""
        await self._load_vote(vote_id)
        keys = await self._call(self.key_store.list_by_vote(vote_id))
        return [key.public_key for key in keys]

    async def get_key(self, vote_id: str, public_key: str) -> Any:
        """Get one enrolled key with its identity. Does not require an active vote."""
        await self._load_vote(vote_id)
        key = await self._call(self.key_store.get(vote_id, public_key))
        if key is None:
            raise KeyNotFoundError()
        return key

    # ========================================================================
    # Enrollment
    # ========================================================================

    async def enroll(self, vote_id: str, public_key: str, credential: str) -> Any:
        """
        Enroll a public key for the identity proven by the credential.

        Returns:
            The stored key record.

        Raises:
            RingError subclass for every rejection; see module docstring.
        """
        log = logger.bind(vote_id=vote_id)

        vote = await self._load_vote(vote_id)
        if not vote.active:
            log.info("ring_enrollment_rejected", reason="vote_inactive")
            raise VoteInactiveError()

        identity = await self._verify(credential)
        log = log.bind(email=_mask_email(identity.email))

        if not is_eligible(vote, identity.email):
            log.info("ring_enrollment_rejected", reason="not_eligible")
            raise NotEligibleError()

        existing = await self._call(self.key_store.list_by_vote(vote_id))
        if any(same_identity(key.email, identity.email) for key in existing):
            log.info("ring_enrollment_rejected", reason="already_enrolled")
            raise IdentityAlreadyEnrolledError()

        try:
            record = await self._call(
                self.key_store.insert(
                    vote_id=vote_id,
                    public_key=public_key,
                    email=identity.email,
                    name=identity.name,
                )
            )
        except KeyConstraintViolation:
            log.info("ring_enrollment_rejected", reason="constraint_violation")
            raise KeyConflictError()
        except KeyValueRejected:
            log.info("ring_enrollment_rejected", reason="value_too_long")
            raise EnrollmentRejectedError()

        log.info("ring_key_enrolled")
        return record

    # ========================================================================
    # Helpers
    # ========================================================================

    async def _load_vote(self, vote_id: str) -> Any:
        vote = await self._call(self.vote_store.get_by_id(vote_id))
        if vote is None:
            raise VoteNotFoundError()
        return vote

    async def _verify(self, credential: str) -> VerifiedIdentity:
        try:
            return await self._call(self.verifier.verify(credential))
        except CredentialVerificationError as e:
            # The cause stays in our logs; the caller only learns "unauthorized"
            logger.info("ring_credential_rejected", cause=str(e))
            raise InvalidCredentialError()

    async def _call(self, operation: Awaitable[T]) -> T:
        """Await a collaborator call under the operation timeout, classifying outages."""
        try:
            return await asyncio.wait_for(operation, timeout=self.operation_timeout)
        except asyncio.TimeoutError:
            logger.warning("ring_collaborator_timeout", timeout=self.operation_timeout)
            raise ServiceUnavailableError()
        except (StoreUnavailableError, IdentityProviderUnavailableError) as e:
            logger.warning("ring_collaborator_unavailable", error=str(e), error_type=type(e).__name__)
            raise ServiceUnavailableError()


def build_ring_service(
    vote_store: VoteStoreProtocol,
    key_store: KeyStoreProtocol,
    verifier: IdentityVerifier,
    operation_timeout: Optional[float] = None,
) -> RingService:
    """Create a RingService using the configured operation timeout by default."""
    from core.config import settings

    return RingService(
        vote_store=vote_store,
        key_store=key_store,
        verifier=verifier,
        operation_timeout=(
            operation_timeout if operation_timeout is not None else settings.RING_OPERATION_TIMEOUT_SECONDS
        ),
    )
