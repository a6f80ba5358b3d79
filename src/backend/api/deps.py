"""
Shared dependencies for API endpoints.

Includes:
- Admin token gate for vote administration
- Identity verifier and ring service wiring
"""

import hmac
from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import settings
from repositories.provider import get_ring_key_repository, get_voting_repository
from repositories.ring_key_repository import RingKeyRepository
from repositories.voting_repository import VotingRepository
from services.identity_service import IdentityVerifier, build_identity_verifier
from services.ring_service import RingService, build_ring_service

logger = structlog.get_logger(__name__)

# Security schemes
admin_security = HTTPBearer(auto_error=False)


# =============================================================================
# Admin Authentication (static token)
# =============================================================================


async def require_admin(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(admin_security)],
    request: Request,
) -> None:
    """
    Ensure the request carries the configured admin token.

    Raises:
        HTTPException: 401 without a bearer token, 403 with the wrong one.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not hmac.compare_digest(
        credentials.credentials.encode(),
        settings.ADMIN_TOKEN.encode(),
    ):
        logger.warning(
            "non_admin_access_attempt",
            path=request.url.path,
            method=request.method,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )


# =============================================================================
# Ring Service
# =============================================================================


def get_identity_verifier(request: Request) -> IdentityVerifier:
    """
    Get the process-wide identity verifier.

    Created at startup; created lazily here if the lifespan did not run
    (e.g. a bare ASGI mount) so the signing key cache is still shared.
    """
    verifier = getattr(request.app.state, "identity_verifier", None)
    if verifier is None:
        verifier = build_identity_verifier(settings)
        request.app.state.identity_verifier = verifier
    return verifier


def get_ring_service(
    voting_repo: Annotated[VotingRepository, Depends(get_voting_repository)],
    key_repo: Annotated[RingKeyRepository, Depends(get_ring_key_repository)],
    verifier: Annotated[IdentityVerifier, Depends(get_identity_verifier)],
) -> RingService:
    """Get a ring service bound to the request's database session."""
    return build_ring_service(voting_repo, key_repo, verifier)
