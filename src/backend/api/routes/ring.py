"""
Ring endpoints.

Listing and reading keys is public and works for inactive votes.
Enrollment proves identity with an identity provider credential; see
services.ring_service for the admission rules.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path

from api.deps import get_ring_service
from models.ring_key import PUBLIC_KEY_MAX_LENGTH
from schemas.converters import ring_key_model_to_schema
from schemas.ring import EnrollmentRequest, RingKeyResponse, RingResponse
from services.ring_service import RingService

router = APIRouter()


@router.get("/{vote_id}/ring", response_model=RingResponse)
async def list_ring_keys(
    vote_id: str,
    ring_service: Annotated[RingService, Depends(get_ring_service)],
) -> RingResponse:
    """Get all public keys enrolled in a vote."""
    keys = await ring_service.list_keys(vote_id)
    return RingResponse(keys=keys)


@router.get("/{vote_id}/ring/{public_key}", response_model=RingKeyResponse)
async def get_ring_key(
    vote_id: str,
    public_key: str,
    ring_service: Annotated[RingService, Depends(get_ring_service)],
) -> RingKeyResponse:
    """Get an enrolled key and the identity it belongs to."""
    key = await ring_service.get_key(vote_id, public_key)
    return ring_key_model_to_schema(key)


@router.post("/{vote_id}/ring/{public_key}", response_model=RingKeyResponse)
async def enroll_ring_key(
    vote_id: str,
    public_key: Annotated[str, Path(max_length=PUBLIC_KEY_MAX_LENGTH)],
    data: EnrollmentRequest,
    ring_service: Annotated[RingService, Depends(get_ring_service)],
) -> RingKeyResponse:
    """
    Enroll a public key into a vote's ring.

    Error responses:
    - 404: vote not found
    - 403: vote inactive, or identity not eligible
    - 401: credential could not be verified
    - 422: public key too long, or identity claims exceed storage limits
    - 409: identity already enrolled, or public key already used
    - 503: a dependency timed out; safe to retry
    """
    key = await ring_service.enroll(vote_id, public_key, data.credential)
    return ring_key_model_to_schema(key)
