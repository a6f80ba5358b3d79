"""Schemas module initialization."""

from schemas.ring import EnrollmentRequest, RingKeyResponse, RingResponse
from schemas.voting import VotingCreate, VotingResponse, VotingUpdate

__all__ = [
    "VotingCreate",
    "VotingUpdate",
    "VotingResponse",
    "EnrollmentRequest",
    "RingResponse",
    "RingKeyResponse",
]
