"""
Schema converter functions.

Single source of truth for model -> schema conversions.
"""

from typing import TYPE_CHECKING

from schemas.ring import RingKeyResponse
from schemas.voting import VotingResponse

if TYPE_CHECKING:
    from models.ring_key import RingKey
    from models.voting import Voting


def voting_model_to_schema(vote: "Voting") -> VotingResponse:
    """Convert a Voting model to its response schema."""
    return VotingResponse(
        id=vote.id,
        active=bool(vote.active),
        allow_all=bool(vote.allow_all),
        allowed_participants=list(vote.allowed_participants or []),
        created_at=vote.created_at,
    )


def ring_key_model_to_schema(key: "RingKey") -> RingKeyResponse:
    """Convert a RingKey model to its response schema (name -> full_name)."""
    return RingKeyResponse(
        public_key=key.public_key,
        email=key.email,
        full_name=key.name,
    )
