"""Repository modules for database access."""

from repositories.errors import KeyConstraintViolation, KeyValueRejected, StoreUnavailableError
from repositories.ring_key_repository import RingKeyRepository
from repositories.voting_repository import VotingAlreadyExists, VotingRepository

__all__ = [
    "VotingRepository",
    "VotingAlreadyExists",
    "RingKeyRepository",
    "KeyConstraintViolation",
    "KeyValueRejected",
    "StoreUnavailableError",
]
