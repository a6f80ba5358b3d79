"""
Repository provider for dependency injection.

The ring service depends on the store protocols below rather than on the
SQLAlchemy repositories, so any store that enforces the same uniqueness
rules can back it.

Usage:
    from repositories.provider import get_voting_repository

    # In FastAPI dependencies:
    async def some_endpoint(
        voting_repo: VotingRepository = Depends(get_voting_repository),
    ):
        vote = await voting_repo.get_by_id(vote_id)
"""

from typing import Optional, Protocol, runtime_checkable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import get_db
from repositories.ring_key_repository import RingKeyRepository
from repositories.voting_repository import VotingRepository


# =============================================================================
# Repository Protocols (Interfaces)
# =============================================================================


@runtime_checkable
class VoteStoreProtocol(Protocol):
    """Read access to votes."""

    async def get_by_id(self, vote_id: str): ...


@runtime_checkable
class KeyStoreProtocol(Protocol):
    """
    Ring key storage.

    insert() must raise KeyConstraintViolation when the public key is
    already stored or the (vote_id, lower(email)) pair is taken.
    """

    async def list_by_vote(self, vote_id: str) -> list: ...
    async def get(self, vote_id: str, public_key: str): ...
    async def insert(self, vote_id: str, public_key: str, email: str, name: Optional[str]): ...


# =============================================================================
# FastAPI Dependency Providers
# =============================================================================


def get_voting_repository(db: AsyncSession = Depends(get_db)) -> VotingRepository:
    """Get the vote repository for the request's session."""
    return VotingRepository(db)


def get_ring_key_repository(db: AsyncSession = Depends(get_db)) -> RingKeyRepository:
    """Get the ring key repository for the request's session."""
    return RingKeyRepository(db)
