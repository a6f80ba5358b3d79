"""
Voting repository for database operations.

Votes are created and edited by administrators; the ring flow only reads them.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.voting import Voting
from repositories.errors import StoreError, translate_connection_errors

logger = logging.getLogger(__name__)


class VotingAlreadyExists(StoreError):
    """A vote with the requested id is already stored."""

    pass


class VotingRepository:
    """Repository for vote database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, vote_id: str) -> Optional[Voting]:
        """Get a vote by id, always reading current state from the database."""
        async with translate_connection_errors():
            result = await self.db.execute(
                select(Voting)
                .where(Voting.id == vote_id)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one_or_none()

    async def create(
        self,
        vote_id: str,
        active: bool,
        allowed_participants: Optional[list[str]] = None,
        allow_all: bool = False,
    ) -> Voting:
        """Create a vote. Raises VotingAlreadyExists if the id is taken."""
        vote = Voting(
            id=vote_id,
            active=active,
            allowed_participants=list(allowed_participants or []),
            allow_all=allow_all,
        )

        async with translate_connection_errors():
            self.db.add(vote)
            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                raise VotingAlreadyExists(vote_id) from e
            await self.db.refresh(vote)

        logger.info(f"Created vote {vote_id}")
        return vote

    async def update(self, vote_id: str, **fields: Any) -> Optional[Voting]:
        """
        Update the given fields of a vote.

        Only active, allow_all and allowed_participants can change; the id is
        immutable. Returns None when the vote does not exist.
        """
        vote = await self.get_by_id(vote_id)
        if vote is None:
            return None

        for field in ("active", "allow_all", "allowed_participants"):
            if field in fields and fields[field] is not None:
                setattr(vote, field, fields[field])

        async with translate_connection_errors():
            await self.db.commit()
            await self.db.refresh(vote)

        logger.info(f"Updated vote {vote_id}: {sorted(fields)}")
        return vote
