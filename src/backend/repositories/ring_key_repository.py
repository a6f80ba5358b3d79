"""
Ring key repository.

The database is the authority for the ring uniqueness rules: the primary
key on public_key and the unique (vote_id, lower(email)) index. insert()
reports either violation as KeyConstraintViolation.
"""

import logging
from typing import Optional

from sqlalchemy import and_, select
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.ring_key import RingKey
from repositories.errors import (
    KeyConstraintViolation,
    KeyValueRejected,
    translate_connection_errors,
)

logger = logging.getLogger(__name__)


class RingKeyRepository:
    """Repository for ring key database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_by_vote(self, vote_id: str) -> list[RingKey]:
        """Get every key enrolled in a vote, oldest first."""
        async with translate_connection_errors():
            result = await self.db.execute(
                select(RingKey)
                .where(RingKey.vote_id == vote_id)
                .order_by(RingKey.created_at, RingKey.public_key)
            )
            return list(result.scalars().all())

    async def get(self, vote_id: str, public_key: str) -> Optional[RingKey]:
        """Get a key by public key, scoped to its vote."""
        async with translate_connection_errors():
            result = await self.db.execute(
                select(RingKey).where(
                    and_(
                        RingKey.vote_id == vote_id,
                        RingKey.public_key == public_key,
                    )
                )
            )
            return result.scalar_one_or_none()

    async def insert(
        self,
        vote_id: str,
        public_key: str,
        email: str,
        name: Optional[str],
    ) -> RingKey:
        """
        Insert and commit a ring key.

        Raises:
            KeyConstraintViolation: public key already claimed, or this
                identity already holds a key in the vote.
            KeyValueRejected: a value is too long for its column.
        """
        key = RingKey(
            public_key=public_key,
            vote_id=vote_id,
            email=email,
            name=name,
        )

        async with translate_connection_errors():
            self.db.add(key)
            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                logger.info(f"Ring key insert rejected by constraint for vote {vote_id}")
                raise KeyConstraintViolation(str(e.orig or e)) from e
            except DataError as e:
                await self.db.rollback()
                logger.warning(f"Ring key insert rejected by column limits for vote {vote_id}")
                raise KeyValueRejected(str(e.orig or e)) from e
            await self.db.refresh(key)

        return key
