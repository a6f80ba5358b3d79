"""
Vote (voting) model for PostgreSQL storage.

A vote is the eligibility scope of a ring: an activity flag and either an
open door (allow_all) or an explicit participant allow-list.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class Voting(Base):
    """
    Organizer-defined vote.

    allowed_participants is stored exactly as the organizer supplied it;
    comparisons against it are case-insensitive.
    """

    __tablename__ = "votings"

    id: Mapped[str] = mapped_column(String, primary_key=True)

    active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    allow_all: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default="false",
        nullable=False,
    )

    allowed_participants: Mapped[list[str]] = mapped_column(
        JSONB,
        default=list,
        server_default="[]",
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Voting(id={self.id}, active={self.active}, allow_all={self.allow_all})>"
