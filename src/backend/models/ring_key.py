"""
Ring key model.

One row per enrolled public key. The email/name columns are the identity
claims verified at enrollment time and are kept as an audit trail.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base

PUBLIC_KEY_MAX_LENGTH = 256


class RingKey(Base):
    """
    Public key enrolled into a vote's ring.

    Uniqueness is enforced by the database:
    - public_key is the primary key (one vote per key, ever)
    - (vote_id, lower(email)) is a unique index (one key per identity per vote)
    """

    __tablename__ = "keys"

    public_key: Mapped[str] = mapped_column(String(PUBLIC_KEY_MAX_LENGTH), primary_key=True)

    vote_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("votings.id"),
        index=True,
        nullable=False,
    )

    email: Mapped[str] = mapped_column(String(128), nullable=False)

    name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<RingKey(vote_id={self.vote_id}, public_key={self.public_key[:16]})>"


# The functional index references mapped attributes, so it is declared after the class
Index(
    "uq_keys_vote_email_lower",
    RingKey.vote_id,
    func.lower(RingKey.email),
    unique=True,
)
