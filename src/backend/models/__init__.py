"""Database models module."""

from models.ring_key import RingKey
from models.voting import Voting

__all__ = [
    "Voting",
    "RingKey",
]
