"""Vote eligibility policy."""

from typing import Any


def is_eligible(vote: Any, email: str) -> bool:
    """
    Decide whether a verified email may enroll into a vote's ring.

    Open votes (allow_all) admit everyone; otherwise the email must match an
    allow-list entry, ignoring case.
    """
    if vote.allow_all:
        return True

    wanted = email.lower()
    return any(
        isinstance(participant, str) and participant.lower() == wanted
        for participant in vote.allowed_participants or []
    )


def same_identity(a: str, b: str) -> bool:
    """Case-insensitive email comparison, the same lower() the key index applies."""
    return a.lower() == b.lower()
