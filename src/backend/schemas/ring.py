"""
Ring enrollment schemas.

Field names follow the public wire format: a key's holder name is
exposed as ``full_name``.
"""

from pydantic import BaseModel, Field


class EnrollmentRequest(BaseModel):
    """Body of an enrollment request."""

    credential: str = Field(..., min_length=1, description="Identity provider ID token")


class RingResponse(BaseModel):
    """Public keys enrolled in a vote."""

    keys: list[str]


class RingKeyResponse(BaseModel):
    """An enrolled key and the identity it was enrolled under."""

    public_key: str
    email: str
    full_name: str | None = None
