"""
Pytest fixtures for VoteRing backend tests.
"""

import asyncio
import os
import time
from collections.abc import AsyncGenerator
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from jose import jwk, jwt

# Set test environment variables before importing app
os.environ.setdefault("ADMIN_TOKEN", "test-admin-token")
os.environ.setdefault("POSTGRES_PASSWORD", "test-password")
os.environ.setdefault("POSTGRES_HOST", "localhost")
os.environ.setdefault("POSTGRES_DB", "votering_test")
os.environ.setdefault("IDENTITY_AUDIENCE", "test-client-id.apps.example.com")
os.environ.setdefault("IDENTITY_ISSUER", "https://issuer.example.com")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")

TEST_ISSUER = "https://issuer.example.com"
TEST_AUDIENCE = "test-client-id.apps.example.com"
TEST_KID = "test-key-1"
ADMIN_TOKEN = "test-admin-token"


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


# =============================================================================
# Signing keys and tokens
# =============================================================================


class SigningKey:
    """An RSA key pair plus its public JWK."""

    def __init__(self, kid: str):
        self.kid = kid
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        public_pem = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        self.public_jwk = {
            **jwk.construct(public_pem, algorithm="RS256").to_dict(),
            "kid": kid,
            "use": "sig",
        }

    def sign(self, claims: dict[str, Any], kid: Optional[str] = None) -> str:
        return jwt.encode(
            claims,
            self.private_pem,
            algorithm="RS256",
            headers={"kid": kid or self.kid},
        )


@pytest.fixture(scope="session")
def signing_key() -> SigningKey:
    """The identity provider's current signing key."""
    return SigningKey(TEST_KID)


@pytest.fixture(scope="session")
def rotated_signing_key() -> SigningKey:
    """A key the provider publishes after rotation."""
    return SigningKey("test-key-2")


@pytest.fixture(scope="session")
def untrusted_signing_key() -> SigningKey:
    """A key the provider never published."""
    return SigningKey("attacker-key")


@pytest.fixture
def make_token(signing_key: SigningKey) -> Callable[..., str]:
    """Build a signed ID token; keyword arguments override claims."""

    def _make(
        email: Optional[str] = "a@x.com",
        name: Optional[str] = "Alice Example",
        key: Optional[SigningKey] = None,
        kid: Optional[str] = None,
        expires_in: int = 3600,
        **overrides: Any,
    ) -> str:
        now = int(time.time())
        claims: dict[str, Any] = {
            "iss": TEST_ISSUER,
            "aud": TEST_AUDIENCE,
            "sub": "1234567890",
            "iat": now,
            "exp": now + expires_in,
        }
        if email is not None:
            claims["email"] = email
        if name is not None:
            claims["name"] = name
        claims.update(overrides)
        return (key or signing_key).sign(claims, kid=kid)

    return _make


# =============================================================================
# Identity provider JWKS endpoint
# =============================================================================


class FakeJWKSEndpoint:
    """Serves a JWKS document through httpx.MockTransport and counts requests."""

    def __init__(self, keys: list[dict[str, Any]]):
        self.keys = list(keys)
        self.calls = 0
        self.error: Optional[Exception] = None
        self.status_code = 200
        self.body: Optional[bytes] = None
        self.delay = 0.0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        if self.body is not None:
            return httpx.Response(self.status_code, content=self.body)
        return httpx.Response(self.status_code, json={"keys": self.keys})


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def jwks_endpoint(signing_key: SigningKey) -> FakeJWKSEndpoint:
    return FakeJWKSEndpoint([signing_key.public_jwk])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def key_set(jwks_endpoint: FakeJWKSEndpoint, clock: FakeClock) -> AsyncGenerator[Any, None]:
    from services.identity_service import SigningKeySet

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(jwks_endpoint.handler))
    key_set = SigningKeySet(
        jwks_url="https://issuer.example.com/certs",
        http_client=http_client,
        timeout=1.0,
        cache_ttl=600,
        cooldown=30,
        clock=clock,
    )
    yield key_set
    await key_set.close()
    await http_client.aclose()


@pytest.fixture
def verifier(key_set: Any) -> Any:
    from services.identity_service import IdentityVerifier

    return IdentityVerifier(key_set=key_set, issuers=[TEST_ISSUER], audience=TEST_AUDIENCE)


# =============================================================================
# In-memory stores (same uniqueness rules as the database)
# =============================================================================


class InMemoryVoteStore:
    """Vote store backed by a dict."""

    def __init__(self):
        self.votes: dict[str, Any] = {}
        self.error: Optional[Exception] = None

    def add(
        self,
        vote_id: str,
        active: bool = True,
        allow_all: bool = False,
        allowed_participants: Optional[list[str]] = None,
    ) -> Any:
        from models.voting import Voting

        vote = Voting(
            id=vote_id,
            active=active,
            allow_all=allow_all,
            allowed_participants=list(allowed_participants or []),
            created_at=datetime.now(timezone.utc),
        )
        self.votes[vote_id] = vote
        return vote

    async def get_by_id(self, vote_id: str) -> Any:
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.votes.get(vote_id)

    async def create(
        self,
        vote_id: str,
        active: bool,
        allowed_participants: Optional[list[str]] = None,
        allow_all: bool = False,
    ) -> Any:
        from repositories.voting_repository import VotingAlreadyExists

        if vote_id in self.votes:
            raise VotingAlreadyExists(vote_id)
        return self.add(vote_id, active=active, allow_all=allow_all, allowed_participants=allowed_participants)

    async def update(self, vote_id: str, **fields: Any) -> Any:
        vote = self.votes.get(vote_id)
        if vote is None:
            return None
        for field in ("active", "allow_all", "allowed_participants"):
            if fields.get(field) is not None:
                setattr(vote, field, fields[field])
        return vote


class InMemoryKeyStore:
    """
    Key store backed by a dict.

    insert() enforces global public key uniqueness and one key per
    (vote_id, lower(email)), like the database constraints.
    """

    def __init__(self):
        self.keys: dict[str, Any] = {}
        self.error: Optional[Exception] = None
        self.hide_existing = False

    async def list_by_vote(self, vote_id: str) -> list[Any]:
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        if self.hide_existing:
            return []
        return [key for key in self.keys.values() if key.vote_id == vote_id]

    async def get(self, vote_id: str, public_key: str) -> Any:
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        key = self.keys.get(public_key)
        if key is None or key.vote_id != vote_id:
            return None
        return key

    async def insert(self, vote_id: str, public_key: str, email: str, name: Optional[str]) -> Any:
        from models.ring_key import RingKey
        from repositories.errors import KeyConstraintViolation

        # Yield like a real round trip so concurrent enrollments interleave
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        if public_key in self.keys:
            raise KeyConstraintViolation("duplicate key value violates unique constraint \"keys_pkey\"")
        if any(
            key.vote_id == vote_id and key.email.lower() == email.lower()
            for key in self.keys.values()
        ):
            raise KeyConstraintViolation(
                "duplicate key value violates unique constraint \"uq_keys_vote_email_lower\""
            )

        key = RingKey(
            public_key=public_key,
            vote_id=vote_id,
            email=email,
            name=name,
            created_at=datetime.now(timezone.utc),
        )
        self.keys[public_key] = key
        return key


@pytest.fixture
def vote_store() -> InMemoryVoteStore:
    return InMemoryVoteStore()


@pytest.fixture
def key_store() -> InMemoryKeyStore:
    return InMemoryKeyStore()


@pytest.fixture
def ring_service(vote_store: InMemoryVoteStore, key_store: InMemoryKeyStore, verifier: Any) -> Any:
    from services.ring_service import RingService

    return RingService(
        vote_store=vote_store,
        key_store=key_store,
        verifier=verifier,
        operation_timeout=2.0,
    )


# =============================================================================
# Application
# =============================================================================


@pytest.fixture
async def app(
    vote_store: InMemoryVoteStore,
    ring_service: Any,
) -> AsyncGenerator[Any, None]:
    """FastAPI application with stores replaced by in-memory ones."""
    from api.deps import get_ring_service
    from main import app as fastapi_app
    from repositories.provider import get_voting_repository

    fastapi_app.dependency_overrides[get_ring_service] = lambda: ring_service
    fastapi_app.dependency_overrides[get_voting_repository] = lambda: vote_store
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}
