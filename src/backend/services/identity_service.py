"""
Identity token verification.

Participants prove who they are with an OpenID Connect ID token issued by a
trusted identity provider (Google by default). The token is verified against
the provider's published signing keys (JWKS), which rotate, so the key set is
fetched on demand and cached:

- populated on first use
- refreshed in the background once older than the cache TTL
- refreshed immediately when a token names a key ID we have not seen,
  at most once per cooldown window
- after a failed attempt, neither kind of refresh is retried until the
  cooldown has passed
- concurrent refreshes collapse into one in-flight request
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from core.config import Settings

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """Base exception for identity verification."""

    pass


class CredentialVerificationError(IdentityError):
    """The credential is malformed, untrusted, expired or issued for someone else."""

    pass


class IdentityProviderUnavailableError(IdentityError):
    """The provider's signing keys could not be fetched."""

    pass


@dataclass(frozen=True)
class VerifiedIdentity:
    """Identity claims taken from a verified token."""

    email: str
    name: Optional[str] = None


class SigningKeySet:
    """
    Process-wide cache of the identity provider's signing keys.

    Keys are indexed by key ID (``kid``). All mutation happens in
    ``_fetch``, which only ever runs as the single shared refresh task.
    """

    def __init__(
        self,
        jwks_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
        cache_ttl: float = 600,
        cooldown: float = 30,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.jwks_url = jwks_url
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.cooldown = cooldown
        self._clock = clock
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._keys: dict[str, dict[str, Any]] = {}
        self._fetched_at: Optional[float] = None
        self._attempted_at: Optional[float] = None
        self._refresh_task: Optional[asyncio.Task] = None

    @property
    def is_loaded(self) -> bool:
        return self._fetched_at is not None

    @property
    def is_stale(self) -> bool:
        if self._fetched_at is None:
            return True
        return self._clock() - self._fetched_at >= self.cache_ttl

    @property
    def key_ids(self) -> list[str]:
        return list(self._keys)

    async def get_key(self, kid: str) -> Optional[dict[str, Any]]:
        """
        Get the JWK for a key ID, refreshing the set when needed.

        Returns None when the key is unknown even after a permitted refresh.

        Raises:
            IdentityProviderUnavailableError: A refresh this call had to wait
                for failed.
        """
        if self._fetched_at is None:
            await self.refresh()
        elif kid not in self._keys:
            if self._cooled_down():
                logger.info(f"Signing key {kid} not cached, refreshing key set")
                await self.refresh()
        elif self.is_stale and self._cooled_down():
            self._start_refresh()

        return self._keys.get(kid)

    async def refresh(self) -> None:
        """Refresh the key set, joining an in-flight refresh if there is one."""
        # Shielded so a cancelled caller does not cancel the fetch other callers share
        await asyncio.shield(self._start_refresh())

    async def close(self) -> None:
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        if self._owns_client:
            await self._client.aclose()

    def _cooled_down(self) -> bool:
        # Measured from the last attempt, successful or not
        return self._attempted_at is None or self._clock() - self._attempted_at >= self.cooldown

    def _start_refresh(self) -> asyncio.Task:
        if self._refresh_task is None or self._refresh_task.done():
            self._attempted_at = self._clock()
            self._refresh_task = asyncio.create_task(self._fetch())
            self._refresh_task.add_done_callback(self._log_refresh_failure)
        return self._refresh_task

    @staticmethod
    def _log_refresh_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(f"Signing key refresh failed: {error}")

    async def _fetch(self) -> None:
        try:
            response = await self._client.get(self.jwks_url, timeout=self.timeout)
            response.raise_for_status()
            document = response.json()
        except httpx.TimeoutException as e:
            raise IdentityProviderUnavailableError("Signing key request timed out") from e
        except httpx.HTTPError as e:
            raise IdentityProviderUnavailableError(f"Signing key request failed: {e}") from e
        except ValueError as e:
            raise IdentityProviderUnavailableError("Signing key response is not JSON") from e

        raw_keys = document.get("keys") if isinstance(document, dict) else None
        keys = {
            key["kid"]: key
            for key in raw_keys or []
            if isinstance(key, dict) and isinstance(key.get("kid"), str)
        }
        if not keys:
            raise IdentityProviderUnavailableError("Signing key set contains no usable keys")

        self._keys = keys
        self._fetched_at = self._clock()
        logger.debug(f"Loaded {len(keys)} signing keys from {self.jwks_url}")


class IdentityVerifier:
    """Verifies ID tokens and extracts the (email, name) identity."""

    DEFAULT_ALGORITHM = "RS256"

    def __init__(self, key_set: SigningKeySet, issuers: list[str], audience: str):
        self.key_set = key_set
        self.issuers = issuers
        self.audience = audience

    async def verify(self, credential: str) -> VerifiedIdentity:
        """
        Verify a credential and return the identity it asserts.

        Raises:
            CredentialVerificationError: The credential cannot be trusted.
            IdentityProviderUnavailableError: Signing keys could not be loaded.
        """
        try:
            header = jwt.get_unverified_header(credential)
        except JOSEError as e:
            raise CredentialVerificationError("Malformed token") from e

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise CredentialVerificationError("Token has no key ID")

        key = await self.key_set.get_key(kid)
        if key is None:
            raise CredentialVerificationError("Token signed by an unknown key")

        try:
            claims = jwt.decode(
                credential,
                key,
                algorithms=[key.get("alg", self.DEFAULT_ALGORITHM)],
                audience=self.audience,
                issuer=self.issuers,
                options={
                    "require_exp": True,
                    "require_iss": True,
                    "require_aud": True,
                    # ID tokens arrive without their access token
                    "verify_at_hash": False,
                },
            )
        except JOSEError as e:
            raise CredentialVerificationError(f"Token rejected: {type(e).__name__}") from e

        email = claims.get("email")
        if not isinstance(email, str) or not email.strip():
            raise CredentialVerificationError("Token carries no email claim")

        name = claims.get("name")
        return VerifiedIdentity(
            email=email,
            name=name if isinstance(name, str) else None,
        )

    async def close(self) -> None:
        await self.key_set.close()


def build_identity_verifier(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> IdentityVerifier:
    """Create the verifier described by the application settings."""
    key_set = SigningKeySet(
        jwks_url=settings.IDENTITY_JWKS_URL,
        http_client=http_client,
        timeout=settings.IDENTITY_JWKS_TIMEOUT_SECONDS,
        cache_ttl=settings.IDENTITY_JWKS_CACHE_TTL_SECONDS,
        cooldown=settings.IDENTITY_JWKS_COOLDOWN_SECONDS,
    )
    return IdentityVerifier(
        key_set=key_set,
        issuers=settings.identity_issuers_list,
        audience=settings.IDENTITY_AUDIENCE,
    )
