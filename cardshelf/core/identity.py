import json
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import httpx
import jwt
from jwcrypto import jwk

from cardshelf.core.config import IdentitySettings
from cardshelf.core.errors import UnauthorizedError
from cardshelf.core.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class ExternalIdentity:
    """A verified user as reported by the identity provider."""

    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = None


class IdentityResolver(Protocol):
    async def verify(self, token: str) -> ExternalIdentity:
        """Return the identity behind ``token`` or raise ``UnauthorizedError``."""
        ...


class JWKSIdentityResolver:
    """Verifies RS256 ID tokens against the provider's published JWKS.

    Public keys are cached for ``cache_seconds`` and refetched early when a
    token names a ``kid`` the cache does not know.
    """

    def __init__(
        self,
        *,
        issuer: str,
        audience: str,
        jwks_url: Optional[str] = None,
        jwks: Optional[Dict[str, Any]] = None,
        cache_seconds: int = 3600,
        algorithms: tuple[str, ...] = ("RS256",),
    ):
        if jwks_url is None and jwks is None:
            raise ValueError("Either jwks_url or jwks is required")
        self.issuer = issuer
        self.audience = audience
        self.jwks_url = jwks_url
        self.cache_seconds = cache_seconds
        self.algorithms = list(algorithms)
        self._keys: Dict[str, bytes] = {}
        self._fetched_at = 0.0
        if jwks is not None:
            self._load_jwks(jwks)
            # Static key sets never expire
            self._fetched_at = float("inf")

    @classmethod
    def from_settings(cls, identity: IdentitySettings) -> "JWKSIdentityResolver":
        return cls(
            issuer=str(identity.issuer),
            audience=str(identity.audience),
            jwks_url=identity.jwks_url,
            cache_seconds=identity.jwks_cache_seconds,
        )

    def _load_jwks(self, jwks: Dict[str, Any]) -> None:
        """Convert every JWK in the set to PEM for PyJWT."""
        keys: Dict[str, bytes] = {}
        for entry in jwks.get("keys", []):
            kid = entry.get("kid")
            if not kid:
                continue
            key = jwk.JWK.from_json(json.dumps(entry))
            keys[kid] = key.export_to_pem(private_key=False, password=None)
        self._keys = keys

    async def _refresh(self) -> None:
        if self.jwks_url is None:
            return
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(self.jwks_url)
            response.raise_for_status()
            self._load_jwks(response.json())
        self._fetched_at = time.monotonic()
        logger.info(f"Loaded {len(self._keys)} signing keys from {self.jwks_url}")

    async def _key_for(self, kid: str) -> bytes:
        stale = time.monotonic() - self._fetched_at > self.cache_seconds
        if stale or kid not in self._keys:
            try:
                await self._refresh()
            except httpx.HTTPError as e:
                logger.error(f"Could not fetch signing keys: {e}")
                raise UnauthorizedError() from e
        key = self._keys.get(kid)
        if key is None:
            raise UnauthorizedError()
        return key

    async def verify(self, token: str) -> ExternalIdentity:
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as e:
            raise UnauthorizedError() from e

        kid = header.get("kid")
        if not kid:
            raise UnauthorizedError()
        key = await self._key_for(kid)

        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=self.algorithms,
                audience=self.audience,
                issuer=self.issuer,
            )
        except jwt.PyJWTError as e:
            logger.info(f"Rejected token: {e}")
            raise UnauthorizedError() from e

        uid = payload.get("sub") or payload.get("user_id")
        if not uid:
            raise UnauthorizedError()

        return ExternalIdentity(
            uid=str(uid),
            email=payload.get("email"),
            display_name=payload.get("name"),
        )


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
        return token or None
    return None
