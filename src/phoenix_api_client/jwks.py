"""Identity token verification against the issuer's published key set.

The issuer's keys are discovered through its OpenID configuration and
cached per issuer for ``ttl_seconds``.
"""

from __future__ import annotations

import time
from typing import Any

import httpx
import jwt
from pydantic import ValidationError

from .models import JWK, JWKS
from .telemetry import get_logger


class IdentityTokenVerifier:
    """Verifies compact ID tokens; never raises."""

    def __init__(
        self,
        *,
        ttl_seconds: int = 3600,
        http_timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize verifier.

        Args:
            ttl_seconds: How long an issuer's key set is reused.
            http_timeout: HTTP request timeout.
            client: Client used for discovery; a short-lived one per fetch
                when omitted.
        """
        self.ttl_seconds = ttl_seconds
        self.http_timeout = http_timeout
        self._client = client
        self._cache: dict[str, tuple[JWKS, float]] = {}
        self._logger = get_logger()

    async def verify(self, token: str) -> dict[str, Any] | None:
        """Verify a token's signature and return its claims.

        Returns:
            The decoded claims, or ``None`` when the token is malformed, no
            key matches, the signature is bad or discovery fails.
        """
        try:
            header = jwt.get_unverified_header(token)
            unverified = jwt.decode(token, options={"verify_signature": False})
            issuer = unverified.get("iss")
            alg = header.get("alg")
            if not issuer or not alg:
                self._logger.warning("ID token lacks issuer or algorithm")
                return None

            jwks = await self.get_jwks(issuer)
            key = self._select_key(jwks, kid=header.get("kid"), alg=alg)
            if key is None:
                self._logger.warning("Matching key could not be found", alg=alg)
                return None

            signing_key = jwt.PyJWK(key.model_dump(exclude_none=True), algorithm=alg)
            return jwt.decode(
                token,
                signing_key.key,
                algorithms=[alg],
                options={"verify_aud": False},
            )
        except jwt.exceptions.InvalidSignatureError:
            self._logger.warning("ID token could not be validated")
            return None
        except (jwt.exceptions.PyJWTError, httpx.HTTPError, ValidationError) as e:
            self._logger.warning("Error decoding ID token", error=str(e))
            return None
        except (ValueError, KeyError, TypeError) as e:
            self._logger.warning("Malformed issuer metadata", error=str(e))
            return None

    async def get_jwks(self, issuer: str) -> JWKS:
        """Get the issuer's key set, using the cache if fresh."""
        cached = self._cache.get(issuer)
        if cached is not None and time.time() - cached[1] <= self.ttl_seconds:
            return cached[0]

        jwks = await self._fetch_jwks(issuer)
        self._cache[issuer] = (jwks, time.time())
        return jwks

    def invalidate(self) -> None:
        """Drop every cached key set."""
        self._cache.clear()

    @staticmethod
    def _select_key(jwks: JWKS, *, kid: str | None, alg: str) -> JWK | None:
        if kid:
            key = jwks.get_key(kid)
            if key is not None:
                return key
        return jwks.get_key_for_alg(alg)

    async def _fetch_jwks(self, issuer: str) -> JWKS:
        """Discover and download the issuer's key set."""
        discovery_url = f"{issuer.rstrip('/')}/.well-known/openid-configuration/"
        if self._client is not None:
            return await self._discover(self._client, discovery_url)
        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            return await self._discover(client, discovery_url)

    async def _discover(self, client: httpx.AsyncClient, discovery_url: str) -> JWKS:
        response = await client.get(discovery_url)
        response.raise_for_status()
        configuration = response.json()

        keys_url = configuration.get("keys") or configuration.get("jwks_uri")
        if not isinstance(keys_url, str):
            msg = "OpenID configuration does not name a key set"
            raise ValueError(msg)

        response = await client.get(keys_url)
        response.raise_for_status()
        jwks_data = response.json()

        return JWKS(keys=[JWK(**key) for key in jwks_data.get("keys", [])])
