"""Pydantic models for the Phoenix API client.

Uses Pydantic v2 with frozen models for immutability; the session is
persisted through ``model_dump_json`` and read back with
``model_validate_json``.
"""

from __future__ import annotations

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field

from .errors import TerminalRequestError


class Session(BaseModel):
    """An authenticated identity and its bearer token."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int | str
    token: str = Field(..., min_length=1)
    expiration: int | None = Field(
        default=None, description="Expiration instant (epoch milliseconds)"
    )
    id_token: str | None = None
    decoded_id_token: dict[str, Any] | None = None
    uses_token: bool = Field(
        default=False, description="Created from a caller-supplied token"
    )

    @classmethod
    def from_access_token_info(
        cls,
        data: Any,
        token: str,
        *,
        uses_token: bool = False,
    ) -> Self:
        """Build a session from the ``/v4/oauth/access-token`` response.

        Raises:
            TerminalRequestError: If the response names no account.
        """
        try:
            account_id = data["scope_details"][0]["voip_id"]
        except (TypeError, KeyError, IndexError) as e:
            msg = "Access token info names no account"
            raise TerminalRequestError(msg, payload=data) from e

        expires_at = data.get("expires_at")
        return cls(
            id=account_id,
            token=token,
            expiration=int(expires_at) * 1000 if expires_at else None,
            uses_token=uses_token,
        )

    def expires_in_ms(self, now_ms: float, skew_ms: int = 0) -> float | None:
        """Milliseconds left before the session must be treated as expired."""
        if self.expiration is None:
            return None
        return self.expiration - now_ms - skew_ms


class Page(BaseModel):
    """One page of a paged listing."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    items: list[Any] = Field(default_factory=list)
    offset: int = 0
    limit: int = 0
    total: int = 0

    @classmethod
    def of(cls, items: list[Any]) -> Self:
        """A synthetic page describing a complete collection."""
        return cls(items=items, offset=0, limit=len(items), total=len(items))


class JWK(BaseModel):
    """JSON Web Key representation."""

    model_config = ConfigDict(frozen=True, extra="allow")

    kty: str = Field(..., description="Key type")
    kid: str | None = Field(default=None, description="Key ID")
    use: str | None = Field(default=None, description="Key use")
    alg: str | None = Field(default=None, description="Algorithm")

    # RSA keys
    n: str | None = None
    e: str | None = None

    # EC keys
    crv: str | None = None
    x: str | None = None
    y: str | None = None


class JWKS(BaseModel):
    """JSON Web Key Set."""

    model_config = ConfigDict(frozen=True)

    keys: list[JWK]

    def get_key(self, kid: str) -> JWK | None:
        """Get key by ID."""
        for key in self.keys:
            if key.kid == kid:
                return key
        return None

    def get_key_for_alg(self, alg: str) -> JWK | None:
        """Get the first key published for an algorithm."""
        for key in self.keys:
            if key.alg == alg:
                return key
        return None
