"""Sign-in and sign-out URL construction and redirect fragment parsing.

Provides the string-level half of the implicit flow; the stateful half
lives in ``phoenix_api_client.oauth``.
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING
from urllib.parse import quote, unquote, urlencode

if TYPE_CHECKING:
    from ..config import ClientConfig

BEARER_MARKER = "token_type=Bearer"


def generate_state(length: int = 32) -> str:
    """Generate a cryptographically random state parameter.

    Args:
        length: Number of random bytes.

    Returns:
        URL-safe random string for CSRF protection.
    """
    return secrets.token_urlsafe(length)


def has_bearer_marker(fragment: str) -> bool:
    """Check if a redirect fragment carries an implicit-flow token."""
    return BEARER_MARKER in fragment


def parse_fragment(fragment: str) -> dict[str, str]:
    """Parse ``key=value&...`` pairs, URL-decoding keys and values.

    A leading ``#`` is ignored; a key without ``=`` maps to ``""``.
    """
    result: dict[str, str] = {}
    for pair in fragment.removeprefix("#").split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        result[unquote(key)] = unquote(value)
    return result


class AuthorizationBuilder:
    """Builds the sign-in and end-session URLs for a configuration."""

    def __init__(self, config: ClientConfig) -> None:
        """Initialize authorization builder.

        Args:
            config: Client configuration.
        """
        self.config = config

    def build_authorization_url(
        self,
        redirect_uri: str,
        *,
        state: str | None = None,
        response_type: str = "token",
    ) -> str:
        """Build the sign-in URL for the implicit flow.

        Args:
            redirect_uri: Where the sign-in page sends the user back to.
            state: Anti-forgery state; omitted from the URL when ``None``.
            response_type: ``token`` for the implicit flow, ``code`` otherwise.

        Returns:
            The sign-in URL.
        """
        if self.config.openid:
            response_type = f"{response_type} id_token"

        params: dict[str, str] = {
            "client_id": self.config.client_id,
            "response_type": response_type,
            "scope": self.config.scope_string,
            "redirect_uri": redirect_uri,
        }
        if state is not None:
            params["state"] = state

        query = urlencode(params, quote_via=quote)
        return f"{self.config.authorization_endpoint}?{query}"

    def build_endsession_url(self, id_token: str, post_logout_redirect_uri: str) -> str:
        """Build the OpenID end-session URL.

        Args:
            id_token: Identity token passed as ``id_token_hint``.
            post_logout_redirect_uri: Where to land after signing out.

        Returns:
            The end-session URL.
        """
        query = urlencode(
            {
                "id_token_hint": id_token,
                "post_logout_redirect_uri": post_logout_redirect_uri,
            },
            quote_via=quote,
        )
        return f"{self.config.endsession_endpoint}?{query}"
