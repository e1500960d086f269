"""OAuth 2.0 implicit-flow bootstrap.

Turns a sign-in redirect (or a token obtained elsewhere) into an
authenticated session installed in the session store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .core.auth_builder import (
    AuthorizationBuilder,
    generate_state,
    has_bearer_marker,
    parse_fragment,
)
from .errors import AntiForgeryMismatchError, InvalidConfigError
from .events import ClientEvent, EventEmitter
from .models import Session
from .redirect import fragment_of, origin_of, strip_fragment
from .telemetry import get_logger, trace_operation

if TYPE_CHECKING:
    from .config import ClientConfig
    from .core.http_executor import AsyncHTTPExecutor
    from .core.session_store import SessionStore
    from .jwks import IdentityTokenVerifier
    from .redirect import RedirectHost
    from .storage import StorageBackend

ACCESS_TOKEN_PATH = "/v4/oauth/access-token"


class AntiForgeryState:
    """The ``state`` value shared by every tab of one browser profile.

    Generated on first use and kept in browser-wide storage so it survives
    the round trip through the sign-in page.
    """

    def __init__(self, storage: StorageBackend, key: str) -> None:
        self.storage = storage
        self.key = key

    @property
    def value(self) -> str:
        state = self.storage.get(self.key)
        if not state:
            state = generate_state()
            self.storage.set(self.key, state)
        return state

    def matches(self, received: str | None) -> bool:
        return received is not None and received == self.value


class OAuthBootstrap:
    """Implicit-flow sign-in: ``Unauthenticated -> Authenticated``."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        session_store: SessionStore,
        executor: AsyncHTTPExecutor,
        state: AntiForgeryState,
        redirect_host: RedirectHost | None = None,
        events: EventEmitter | None = None,
        verifier: IdentityTokenVerifier | None = None,
    ) -> None:
        self.config = config
        self.state = state
        self.redirect_host = redirect_host
        self._store = session_store
        self._executor = executor
        self._events = events or EventEmitter()
        self._verifier = verifier
        self._builder = AuthorizationBuilder(config)
        self._logger = get_logger()

    def begin_interactive(self, redirect_path: str | None = None) -> str:
        """Build the sign-in URL to send the user to.

        Args:
            redirect_path: Path on the current origin to come back to;
                defaults to the current page.

        Raises:
            InvalidConfigError: If no redirect host was configured.
        """
        host = self._require_host()
        if redirect_path is None:
            redirect_uri = strip_fragment(host.url).split("?", 1)[0]
        else:
            redirect_uri = f"{origin_of(host.url)}{redirect_path}"

        state = None if self.config.ignore_anti_forgery_state else self.state.value
        return self._builder.build_authorization_url(redirect_uri, state=state)

    async def try_resume_from_redirect(self) -> bool:
        """Complete a sign-in whose token arrived in the URL fragment.

        Returns:
            Whether a session was established. ``False`` without side
            effects when the fragment carries no bearer token.
        """
        if self.redirect_host is None:
            return False

        url = self.redirect_host.url
        fragment = fragment_of(url)
        if not has_bearer_marker(fragment):
            return False

        params = parse_fragment(fragment)
        received = params.get("state")
        if not self.config.ignore_anti_forgery_state and not self.state.matches(received):
            error = AntiForgeryMismatchError(received=received)
            self._logger.warning(error.message)
            self._events.emit(ClientEvent.ERROR, error)
            return False

        token = f"{params.get('token_type', 'Bearer')} {params.get('access_token', '')}"
        self.redirect_host.replace_url(strip_fragment(url))

        id_token = params.get("id_token") if self.config.openid else None
        await self.load_user(token, id_token=id_token or None)
        return True

    async def load_user(
        self,
        token: str,
        *,
        uses_token: bool = False,
        id_token: str | None = None,
    ) -> Session:
        """Look up who ``token`` belongs to and install the session.

        Args:
            token: Full ``Authorization`` header value.
            uses_token: The token was supplied by the caller.
            id_token: OpenID identity token from the same redirect.

        Returns:
            The installed session.

        Raises:
            PhoenixApiError: When the lookup fails after retries.
        """
        with trace_operation("load_user", attributes={"uses_token": uses_token}):
            data = await self._executor.execute(
                "GET",
                f"{self.config.base_url_str}{ACCESS_TOKEN_PATH}",
                headers={"Authorization": token},
            )
            session = Session.from_access_token_info(data, token, uses_token=uses_token)

            if id_token:
                decoded = None
                if self.config.decode_identity_token and self._verifier is not None:
                    decoded = await self._verifier.verify(id_token)
                session = session.model_copy(
                    update={"id_token": id_token, "decoded_id_token": decoded}
                )

            self._store.set_session(session)
            return session

    def _require_host(self) -> RedirectHost:
        if self.redirect_host is None:
            msg = "A redirect host is required for interactive sign-in"
            raise InvalidConfigError(msg, field="redirect_host")
        return self.redirect_host
