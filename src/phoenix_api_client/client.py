"""Async Phoenix API client.

Authenticates through the OAuth 2.0 implicit flow (or a token obtained
elsewhere), keeps the session alive across restarts and exposes the
account-scoped CRUD surface with retries and transparent pagination.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Coroutine, Self

from .core.auth_builder import AuthorizationBuilder
from .core.http_executor import AsyncHTTPExecutor, RetryPolicy
from .core.pagination import collect_all
from .core.session_store import SessionStore, system_clock_ms
from .errors import PhoenixApiError, UnauthorizedError
from .events import ClientEvent, EventEmitter
from .http import create_async_http_client
from .jwks import IdentityTokenVerifier
from .models import Page, Session
from .oauth import ACCESS_TOKEN_PATH, AntiForgeryState, OAuthBootstrap
from .redirect import origin_of
from .storage import ScopedStorage
from .telemetry import configure_telemetry, get_logger, trace_operation

if TYPE_CHECKING:
    import httpx

    from .config import ClientConfig
    from .core.session_store import Scheduler
    from .redirect import RedirectHost
    from .storage import StorageBackend

_BODYLESS_METHODS = {"GET", "HEAD"}


class PhoenixApiClient:
    """Asynchronous Phoenix API client."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        redirect_host: RedirectHost | None = None,
        tab_storage: StorageBackend | None = None,
        browser_storage: StorageBackend | None = None,
        verifier: IdentityTokenVerifier | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = system_clock_ms,
        scheduler: Scheduler | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize async client.

        Args:
            config: Client configuration.
            redirect_host: Page the client runs in; needed for interactive
                sign-in and OpenID sign-out.
            tab_storage: Backend for the ``tab`` persistence scope.
            browser_storage: Backend for the ``browser`` scope and the
                anti-forgery state.
            verifier: ID token verifier; a default one is created if omitted.
            transport: HTTP transport override.
            clock: Epoch-milliseconds clock for session expiry.
            scheduler: Arms session expiration timers.
            sleep: Awaitable sleep used between retries.
        """
        configure_telemetry(config.telemetry)
        self.config = config
        self.redirect_host = redirect_host
        self.storage = ScopedStorage(
            config.persistence_scope, tab=tab_storage, browser=browser_storage
        )
        self.events = EventEmitter()
        self._http = create_async_http_client(config, transport=transport)
        self._store = SessionStore(
            self.storage,
            config.session_key,
            skew_ms=config.session_skew_ms,
            clock=clock,
            scheduler=scheduler,
            on_expired=self._handle_expired_session,
        )
        self._executor = AsyncHTTPExecutor(
            self._http,
            RetryPolicy(config, self._store, events=self.events, sleep=sleep),
        )
        self._verifier = verifier or IdentityTokenVerifier(http_timeout=config.timeout)
        self._oauth = OAuthBootstrap(
            config,
            session_store=self._store,
            executor=self._executor,
            state=AntiForgeryState(self.storage.browser, config.state_key),
            redirect_host=redirect_host,
            events=self.events,
            verifier=self._verifier,
        )
        self._builder = AuthorizationBuilder(config)
        self._pending: set[asyncio.Task[Any]] = set()
        self._logger = get_logger()

    async def __aenter__(self) -> Self:
        self._store.restore()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Wait for background revocations, then close the HTTP client."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self._http.aclose()

    # Session

    @property
    def session(self) -> Session | None:
        """The active session, if any."""
        return self._store.session

    @property
    def user(self) -> Session | None:
        """Alias of ``session``: who the client is signed in as."""
        return self._store.session

    @property
    def token(self) -> str | None:
        """The active bearer token, if any."""
        return self._store.current_token()

    @property
    def id_token(self) -> str | None:
        """The OpenID identity token of the active session, if any."""
        session = self._store.session
        return session.id_token if session else None

    @property
    def is_authenticated(self) -> bool:
        """Whether a session is active."""
        return self._store.session is not None

    @property
    def oauth_url(self) -> str:
        """Sign-in URL returning to the current page."""
        return self._oauth.begin_interactive()

    def get_oauth_url(self, redirect_path: str) -> str:
        """Sign-in URL returning to ``redirect_path`` on the current origin."""
        return self._oauth.begin_interactive(redirect_path)

    def on(self, event: ClientEvent | str, callback: Callable[..., Any] | None) -> None:
        """Register the listener for ``signed-out``, ``session-expired`` or ``error``."""
        self.events.on(event, callback)

    async def init_session(self) -> bool:
        """Restore the persisted session or complete a pending sign-in.

        Returns:
            Whether a session is active afterwards.
        """
        if self._store.session is None and self._store.restore() is None:
            await self._oauth.try_resume_from_redirect()
        return self._store.session is not None

    async def load_user(self, token: str, *, id_token: str | None = None) -> Session:
        """Install the session ``token`` belongs to."""
        return await self._oauth.load_user(token, id_token=id_token)

    async def use_token(self, token: str) -> Session:
        """Sign in with a token obtained outside the redirect flow.

        The token is never revoked on sign-out; its owner manages it.
        """
        return await self._oauth.load_user(token, uses_token=True)

    def set_session(self, session: Session) -> None:
        """Install an already known session."""
        self._store.set_session(session)

    async def decode_id_token(self) -> dict[str, Any] | None:
        """Verify the session's identity token and return its claims.

        The claims are kept on the session for later reads.
        """
        session = self._store.session
        if session is None or not session.id_token:
            self._logger.warning("id_token not found")
            return None

        claims = await self._verifier.verify(session.id_token)
        if claims is not None and self._store.session is session:
            self._store.set_session(
                session.model_copy(update={"decoded_id_token": claims})
            )
        return claims

    async def sign_out(self) -> None:
        """Sign the user out.

        Revokes the token when ``sign_out_revokes_token`` is set, clears the
        local session, fires ``signed-out`` and, for OpenID sessions with
        ``id_token_sign_out``, navigates to the provider's end-session page.
        A failed revocation is logged; the local session is cleared anyway.
        """
        session = self._store.session
        if session is None:
            return

        if self.config.sign_out_revokes_token:
            try:
                await self.delete_access_token()
            except PhoenixApiError as e:
                self._logger.warning("Token revocation failed", error=str(e))

        self._store.clear()
        self._logger.info("Signed out", session_id=session.id)
        self.events.emit(ClientEvent.SIGNED_OUT)

        if (
            self.config.id_token_sign_out
            and self.config.openid
            and session.id_token
            and self.redirect_host is not None
        ):
            redirect = origin_of(self.redirect_host.url)
            self.redirect_host.navigate(
                self._builder.build_endsession_url(session.id_token, redirect)
            )

    async def delete_access_token(self) -> Any:
        """Revoke the active access token.

        Returns:
            The API's answer; ``True`` for caller-supplied tokens, which are
            left alone; ``None`` when there is no session or the token was
            already rejected.
        """
        session = self._store.session
        if session is None:
            return None
        if session.uses_token:
            return True
        try:
            return await self._revoke(session.token)
        except UnauthorizedError:
            return None

    # Resource operations

    async def call_api(
        self,
        method: str,
        uri: str,
        body: Any = None,
        *,
        global_: bool = False,
        token: str | None = None,
        **options: Any,
    ) -> Any:
        """Make a custom API call.

        Unlike the named operations, a 401 on a locally expired session
        resolves to ``{}`` after the session is expired.

        Args:
            method: HTTP method.
            uri: Resource path.
            body: JSON body.
            global_: Address ``uri`` from the API root instead of the account.
            token: Authorization override.
            **options: Extra ``httpx`` request options.
        """
        return await self._request(
            method,
            uri,
            body,
            global_=global_,
            token=token,
            expired_fallback=dict,
            **options,
        )

    async def get_item(self, uri: str, *, global_: bool = False) -> Any:
        """Get the item specified in the uri."""
        return await self._request("GET", uri, global_=global_)

    async def create_item(self, uri: str, data: Any, *, global_: bool = False) -> Any:
        """Create the resource specified in the uri."""
        return await self._request("POST", uri, data, global_=global_)

    async def replace_item(self, uri: str, data: Any, *, global_: bool = False) -> Any:
        """Replace the item specified in the uri (PUT)."""
        return await self._request("PUT", uri, data, global_=global_)

    async def patch_item(self, uri: str, data: Any, *, global_: bool = False) -> Any:
        """Partially update the item specified in the uri (PATCH)."""
        return await self._request("PATCH", uri, data, global_=global_)

    async def delete_item(
        self, uri: str, data: Any = None, *, global_: bool = False
    ) -> Any:
        """Delete the item specified in the uri."""
        return await self._request("DELETE", uri, data, global_=global_)

    async def download_item(self, uri: str, *, global_: bool = False) -> bytes:
        """Download the item specified in the uri as raw bytes.

        Bounded by ``download_timeout`` seconds.
        """
        return await self._request(
            "GET",
            uri,
            global_=global_,
            binary=True,
            timeout=self.config.download_timeout,
        )

    async def get_list(
        self,
        uri: str,
        limit: int = 25,
        offset: int = 0,
        *,
        global_: bool = False,
    ) -> Page:
        """Get one page of the items specified in the uri.

        With ``global_`` the uri is taken relative to ``/v4``.
        """
        params: dict[str, int] = {}
        if limit:
            params["limit"] = limit
        if offset:
            params["offset"] = offset
        if global_:
            uri = f"/v4{uri}"
        data = await self._request("GET", uri, global_=global_, params=params)
        return Page.model_validate(data or {})

    async def get_list_all(self, uri: str, *, global_: bool = False) -> Page:
        """Get every item specified in the uri, following pagination."""

        async def fetch_page(limit: int, offset: int) -> Page:
            return await self.get_list(uri, limit, offset, global_=global_)

        with trace_operation("get_list_all", attributes={"uri": uri}):
            return await collect_all(fetch_page)

    # Internals

    def _api_url(self, uri: str, global_: bool = False) -> str:
        """Account-scoped URL for ``uri``, or the API root when ``global_``."""
        url = self.config.base_url_str
        if not global_:
            session = self._store.session
            if session is None:
                msg = "No active session to scope the request to"
                raise UnauthorizedError(msg)
            url += f"/v4/accounts/{session.id}"
        return f"{url}{uri}"

    def _auth_headers(self, token: str | None = None) -> dict[str, str]:
        token = token or self._store.current_token()
        return {"Authorization": token} if token else {}

    async def _request(
        self,
        method: str,
        uri: str,
        body: Any = None,
        *,
        global_: bool = False,
        token: str | None = None,
        binary: bool = False,
        expired_fallback: Callable[[], Any] | None = None,
        **options: Any,
    ) -> Any:
        method = method.upper()
        headers = {**self._auth_headers(token), **options.pop("headers", {})}
        if body is not None and method not in _BODYLESS_METHODS:
            options["json"] = body
        return await self._executor.execute(
            method,
            self._api_url(uri, global_),
            binary=binary,
            expired_fallback=expired_fallback,
            headers=headers,
            **options,
        )

    async def _revoke(self, token: str) -> Any:
        return await self._executor.execute(
            "DELETE",
            f"{self.config.base_url_str}{ACCESS_TOKEN_PATH}",
            headers={"Authorization": token},
        )

    def _handle_expired_session(self, session: Session) -> None:
        """Store callback: the session lapsed or the API reported it expired."""
        self.events.emit(ClientEvent.SESSION_EXPIRED)
        if self.config.expiry_revokes_token and not session.uses_token:
            self._spawn(self._revoke_quietly(session.token))

    async def _revoke_quietly(self, token: str) -> None:
        try:
            await self._revoke(token)
        except (PhoenixApiError, RuntimeError) as e:
            self._logger.warning("Revoking expired token failed", error=str(e))

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._logger.warning("No running event loop, skipping token revocation")
            coro.close()
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
