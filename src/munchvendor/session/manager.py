"""Session manager: the vendor client's credential lifecycle in one place.

Owns the access-token store and the refresh cookie, and exposes:

- ``api_fetch()`` -- authenticated request with one refresh-and-retry on 401
- ``refresh_access_token()`` -- refresh-cookie exchange, coalesced so that
  concurrent callers share a single in-flight refresh
- ``logout()`` -- local teardown, best-effort server revoke, hard redirect
- ``start_inactivity_listener()`` -- forced logout after a quiet period

Construct one per application instance and hand it to whatever needs it
(auth flows, vendor client, CLI).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from munchvendor.config import Settings, get_config_dir, get_settings
from munchvendor.session.cookies import CookieJar
from munchvendor.session.inactivity import ActivitySource, InactivityMonitor
from munchvendor.session.navigation import Navigator
from munchvendor.session.results import ErrorKind, Result
from munchvendor.session.storage import ClientStorage, MemoryStorage
from munchvendor.session.token_store import AccessTokenStore

logger = logging.getLogger(__name__)

REFRESH_ENDPOINT = "/auth/token/refresh"
REVOKE_ENDPOINT = "/auth/token/revoke"

# httpx.InvalidURL is not an HTTPError subclass
_REQUEST_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


class SessionManager:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        storage: MemoryStorage | None = None,
        cookies: CookieJar | None = None,
        http: httpx.AsyncClient | None = None,
        navigator: Navigator | None = None,
        activity: ActivitySource | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or get_settings()
        self.tokens = AccessTokenStore(
            storage if storage is not None else MemoryStorage(),
            ttl=self.settings.access_token_ttl,
            clock=clock,
        )
        self.cookies = cookies if cookies is not None else CookieJar(clock=clock)
        self.navigator = navigator or Navigator()
        self.activity = activity or ActivitySource()
        self._http = http or httpx.AsyncClient(timeout=self.settings.request_timeout)
        self._owns_http = http is None
        self._refresh_task: asyncio.Task[Result[str]] | None = None

        # Outcome of the most recent best-effort calls
        self.last_refresh: Result[str] | None = None
        self.last_revoke: Result[None] | None = None

    @classmethod
    def persistent(cls, settings: Settings | None = None, **kwargs: Any) -> SessionManager:
        """Session backed by files in the config dir, surviving restarts."""
        settings = settings or get_settings()
        config_dir = get_config_dir(settings)
        clock = kwargs.pop("clock", time.time)
        return cls(
            settings,
            storage=ClientStorage(config_dir / "local_storage.json"),
            cookies=CookieJar(ClientStorage(config_dir / "cookies.json"), clock=clock),
            clock=clock,
            **kwargs,
        )

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> SessionManager:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- credential state --

    def get_access_token(self) -> str | None:
        return self.tokens.get_access_token()

    def set_access_token(self, token: str | None) -> None:
        self.tokens.set_access_token(token)

    @property
    def refresh_token(self) -> str | None:
        return self.cookies.get(self.settings.refresh_cookie_name)

    def store_refresh_token(self, token: str) -> str:
        """Write the refresh cookie with the fixed max-age policy."""
        return self.cookies.set(
            self.settings.refresh_cookie_name,
            token,
            path="/",
            secure=True,
            samesite="strict",
            max_age=self.settings.refresh_cookie_max_age,
        )

    def store_credentials(self, access_token: str, refresh_token: str | None) -> None:
        self.set_access_token(access_token)
        if refresh_token:
            self.store_refresh_token(refresh_token)

    @property
    def is_authenticated(self) -> bool:
        """Refresh cookie presence, the same signal the route gate uses."""
        return self.cookies.has(self.settings.refresh_cookie_name)

    # -- HTTP --

    def url(self, endpoint: str) -> str:
        return f"{self.settings.api_base}{endpoint}"

    def _base_headers(self, *, json_body: bool = True) -> dict[str, str]:
        headers = {"x-api-key": self.settings.api_key}
        if json_body:
            headers = {"Content-Type": "application/json", **headers}
        return headers

    async def _raw_fetch(
        self,
        endpoint: str,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        **request_kwargs: Any,
    ) -> httpx.Response:
        token = self.get_access_token()
        form_body = "files" in request_kwargs or "data" in request_kwargs
        merged = self._base_headers(json_body=not form_body)
        if token:
            merged["Authorization"] = f"Bearer {token}"
        # Caller headers win, one level deep
        merged.update(headers or {})
        logger.debug("%s %s", method, endpoint)
        return await self._http.request(method, self.url(endpoint), headers=merged, **request_kwargs)

    async def public_post(self, endpoint: str, payload: dict[str, Any]) -> httpx.Response:
        """POST with the API-key header only (login, signup, OTP calls)."""
        logger.debug("POST %s", endpoint)
        return await self._http.post(
            self.url(endpoint), headers=self._base_headers(), json=payload
        )

    async def api_fetch(
        self,
        endpoint: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        json: Any = None,
        data: dict[str, Any] | None = None,
        files: Any = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Authenticated request against the API base.

        On a 401 the refresh flow runs once. If it yields a new access token
        the request is retried exactly once with that bearer; otherwise the
        session is logged out and the original 401 response is returned.
        Transport errors propagate to the caller.
        """
        request_kwargs: dict[str, Any] = {}
        if json is not None:
            request_kwargs["json"] = json
        if data is not None:
            request_kwargs["data"] = data
        if files is not None:
            request_kwargs["files"] = files
        if params is not None:
            request_kwargs["params"] = params

        response = await self._raw_fetch(endpoint, method, headers, **request_kwargs)
        if response.status_code != 401:
            return response

        logger.info("401 from %s, attempting token refresh", endpoint)
        new_token = await self.refresh_access_token()
        if not new_token:
            await self.logout()
            return response

        self.set_access_token(new_token)
        retry_headers = {**(headers or {}), "Authorization": f"Bearer {new_token}"}
        return await self._raw_fetch(endpoint, method, retry_headers, **request_kwargs)

    # -- refresh --

    async def refresh_access_token(self) -> str | None:
        """Exchange the refresh cookie for a new access token.

        Returns the new token, or None on any failure. Concurrent callers
        await the same in-flight refresh instead of starting their own.
        """
        task = self._refresh_task
        if task is None:
            task = asyncio.get_running_loop().create_task(self._refresh())
            task.add_done_callback(self._clear_refresh_task)
            self._refresh_task = task
        else:
            logger.debug("Joining in-flight token refresh")

        result = await asyncio.shield(task)
        self.last_refresh = result
        return result.value if result.ok else None

    def _clear_refresh_task(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _refresh(self) -> Result[str]:
        refresh_token = self.refresh_token
        if not refresh_token:
            return Result.failure(ErrorKind.NO_CREDENTIAL, "no refresh cookie")

        try:
            resp = await self._http.post(
                self.url(REFRESH_ENDPOINT),
                headers=self._base_headers(),
                json={"refreshToken": refresh_token},
            )
        except _REQUEST_ERRORS as e:
            logger.warning("Refresh failed: %s", e)
            return Result.failure(ErrorKind.NETWORK, str(e))

        if not resp.is_success:
            logger.warning("Refresh failed: HTTP %s", resp.status_code)
            return Result.failure(
                ErrorKind.HTTP_STATUS, resp.reason_phrase, status_code=resp.status_code
            )

        try:
            body = resp.json()
            access_token = body["accessToken"]
            if not isinstance(access_token, str) or not access_token:
                raise ValueError("accessToken is not a non-empty string")
        except (TypeError, KeyError, ValueError) as e:
            logger.warning("Refresh failed: unexpected response body: %s", e)
            return Result.failure(ErrorKind.MALFORMED, str(e), status_code=resp.status_code)

        self.set_access_token(access_token)
        rotated = body.get("refreshToken")
        if isinstance(rotated, str) and rotated:
            self.store_refresh_token(rotated)
            logger.debug("Refresh token rotated")

        logger.info("Access token refreshed")
        return Result.success(access_token, status_code=resp.status_code)

    async def ensure_session(self, path: str) -> str | None:
        """Startup check for protected pages.

        With a live access token nothing happens; without one, a refresh is
        attempted. Never redirects: a page may render optimistically and let
        the first failing ``api_fetch`` escalate to logout.
        """
        if not any(path.startswith(p) for p in self.settings.protected_prefixes):
            return self.get_access_token()
        token = self.get_access_token()
        if token:
            return token
        return await self.refresh_access_token()

    # -- logout --

    async def logout(self) -> None:
        access_token = self.get_access_token()
        self.set_access_token(None)

        name = self.settings.refresh_cookie_name
        refresh_token = self.cookies.get(name)
        self.cookies.delete(name)

        if refresh_token:
            self.last_revoke = await self._revoke(refresh_token, access_token)
        else:
            self.last_revoke = Result.failure(ErrorKind.NO_CREDENTIAL, "no refresh cookie")

        logger.info("Logged out")
        self.navigator.hard_redirect(self.settings.login_path)

    async def _revoke(self, refresh_token: str, access_token: str | None) -> Result[None]:
        headers = self._base_headers()
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        try:
            resp = await self._http.post(
                self.url(REVOKE_ENDPOINT),
                headers=headers,
                json={"refreshToken": refresh_token},
            )
        except _REQUEST_ERRORS as e:
            logger.warning("Backend token revocation failed: %s", e)
            return Result.failure(ErrorKind.NETWORK, str(e))

        if not resp.is_success:
            logger.warning("Backend token revocation failed: HTTP %s", resp.status_code)
            return Result.failure(
                ErrorKind.HTTP_STATUS, resp.reason_phrase, status_code=resp.status_code
            )
        return Result.success(status_code=resp.status_code)

    # -- inactivity --

    def start_inactivity_listener(self) -> Callable[[], None]:
        """Log out after ``inactivity_timeout`` seconds without activity.

        Returns the cleanup callable. Starting twice without cleaning up
        registers duplicate listeners.
        """
        monitor = InactivityMonitor(
            self.activity,
            self.logout,
            timeout=self.settings.inactivity_timeout,
            events=self.settings.inactivity_events,
        )
        return monitor.start()
