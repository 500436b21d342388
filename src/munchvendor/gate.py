"""Route gate for apps that serve the vendor portal pages.

Runs before page handlers and decides redirects purely from the presence of
the refresh-token cookie (not its validity):

- ``/``                     -> dashboard if signed in, else login
- login path while signed in -> dashboard
- protected prefixes while signed out -> login

Register with ``install_route_gate(app)`` or ``app.middleware("http")``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import RedirectResponse

from munchvendor.config import Settings, get_settings
from munchvendor.session.cookies import parse_cookie_header

logger = logging.getLogger(__name__)


def resolve_redirect(path: str, has_refresh_token: bool, settings: Settings | None = None) -> str | None:
    """Return the path to redirect to, or None to let the request through."""
    settings = settings or get_settings()

    if path == "/":
        return settings.dashboard_path if has_refresh_token else settings.login_path

    if has_refresh_token and path == settings.login_path:
        return settings.dashboard_path

    if not has_refresh_token:
        for prefix in settings.protected_prefixes:
            if path.startswith(prefix):
                return settings.login_path

    return None


def _has_refresh_cookie(request: Request, settings: Settings) -> bool:
    cookies = parse_cookie_header(request.headers.get("cookie"))
    return settings.refresh_cookie_name in cookies


async def route_gate_middleware(request: Request, call_next, settings: Settings | None = None):
    settings = settings or get_settings()
    target = resolve_redirect(request.url.path, _has_refresh_cookie(request, settings), settings)
    if target is None:
        return await call_next(request)

    logger.debug("Route gate: %s -> %s", request.url.path, target)
    return RedirectResponse(url=str(request.url.replace(path=target, query="")), status_code=307)


def install_route_gate(app: FastAPI, settings: Settings | None = None) -> None:
    async def _gate(request: Request, call_next):
        return await route_gate_middleware(request, call_next, settings)

    app.middleware("http")(_gate)
