# Cookie jar: holds the long-lived refresh credential.
# Created: 2026-10-16
#
# One parser and one formatter for every caller that reads or writes cookies.

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass

from munchvendor.session.storage import MemoryStorage

logger = logging.getLogger(__name__)

__all__ = ["Cookie", "CookieJar", "format_set_cookie", "parse_cookie_header"]


def parse_cookie_header(header: str | None) -> dict[str, str]:
    """Parse a ``Cookie:`` header (``a=1; b=2``) into a dict.

    Values keep any ``=`` they contain; malformed pairs are skipped.
    """
    cookies: dict[str, str] = {}
    if not header:
        return cookies
    for pair in header.split(";"):
        name, sep, value = pair.strip().partition("=")
        if not sep or not name:
            continue
        cookies[name] = value
    return cookies


def format_set_cookie(
    name: str,
    value: str,
    *,
    path: str = "/",
    secure: bool = True,
    samesite: str | None = "strict",
    max_age: int | None = None,
) -> str:
    """Render a ``Set-Cookie`` style string.

    ``format_set_cookie("refreshToken", "r1", max_age=2592000)`` gives
    ``refreshToken=r1; path=/; secure; samesite=strict; max-age=2592000``.
    """
    parts = [f"{name}={value}", f"path={path}"]
    if secure:
        parts.append("secure")
    if samesite:
        parts.append(f"samesite={samesite}")
    if max_age is not None:
        parts.append(f"max-age={max_age}")
    return "; ".join(parts)


@dataclass
class Cookie:
    name: str
    value: str
    path: str = "/"
    secure: bool = True
    samesite: str | None = "strict"
    expires_at: float | None = None  # Unix timestamp; None = no expiry

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class CookieJar:
    """Durable cookie jar with max-age expiry.

    Cookies are stored one per key in the backing storage, so a jar on a
    ``ClientStorage`` survives process restarts the way browser cookies do.
    """

    def __init__(
        self,
        storage: MemoryStorage | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._storage = storage if storage is not None else MemoryStorage()
        self._clock = clock

    def set(
        self,
        name: str,
        value: str,
        *,
        path: str = "/",
        secure: bool = True,
        samesite: str | None = "strict",
        max_age: int | None = None,
    ) -> str:
        """Store a cookie and return its ``Set-Cookie`` rendering.

        A ``max_age`` of zero or less expires the cookie immediately.
        """
        rendered = format_set_cookie(
            name, value, path=path, secure=secure, samesite=samesite, max_age=max_age
        )
        if max_age is not None and max_age <= 0:
            self._storage.remove_item(name)
            logger.debug("Cookie %s expired", name)
            return rendered

        expires_at = self._clock() + max_age if max_age is not None else None
        cookie = Cookie(
            name=name,
            value=value,
            path=path,
            secure=secure,
            samesite=samesite,
            expires_at=expires_at,
        )
        self._storage.set_item(name, json.dumps(asdict(cookie)))
        return rendered

    def _load(self, name: str) -> Cookie | None:
        raw = self._storage.get_item(name)
        if raw is None:
            return None
        try:
            cookie = Cookie(**json.loads(raw))
        except (TypeError, ValueError) as e:
            logger.warning("Dropping unreadable cookie %s: %s", name, e)
            self._storage.remove_item(name)
            return None
        if cookie.expired(self._clock()):
            self._storage.remove_item(name)
            return None
        return cookie

    def get(self, name: str) -> str | None:
        cookie = self._load(name)
        return cookie.value if cookie else None

    def has(self, name: str) -> bool:
        return self._load(name) is not None

    def delete(self, name: str, path: str = "/") -> str:
        """Expire a cookie by writing it with an already-elapsed max-age."""
        return self.set(name, "", path=path, max_age=0)

    def all(self) -> dict[str, str]:
        out: dict[str, str] = {}
        for name in self._storage.keys():
            value = self.get(name)
            if value is not None:
                out[name] = value
        return out

    def header(self) -> str:
        """Render live cookies as a ``Cookie:`` request header value."""
        return "; ".join(f"{k}={v}" for k, v in self.all().items())
