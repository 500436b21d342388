"""Client-side session lifecycle: tokens, cookies, refresh, logout, inactivity."""

from munchvendor.session.cookies import CookieJar, format_set_cookie, parse_cookie_header
from munchvendor.session.cooldown import CountingDown, Idle, ResendCooldown
from munchvendor.session.inactivity import ActivitySource, InactivityMonitor
from munchvendor.session.manager import SessionManager
from munchvendor.session.navigation import Navigator
from munchvendor.session.results import ErrorKind, Result
from munchvendor.session.storage import ClientStorage, MemoryStorage
from munchvendor.session.token_store import AccessTokenStore

__all__ = [
    "AccessTokenStore",
    "ActivitySource",
    "ClientStorage",
    "CookieJar",
    "CountingDown",
    "ErrorKind",
    "Idle",
    "InactivityMonitor",
    "MemoryStorage",
    "Navigator",
    "ResendCooldown",
    "Result",
    "SessionManager",
    "format_set_cookie",
    "parse_cookie_header",
]
