"""Hard navigation for the vendor client.

A hard redirect ends the current "page": whatever owns the session is
expected to drop its in-memory state after ``hard_redirect()`` returns.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class Navigator:
    """Records full-page navigations and notifies an optional callback.

    The CLI passes no callback and just reports ``location``; an embedding
    application can hook ``on_navigate`` to tear down and reload its views.
    """

    def __init__(self, on_navigate: Callable[[str], None] | None = None):
        self.location: str | None = None
        self.history: list[str] = []
        self._on_navigate = on_navigate

    def hard_redirect(self, path: str) -> None:
        logger.info("Navigating to %s", path)
        self.location = path
        self.history.append(path)
        if self._on_navigate is not None:
            self._on_navigate(path)
