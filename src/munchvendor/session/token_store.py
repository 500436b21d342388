# Access token store: short-lived bearer credential with a soft TTL.
# Created: 2026-10-16

from __future__ import annotations

import json
import logging
import math
import time
from collections.abc import Callable

from munchvendor.session.storage import MemoryStorage

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "accessToken"


class AccessTokenStore:
    """Persists ``{"value": token, "expiry": ms}`` under a fixed storage key.

    The expiry is checked only at read time. An expired or corrupted record
    reads as absent and is removed as a side effect.
    """

    def __init__(
        self,
        storage: MemoryStorage | None = None,
        ttl: int = 30 * 60,
        clock: Callable[[], float] = time.time,
        key: str = ACCESS_TOKEN_KEY,
    ):
        self._storage = storage if storage is not None else MemoryStorage()
        self.ttl = ttl
        self._clock = clock
        self.key = key

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def set_access_token(self, token: str | None) -> None:
        if token:
            item = {"value": token, "expiry": self._now_ms() + self.ttl * 1000}
            self._storage.set_item(self.key, json.dumps(item))
        else:
            self._storage.remove_item(self.key)

    def get_access_token(self) -> str | None:
        raw = self._storage.get_item(self.key)
        if not raw:
            return None

        try:
            item = json.loads(raw)
            value = item["value"]
            expiry = item["expiry"]
            if not isinstance(value, str) or isinstance(expiry, bool):
                raise ValueError("bad field types")
            expiry = float(expiry)
            if not math.isfinite(expiry):
                raise ValueError("expiry is not finite")
        except (TypeError, KeyError, ValueError) as e:
            logger.warning("Discarding corrupted access token record: %s", e)
            self._storage.remove_item(self.key)
            return None

        if self._now_ms() >= expiry:
            logger.debug("Access token expired")
            self._storage.remove_item(self.key)
            return None
        return value
