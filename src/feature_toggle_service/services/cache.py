"""In-process cache answering enabled/disabled questions for feature toggles."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from .metrics import CACHE_REFRESHES
from .store import ToggleStore

LOGGER = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


class ToggleCache:
    """Maps ``feature_key`` to its enabled state and reloads lazily once the TTL expires.

    The whole map is rebuilt and swapped in on every successful reload, so readers never
    see a half-populated dictionary.  A failed reload keeps the previous map and leaves the
    refresh timestamp untouched, which makes the next read try again.  A reload that was
    in flight when :meth:`invalidate` ran is discarded.  Keys that are not in the map
    resolve to enabled.
    """

    def __init__(
        self,
        store: ToggleStore,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, bool] = {}
        self._last_refresh: float | None = None
        self._generation = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def last_refresh(self) -> float | None:
        return self._last_refresh

    def is_stale(self) -> bool:
        if self._last_refresh is None:
            return True
        return self._clock() - self._last_refresh > self._ttl

    async def is_enabled(self, feature_key: str) -> bool:
        if self.is_stale():
            await self._reload()
        return self._entries.get(feature_key, True)

    def invalidate(self) -> None:
        self._entries = {}
        self._last_refresh = None
        self._generation += 1

    async def force_refresh(self) -> None:
        self._last_refresh = None
        await self._reload()

    def snapshot(self) -> dict[str, bool]:
        return dict(self._entries)

    async def _reload(self) -> None:
        generation = self._generation
        try:
            toggles = await self._store.list_toggles()
        except Exception:
            CACHE_REFRESHES.labels(outcome="failure").inc()
            LOGGER.exception(
                "Feature toggle cache refresh failed, keeping %d entries",
                len(self._entries),
            )
            return

        if generation != self._generation:
            LOGGER.debug("Dropping feature toggle snapshot read before invalidation")
            return

        self._entries = {toggle.feature_key: toggle.is_enabled for toggle in toggles}
        self._last_refresh = self._clock()
        CACHE_REFRESHES.labels(outcome="success").inc()
        LOGGER.info("Feature toggle cache refreshed (%d features)", len(toggles))
