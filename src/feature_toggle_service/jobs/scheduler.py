"""Background scheduler keeping toggle gauges in sync with the store."""

from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from ..config import Settings
from ..services.metrics import TOGGLES_ENABLED, TOGGLES_KNOWN
from ..services.store import ToggleStore

LOGGER = logging.getLogger(__name__)


class ToggleMetricsScheduler:
    """Wraps AsyncIOScheduler to publish how many toggles exist and are enabled."""

    def __init__(self, settings: Settings, store: ToggleStore) -> None:
        self._settings = settings
        self._store = store
        self._scheduler = AsyncIOScheduler()

    def start(self) -> None:
        self._scheduler.add_job(
            self.publish_gauges,
            "interval",
            seconds=self._settings.metrics_refresh_interval_seconds,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.start()
        LOGGER.info(
            "Toggle metrics scheduler started every %ss",
            self._settings.metrics_refresh_interval_seconds,
        )

    def shutdown(self) -> None:
        self._scheduler.shutdown(wait=False)

    async def publish_gauges(self) -> None:
        try:
            toggles = await self._store.list_toggles()
        except Exception:
            LOGGER.warning("Could not read toggles for metrics", exc_info=True)
            return
        TOGGLES_KNOWN.set(len(toggles))
        TOGGLES_ENABLED.set(sum(1 for toggle in toggles if toggle.is_enabled))
