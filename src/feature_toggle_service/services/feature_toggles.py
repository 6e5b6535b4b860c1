"""FeatureToggleService façade used by routers, the route guard and the CLI."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from ..models.dto import FeatureToggle, FeatureToggleCreate, ImportEntry, ImportResult
from .cache import DEFAULT_TTL_SECONDS, ToggleCache
from .defaults import DEFAULT_TOGGLES
from .metrics import ADMIN_MUTATIONS, TOGGLE_CHECKS
from .store import ToggleStore

LOGGER = logging.getLogger(__name__)


class FeatureToggleService:
    """Single entry point for reading and changing feature toggles.

    Reads of the enabled state go through :class:`ToggleCache` and never raise: any
    failure resolves to enabled.  Administrative reads and writes hit the store
    directly and propagate store errors to the caller.  Every successful write
    invalidates the cache, so the next check reloads from the store.
    """

    def __init__(
        self,
        store: ToggleStore,
        cache: ToggleCache | None = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        defaults: Sequence[FeatureToggleCreate] = DEFAULT_TOGGLES,
    ) -> None:
        self._store = store
        self._cache = cache or ToggleCache(store, ttl_seconds)
        self._defaults = tuple(defaults)

    @property
    def cache(self) -> ToggleCache:
        return self._cache

    async def initialize(self) -> None:
        """Probe the store, seed missing defaults and warm the cache; never raises."""

        LOGGER.info("Initializing feature toggles")
        try:
            await self._store.probe()
        except Exception:
            LOGGER.warning(
                "Feature toggle store is not reachable, seeding anyway", exc_info=True
            )

        created = await self._seed_defaults()
        await self._cache.force_refresh()
        LOGGER.info("Feature toggles initialized (%d defaults created)", created)

    async def _seed_defaults(self) -> int:
        created = 0
        for toggle in self._defaults:
            try:
                if await self._store.get_toggle(toggle.feature_key) is None:
                    await self._store.insert_toggle(toggle)
                    created += 1
                    LOGGER.info("Created default feature %s", toggle.feature_key)
            except Exception:
                LOGGER.exception("Could not create default feature %s", toggle.feature_key)
        return created

    async def is_enabled(self, feature_key: str) -> bool:
        try:
            enabled = await self._cache.is_enabled(feature_key)
        except Exception:
            LOGGER.exception("Error checking feature %s, allowing it", feature_key)
            TOGGLE_CHECKS.labels(result="error").inc()
            return True
        TOGGLE_CHECKS.labels(result="enabled" if enabled else "disabled").inc()
        return enabled

    async def refresh_cache(self) -> None:
        await self._cache.force_refresh()

    async def get_all_features(self) -> list[FeatureToggle]:
        toggles = await self._store.list_toggles()
        return sorted(toggles, key=lambda toggle: (toggle.category, toggle.feature_name))

    async def get_features_by_category(self, category: str) -> list[FeatureToggle]:
        toggles = await self._store.list_toggles(category=category)
        return sorted(toggles, key=lambda toggle: toggle.feature_name)

    async def get_feature(self, feature_key: str) -> FeatureToggle | None:
        return await self._store.get_toggle(feature_key)

    async def get_categories(self) -> list[str]:
        try:
            return sorted(set(await self._store.distinct_categories()))
        except Exception:
            LOGGER.exception("Error getting feature categories")
            return []

    async def get_public_features(self) -> dict[str, bool]:
        toggles = await self._store.list_toggles()
        return {toggle.feature_key: toggle.is_enabled for toggle in toggles}

    async def update_feature(
        self, feature_key: str, is_enabled: bool, updated_by: str | None = None
    ) -> bool:
        """Persist the new state; returns ``False`` when no toggle has this key."""

        updated = await self._store.update_toggle(
            feature_key, {"is_enabled": is_enabled}, updated_by=updated_by
        )
        self._cache.invalidate()
        if updated is None:
            LOGGER.warning("Cannot update unknown feature %s", feature_key)
            return False

        ADMIN_MUTATIONS.labels(action="update").inc()
        LOGGER.info(
            "Feature %s %s",
            feature_key,
            "enabled" if is_enabled else "disabled",
            extra={"feature_key": feature_key, "updated_by": updated_by},
        )
        return True

    async def create_feature(
        self, data: FeatureToggleCreate, updated_by: str | None = None
    ) -> FeatureToggle:
        created = await self._store.insert_toggle(data, updated_by=updated_by)
        self._cache.invalidate()
        ADMIN_MUTATIONS.labels(action="create").inc()
        LOGGER.info("Feature %s created", data.feature_key, extra={"updated_by": updated_by})
        return created

    async def delete_feature(self, feature_key: str) -> bool:
        deleted = await self._store.delete_toggle(feature_key)
        if not deleted:
            return False

        self._cache.invalidate()
        ADMIN_MUTATIONS.labels(action="delete").inc()
        LOGGER.info("Feature %s deleted", feature_key)
        return True

    async def export_configuration(self) -> list[FeatureToggle]:
        return await self.get_all_features()

    async def import_configuration(
        self, entries: Iterable[ImportEntry], updated_by: str | None = None
    ) -> ImportResult:
        """Apply exported rows onto existing toggles, collecting per-row failures."""

        result = ImportResult()
        for entry in entries:
            try:
                updated = await self._store.update_toggle(
                    entry.feature_key, entry.changes(), updated_by=updated_by
                )
            except Exception as exc:
                LOGGER.warning("Import of feature %s failed: %s", entry.feature_key, exc)
                result.errors.append(f"Error updating {entry.feature_key}: {exc}")
                continue
            if updated is None:
                result.errors.append(f"Unknown feature: {entry.feature_key}")
                continue
            result.success += 1

        if result.success:
            self._cache.invalidate()
            ADMIN_MUTATIONS.labels(action="import").inc(result.success)
        LOGGER.info(
            "Imported feature configuration: %d updated, %d errors",
            result.success,
            len(result.errors),
        )
        return result

    async def reset_defaults(self) -> int:
        created = await self._seed_defaults()
        await self._cache.force_refresh()
        return created


class FeatureShortcuts:
    """Named checks for the toggles application code asks about most."""

    def __init__(self, service: FeatureToggleService) -> None:
        self._service = service

    async def is_dark_mode_enabled(self) -> bool:
        return await self._service.is_enabled("dark_mode")

    async def can_delete_events(self) -> bool:
        return await self._service.is_enabled("delete_events")

    async def can_export_events(self) -> bool:
        return await self._service.is_enabled("event_export")

    async def can_upload_profile_photo(self) -> bool:
        return await self._service.is_enabled("user_profile_upload")

    async def is_event_messaging_enabled(self) -> bool:
        return await self._service.is_enabled("event_messaging")

    async def are_auto_invitations_enabled(self) -> bool:
        return await self._service.is_enabled("auto_invitations")

    async def are_email_notifications_enabled(self) -> bool:
        return await self._service.is_enabled("email_notifications")

    async def can_upgrade_subscription(self) -> bool:
        return await self._service.is_enabled("subscription_upgrade")

    async def is_chatbot_enabled(self) -> bool:
        return await self._service.is_enabled("chatbot_support")

    async def is_analytics_enabled(self) -> bool:
        return await self._service.is_enabled("analytics_tracking")
