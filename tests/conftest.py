"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest
from bson import ObjectId
from dotenv import load_dotenv
from pymongo.errors import ServerSelectionTimeoutError

# Load .env before any imports that use settings
ROOT_DIR = Path(__file__).resolve().parents[1]
ENV_FILE = ROOT_DIR / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE)
os.environ.setdefault("APP_ENV", "test")

from feature_toggle_service.models.dto import (  # noqa: E402
    FeatureToggle,
    FeatureToggleCreate,
    utcnow,
)
from feature_toggle_service.services.store import (  # noqa: E402
    DuplicateFeatureKeyError,
    MongoToggleStore,
)


class FakeToggleStore:
    """In-memory ``ToggleStore`` with a switch that makes every call fail."""

    def __init__(self, toggles: list[FeatureToggle] | None = None) -> None:
        self.records: dict[str, FeatureToggle] = {
            toggle.feature_key: toggle for toggle in toggles or []
        }
        self.failing = False
        self.list_calls = 0
        self.fail_inserts: set[str] = set()

    def _check(self) -> None:
        if self.failing:
            raise ServerSelectionTimeoutError("store unreachable")

    async def probe(self) -> None:
        self._check()

    async def list_toggles(self, category: str | None = None) -> list[FeatureToggle]:
        self.list_calls += 1
        self._check()
        # unordered on purpose, callers are responsible for sorting
        toggles = list(reversed(list(self.records.values())))
        if category is not None:
            toggles = [toggle for toggle in toggles if toggle.category == category]
        return toggles

    async def get_toggle(self, feature_key: str) -> FeatureToggle | None:
        self._check()
        return self.records.get(feature_key)

    async def insert_toggle(
        self, data: FeatureToggleCreate, updated_by: str | None = None
    ) -> FeatureToggle:
        self._check()
        if data.feature_key in self.fail_inserts:
            raise ServerSelectionTimeoutError(f"insert of {data.feature_key} failed")
        if data.feature_key in self.records:
            raise DuplicateFeatureKeyError(data.feature_key)
        toggle = FeatureToggle(id=str(ObjectId()), updated_by=updated_by, **data.model_dump())
        self.records[data.feature_key] = toggle
        return toggle

    async def update_toggle(
        self,
        feature_key: str,
        changes: dict[str, Any],
        updated_by: str | None = None,
    ) -> FeatureToggle | None:
        self._check()
        unknown = set(changes) - MongoToggleStore.MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        current = self.records.get(feature_key)
        if current is None:
            return None
        update: dict[str, Any] = {**changes, "updated_at": utcnow()}
        if updated_by is not None:
            update["updated_by"] = updated_by
        updated = current.model_copy(update=update)
        self.records[feature_key] = updated
        return updated

    async def delete_toggle(self, feature_key: str) -> bool:
        self._check()
        return self.records.pop(feature_key, None) is not None

    async def distinct_categories(self) -> list[str]:
        self._check()
        return sorted({toggle.category for toggle in self.records.values()})


def make_toggle(
    feature_key: str,
    is_enabled: bool = True,
    category: str = "general",
    feature_name: str | None = None,
) -> FeatureToggle:
    return FeatureToggle(
        id=str(ObjectId()),
        feature_key=feature_key,
        feature_name=feature_name or feature_key.replace("_", " ").title(),
        is_enabled=is_enabled,
        category=category,
    )


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def store() -> FakeToggleStore:
    return FakeToggleStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
