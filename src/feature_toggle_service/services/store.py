"""Persistence layer for feature toggles."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from ..models.dto import FeatureToggle, FeatureToggleCreate, utcnow

LOGGER = logging.getLogger(__name__)


class DuplicateFeatureKeyError(ValueError):
    """Raised when a toggle with the same ``feature_key`` already exists."""

    def __init__(self, feature_key: str) -> None:
        super().__init__(f"Feature toggle '{feature_key}' already exists")
        self.feature_key = feature_key


class ToggleStore(Protocol):
    """Operations the cache and the service need from the backing table."""

    async def probe(self) -> None: ...

    async def list_toggles(self, category: str | None = None) -> list[FeatureToggle]: ...

    async def get_toggle(self, feature_key: str) -> FeatureToggle | None: ...

    async def insert_toggle(
        self, data: FeatureToggleCreate, updated_by: str | None = None
    ) -> FeatureToggle: ...

    async def update_toggle(
        self,
        feature_key: str,
        changes: dict[str, Any],
        updated_by: str | None = None,
    ) -> FeatureToggle | None: ...

    async def delete_toggle(self, feature_key: str) -> bool: ...

    async def distinct_categories(self) -> list[str]: ...


class MongoToggleStore:
    """``ToggleStore`` backed by a MongoDB collection with a unique ``feature_key`` index."""

    MUTABLE_FIELDS = {"feature_name", "description", "is_enabled", "category"}

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self._collection = collection

    async def ensure_indexes(self) -> None:
        await self._collection.create_index(
            [("feature_key", ASCENDING)], unique=True, name="feature_key_unique"
        )
        await self._collection.create_index([("category", ASCENDING)])

    async def probe(self) -> None:
        await self._collection.find_one({}, projection={"_id": 1})

    async def list_toggles(self, category: str | None = None) -> list[FeatureToggle]:
        query: dict[str, Any] = {}
        if category is not None:
            query["category"] = category
        documents = await self._collection.find(query).to_list(length=None)
        toggles: list[FeatureToggle] = []
        for doc in documents:
            try:
                toggles.append(FeatureToggle.from_mongo(doc))
            except (ValidationError, KeyError) as exc:
                # rows written by other apps sharing the collection
                LOGGER.warning(
                    "Skipping malformed feature toggle %s: %s", doc.get("_id"), exc
                )
        return toggles

    async def get_toggle(self, feature_key: str) -> FeatureToggle | None:
        doc = await self._collection.find_one({"feature_key": feature_key})
        return FeatureToggle.from_mongo(doc) if doc else None

    async def insert_toggle(
        self, data: FeatureToggleCreate, updated_by: str | None = None
    ) -> FeatureToggle:
        now = utcnow()
        document = {
            **data.model_dump(),
            "created_at": now,
            "updated_at": now,
            "updated_by": updated_by,
        }
        try:
            result = await self._collection.insert_one(document)
        except DuplicateKeyError as error:
            raise DuplicateFeatureKeyError(data.feature_key) from error
        document["_id"] = result.inserted_id
        return FeatureToggle.from_mongo(document)

    async def update_toggle(
        self,
        feature_key: str,
        changes: dict[str, Any],
        updated_by: str | None = None,
    ) -> FeatureToggle | None:
        unknown = set(changes) - self.MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        update = {**changes, "updated_at": utcnow()}
        if updated_by is not None:
            update["updated_by"] = updated_by
        doc = await self._collection.find_one_and_update(
            {"feature_key": feature_key},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        return FeatureToggle.from_mongo(doc) if doc else None

    async def delete_toggle(self, feature_key: str) -> bool:
        result = await self._collection.delete_one({"feature_key": feature_key})
        return result.deleted_count > 0

    async def distinct_categories(self) -> list[str]:
        values = await self._collection.distinct("category")
        return sorted(str(value) for value in values if value)
