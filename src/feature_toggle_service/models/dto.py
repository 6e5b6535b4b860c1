"""Pydantic DTOs shared by the toggle service, routers and CLI."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

DEFAULT_CATEGORY = "general"
FEATURE_KEY_PATTERN = r"^[a-z0-9_]+$"
# taken by fixed GET routes under /admin/features
RESERVED_FEATURE_KEYS = frozenset({"categories", "export"})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeatureToggle(BaseModel):
    """One gateable capability as persisted in the ``feature_toggles`` collection."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque identifier assigned by the store")
    feature_key: str = Field(..., min_length=1, max_length=100)
    feature_name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    is_enabled: bool = True
    category: str = Field(default=DEFAULT_CATEGORY, max_length=50)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    updated_by: str | None = Field(
        default=None,
        description="Administrator that last changed the toggle",
    )

    @classmethod
    def from_mongo(cls, doc: dict[str, Any]) -> FeatureToggle:
        return cls(
            id=str(doc.get("_id") or doc.get("id")),
            feature_key=str(doc["feature_key"]),
            feature_name=str(doc.get("feature_name") or doc["feature_key"]),
            description=doc.get("description"),
            is_enabled=bool(doc.get("is_enabled", True)),
            category=str(doc.get("category") or DEFAULT_CATEGORY),
            created_at=doc.get("created_at") or utcnow(),
            updated_at=doc.get("updated_at") or utcnow(),
            updated_by=doc.get("updated_by"),
        )


class FeatureToggleCreate(BaseModel):
    """Payload accepted when an administrator registers a new toggle."""

    feature_key: str = Field(..., min_length=1, max_length=100, pattern=FEATURE_KEY_PATTERN)
    feature_name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    is_enabled: bool = True
    category: str = Field(default=DEFAULT_CATEGORY, min_length=1, max_length=50)

    @field_validator("feature_key")
    @classmethod
    def reject_reserved_key(cls, value: str) -> str:
        if value in RESERVED_FEATURE_KEYS:
            raise ValueError(f"'{value}' is reserved")
        return value


class FeatureToggleUpdate(BaseModel):
    enabled: StrictBool


class ImportEntry(BaseModel):
    """Single row of an exported configuration; only the key is mandatory."""

    feature_key: str = Field(..., min_length=1, max_length=100)
    feature_name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    is_enabled: bool | None = None
    category: str | None = Field(default=None, min_length=1, max_length=50)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude={"feature_key"}, exclude_none=True)


class ImportRequest(BaseModel):
    configuration: list[ImportEntry]


class ImportResult(BaseModel):
    success: int = 0
    errors: list[str] = Field(default_factory=list)
