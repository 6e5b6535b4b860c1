"""HTTP routers exposed by FastAPI."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request, status
from pymongo.errors import PyMongoError
from starlette.responses import JSONResponse

from ..guard import get_toggle_service
from ..models.dto import FeatureToggleCreate, FeatureToggleUpdate, ImportRequest
from ..services.feature_toggles import FeatureToggleService
from ..services.store import DuplicateFeatureKeyError

LOGGER = logging.getLogger(__name__)

admin_router = APIRouter(prefix="/admin/features", tags=["feature-toggles-admin"])
public_router = APIRouter(prefix="/features", tags=["feature-toggles"])

ServiceDep = Annotated[FeatureToggleService, Depends(get_toggle_service)]
AdminIdHeader = Annotated[str | None, Header(alias="X-Admin-Id")]


@admin_router.get("")
async def list_features(service: ServiceDep) -> dict[str, Any]:
    features = await service.get_all_features()
    categories = await service.get_categories()
    return {"success": True, "features": features, "categories": categories}


@admin_router.get("/categories")
async def list_categories(service: ServiceDep) -> dict[str, Any]:
    return {"success": True, "categories": await service.get_categories()}


@admin_router.get("/category/{category}")
async def list_features_by_category(category: str, service: ServiceDep) -> dict[str, Any]:
    features = await service.get_features_by_category(category)
    return {"success": True, "category": category, "features": features}


@admin_router.get("/export")
async def export_configuration(service: ServiceDep) -> dict[str, Any]:
    configuration = await service.export_configuration()
    return {
        "success": True,
        "configuration": configuration,
        "exported_at": datetime.now(timezone.utc).isoformat(),
    }


@admin_router.get("/{feature_key}")
async def get_feature(feature_key: str, service: ServiceDep) -> dict[str, Any]:
    feature = await service.get_feature(feature_key)
    if feature is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Feature '{feature_key}' not found",
        )
    return {"success": True, "feature": feature}


@admin_router.post("", status_code=status.HTTP_201_CREATED)
async def create_feature(
    payload: FeatureToggleCreate,
    service: ServiceDep,
    admin_id: AdminIdHeader = None,
) -> dict[str, Any]:
    try:
        created = await service.create_feature(payload, updated_by=admin_id)
    except DuplicateFeatureKeyError as error:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error)) from error
    return {"success": True, "feature": created}


@admin_router.patch("/{feature_key}/toggle")
async def toggle_feature(
    feature_key: str,
    payload: FeatureToggleUpdate,
    service: ServiceDep,
    admin_id: AdminIdHeader = None,
) -> dict[str, Any]:
    updated = await service.update_feature(feature_key, payload.enabled, updated_by=admin_id)
    if not updated:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Feature '{feature_key}' not found",
        )
    return {"success": True, "feature_key": feature_key, "enabled": payload.enabled}


@admin_router.delete("/{feature_key}")
async def delete_feature(feature_key: str, service: ServiceDep) -> dict[str, Any]:
    if not await service.delete_feature(feature_key):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Feature '{feature_key}' not found",
        )
    return {"success": True, "feature_key": feature_key}


@admin_router.post("/import")
async def import_configuration(
    payload: ImportRequest,
    service: ServiceDep,
    admin_id: AdminIdHeader = None,
) -> dict[str, Any]:
    result = await service.import_configuration(payload.configuration, updated_by=admin_id)
    return {"success": True, "details": result}


@admin_router.post("/reset-defaults")
async def reset_defaults(service: ServiceDep) -> dict[str, Any]:
    created = await service.reset_defaults()
    return {"success": True, "created": created}


@admin_router.post("/refresh-cache")
async def refresh_cache(service: ServiceDep) -> dict[str, Any]:
    await service.refresh_cache()
    return {"success": True, "cached": len(service.cache.snapshot())}


@public_router.get("")
async def public_features(service: ServiceDep) -> dict[str, Any]:
    return {"success": True, "features": await service.get_public_features()}


@public_router.get("/{feature_key}/status")
async def feature_status(feature_key: str, service: ServiceDep) -> dict[str, Any]:
    enabled = await service.is_enabled(feature_key)
    return {"success": True, "feature_key": feature_key, "enabled": enabled}


async def store_error_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.error("Feature toggle store error on %s: %s", request.url.path, exc)
    return JSONResponse(
        {"success": False, "message": "Feature toggle store is unavailable"},
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def register_routes(app: FastAPI) -> None:
    app.include_router(admin_router)
    app.include_router(public_router)
    app.add_exception_handler(PyMongoError, store_error_handler)
