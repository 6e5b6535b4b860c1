"""HTTP-level tests for the admin and public toggle routers."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
from conftest import FakeClock, FakeToggleStore
from fakeredis.aioredis import FakeRedis
from fastapi import FastAPI

from feature_toggle_service.app import create_app
from feature_toggle_service.config import Settings
from feature_toggle_service.services.cache import ToggleCache
from feature_toggle_service.services.defaults import DEFAULT_TOGGLES
from feature_toggle_service.services.feature_toggles import FeatureToggleService


@pytest.fixture
async def service(store: FakeToggleStore, clock: FakeClock) -> FeatureToggleService:
    service = FeatureToggleService(store, cache=ToggleCache(store, clock=clock))
    await service.initialize()
    return service


@pytest.fixture
def app(service: FeatureToggleService) -> FastAPI:
    app = create_app(Settings(app_env="test", admin_rate_limit=5))
    app.state.feature_toggle_service = service
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.mark.asyncio
async def test_list_features(client: httpx.AsyncClient) -> None:
    response = await client.get("/admin/features")

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert len(body["features"]) == len(DEFAULT_TOGGLES)
    assert body["features"][0]["category"] == "analytics"
    assert "communication" in body["categories"]


@pytest.mark.asyncio
async def test_list_by_category(client: httpx.AsyncClient) -> None:
    response = await client.get("/admin/features/category/events")

    body = response.json()
    assert body["category"] == "events"
    assert [feature["feature_key"] for feature in body["features"]] == [
        "delete_events",
        "event_export",
    ]


@pytest.mark.asyncio
async def test_toggle_feature_and_status(client: httpx.AsyncClient, store: FakeToggleStore) -> None:
    response = await client.patch(
        "/admin/features/dark_mode/toggle",
        json={"enabled": False},
        headers={"X-Admin-Id": "admin-7"},
    )
    status_response = await client.get("/features/dark_mode/status")

    assert response.status_code == 200
    assert response.json() == {"success": True, "feature_key": "dark_mode", "enabled": False}
    assert status_response.json()["enabled"] is False
    assert store.records["dark_mode"].updated_by == "admin-7"


@pytest.mark.asyncio
async def test_get_single_feature(client: httpx.AsyncClient) -> None:
    found = await client.get("/admin/features/dark_mode")
    missing = await client.get("/admin/features/missing")

    assert found.json()["feature"]["category"] == "ui"
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_toggle_rejects_non_boolean(client: httpx.AsyncClient) -> None:
    response = await client.patch("/admin/features/dark_mode/toggle", json={"enabled": "no"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_toggle_unknown_feature(client: httpx.AsyncClient) -> None:
    response = await client.patch("/admin/features/missing/toggle", json={"enabled": True})

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_create_and_duplicate(client: httpx.AsyncClient, store: FakeToggleStore) -> None:
    payload = {"feature_key": "beta_calendar", "feature_name": "Beta calendar", "category": "ui"}

    created = await client.post("/admin/features", json=payload)
    duplicate = await client.post("/admin/features", json=payload)

    assert created.status_code == 201
    assert created.json()["feature"]["feature_key"] == "beta_calendar"
    assert duplicate.status_code == 409
    assert len([key for key in store.records if key == "beta_calendar"]) == 1


@pytest.mark.asyncio
async def test_delete_feature(client: httpx.AsyncClient) -> None:
    deleted = await client.delete("/admin/features/event_export")
    missing = await client.delete("/admin/features/event_export")

    assert deleted.status_code == 200
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_export_then_import(client: httpx.AsyncClient, store: FakeToggleStore) -> None:
    exported = (await client.get("/admin/features/export")).json()["configuration"]
    for row in exported:
        row["is_enabled"] = row["feature_key"] != "chatbot_support"
    exported.append({"feature_key": "ghost", "is_enabled": False})

    response = await client.post("/admin/features/import", json={"configuration": exported})

    details = response.json()["details"]
    assert details["success"] == len(DEFAULT_TOGGLES)
    assert details["errors"] == ["Unknown feature: ghost"]
    assert store.records["chatbot_support"].is_enabled is False


@pytest.mark.asyncio
async def test_import_rejects_blank_category(client: httpx.AsyncClient, store: FakeToggleStore) -> None:
    response = await client.post(
        "/admin/features/import",
        json={"configuration": [{"feature_key": "dark_mode", "category": ""}]},
    )

    assert response.status_code == 422
    assert store.records["dark_mode"].category == "ui"


@pytest.mark.asyncio
@pytest.mark.parametrize("feature_key", ["Bad/Key", "export", "categories"])
async def test_create_rejects_unroutable_keys(
    client: httpx.AsyncClient, store: FakeToggleStore, feature_key: str
) -> None:
    payload = {"feature_key": feature_key, "feature_name": "Shadowed", "category": "ui"}

    response = await client.post("/admin/features", json=payload)

    assert response.status_code == 422
    assert feature_key not in store.records


@pytest.mark.asyncio
async def test_reset_defaults_and_refresh(client: httpx.AsyncClient, store: FakeToggleStore) -> None:
    del store.records["dark_mode"]

    reset = await client.post("/admin/features/reset-defaults")
    refreshed = await client.post("/admin/features/refresh-cache")

    assert reset.json() == {"success": True, "created": 1}
    assert refreshed.json() == {"success": True, "cached": len(DEFAULT_TOGGLES)}


@pytest.mark.asyncio
async def test_public_features_map(client: httpx.AsyncClient) -> None:
    response = await client.get("/features")

    features = response.json()["features"]
    assert features["dark_mode"] is True
    assert set(features) == {toggle.feature_key for toggle in DEFAULT_TOGGLES}


@pytest.mark.asyncio
async def test_unknown_feature_status_is_enabled(client: httpx.AsyncClient) -> None:
    response = await client.get("/features/not_deployed_yet/status")

    assert response.json()["enabled"] is True


@pytest.mark.asyncio
async def test_store_outage_on_admin_route(
    client: httpx.AsyncClient, store: FakeToggleStore
) -> None:
    store.failing = True

    listing = await client.get("/admin/features")
    toggle = await client.patch("/admin/features/dark_mode/toggle", json={"enabled": False})
    status_response = await client.get("/features/dark_mode/status")

    assert listing.status_code == 500
    assert listing.json()["success"] is False
    assert toggle.status_code == 500
    assert status_response.json()["enabled"] is True


@pytest.mark.asyncio
async def test_admin_rate_limit(app: FastAPI, client: httpx.AsyncClient) -> None:
    app.state.redis = FakeRedis(decode_responses=True)

    statuses = [(await client.get("/admin/features/categories")).status_code for _ in range(6)]
    public = await client.get("/features")

    assert statuses == [200] * 5 + [429]
    assert public.status_code == 200


@pytest.mark.asyncio
async def test_health(client: httpx.AsyncClient) -> None:
    response = await client.get("/health")

    assert response.json() == {"status": "ok"}
