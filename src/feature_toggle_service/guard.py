"""Route guard that rejects requests for disabled features."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, status
from starlette.responses import JSONResponse

from .services.feature_toggles import FeatureToggleService

LOGGER = logging.getLogger(__name__)


class FeatureDisabledError(Exception):
    """Signals that the request targets a feature switched off by an administrator."""

    def __init__(self, feature_key: str) -> None:
        super().__init__(f'The feature "{feature_key}" is currently disabled.')
        self.feature_key = feature_key


def get_toggle_service(request: Request) -> FeatureToggleService:
    service: FeatureToggleService = request.app.state.feature_toggle_service
    return service


def require_feature(feature_key: str) -> Callable[[Request], Awaitable[None]]:
    """Build a dependency that lets the request through only while ``feature_key`` is enabled.

    Usage::

        @router.delete("/events/{event_id}", dependencies=[Depends(require_feature("delete_events"))])
        async def delete_event(event_id: str) -> None: ...

    A failing check lets the request through.
    """

    async def _check_feature(request: Request) -> None:
        try:
            enabled = await get_toggle_service(request).is_enabled(feature_key)
        except Exception:
            LOGGER.exception("Feature check failed for %s, allowing request", feature_key)
            return
        if not enabled:
            LOGGER.info("Rejected request to disabled feature %s", feature_key)
            raise FeatureDisabledError(feature_key)

    return _check_feature


async def feature_disabled_handler(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        {"error": "Feature disabled", "message": str(exc)},
        status_code=status.HTTP_403_FORBIDDEN,
    )


def register_guard(app: FastAPI) -> None:
    app.add_exception_handler(FeatureDisabledError, feature_disabled_handler)
