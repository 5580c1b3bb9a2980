"""aiohttp application exposing the latest and historical PCR values.

Read endpoints only look at in-memory history; they never block on the
fetch pipeline. ``/api/pcr/fetch`` runs one collection pass on demand and
shares the scheduler's tick lock.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import orjson
from aiohttp import web

from ..exceptions import ApplicationError
from ..service import PCRService
from ..settings import TrackerSettings

logger = logging.getLogger(__name__)

SERVICE_KEY = web.AppKey("pcr_service", PCRService)


def _dumps(payload: Any) -> str:
    return orjson.dumps(payload).decode("utf-8")


def json_response(payload: Dict[str, Any], *, status: int = 200) -> web.Response:
    return web.json_response(payload, status=status, dumps=_dumps)


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ApplicationError as exc:
        logger.exception("Request %s failed", request.path)
        return json_response({"success": False, "message": str(exc)}, status=500)


async def health(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    payload = {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
    payload.update(service.health())
    return json_response(payload)


async def pcr_history(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    return json_response(service.history.history_view(service.market_hours.is_open()))


async def pcr_latest(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    return json_response(service.history.latest_view(service.market_hours.is_open()))


async def pcr_fetch(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    hours = service.market_hours
    if not hours.is_open():
        return json_response(
            {
                "success": False,
                "message": (
                    f"Market is closed. No fetching outside "
                    f"{hours.open_time:%H:%M} - {hours.close_time:%H:%M}."
                ),
            }
        )

    result = await service.manual_fetch()
    if result.all_failed:
        return json_response(
            {"success": False, "message": "PCR fetch failed", "errors": result.failures}
        )
    payload: Dict[str, Any] = {
        "success": True,
        "message": "PCR data fetched",
        "entriesCount": service.history.entries_count(),
    }
    if result.failures:
        payload["errors"] = result.failures
    return json_response(payload)


async def _on_startup(app: web.Application) -> None:
    await app[SERVICE_KEY].start()


async def _on_cleanup(app: web.Application) -> None:
    await app[SERVICE_KEY].close()


def build_app(service: PCRService, *, manage_lifecycle: bool = True) -> web.Application:
    """Create the web application around an existing service."""
    app = web.Application(middlewares=[error_middleware])
    app[SERVICE_KEY] = service
    app.router.add_get("/health", health)
    app.router.add_get("/api/pcr/history", pcr_history)
    app.router.add_get("/api/pcr/latest", pcr_latest)
    app.router.add_get("/api/pcr/fetch", pcr_fetch)
    if manage_lifecycle:
        app.on_startup.append(_on_startup)
        app.on_cleanup.append(_on_cleanup)
    return app


async def create_app(settings: Optional[TrackerSettings] = None) -> web.Application:
    """Application factory for ``web.run_app``."""
    service = await PCRService.create(settings)
    return build_app(service)
