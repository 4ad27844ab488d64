"""HTTP query service and backend runtime.

``create_app`` builds the aiohttp application serving the latest stored
location. ``JulsServer`` wires store, UDP listener and HTTP site together
and owns their lifecycle.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from aiohttp import web

from pyjuls._constants import HEALTH_PATH, LATEST_LOCATION_PATH, PACKAGE_VERSION
from pyjuls.config import ServerConfig
from pyjuls.listener import UdpListener
from pyjuls.store import LocationStore

_logger = logging.getLogger(__name__)

STORE_KEY = web.AppKey("store", LocationStore)
LISTENER_KEY = web.AppKey("listener", UdpListener)

_Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


# ------------------------------------------------------------------
# Middlewares
# ------------------------------------------------------------------


@web.middleware
async def _server_fault_middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
    """Answer unexpected failures with a JSON 500, never with 404."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except Exception:
        _logger.exception("Unhandled error serving %s %s", request.method, request.path)
        return web.json_response({"error": "internal server error"}, status=500)


def _cors_middleware(origins: tuple[str, ...]) -> Callable[..., Awaitable[web.StreamResponse]]:
    allow_any = "*" in origins

    @web.middleware
    async def middleware(request: web.Request, handler: _Handler) -> web.StreamResponse:
        response = await handler(request)
        origin = request.headers.get("Origin")
        if allow_any:
            response.headers["Access-Control-Allow-Origin"] = "*"
        elif origin is not None and origin in origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
        return response

    return middleware


# ------------------------------------------------------------------
# Handlers
# ------------------------------------------------------------------


async def handle_latest_location(request: web.Request) -> web.Response:
    """Return the latest report as JSON, or an empty 404 when none exists."""
    report = request.app[STORE_KEY].get()
    if report is None:
        return web.Response(status=404, headers={"Cache-Control": "no-store"})
    return web.json_response(report.to_payload(), headers={"Cache-Control": "no-store"})


async def handle_health(request: web.Request) -> web.Response:
    report, updated_at = request.app[STORE_KEY].snapshot()
    body: dict[str, Any] = {
        "status": "healthy",
        "version": PACKAGE_VERSION,
        "has_location": report is not None,
        "updated_at": updated_at.isoformat() if updated_at is not None else None,
    }
    listener = request.app.get(LISTENER_KEY)
    if listener is not None:
        stats = listener.stats
        body["listener"] = {
            "running": listener.is_running,
            "received": stats.received,
            "accepted": stats.accepted,
            "rejected": stats.rejected,
            "errors": stats.errors,
        }
    return web.json_response(body)


def create_app(
    store: LocationStore,
    config: ServerConfig | None = None,
    *,
    listener: UdpListener | None = None,
) -> web.Application:
    """Build the aiohttp application for *store*."""
    config = config or ServerConfig()
    app = web.Application(middlewares=[_cors_middleware(config.cors_origins), _server_fault_middleware])
    app[STORE_KEY] = store
    if listener is not None:
        app[LISTENER_KEY] = listener

    app.router.add_get(LATEST_LOCATION_PATH, handle_latest_location)
    app.router.add_get(HEALTH_PATH, handle_health)
    return app


# ------------------------------------------------------------------
# Runtime
# ------------------------------------------------------------------


class JulsServer:
    """UDP ingestion plus HTTP query service sharing one store.

    Usage::

        async with JulsServer(ServerConfig.from_env()) as server:
            await server.serve_forever()
    """

    def __init__(
        self,
        config: ServerConfig | None = None,
        *,
        store: LocationStore | None = None,
    ) -> None:
        self._config = config or ServerConfig()
        self._store = store or LocationStore()
        self._listener = UdpListener.from_config(self._store, self._config)
        self._runner: web.AppRunner | None = None

    @property
    def store(self) -> LocationStore:
        return self._store

    @property
    def listener(self) -> UdpListener:
        return self._listener

    @property
    def udp_address(self) -> tuple[str, int] | None:
        return self._listener.address

    @property
    def http_address(self) -> tuple[str, int] | None:
        """The bound HTTP ``(host, port)`` once started."""
        runner = self._runner
        if runner is None or not runner.addresses:
            return None
        host, port = runner.addresses[0][:2]
        return host, port

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> JulsServer:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    async def start(self) -> None:
        """Bind the UDP listener, then the HTTP site."""
        self._listener.start()
        runner = web.AppRunner(create_app(self._store, self._config, listener=self._listener))
        try:
            await runner.setup()
            site = web.TCPSite(runner, self._config.http_host, self._config.http_port)
            await site.start()
        except Exception:
            await runner.cleanup()
            await asyncio.to_thread(self._listener.stop)
            raise
        self._runner = runner
        _logger.info("HTTP query service listening on %s:%s", *(self.http_address or ("?", "?")))

    async def stop(self) -> None:
        runner = self._runner
        self._runner = None
        try:
            if runner is not None:
                await runner.cleanup()
        finally:
            # Joining the listener thread blocks for up to one recv timeout.
            await asyncio.to_thread(self._listener.stop)

    async def serve_forever(self) -> None:
        """Block until cancelled."""
        if self._runner is None:
            raise RuntimeError("Server not started. Use 'async with JulsServer(...) as server:'")
        await asyncio.Event().wait()
