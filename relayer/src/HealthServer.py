"""HealthServer: HTTP health and metrics endpoints for daemon mode.

Routes:
    GET /health   -> 200, StatusSnapshot as JSON
    GET /metrics  -> 200, Prometheus text format
    anything else -> 404 "Not Found"
"""

from __future__ import annotations

import logging
from typing import Callable

from aiohttp import web

from .metrics import render_latest
from .PriceRelayer import StatusSnapshot

logger = logging.getLogger(__name__)


def create_app(status_fn: Callable[[], StatusSnapshot]) -> web.Application:
    """Build the health check application.

    :param status_fn: Callable returning the current status snapshot.
    :returns: aiohttp application.
    """

    async def health(request: web.Request) -> web.Response:
        return web.json_response(status_fn().to_dict())

    async def metrics(request: web.Request) -> web.Response:
        body, content_type = render_latest()
        return web.Response(body=body, headers={"Content-Type": content_type})

    async def not_found(request: web.Request) -> web.Response:
        return web.Response(status=404, text="Not Found")

    app = web.Application()
    app.router.add_get("/health", health, allow_head=False)
    app.router.add_get("/metrics", metrics, allow_head=False)
    app.router.add_route("*", "/{tail:.*}", not_found)
    return app


class HealthServer:
    """Runs the health check application on a TCP port.

    :ivar port: Requested port (0 picks a free port).
    :ivar host: Bind address.
    """

    def __init__(
        self,
        status_fn: Callable[[], StatusSnapshot],
        port: int,
        host: str = "0.0.0.0",
    ) -> None:
        """Initialize the server.

        :param status_fn: Callable returning the current status snapshot.
        :param port: Port to listen on.
        :param host: Address to bind.
        """
        self.port = port
        self.host = host
        self._app = create_app(status_fn)
        self._runner: web.AppRunner | None = None

    @property
    def listening(self) -> bool:
        """Check whether the server is accepting connections."""
        return self._runner is not None

    @property
    def bound_port(self) -> int | None:
        """Return the actual listening port."""
        if self._runner is None:
            return None
        for address in self._runner.addresses:
            if isinstance(address, tuple) and len(address) >= 2:
                return int(address[1])
        return self.port

    async def start(self) -> None:
        """Start listening."""
        runner = web.AppRunner(self._app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self.host, self.port)
        try:
            await site.start()
        except BaseException:
            await runner.cleanup()
            raise
        self._runner = runner
        logger.info(
            f"Health check endpoint available at http://localhost:{self.bound_port}/health"
        )

    async def stop(self) -> None:
        """Stop listening. Safe to call more than once."""
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        await runner.cleanup()
        logger.info("Health check server stopped")
