"""Minimal HTTP responder for platform liveness probes.

Hosting platforms that expect a web process to bind a port get one:
``GET /`` returns a banner and ``GET /health`` returns ``OK``. The responder
says nothing about the Slack connection; it only shows the process is up.
"""

from __future__ import annotations

import structlog
from aiohttp import web

from gen_alpha_bot.config.schema import HealthConfig

log = structlog.get_logger()

BANNER = "Gen Alpha Slack Bot is running! 🤖"


async def handle_root(request: web.Request) -> web.Response:
    return web.Response(text=BANNER)


async def handle_health(request: web.Request) -> web.Response:
    return web.Response(text="OK")


def create_app() -> web.Application:
    """Build the aiohttp application with the banner and health routes."""
    app = web.Application()
    app.router.add_get("/", handle_root)
    app.router.add_get("/health", handle_health)
    return app


class HealthServer:
    """Runs the health responder alongside the bot.

    Example:
        server = HealthServer(config.health)
        await server.start()
        ...
        await server.stop()
    """

    def __init__(self, config: HealthConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        """Return True while the server is accepting connections."""
        return self._runner is not None

    async def start(self) -> None:
        """Bind the configured host and port and start serving.

        Raises:
            OSError: If the port cannot be bound.
        """
        if self._runner is not None:
            return

        runner = web.AppRunner(create_app(), access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self._config.host, self._config.port)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise

        self._runner = runner
        log.info("health_server_started", host=self._config.host, port=self._config.port)

    async def stop(self) -> None:
        """Stop serving and release the port."""
        if self._runner is None:
            return
        await self._runner.cleanup()
        self._runner = None
        log.info("health_server_stopped")
