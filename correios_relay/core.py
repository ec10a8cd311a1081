"""
Core relay service.
This is the main entry point for running the HTTP server.
"""

import asyncio
import signal
import sys
from typing import Optional
from aiohttp import web
from loguru import logger

from correios_relay import __version__
from correios_relay.config import RelayConfig
from correios_relay.logging_config import setup_logging
from correios_relay.server import create_app


class RelayServer:
    """
    Main relay service class.

    Owns the aiohttp runner and site, and shuts both down on signal.
    """

    def __init__(self, config: RelayConfig):
        self.config = config

        self._runner: Optional[web.AppRunner] = None
        self._site: Optional[web.TCPSite] = None
        self._stopped: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return self._site is not None

    async def start(self):
        """Start listening."""
        logger.info(f"Starting Correios relay v{__version__}")

        app = create_app(self.config)
        self._runner = web.AppRunner(app, access_log=None)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await self._site.start()

        logger.info(
            f"Relay listening on {self.config.host}:{self.config.port} "
            f"(origin {self.config.frontend_origin})"
        )

    async def stop(self):
        """Stop the server and release the carrier session."""
        logger.info("Stopping relay...")

        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None

        if self._stopped:
            self._stopped.set()

        logger.info("Relay stopped")

    async def serve_forever(self):
        """Start and block until stop() is called."""
        self._stopped = asyncio.Event()
        await self.start()
        await self._stopped.wait()

    def run(self):
        """Run the relay (blocking)."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        def signal_handler():
            logger.info("Received shutdown signal")
            loop.create_task(self.stop())

        try:
            if sys.platform != "win32":
                loop.add_signal_handler(signal.SIGTERM, signal_handler)
                loop.add_signal_handler(signal.SIGINT, signal_handler)
        except NotImplementedError:
            pass

        try:
            loop.run_until_complete(self.serve_forever())
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received")
            loop.run_until_complete(self.stop())
        finally:
            loop.close()


def run_relay(config_file: Optional[str] = None, port: Optional[int] = None):
    """
    Run the Correios relay.

    Args:
        config_file: Path to configuration file
        port: Override the configured listen port
    """
    config = RelayConfig.from_env(config_file)
    if port is not None:
        config.port = port

    setup_logging(config, console=True)

    errors = config.validate()
    if errors:
        for error in errors:
            logger.error(f"Config error: {error}")
        raise RuntimeError("Invalid configuration")

    RelayServer(config).run()
