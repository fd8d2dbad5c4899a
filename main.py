from __future__ import annotations

import asyncio

import uvloop
from aiohttp import web
from loguru import logger

from santa.core.config import load_settings
from santa.core.logging import setup_logging
from santa.web import create_app


async def main() -> None:
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_path)

    app = create_app(settings)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, settings.host, settings.port)
    await site.start()

    logger.info("Backend running on {host}:{port}", host=settings.host, port=settings.port)
    logger.info("Draw attempts - {attempts}", attempts=settings.max_attempts)
    logger.info(
        "Exhaustive fallback - {mode}",
        mode="Enabled" if settings.exhaustive_fallback else "Disabled",
    )

    try:
        await asyncio.Event().wait()
    finally:
        logger.info("server stopping...")
        await runner.cleanup()
        logger.info("server stopped")


if __name__ == "__main__":
    if not getattr(asyncio, "debug", False):
        uvloop.install()

    asyncio.run(main())
