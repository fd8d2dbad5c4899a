from __future__ import annotations

from typing import Optional

from aiohttp import web
from loguru import logger

from santa.core.config import Settings, load_settings
from santa.db import dispose_engine, init_engine
from santa.services.rate_limit import RateLimiter
from santa.web.routes import routes
from santa.web.utils import (
    RATE_LIMITER_KEY,
    SETTINGS_KEY,
    error_middleware,
    rate_limit_middleware,
)


async def on_startup(app: web.Application) -> None:
    logger.info("store starting...")
    init_engine(app[SETTINGS_KEY].database_url)
    logger.info("store started")


async def on_cleanup(app: web.Application) -> None:
    logger.info("store stopping...")
    dispose_engine()
    logger.info("store stopped")


def create_app(settings: Optional[Settings] = None) -> web.Application:
    settings = settings or load_settings()

    app = web.Application(middlewares=[error_middleware, rate_limit_middleware])
    app[SETTINGS_KEY] = settings
    app[RATE_LIMITER_KEY] = RateLimiter(
        max_calls=settings.rate_limit_calls,
        period_seconds=settings.rate_limit_period,
    )
    app.add_routes(routes)
    app.on_startup.append(on_startup)
    app.on_cleanup.append(on_cleanup)
    return app


__all__ = ["create_app"]
