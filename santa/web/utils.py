from __future__ import annotations

from typing import Any, Dict, Optional

from aiohttp import web
from loguru import logger

from santa.core.config import Settings
from santa.services.draw_flow import (
    DrawClosed,
    DrawError,
    DrawNotFound,
    InvalidName,
    MemberNotFound,
    NameTaken,
    NoResultYet,
    SelfExclusion,
)
from santa.services.rate_limit import RateLimiter

SETTINGS_KEY = web.AppKey("settings", Settings)
RATE_LIMITER_KEY = web.AppKey("rate_limiter", RateLimiter)

ERROR_STATUS = {
    DrawNotFound: 404,
    MemberNotFound: 404,
    InvalidName: 400,
    NameTaken: 400,
    DrawClosed: 400,
    SelfExclusion: 400,
    NoResultYet: 400,
}


def json_error(message: str, status: int) -> web.Response:
    return web.json_response({"error": message}, status=status)


def draw_error_response(error: DrawError) -> web.Response:
    return json_error(str(error), ERROR_STATUS.get(type(error), 400))


async def read_json(request: web.Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise web.HTTPBadRequest(
            text='{"error": "Invalid JSON body"}', content_type="application/json"
        ) from None
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(
            text='{"error": "JSON body must be an object"}', content_type="application/json"
        )
    return body


def client_key(request: web.Request) -> str:
    return request.remote or "unknown"


def log_handler_exception(action: str, draw_code: Optional[str], error: Exception) -> None:
    logger.bind(action=action, draw=draw_code).exception(
        "Handler error: {error}", error=str(error)
    )


@web.middleware
async def rate_limit_middleware(request: web.Request, handler):
    resource = request.match_info.route.resource
    action = resource.canonical if resource is not None else request.path
    result = request.app[RATE_LIMITER_KEY].allow(f"{client_key(request)}:{action}")
    if not result.allowed:
        logger.bind(action=action, client=client_key(request)).warning("Rate limited")
        return web.json_response(
            {"error": "You're doing that too often. Please slow down."},
            status=429,
            headers={"Retry-After": str(int(result.retry_after) + 1)},
        )
    return await handler(request)


@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except DrawError as exc:
        return draw_error_response(exc)
    except Exception as exc:
        log_handler_exception(request.path, request.match_info.get("code"), exc)
        return json_error("Something went wrong. Please try again later.", 500)
