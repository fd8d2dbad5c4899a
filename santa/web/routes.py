from __future__ import annotations

from aiohttp import web
from loguru import logger

from santa.db import get_session
from santa.services import draw_flow
from santa.services.assignment import AssignmentError, GenerationFailed
from santa.web.utils import SETTINGS_KEY, json_error, read_json

routes = web.RouteTableDef()


@routes.get("/", name="health")
async def health_handler(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


@routes.post("/sessions", name="create_session")
async def create_session_handler(request: web.Request) -> web.Response:
    body = await read_json(request)
    with get_session() as session:
        result = draw_flow.create_draw(session, body.get("name"))
        payload = {"sessionId": result.draw.code, "userId": result.member.token}
    return web.json_response(payload)


@routes.post("/sessions/{code}/join", name="join_session")
async def join_session_handler(request: web.Request) -> web.Response:
    body = await read_json(request)
    with get_session() as session:
        result = draw_flow.join_draw(session, request.match_info["code"], body.get("name"))
        payload = {"userId": result.member.token}
    return web.json_response(payload)


@routes.get("/sessions/{code}", name="get_session")
async def get_session_handler(request: web.Request) -> web.Response:
    with get_session() as session:
        view = draw_flow.describe_draw(session, request.match_info["code"])

    return web.json_response(
        {
            "id": view.code,
            "users": [
                {
                    "id": member.token,
                    "name": member.name,
                    "ready": member.ready,
                    "excludedUserIds": member.excluded_tokens,
                }
                for member in view.members
            ],
            "hasResult": view.has_result,
        }
    )


@routes.post("/sessions/{code}/exclusions", name="toggle_exclusion")
async def toggle_exclusion_handler(request: web.Request) -> web.Response:
    body = await read_json(request)
    with get_session() as session:
        excluded = draw_flow.toggle_exclusion(
            session,
            request.match_info["code"],
            body.get("userId"),
            body.get("excludedUserId"),
        )
    return web.json_response({"excludedUserIds": excluded})


@routes.post("/sessions/{code}/ready", name="ready")
async def ready_handler(request: web.Request) -> web.Response:
    code = request.match_info["code"]
    user_id = request.headers.get("X-User-Id")
    if not user_id:
        return json_error("Missing or invalid user id", 400)

    settings = request.app[SETTINGS_KEY]
    with get_session() as session:
        try:
            result = draw_flow.mark_ready(
                session,
                code,
                user_id,
                max_attempts=settings.max_attempts,
                exhaustive_fallback=settings.exhaustive_fallback,
            )
        except GenerationFailed as exc:
            # keep the ready flags: a later ready call retries with a new seed
            logger.bind(draw=code, attempts=exc.attempts).warning("Assignment generation failed")
            return json_error(str(exc), 422)
        except AssignmentError as exc:
            return json_error(str(exc), 400)
        has_result = result.has_result

    return web.json_response({"status": "ready", "hasResult": has_result})


@routes.get("/sessions/{code}/result", name="result")
async def result_handler(request: web.Request) -> web.Response:
    with get_session() as session:
        recipient = draw_flow.get_recipient(
            session,
            request.match_info["code"],
            request.query.get("userId"),
        )
        payload = {"name": recipient.name}
    return web.json_response(payload)
