from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from fibber.messaging.router import MessageRouter
from fibber.server.settings import GameServerSettings
from fibber.server.websocket import websocket_endpoint
from fibber.session.manager import SessionManager
from shared.build_info import APP_VERSION
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket


async def health(request: Request) -> JSONResponse:
    uptime = time.monotonic() - request.app.state.started_at
    return JSONResponse({"status": "ok", "version": APP_VERSION, "uptime_seconds": round(uptime, 1)})


async def status(request: Request) -> JSONResponse:
    session_manager: SessionManager = request.app.state.session_manager
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "active_rooms": session_manager.room_count,
            "total_players": session_manager.player_count,
            "connected_players": session_manager.connected_player_count,
            "games_played": session_manager.games_played,
            "max_rooms": session_manager.max_rooms,
            "rooms": [info.model_dump(mode="json") for info in session_manager.get_rooms_info()],
        },
    )


def create_app(
    settings: GameServerSettings | None = None,
    session_manager: SessionManager | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = GameServerSettings()

    if session_manager is None:
        session_manager = SessionManager(
            settings.game_settings(),
            max_rooms=settings.max_rooms,
            room_idle_ttl_seconds=settings.room_idle_ttl_seconds,
            abandoned_room_grace_seconds=settings.abandoned_room_grace_seconds,
            reaper_interval_seconds=settings.reaper_interval_seconds,
        )

    if message_router is None:
        message_router = MessageRouter(session_manager)
    session_manager.on_room_evicted = message_router.handle_room_evicted

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    @asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        session_manager.start_room_reaper()
        logger.info("game server ready", max_rooms=settings.max_rooms)
        try:
            yield
        finally:
            await session_manager.stop_room_reaper()

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.session_manager = session_manager
    app.state.message_router = message_router
    app.state.started_at = time.monotonic()
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (``uvicorn --factory``)."""
    settings = GameServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
