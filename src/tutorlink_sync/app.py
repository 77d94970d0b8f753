from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
import socketio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tutorlink_sync.api.deps import get_verifier
from tutorlink_sync.api.middleware.correlation_id import CorrelationIdMiddleware
from tutorlink_sync.api.realtime import RealtimeServer, create_socket_server
from tutorlink_sync.api.v1.routers import health, notifications
from tutorlink_sync.application.exceptions import AppError, NotFoundError
from tutorlink_sync.config import settings
from tutorlink_sync.infrastructure.bus.redis_pubsub import RedisPubSubPusher, RedisPubSubSubscriber
from tutorlink_sync.infrastructure.db.uow import sqlalchemy_uow
from tutorlink_sync.infrastructure.ws.manager import ConnectionManager
from tutorlink_sync.infrastructure.ws.pusher import SocketPusher
from tutorlink_sync.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    realtime: RealtimeServer = app.state.realtime
    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        SocketPusher(realtime.sio, realtime.manager),
    )
    await subscriber.start()
    app.state.pubsub_subscriber = subscriber
    app.state.dispatcher = NotificationDispatcher(
        sqlalchemy_uow,
        RedisPubSubPusher(app.state.redis, settings.REDIS_PUBSUB_CHANNEL),
    )

    yield

    await subscriber.stop()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app(realtime: RealtimeServer | None = None) -> FastAPI:
    app = FastAPI(
        title="TutorLink Sync Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.realtime = realtime or RealtimeServer(
        create_socket_server(),
        get_verifier(),
        ConnectionManager(),
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(notifications.router)

    return app


def create_asgi_app() -> socketio.ASGIApp:
    """HTTP app with the Socket.IO server mounted at /socket.io."""
    app = create_app()
    return socketio.ASGIApp(app.state.realtime.sio, other_asgi_app=app)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": exc.detail})

    @app.exception_handler(AppError)
    async def _app_error(_req: Request, exc: AppError) -> JSONResponse:
        logger.warning("Unhandled application error: %s", exc.detail)
        return JSONResponse(status_code=500, content={"error": exc.detail})
