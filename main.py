from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis import Redis

from clinic_api.config import get_settings
from clinic_api.infrastructure.analytics_cache import AnalyticsCache
from clinic_api.infrastructure.database import SessionLocal, engine, initialize_database
from clinic_api.infrastructure.notifications import (
    NotificationConnectionManager,
    NotificationGateway,
    NotificationPublisher,
    RedisNotificationRelay,
)
from clinic_api.infrastructure.redis_client import create_redis
from clinic_api.interfaces.api.routes import register_routes
from clinic_api.logging_config import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the database and the relay listener; release both on shutdown."""

    initialize_database()
    relay = app.state.notification_relay
    await relay.start()
    try:
        yield
    finally:
        await relay.stop()
        engine.dispose()


def create_app(
    *,
    relay: RedisNotificationRelay | None = None,
    cache_client: Redis | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``relay`` and ``cache_client`` default to Redis clients built from the
    settings; tests pass in-memory doubles.
    """

    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    relay = relay or RedisNotificationRelay.from_url(
        settings.redis_url, channel=settings.notification_channel
    )
    manager = NotificationConnectionManager()
    gateway = NotificationGateway(manager, relay, SessionLocal)
    relay.on_message(gateway.handle_relay_message)

    app.state.notification_relay = relay
    app.state.notification_manager = manager
    app.state.notification_gateway = gateway
    app.state.notification_publisher = NotificationPublisher(gateway)
    app.state.analytics_cache = AnalyticsCache(
        cache_client if cache_client is not None else create_redis(settings.redis_url)
    )

    register_routes(app)
    return app


app = create_app()
