"""FastAPI application factory and lifespan management."""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from kitbash import __version__
from kitbash.config import Settings
from kitbash.events import BroadcastHub, DebounceEngine, RawNotification, WatchSource
from kitbash.middleware.logging import RequestLoggingMiddleware
from kitbash.routes import files, health, ws

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Run the change notification pipeline for the app's lifetime.

    Starts the watch source, the debounce engine task and the broadcast
    hub. A watch that cannot be established aborts startup.

    Args:
        app: FastAPI application instance.

    Yields:
        None during application runtime.
    """
    settings: Settings = app.state.settings
    logger.info(
        "server_startup",
        host=settings.host,
        port=settings.port,
        scene_dir=str(settings.scene_dir),
    )

    broadcast_hub = BroadcastHub(
        queue_size=settings.subscriber_queue_size,
        max_subscribers=settings.max_subscribers,
    )
    engine = DebounceEngine(
        suffix=settings.file_suffix,
        window_ms=settings.debounce_ms,
    )
    raw_queue: asyncio.Queue[RawNotification] = asyncio.Queue(
        maxsize=settings.raw_queue_size,
    )
    watch_source = WatchSource(
        settings.scene_dir,
        loop=asyncio.get_running_loop(),
        queue=raw_queue,
    )

    app.state.broadcast_hub = broadcast_hub
    app.state.debounce_engine = engine
    app.state.watch_source = watch_source

    watch_source.start()
    engine_task = asyncio.create_task(engine.run(raw_queue, broadcast_hub))

    try:
        yield
    finally:
        await asyncio.to_thread(watch_source.stop)

        engine_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await engine_task

        broadcast_hub.close()
        logger.info("server_shutdown")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Factory function to create configured FastAPI application.

    Args:
        settings: Configuration instance. Creates default if None.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = Settings()

    app = FastAPI(
        title="Kitbash Viewer",
        version=__version__,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )
    app.state.settings = settings

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router, prefix="/api")
    app.include_router(files.router, prefix="/api")
    app.include_router(ws.router)
    app.mount(
        "/scene",
        StaticFiles(directory=settings.scene_dir, check_dir=False),
        name="scene",
    )

    return app
