"""Command line entry point for the viewer server."""

import argparse
import asyncio
import contextlib
import signal
import sys
import webbrowser
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from kitbash import __version__
from kitbash.app import create_app
from kitbash.config import Settings
from kitbash.lifecycle import GracefulShutdown
from kitbash.logging import configure_logging

logger = structlog.get_logger()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line flags.

    Flags left unset fall back to the environment-backed settings.

    Args:
        argv: Arguments to parse, defaults to sys.argv.

    Returns:
        Parsed namespace.
    """
    parser = argparse.ArgumentParser(
        prog="kitbash-viewer",
        description="3D mesh viewer server with live file watching.",
    )
    parser.add_argument("-p", "--port", type=int, help="Server port (default: 8080)")
    parser.add_argument("--host", help="Bind address (default: 127.0.0.1)")
    parser.add_argument(
        "-s",
        "--scene-dir",
        type=Path,
        help="Directory to watch for scene files (default: scene)",
    )
    parser.add_argument(
        "-o",
        "--open",
        dest="open_browser",
        action="store_true",
        default=None,
        help="Open the browser on startup",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=None,
        help="Enable debug logging and API docs",
    )
    parser.add_argument(
        "--console-logs",
        action="store_true",
        help="Human-readable logs instead of JSON",
    )
    parser.add_argument("-V", "--version", action="version", version=__version__)
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    """Overlay command line flags on environment settings."""
    overrides: dict[str, Any] = {
        key: value
        for key in ("port", "host", "scene_dir", "open_browser", "debug")
        if (value := getattr(args, key)) is not None
    }
    return Settings(**overrides)


async def open_browser_when_ready(
    server: uvicorn.Server,
    url: str,
    opener: Callable[[str], object] = webbrowser.open,
    poll_interval: float = 0.1,
) -> bool:
    """Open the browser once the server is accepting connections.

    Args:
        server: Server being started.
        url: Address to open.
        opener: Browser launcher, run in a worker thread.
        poll_interval: Seconds between startup checks.

    Returns:
        True if the browser was launched, False if startup was abandoned.
    """
    while not server.started:
        if server.should_exit:
            return False
        await asyncio.sleep(poll_interval)

    logger.info("browser_open", url=url)
    await asyncio.to_thread(opener, url)
    return True


async def serve(settings: Settings) -> int:
    """Run uvicorn with signal-driven graceful shutdown.

    Args:
        settings: Server configuration.

    Returns:
        Process exit code.
    """
    app = create_app(settings)
    shutdown = GracefulShutdown()

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level="warning",
        access_log=False,
        lifespan="on",
        timeout_graceful_shutdown=int(settings.shutdown_timeout),
    )
    server = uvicorn.Server(config)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.trigger)

    async def shutdown_server() -> None:
        """Wait for shutdown signal and stop server."""
        await shutdown.wait_for_trigger()
        server.should_exit = True

    tasks = [asyncio.create_task(shutdown_server())]
    if settings.open_browser:
        tasks.append(asyncio.create_task(open_browser_when_ready(server, settings.url)))

    logger.info("server_listening", url=settings.url, scene_dir=str(settings.scene_dir))

    try:
        await server.serve()
    finally:
        for task in tasks:
            task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await asyncio.gather(*tasks)

    # uvicorn returns without starting when the lifespan fails
    return 0 if server.started else 1


def main(argv: list[str] | None = None) -> None:
    """Entry point for python -m kitbash."""
    args = parse_args(argv)
    settings = build_settings(args)
    configure_logging(debug=settings.debug, json_logs=not args.console_logs)

    exit_code = 0
    with contextlib.suppress(KeyboardInterrupt):
        exit_code = asyncio.run(serve(settings))

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
