"""Watchdog-backed raw watch source for the scene directory."""

import asyncio
import concurrent.futures
import os
from pathlib import Path

import structlog
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from kitbash.events.types import RawKind, RawNotification

logger = structlog.get_logger()

HANDOFF_TIMEOUT = 5.0

EVENT_KIND_MAP: dict[str, RawKind] = {
    EVENT_TYPE_CREATED: RawKind.CREATE,
    EVENT_TYPE_MODIFIED: RawKind.MODIFY,
    EVENT_TYPE_DELETED: RawKind.REMOVE,
    EVENT_TYPE_MOVED: RawKind.MODIFY,
}


class WatchSourceError(Exception):
    """Raised when the directory watch cannot be established."""

    def __init__(self, message: str, path: str) -> None:
        """Initialize watch source error.

        Args:
            message: Error description.
            path: The directory that could not be watched.
        """
        super().__init__(message)
        self.path = path


def to_raw_notification(event: FileSystemEvent) -> RawNotification:
    """Translate a watchdog event into a raw notification.

    Renames become a single MODIFY naming both paths. Event types without
    a mapping (opened, closed, ...) become OTHER.

    Args:
        event: Watchdog filesystem event.

    Returns:
        Raw notification carrying the affected paths.
    """
    paths = [os.fsdecode(event.src_path)]
    dest_path = getattr(event, "dest_path", "")
    if dest_path:
        paths.append(os.fsdecode(dest_path))

    kind = EVENT_KIND_MAP.get(event.event_type, RawKind.OTHER)
    return RawNotification(paths=tuple(paths), kind=kind)


class ForwardingHandler(FileSystemEventHandler):
    """Watchdog handler that forwards every event into an asyncio queue.

    Runs on the observer thread and blocks it until the loop has room in
    the queue, so a busy pipeline slows the OS side rather than dropping.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        queue: asyncio.Queue[RawNotification],
    ) -> None:
        super().__init__()
        self._loop = loop
        self._queue = queue

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Hand a translated event over to the event loop.

        Args:
            event: Raw watchdog filesystem event.
        """
        notification = to_raw_notification(event)
        try:
            future = asyncio.run_coroutine_threadsafe(
                self._queue.put(notification), self._loop
            )
        except RuntimeError as e:
            logger.warning("raw_notification_dropped", reason=str(e))
            return

        try:
            future.result(timeout=HANDOFF_TIMEOUT)
        except concurrent.futures.TimeoutError:
            future.cancel()
            logger.warning(
                "raw_notification_dropped",
                reason="handoff_timeout",
                paths=notification.paths,
            )
        except concurrent.futures.CancelledError:
            logger.debug("raw_notification_cancelled", paths=notification.paths)


class WatchSource:
    """Non-recursive watch of a single directory.

    Wraps a watchdog Observer and delivers every notification, unfiltered,
    into a bounded queue consumed by the debounce engine.

    Attributes:
        path: Directory being watched.
    """

    def __init__(
        self,
        path: str | Path,
        loop: asyncio.AbstractEventLoop,
        queue: asyncio.Queue[RawNotification],
    ) -> None:
        """Initialize the watch source.

        Args:
            path: Directory to watch.
            loop: Event loop owning the queue.
            queue: Bounded queue receiving raw notifications.
        """
        self._path = str(path)
        self._handler = ForwardingHandler(loop, queue)
        self._observer: Observer | None = None  # pyright: ignore[reportInvalidTypeForm]

    @property
    def path(self) -> str:
        """Directory being watched."""
        return self._path

    @property
    def is_running(self) -> bool:
        """Whether the observer thread is alive."""
        return self._observer is not None and self._observer.is_alive()

    def start(self) -> None:
        """Establish the watch and start the observer thread.

        Raises:
            WatchSourceError: If the path is missing, is not a directory,
                or the OS watch cannot be attached.
        """
        p = Path(self._path)
        if not p.exists():
            raise WatchSourceError(f"Watch path does not exist: {self._path}", self._path)
        if not p.is_dir():
            raise WatchSourceError(f"Watch path is not a directory: {self._path}", self._path)

        observer = Observer()
        try:
            observer.schedule(self._handler, self._path, recursive=False)
            observer.start()
        except OSError as e:
            raise WatchSourceError(
                f"Failed to watch directory: {e}", self._path
            ) from e

        self._observer = observer
        logger.info("watch_source_started", path=self._path)

    def stop(self) -> None:
        """Stop the observer thread."""
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=HANDOFF_TIMEOUT)
            self._observer = None

        logger.info("watch_source_stopped", path=self._path)
