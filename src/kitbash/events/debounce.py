"""Debounce and reclassification of raw notifications into semantic events."""

import asyncio
import os
import time
from collections.abc import Callable
from pathlib import PurePath

import structlog

from kitbash.events.hub import BroadcastHub
from kitbash.events.types import (
    RAW_KIND_TO_EVENT_TYPE,
    DebounceRecord,
    EventType,
    FileChangeEvent,
    RawKind,
    RawNotification,
)

logger = structlog.get_logger()


def file_exists(path: str) -> bool | None:
    """Check whether a path currently exists on disk.

    Args:
        path: Path to stat.

    Returns:
        True if present, False if missing, None if the check itself failed.
    """
    try:
        os.stat(path)
    except FileNotFoundError:
        return False
    except (OSError, ValueError) as e:
        logger.debug("existence_check_failed", path=path, error=str(e))
        return None
    return True


def extract_filename(path: str) -> str | None:
    """Extract the filename component of a path.

    Args:
        path: Absolute or relative path.

    Returns:
        Filename if present and valid UTF-8, None otherwise.
    """
    name = PurePath(path).name
    if not name:
        return None
    try:
        name.encode("utf-8")
    except UnicodeEncodeError:
        return None
    return name


class DebounceEngine:
    """Turns noisy raw notifications into deduplicated semantic events.

    Keeps one record per filename with the last emitted kind and time.
    A notification is emitted when the filename has no record yet, when
    its effective kind differs from the recorded one, or when the record
    is older than the debounce window. Records are never expired, and a
    removal stays recorded so duplicate removals are suppressed.

    The engine is meant to be driven by a single task via ``run``; that
    task is the only reader and writer of the records.

    Attributes:
        suffix: Case-sensitive filename suffix being tracked.
        window_ms: Debounce window in milliseconds.
    """

    def __init__(
        self,
        suffix: str = ".obj",
        window_ms: int = 100,
        clock: Callable[[], int] = time.monotonic_ns,
        exists: Callable[[str], bool | None] = file_exists,
    ) -> None:
        """Initialize debounce engine.

        Args:
            suffix: Filename suffix to track.
            window_ms: Debounce window in milliseconds.
            clock: Monotonic time source in nanoseconds.
            exists: Existence check returning None when it cannot tell.
        """
        self._suffix = suffix
        self._window_ms = window_ms
        self._window_ns = window_ms * 1_000_000
        self._clock = clock
        self._exists = exists
        self._records: dict[str, DebounceRecord] = {}
        self._emitted_count = 0
        self._suppressed_count = 0

    @property
    def suffix(self) -> str:
        return self._suffix

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def emitted_events(self) -> int:
        """Number of semantic events emitted."""
        return self._emitted_count

    @property
    def suppressed_events(self) -> int:
        """Number of notifications suppressed by debouncing."""
        return self._suppressed_count

    def record_for(self, filename: str) -> DebounceRecord | None:
        """Return the current record for a filename, if any."""
        return self._records.get(filename)

    def _classify(self, path: str, kind: RawKind) -> FileChangeEvent | None:
        filename = extract_filename(path)
        if filename is None:
            return None

        if not filename.endswith(self._suffix):
            return None

        if kind is RawKind.OTHER:
            return None

        present = self._exists(path)
        if present is None:
            return None

        # A reported removal stays a removal even if the file is present.
        effective = RAW_KIND_TO_EVENT_TYPE[kind] if present else EventType.FILE_REMOVED

        now = self._clock()
        record = self._records.get(filename)
        if (
            record is not None
            and record.kind is effective
            and now - record.timestamp <= self._window_ns
        ):
            self._suppressed_count += 1
            logger.debug(
                "file_event_suppressed",
                filename=filename,
                event_type=effective.value,
            )
            return None

        self._records[filename] = DebounceRecord(kind=effective, timestamp=now)
        self._emitted_count += 1
        return FileChangeEvent(type=effective, filename=filename)

    def process(self, notification: RawNotification) -> list[FileChangeEvent]:
        """Classify one raw notification.

        Args:
            notification: Raw notification from the watch source.

        Returns:
            Semantic events to publish, in path order. Empty when every
            path was filtered out or suppressed.
        """
        events = []
        for path in notification.paths:
            event = self._classify(path, notification.kind)
            if event is not None:
                events.append(event)
        return events

    async def run(
        self,
        queue: asyncio.Queue[RawNotification],
        hub: BroadcastHub,
    ) -> None:
        """Consume raw notifications and publish semantic events.

        Runs until cancelled.

        Args:
            queue: Queue fed by the watch source.
            hub: Hub receiving every emitted event.
        """
        logger.info(
            "debounce_engine_started",
            suffix=self._suffix,
            window_ms=self._window_ms,
        )
        try:
            while True:
                notification = await queue.get()
                for event in self.process(notification):
                    delivered = hub.publish(event)
                    logger.info(
                        "file_event_emitted",
                        event_type=event.type.value,
                        filename=event.filename,
                        delivered_to=delivered,
                    )
        except asyncio.CancelledError:
            logger.info(
                "debounce_engine_stopped",
                emitted_events=self._emitted_count,
                suppressed_events=self._suppressed_count,
            )
            raise
