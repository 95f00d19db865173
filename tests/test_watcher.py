"""Watch source tests."""

import asyncio
from pathlib import Path

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from kitbash.events.types import RawKind, RawNotification
from kitbash.events.watcher import WatchSource, WatchSourceError, to_raw_notification


@pytest.mark.parametrize(
    ("event", "kind"),
    [
        (FileCreatedEvent("/scene/a.obj"), RawKind.CREATE),
        (FileModifiedEvent("/scene/a.obj"), RawKind.MODIFY),
        (FileDeletedEvent("/scene/a.obj"), RawKind.REMOVE),
        (FileClosedEvent("/scene/a.obj"), RawKind.OTHER),
    ],
)
def test_event_kinds(event, kind: RawKind) -> None:
    assert to_raw_notification(event) == RawNotification(paths=("/scene/a.obj",), kind=kind)


def test_move_carries_both_paths() -> None:
    notification = to_raw_notification(FileMovedEvent("/scene/a.obj", "/scene/b.obj"))

    assert notification == RawNotification(
        paths=("/scene/a.obj", "/scene/b.obj"),
        kind=RawKind.MODIFY,
    )


def test_directory_events_are_forwarded() -> None:
    notification = to_raw_notification(DirModifiedEvent("/scene"))

    assert notification.paths == ("/scene",)
    assert notification.kind is RawKind.MODIFY


def test_bytes_paths_are_decoded() -> None:
    notification = to_raw_notification(FileCreatedEvent(b"/scene/a.obj"))

    assert notification.paths == ("/scene/a.obj",)


def test_start_fails_for_missing_directory(tmp_path: Path) -> None:
    async def scenario() -> None:
        source = WatchSource(tmp_path / "missing", asyncio.get_running_loop(), asyncio.Queue())
        with pytest.raises(WatchSourceError) as exc_info:
            source.start()
        assert exc_info.value.path == str(tmp_path / "missing")
        assert not source.is_running

    asyncio.run(scenario())


def test_start_fails_for_regular_file(tmp_path: Path) -> None:
    target = tmp_path / "scene.obj"
    target.write_text("")

    async def scenario() -> None:
        source = WatchSource(target, asyncio.get_running_loop(), asyncio.Queue())
        with pytest.raises(WatchSourceError):
            source.start()

    asyncio.run(scenario())


def test_delivers_notifications_for_new_files(tmp_path: Path) -> None:
    target = tmp_path / "a.obj"

    async def scenario() -> list[RawNotification]:
        queue: asyncio.Queue[RawNotification] = asyncio.Queue(maxsize=100)
        source = WatchSource(tmp_path, asyncio.get_running_loop(), queue)
        source.start()
        try:
            assert source.is_running
            await asyncio.to_thread(target.write_text, "v 0 0 0\n")

            seen = []
            while not any(n.kind is RawKind.CREATE for n in seen):
                seen.append(await asyncio.wait_for(queue.get(), timeout=5.0))
            return seen
        finally:
            await asyncio.to_thread(source.stop)

    seen = asyncio.run(scenario())

    created = [n for n in seen if n.kind is RawKind.CREATE]
    assert Path(created[0].paths[0]).name == "a.obj"
