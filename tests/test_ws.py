"""End-to-end WebSocket notification tests."""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from kitbash.app import create_app
from kitbash.config import Settings
from kitbash.events import EventType, FileChangeEvent, WatchSourceError
from kitbash.events.session import CLOSE_TRY_AGAIN_LATER


def test_new_scene_file_is_announced(client: TestClient, scene_dir: Path) -> None:
    with client.websocket_connect("/ws") as websocket:
        (scene_dir / "tree.obj").write_text("v 0 0 0\n")
        message = websocket.receive_json()

    assert message == {"type": "file_added", "filename": "tree.obj"}


def test_published_event_reaches_all_sockets(client: TestClient) -> None:
    hub = client.app.state.broadcast_hub
    event = FileChangeEvent(type=EventType.FILE_MODIFIED, filename="rock.obj")

    with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
        assert hub.subscriber_count == 2
        client.portal.call(hub.publish, event)

        assert first.receive_json() == {"type": "file_modified", "filename": "rock.obj"}
        assert second.receive_json() == {"type": "file_modified", "filename": "rock.obj"}


def test_ignored_suffix_is_not_announced(client: TestClient, scene_dir: Path) -> None:
    with client.websocket_connect("/ws") as websocket:
        (scene_dir / "notes.txt").write_text("hello")
        (scene_dir / "tree.obj").write_text("v 0 0 0\n")
        message = websocket.receive_json()

    assert message["filename"] == "tree.obj"


def test_subscriber_limit_rejects_connection(scene_dir: Path) -> None:
    settings = Settings(scene_dir=scene_dir, max_subscribers=1)

    with TestClient(create_app(settings)) as client:
        with client.websocket_connect("/ws"):
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect("/ws"):
                    pass

    assert exc_info.value.code == CLOSE_TRY_AGAIN_LATER


def test_missing_scene_dir_aborts_startup(tmp_path: Path) -> None:
    app = create_app(Settings(scene_dir=tmp_path / "missing"))

    with pytest.raises(WatchSourceError):
        with TestClient(app):
            pass


def test_disconnect_releases_subscription(client: TestClient) -> None:
    hub = client.app.state.broadcast_hub

    with client.websocket_connect("/ws"):
        assert hub.subscriber_count == 1

    assert hub.subscriber_count == 0


def test_shutdown_stops_watch_source(settings: Settings) -> None:
    app = create_app(settings)

    with TestClient(app):
        assert app.state.watch_source.is_running

    assert not app.state.watch_source.is_running
