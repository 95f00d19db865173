"""Service configuration loaded from environment variables."""
from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service configuration loaded from environment variables.

    Attributes:
        host: Bind address for the server.
        port: Port number for the server.
        debug: Enable debug logging and API documentation.
        scene_dir: Directory watched for scene files.
        file_suffix: Filename suffix of tracked files.
        debounce_ms: Debounce window for filesystem events.
        raw_queue_size: Capacity of the raw notification queue.
        subscriber_queue_size: Maximum buffered events per subscriber.
        max_subscribers: Maximum number of concurrent subscribers.
        shutdown_timeout: Seconds to wait for graceful shutdown.
        open_browser: Open the default browser once the server is configured.
    """

    model_config = SettingsConfigDict(
        env_prefix="KITBASH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 8080
    debug: bool = False
    scene_dir: Path = Path("scene")
    file_suffix: str = ".obj"
    shutdown_timeout: float = 30.0
    open_browser: bool = False

    debounce_ms: int = 100
    raw_queue_size: int = 100
    subscriber_queue_size: int = 100
    max_subscribers: int = 100

    @computed_field
    @property
    def url(self) -> str:
        """Base URL the server listens on."""
        return f"http://{self.host}:{self.port}"
