"""Raw and semantic event types for scene directory monitoring."""
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class RawKind(str, Enum):
    """Kind of an unprocessed filesystem notification."""

    CREATE = "create"
    MODIFY = "modify"
    REMOVE = "remove"
    OTHER = "other"


@dataclass(frozen=True)
class RawNotification:
    """Low-level filesystem notification as reported by the watch source.

    Attributes:
        paths: Affected paths. Renames carry the old and the new path.
        kind: Raw notification kind.
    """

    paths: tuple[str, ...]
    kind: RawKind


class EventType(str, Enum):
    """Semantic event types delivered to observers."""

    FILE_ADDED = "file_added"
    FILE_MODIFIED = "file_modified"
    FILE_REMOVED = "file_removed"


RAW_KIND_TO_EVENT_TYPE: dict[RawKind, EventType] = {
    RawKind.CREATE: EventType.FILE_ADDED,
    RawKind.MODIFY: EventType.FILE_MODIFIED,
    RawKind.REMOVE: EventType.FILE_REMOVED,
}


class FileChangeEvent(BaseModel):
    """Semantic change notification for one file in the scene directory.

    Serializes to exactly ``{"type": ..., "filename": ...}``.

    Attributes:
        type: Kind of change.
        filename: Name of the file within the watched directory.
    """

    model_config = ConfigDict(frozen=True)

    type: EventType = Field(description="Event type")
    filename: str = Field(description="Filename within the scene directory")


@dataclass
class DebounceRecord:
    """Last emitted classification for a filename."""

    kind: EventType
    timestamp: int
