"""Directory listing of tracked scene files."""
from pathlib import Path

import structlog

logger = structlog.get_logger()


def list_scene_files(directory: str | Path, suffix: str = ".obj") -> list[str]:
    """List regular files in a directory that end with the tracked suffix.

    Args:
        directory: Scene directory to read.
        suffix: Case-sensitive filename suffix.

    Returns:
        Matching filenames in ascending lexical order. Empty if the
        directory cannot be read.
    """
    try:
        entries = list(Path(directory).iterdir())
    except OSError as e:
        logger.warning("scene_listing_failed", directory=str(directory), error=str(e))
        return []

    names = []
    for entry in entries:
        try:
            if not entry.is_file():
                continue
        except OSError:
            continue
        if entry.name.endswith(suffix):
            names.append(entry.name)

    return sorted(names)
