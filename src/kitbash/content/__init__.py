"""Scene directory content access."""
from kitbash.content.listing import list_scene_files

__all__ = ["list_scene_files"]
