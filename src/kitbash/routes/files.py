"""Scene file listing endpoint."""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from kitbash.config import Settings
from kitbash.content import list_scene_files

router = APIRouter(tags=["files"])


class FileInfo(BaseModel):
    """A tracked file in the scene directory.

    Attributes:
        name: Filename relative to the scene directory.
    """

    name: str


class FileListResponse(BaseModel):
    """Response model for the scene listing.

    Attributes:
        files: Tracked files sorted by name.
    """

    files: list[FileInfo]


@router.get(
    "/files",
    response_model=FileListResponse,
    summary="List scene files",
    description="Returns tracked files in the scene directory sorted by name.",
)
async def list_files(request: Request) -> FileListResponse:
    """List tracked files so observers can seed their state on connect.

    Args:
        request: FastAPI request object.

    Returns:
        Sorted list of tracked filenames.
    """
    settings: Settings = request.app.state.settings
    names = list_scene_files(settings.scene_dir, settings.file_suffix)
    return FileListResponse(files=[FileInfo(name=name) for name in names])
