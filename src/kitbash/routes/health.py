"""Health check endpoints for liveness and readiness probes."""
from pathlib import Path
from typing import Literal

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

router = APIRouter(prefix="/health", tags=["health"])


class LivenessResponse(BaseModel):
    """Response model for liveness probe.

    Attributes:
        status: Always 'alive' when process is running.
    """

    status: Literal["alive"]


class ReadinessCheck(BaseModel):
    """Individual dependency check result.

    Attributes:
        name: Identifier for the dependency being checked.
        status: Result of the check ('ok' or 'failed').
        message: Error details when status is 'failed'.
    """

    name: str
    status: Literal["ok", "failed"]
    message: str | None = None


class ReadinessResponse(BaseModel):
    """Response model for readiness probe.

    Attributes:
        status: Overall readiness ('ready' or 'not_ready').
        checks: List of individual dependency check results.
        subscribers: Number of connected observers.
    """

    status: Literal["ready", "not_ready"]
    checks: list[ReadinessCheck]
    subscribers: int = 0


def _check_directory(path: Path) -> ReadinessCheck:
    """Verify the scene directory exists and is readable."""
    name = f"dir:{path}"
    try:
        if path.is_dir():
            list(path.iterdir())
            return ReadinessCheck(name=name, status="ok")
        return ReadinessCheck(name=name, status="failed", message="Directory not found")
    except PermissionError as e:
        return ReadinessCheck(name=name, status="failed", message=f"Permission denied: {e}")
    except OSError as e:
        return ReadinessCheck(name=name, status="failed", message=str(e))


def _check_watcher(request: Request) -> ReadinessCheck:
    source = getattr(request.app.state, "watch_source", None)
    if source is not None and source.is_running:
        return ReadinessCheck(name="watcher", status="ok")
    return ReadinessCheck(name="watcher", status="failed", message="Watch source not running")


@router.get("/live", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe endpoint.

    Returns:
        Liveness status response.
    """
    return LivenessResponse(status="alive")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> JSONResponse:
    """Readiness probe endpoint.

    Checks that the scene directory is readable and the watch source is
    running. Returns 200 if all checks pass, 503 if any fail.

    Returns:
        Readiness status with individual check results.
    """
    checks = [
        _check_directory(Path(request.app.state.settings.scene_dir)),
        _check_watcher(request),
    ]
    hub = getattr(request.app.state, "broadcast_hub", None)
    all_ok = all(c.status == "ok" for c in checks)
    response = ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        checks=checks,
        subscribers=hub.subscriber_count if hub is not None else 0,
    )
    code = status.HTTP_200_OK if all_ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=code)
