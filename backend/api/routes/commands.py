"""
ScriptMenu Command Routes.

REST endpoints for the command tree: listing, refresh, running a script and
opening the scripts directory.
Requires Python 3.11+.
"""

import subprocess
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.dependencies import require_synchronizer
from commands.models import Group, Leaf
from commands.synchronizer import TreeSynchronizer
from utils.desktop import open_in_file_browser
from utils.errors import ScriptExecutionFailed, UnsupportedScriptType
from utils.logger import get_logger

router = APIRouter()
logger = get_logger("api.commands")


class CommandTreeResponse(BaseModel):
    """Response model for the command tree."""

    root: str
    extensions: list[str]
    tree: dict[str, Any]


class RefreshResponse(BaseModel):
    """Response model for a manual refresh."""

    added: int
    removed: int
    tree: dict[str, Any]


class RunRequest(BaseModel):
    """Request model for running a script."""

    path: str = Field(..., min_length=1, description="Script path relative to the scripts directory")


class RunResponse(BaseModel):
    """Response model for a completed script run."""

    path: str
    status: str = "completed"


class OpenLocationResponse(BaseModel):
    """Response model for opening the scripts directory."""

    path: str


@router.get("", response_model=CommandTreeResponse)
def get_commands(
    synchronizer: TreeSynchronizer = Depends(require_synchronizer),
) -> CommandTreeResponse:
    """Get the current command tree."""
    return CommandTreeResponse(
        root=str(synchronizer.root_path),
        extensions=sorted(synchronizer.extensions),
        tree=synchronizer.snapshot(),
    )


@router.post("/refresh", response_model=RefreshResponse)
def refresh_commands(
    synchronizer: TreeSynchronizer = Depends(require_synchronizer),
) -> RefreshResponse:
    """Force an immediate synchronization pass."""
    stats = synchronizer.refresh()
    return RefreshResponse(
        added=stats.added,
        removed=stats.removed,
        tree=synchronizer.snapshot(),
    )


@router.post("/run", response_model=RunResponse)
def run_command(
    request: RunRequest,
    synchronizer: TreeSynchronizer = Depends(require_synchronizer),
) -> RunResponse:
    """
    Invoke a script leaf.

    Runs on the threadpool; the request lasts as long as the script.
    """
    with synchronizer.lock:
        node = synchronizer.root.find(request.path)

    match node:
        case None:
            raise HTTPException(status_code=404, detail=f"Command not found: {request.path}")
        case Group():
            raise HTTPException(status_code=400, detail=f"Not a script: {request.path}")
        case Leaf():
            pass

    try:
        node.invoke()
    except UnsupportedScriptType as e:
        raise HTTPException(status_code=415, detail=str(e)) from e
    except ScriptExecutionFailed as e:
        logger.error("command_failed", path=request.path, error=str(e.cause))
        raise HTTPException(status_code=500, detail=f"{request.path}: {e.cause}") from e

    return RunResponse(path=request.path)


@router.post("/open-location", response_model=OpenLocationResponse)
def open_location(
    synchronizer: TreeSynchronizer = Depends(require_synchronizer),
) -> OpenLocationResponse:
    """Open the scripts directory in the OS file browser."""
    try:
        open_in_file_browser(synchronizer.root_path)
    except (OSError, subprocess.CalledProcessError) as e:
        logger.error("open_location_failed", path=str(synchronizer.root_path), error=str(e))
        raise HTTPException(status_code=500, detail=f"Cannot open scripts directory: {e}") from e

    return OpenLocationResponse(path=str(synchronizer.root_path))
