"""Read-only Git inspection of a workspace directory."""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Query

from ..container import AppContainer, get_container
from ..schemas import CommitModel, DiffModel, StatusModel

router = APIRouter(prefix="/api/git", tags=["git"])


async def _require_repository(c: AppContainer, workspace: str) -> None:
    if not await asyncio.to_thread(c.git.is_repository, workspace):
        raise HTTPException(status_code=404, detail="Not a git repository")


@router.get("/status")
async def workspace_status(
    workspace: str = Query(..., description="Workspace directory"),
    c: AppContainer = Depends(get_container),
):
    await _require_repository(c, workspace)
    return StatusModel.from_core(await c.git.workspace_status_async(workspace))


@router.get("/commits")
async def all_commits(
    workspace: str = Query(...),
    max_count: int = Query(100, ge=1, le=1000),
    c: AppContainer = Depends(get_container),
):
    await _require_repository(c, workspace)
    return [CommitModel.from_core(commit) for commit in await c.git.all_commits_async(workspace, max_count)]


@router.get("/history")
async def file_history(
    workspace: str = Query(...),
    path: str = Query(..., description="File path relative to the repository root"),
    max_count: int = Query(50, ge=1, le=1000),
    c: AppContainer = Depends(get_container),
):
    await _require_repository(c, workspace)
    commits = await c.git.file_history_async(workspace, path, max_count)
    return [CommitModel.from_core(commit) for commit in commits]


@router.get("/diff")
async def file_diff(
    workspace: str = Query(...),
    path: str = Query(...),
    from_commit: str = Query(..., alias="from"),
    to_commit: str = Query(..., alias="to"),
    c: AppContainer = Depends(get_container),
):
    await _require_repository(c, workspace)
    return DiffModel.from_core(await c.git.file_diff_async(workspace, path, from_commit, to_commit))


@router.get("/content")
async def file_content(
    workspace: str = Query(...),
    path: str = Query(...),
    commit: str = Query(...),
    c: AppContainer = Depends(get_container),
):
    await _require_repository(c, workspace)
    content = await c.git.file_content_at_commit_async(workspace, path, commit)
    return {"path": path, "commit": commit, "content": content}
