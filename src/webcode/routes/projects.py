"""Git project endpoints."""

import logging

from fastapi import APIRouter, Depends

from ..container import AppContainer, get_container, get_owner
from ..git import CloneProgress
from ..schemas import BranchQuery, ProjectRequest, ProjectView

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/project", tags=["project"])


@router.get("")
def list_projects(owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    return [ProjectView.from_core(p) for p in c.projects.list_projects(owner)]


@router.post("")
def create_project(body: ProjectRequest, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    project = c.projects.create(owner, body.to_core())
    return {"success": True, "project": ProjectView.from_core(project)}


@router.post("/branches")
async def branches_for_url(body: BranchQuery, c: AppContainer = Depends(get_container)):
    """List remote branches of a URL before a project is saved."""
    branches, error = await c.projects.branches_for_url(body.git_url, body.to_credentials())
    return {"success": error is None, "branches": branches, "error": error}


@router.get("/{project_id}")
def get_project(project_id: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    project = c.projects.get(owner, project_id)
    return {
        **ProjectView.from_core(project).model_dump(mode="json"),
        "current_branch": c.projects.current_branch(owner, project_id),
    }


@router.put("/{project_id}")
def update_project(
    project_id: str,
    body: ProjectRequest,
    owner: str = Depends(get_owner),
    c: AppContainer = Depends(get_container),
):
    project = c.projects.update(owner, project_id, body.to_core())
    return {"success": True, "project": ProjectView.from_core(project)}


@router.delete("/{project_id}")
def delete_project(project_id: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    return {"success": c.projects.delete(owner, project_id)}


@router.post("/{project_id}/clone")
async def clone_project(project_id: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    def report(progress: CloneProgress) -> None:
        logger.debug("Clone %s: %s %d%%", project_id, progress.stage, progress.percentage)

    project, error = await c.projects.clone(owner, project_id, progress=report)
    return {"success": error is None, "project": ProjectView.from_core(project), "error": error}


@router.post("/{project_id}/pull")
async def pull_project(project_id: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    project, error = await c.projects.pull(owner, project_id)
    return {"success": error is None, "project": ProjectView.from_core(project), "error": error}


@router.get("/{project_id}/branches")
async def project_branches(project_id: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    branches, error = await c.projects.branches(owner, project_id)
    return {"success": error is None, "branches": branches, "error": error}
