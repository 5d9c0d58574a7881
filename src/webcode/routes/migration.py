"""Bulk import endpoints for data previously kept in browser storage."""

from fastapi import APIRouter, Depends

from ..container import AppContainer, get_container, get_owner
from ..schemas import InputHistoryModel, OutputModel, QuickActionModel, SessionModel, TemplateModel

router = APIRouter(prefix="/api/migration", tags=["migration"])


@router.post("/sessions")
def import_sessions(
    body: list[SessionModel], owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)
):
    sessions = [s.to_core() for s in body if s.session_id.strip()]
    return c.migrator.import_sessions(owner, sessions).to_dict()


@router.post("/templates")
def import_templates(
    body: list[TemplateModel], owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)
):
    return c.migrator.import_templates(owner, [t.to_core() for t in body]).to_dict()


@router.post("/session-outputs")
def import_session_outputs(
    body: list[OutputModel], owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)
):
    outputs = [o.to_core() for o in body if o.session_id.strip()]
    return c.migrator.import_session_outputs(owner, outputs).to_dict()


@router.post("/input-history")
def import_input_history(
    body: list[InputHistoryModel], owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)
):
    return c.migrator.import_input_history(owner, [i.to_core() for i in body]).to_dict()


@router.post("/quick-actions")
def import_quick_actions(
    body: list[QuickActionModel], owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)
):
    return c.migrator.import_quick_actions(owner, [a.to_core() for a in body]).to_dict()


@router.post("/settings")
def import_settings(
    body: dict[str, str | None], owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)
):
    return c.migrator.import_settings(owner, body).to_dict()


@router.get("/status")
def migration_status(owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    return {"success": True, "counts": c.migrator.status(owner)}
