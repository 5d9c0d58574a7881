"""Session history endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query

from ..container import AppContainer, get_container, get_owner
from ..errors import ValidationError
from ..schemas import OutputModel, SessionModel, SessionSummary, TitleRequest

router = APIRouter(prefix="/api/session", tags=["session"])


@router.get("")
def list_sessions(owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    """Return session summaries, most recently updated first."""
    return [SessionSummary.from_core(s) for s in c.history.load_sessions(owner)]


@router.post("")
def save_session(
    body: SessionModel,
    debounce: bool = Query(False, description="Coalesce with other saves instead of writing now"),
    owner: str = Depends(get_owner),
    c: AppContainer = Depends(get_container),
):
    session = body.to_core()
    if debounce:
        c.history.request_save(owner, session)
    else:
        c.history.save_immediate(owner, session)
    return {"success": True, "session_id": session.session_id}


@router.post("/title")
def generate_title(body: TitleRequest, c: AppContainer = Depends(get_container)):
    return {"success": True, "title": c.history.generate_title(body.text)}


@router.post("/cache/invalidate")
def invalidate_cache(owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    c.history.clear_cache(owner)
    return {"success": True}


@router.post("/workspaces/validate")
def validate_workspaces(owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    """Flag sessions whose workspace directory no longer exists."""
    return {"success": True, "invalid_count": c.history.cleanup_invalid_sessions(owner)}


@router.get("/{session_id}")
def get_session(session_id: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    session = c.history.get_session(owner, session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return SessionModel.from_core(session)


@router.put("/{session_id}")
def update_session(
    session_id: str,
    body: SessionModel,
    owner: str = Depends(get_owner),
    c: AppContainer = Depends(get_container),
):
    if body.session_id != session_id:
        raise ValidationError("Session id in body does not match the URL")
    c.history.save_immediate(owner, body.to_core())
    return {"success": True}


@router.delete("/{session_id}")
def delete_session(session_id: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    c.history.delete_session(owner, session_id)
    c.outputs.delete(owner, session_id)
    return {"success": True}


@router.get("/{session_id}/output")
def get_output(session_id: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    state = c.outputs.get(owner, session_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Output state not found")
    return OutputModel.from_core(state)


@router.put("/{session_id}/output")
def save_output(
    session_id: str,
    body: OutputModel,
    owner: str = Depends(get_owner),
    c: AppContainer = Depends(get_container),
):
    if not c.outputs.save(owner, body.to_core(session_id)):
        raise HTTPException(status_code=500, detail="Failed to save output state")
    return {"success": True}
