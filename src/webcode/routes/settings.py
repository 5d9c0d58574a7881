"""User settings, input history and quick action endpoints.

The fixed sub-paths are declared before ``/{key}`` so they are matched first.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from ..container import AppContainer, get_container, get_owner
from ..schemas import InputHistoryModel, InputHistoryRequest, QuickActionModel, SettingValue

router = APIRouter(prefix="/api/setting", tags=["setting"])


@router.get("")
def get_settings(owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    return c.settings.get_all(owner)


# ── Input history ────────────────────────────────────────────────────


@router.get("/input-history")
def get_input_history(
    limit: int = Query(50, ge=1, le=1000),
    owner: str = Depends(get_owner),
    c: AppContainer = Depends(get_container),
):
    return [InputHistoryModel.from_core(i) for i in c.input_history.get_recent(owner, limit)]


@router.get("/input-history/search")
def search_input_history(
    q: str = Query("", description="Substring to look for"),
    limit: int = Query(10, ge=1, le=1000),
    owner: str = Depends(get_owner),
    c: AppContainer = Depends(get_container),
):
    return [InputHistoryModel.from_core(i) for i in c.input_history.search(owner, q, limit)]


@router.post("/input-history")
def add_input_history(
    body: InputHistoryRequest,
    owner: str = Depends(get_owner),
    c: AppContainer = Depends(get_container),
):
    return {"success": c.input_history.save(owner, body.text)}


@router.delete("/input-history")
def clear_input_history(owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    return {"success": c.input_history.clear(owner)}


# ── Quick actions ────────────────────────────────────────────────────


@router.get("/quick-actions")
def get_quick_actions(owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    return [QuickActionModel.from_core(a) for a in c.quick_actions.get_all(owner)]


@router.post("/quick-actions")
def save_quick_action(
    body: QuickActionModel,
    owner: str = Depends(get_owner),
    c: AppContainer = Depends(get_container),
):
    if not body.id.strip():
        raise HTTPException(status_code=400, detail="Quick action id is required")
    return {"success": c.quick_actions.save(owner, body.to_core())}


@router.put("/quick-actions")
def replace_quick_actions(
    body: list[QuickActionModel],
    owner: str = Depends(get_owner),
    c: AppContainer = Depends(get_container),
):
    return {"success": c.quick_actions.save_all(owner, [a.to_core() for a in body])}


@router.delete("/quick-actions")
def clear_quick_actions(owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    return {"success": c.quick_actions.clear(owner)}


@router.delete("/quick-actions/{action_id}")
def delete_quick_action(
    action_id: str,
    owner: str = Depends(get_owner),
    c: AppContainer = Depends(get_container),
):
    return {"success": c.quick_actions.delete(owner, action_id)}


# ── Key/value settings ───────────────────────────────────────────────


@router.get("/{key}")
def get_setting(key: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    return {"key": key, "value": c.settings.get(owner, key)}


@router.put("/{key}")
def set_setting(
    key: str,
    body: SettingValue,
    owner: str = Depends(get_owner),
    c: AppContainer = Depends(get_container),
):
    if not c.settings.set(owner, key, body.value):
        raise HTTPException(status_code=500, detail="Failed to save setting")
    return {"success": True}


@router.delete("/{key}")
def delete_setting(key: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    return {"success": c.settings.delete(owner, key)}
