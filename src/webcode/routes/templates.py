"""Prompt template endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from ..container import AppContainer, get_container, get_owner
from ..schemas import TemplateModel

router = APIRouter(prefix="/api/template", tags=["template"])


@router.get("")
def list_templates(owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    return [TemplateModel.from_core(t) for t in c.templates.get_all(owner)]


@router.post("")
def save_template(body: TemplateModel, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    if not body.id.strip():
        raise HTTPException(status_code=400, detail="Template id is required")
    if not c.templates.save(owner, body.to_core()):
        raise HTTPException(status_code=500, detail="Failed to save template")
    return {"success": True}


@router.post("/init-defaults")
def init_defaults(owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    """Seed the built-in templates if the owner has none."""
    return {"success": c.templates.init_defaults(owner)}


@router.get("/favorites")
def list_favorites(owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    return [TemplateModel.from_core(t) for t in c.templates.get_favorites(owner)]


@router.get("/category/{category}")
def list_by_category(category: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    return [TemplateModel.from_core(t) for t in c.templates.get_by_category(owner, category)]


@router.get("/{template_id}")
def get_template(template_id: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    template = c.templates.get_by_id(owner, template_id)
    if template is None:
        raise HTTPException(status_code=404, detail="Template not found")
    return TemplateModel.from_core(template)


@router.delete("/{template_id}")
def delete_template(template_id: str, owner: str = Depends(get_owner), c: AppContainer = Depends(get_container)):
    if not c.templates.delete(owner, template_id):
        raise HTTPException(status_code=404, detail="Template not found")
    return {"success": True}
