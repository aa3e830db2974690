from fastapi import APIRouter, Depends

from app.core.auth_utils import get_current_user
from app.core.roles import get_current_profile
from app.models.schemas import FormCreate, FormUpdate
from app.services.form_service import FormService

router = APIRouter(tags=["Forms"])


@router.get("/forms/{form_id}")
async def get_form(form_id: str, _user: dict = Depends(get_current_user)):
    """writer 填写投稿前读取表单定义（停用的表单视为不存在）"""
    form = FormService().get_active_form(form_id)
    return {"success": True, "data": form}


@router.get("/publications/{publication_id}/forms")
async def list_forms(publication_id: str, profile: dict = Depends(get_current_profile)):
    rows = FormService().list_forms(publication_id=publication_id, profile=profile)
    return {"success": True, "data": rows}


@router.post("/publications/{publication_id}/forms", status_code=201)
async def create_form(
    publication_id: str,
    payload: FormCreate,
    profile: dict = Depends(get_current_profile),
):
    form = FormService().create_form(publication_id=publication_id, payload=payload, profile=profile)
    return {"success": True, "data": form}


@router.put("/publications/{publication_id}/forms/{form_id}")
async def update_form(
    publication_id: str,
    form_id: str,
    payload: FormUpdate,
    profile: dict = Depends(get_current_profile),
):
    form = FormService().update_form(
        form_id=form_id, payload=payload, profile=profile, publication_id=publication_id
    )
    return {"success": True, "data": form}
