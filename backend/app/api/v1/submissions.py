from typing import Optional

from fastapi import APIRouter, Body, Depends

from app.api.v1.listing_common import ListingParams
from app.core.auth_utils import get_current_user
from app.core.roles import get_current_profile
from app.models.schemas import SubmissionCreate, WithdrawRequest
from app.services.submission_filters import GENRE_OPTIONS, SORT_KEYS, STATUS_OPTIONS
from app.services.submission_service import SubmissionService

router = APIRouter(prefix="/submissions", tags=["Submissions"])


@router.post("", status_code=201)
async def create_submission(
    payload: SubmissionCreate,
    profile: dict = Depends(get_current_profile),
):
    """writer 向某个表单投稿"""
    data = SubmissionService().create_submission(payload, profile)
    return {"success": True, "data": data}


@router.get("")
async def list_my_submissions(
    listing: ListingParams = Depends(),
    profile: dict = Depends(get_current_profile),
):
    """
    当前 writer 的投稿列表（最近 50 条），支持搜索 / 筛选 / 排序。
    """
    rows = SubmissionService().list_submissions(
        profile, query=listing.query, filters=listing.filters, sort=listing.sort
    )
    return {"success": True, "data": rows, "meta": listing.meta(len(rows))}


@router.get("/filter-options")
async def get_filter_options(_user: dict = Depends(get_current_user)):
    """筛选面板的可选项（状态 / 体裁 / 排序字段）"""
    return {
        "success": True,
        "data": {"status": STATUS_OPTIONS, "genre": GENRE_OPTIONS, "sort_keys": list(SORT_KEYS)},
    }


@router.get("/{submission_id}")
async def get_submission(submission_id: str, profile: dict = Depends(get_current_profile)):
    data = SubmissionService().get_submission(submission_id, profile)
    return {"success": True, "data": data}


@router.post("/{submission_id}/withdraw")
async def withdraw_submission(
    submission_id: str,
    payload: Optional[WithdrawRequest] = Body(None),
    profile: dict = Depends(get_current_profile),
):
    """writer 撤回投稿（仅 pending / under_review）"""
    data = SubmissionService().withdraw_submission(
        submission_id, profile, reason=payload.reason if payload else None
    )
    return {"success": True, "data": data}
