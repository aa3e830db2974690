from fastapi import APIRouter, Depends

from app.api.v1.listing_common import ListingParams
from app.core.roles import get_current_profile
from app.models.schemas import AssignReaderRequest, DecisionCreate, StatusChangeRequest
from app.services.dashboard_service import DashboardService
from app.services.editorial_service import EditorialService

router = APIRouter(prefix="/editor", tags=["Editor Command Center"])


@router.get("/publications/{publication_id}/submissions")
async def list_publication_submissions(
    publication_id: str,
    listing: ListingParams = Depends(),
    profile: dict = Depends(get_current_profile),
):
    """编辑端投稿队列（同一套搜索 / 筛选 / 排序）"""
    rows = EditorialService().list_publication_submissions(
        publication_id=publication_id,
        profile=profile,
        query=listing.query,
        filters=listing.filters,
        sort=listing.sort,
    )
    return {"success": True, "data": rows, "meta": listing.meta(len(rows))}


@router.get("/publications/{publication_id}/dashboard")
async def get_publication_dashboard(publication_id: str, profile: dict = Depends(get_current_profile)):
    dashboard = DashboardService().publication_dashboard(publication_id=publication_id, profile=profile)
    return {"success": True, "data": dashboard.model_dump(mode="json")}


@router.post("/submissions/{submission_id}/status")
async def change_submission_status(
    submission_id: str,
    payload: StatusChangeRequest,
    profile: dict = Depends(get_current_profile),
):
    """
    编辑端状态流转。

    中文注释: 只允许状态机上的合法边；admin 可用 force=true 强制改写。
    """
    data = EditorialService().change_status(submission_id=submission_id, payload=payload, profile=profile)
    return {"success": True, "data": data}


@router.post("/submissions/{submission_id}/assign", status_code=201)
async def assign_reader(
    submission_id: str,
    payload: AssignReaderRequest,
    profile: dict = Depends(get_current_profile),
):
    data = EditorialService().assign_reader(submission_id=submission_id, payload=payload, profile=profile)
    return {"success": True, "data": data}


@router.post("/submissions/{submission_id}/decision", status_code=201)
async def record_decision(
    submission_id: str,
    payload: DecisionCreate,
    profile: dict = Depends(get_current_profile),
):
    data = EditorialService().record_decision(submission_id=submission_id, payload=payload, profile=profile)
    return {"success": True, "data": data}
