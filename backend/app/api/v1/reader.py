from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.roles import get_current_profile
from app.models.schemas import ReviewSubmit
from app.services.review_service import ReviewService

router = APIRouter(prefix="/reader", tags=["Reader"])


@router.get("/assignments")
async def list_assignments(
    publication_id: Optional[str] = Query(None, alias="publicationId"),
    completed: Optional[bool] = Query(None),
    profile: dict = Depends(get_current_profile),
):
    """读者审读队列；completed=false 只看待完成的"""
    rows = ReviewService().list_assignments(profile, publication_id=publication_id, completed=completed)
    return {"success": True, "data": rows}


@router.post("/assignments/{assignment_id}/review")
async def submit_review(
    assignment_id: str,
    payload: ReviewSubmit,
    profile: dict = Depends(get_current_profile),
):
    data = ReviewService().submit_review(assignment_id=assignment_id, payload=payload, profile=profile)
    return {"success": True, "data": data}
