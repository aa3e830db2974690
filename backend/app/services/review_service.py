from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from app.core.errors import NotFound, StateConflict, UpstreamFailure
from app.core.roles import require_capability
from app.lib.api_client import supabase_admin
from app.lib.dates import utcnow
from app.models.schemas import ReviewSubmit
from app.models.submission import ActivityType
from app.services.activity_service import ActivityService

logger = logging.getLogger("submeet.reviews")

ASSIGNMENT_SELECT = (
    "id,submission_id,reader_id,assigned_at,is_complete,recommendation,rating,comments,completed_at,"
    "submissions(id,title,genre,word_count,status,forms(id,publication_id,publications(id,name)))"
)


def _publication_id(assignment: dict) -> Optional[str]:
    submission = assignment.get("submissions") or {}
    form = submission.get("forms") or {}
    pid = form.get("publication_id")
    return str(pid) if pid else None


class ReviewService:
    """
    读者审读队列与推荐提交。

    中文注释:
    - 只能看到 / 提交分配给自己的 assignment；别人的 assignment 一律 404。
    - 提交后 assignment 即完成，不允许二次修改。
    """

    def __init__(self, client: Any = None, *, activities: Optional[ActivityService] = None):
        self.client = client or supabase_admin
        self.activities = activities or ActivityService(self.client)

    def list_assignments(
        self,
        profile: dict,
        *,
        publication_id: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> list[dict]:
        if publication_id:
            require_capability(profile, "review:view_assignment", publication_id=publication_id)
        try:
            query = self.client.table("review_assignments").select(ASSIGNMENT_SELECT).eq("reader_id", profile["id"])
            if completed is not None:
                query = query.eq("is_complete", completed)
            rows = getattr(query.order("assigned_at", desc=True).execute(), "data", None) or []
        except Exception as e:
            raise UpstreamFailure(f"list assignments: {e}") from e

        if publication_id:
            rows = [r for r in rows if _publication_id(r) == str(publication_id)]
        return rows

    def submit_review(
        self,
        *,
        assignment_id: str,
        payload: ReviewSubmit,
        profile: dict,
        now: Optional[datetime] = None,
    ) -> dict:
        try:
            resp = (
                self.client.table("review_assignments")
                .select(ASSIGNMENT_SELECT)
                .eq("id", assignment_id)
                .eq("reader_id", profile["id"])
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"load assignment {assignment_id}: {e}") from e
        rows = getattr(resp, "data", None) or []
        if not rows:
            raise NotFound("Assignment not found")
        assignment = rows[0]
        publication_id = _publication_id(assignment)
        require_capability(profile, "review:submit", publication_id=publication_id)

        if assignment.get("is_complete"):
            raise StateConflict("Review has already been submitted")

        completed_at = (now or utcnow()).isoformat()
        changes = {
            "recommendation": payload.recommendation.value,
            "rating": payload.rating,
            "comments": payload.comments,
            "is_complete": True,
            "completed_at": completed_at,
        }
        try:
            resp = (
                self.client.table("review_assignments")
                .update(changes)
                .eq("id", assignment_id)
                .eq("is_complete", False)
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"submit review {assignment_id}: {e}") from e
        updated = (getattr(resp, "data", None) or [None])[0]
        if not updated:
            raise StateConflict("Review has already been submitted")

        self._decrement_workload(publication_id, profile["id"])

        submission = assignment.get("submissions") or {}
        self.activities.record(
            user_id=profile["id"],
            activity_type=ActivityType.REVIEW_COMPLETED,
            metadata={
                "submission_id": assignment.get("submission_id"),
                "submission_title": submission.get("title"),
                "recommendation": payload.recommendation.value,
            },
        )
        logger.info(
            "[Reviews] completed assignment=%s submission=%s recommendation=%s",
            assignment_id,
            assignment.get("submission_id"),
            payload.recommendation.value,
        )
        return {**assignment, **updated}

    def _decrement_workload(self, publication_id: Optional[str], reader_id: str) -> None:
        if not publication_id:
            return
        try:
            rows = (
                getattr(
                    self.client.table("publication_members")
                    .select("current_workload")
                    .eq("publication_id", publication_id)
                    .eq("user_id", reader_id)
                    .limit(1)
                    .execute(),
                    "data",
                    None,
                )
                or []
            )
            if not rows:
                return
            current = int(rows[0].get("current_workload") or 0)
            self.client.table("publication_members").update({"current_workload": max(current - 1, 0)}).eq(
                "publication_id", publication_id
            ).eq("user_id", reader_id).execute()
        except Exception as e:
            # workload 只用于展示，失败不回滚已完成的审读
            logger.warning("[Reviews] workload decrement failed reader=%s: %s", reader_id, e)
