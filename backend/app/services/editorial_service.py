"""
Editorial Service: 编辑端状态流转 / 分配读者 / 录入决定

中文注释:
1. 状态机只有一份（SubmissionStatus.allowed_next），这里不再另写规则。
2. 所有状态写入都带 `.eq("status", 当前状态)` 条件；读取后被别人改过时直接 StateConflict，不做部分写入。
3. admin + force 可绕过状态机（运维修数据用），仍然记录 activity。
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from app.core.errors import (
    NotFound,
    StateConflict,
    SubmeetError,
    Unauthorized,
    UpstreamFailure,
    ValidationFailure,
    is_unique_violation,
)
from app.core.role_matrix import READER_ROLE
from app.core.roles import require_capability
from app.lib.api_client import supabase_admin
from app.lib.dates import utcnow
from app.models.schemas import AssignReaderRequest, DecisionCreate, StatusChangeRequest
from app.models.submission import (
    WITHDRAWABLE_STATUSES,
    ActivityType,
    SubmissionStatus,
    normalize_status,
)
from app.services.activity_service import ActivityService
from app.services.submission_filters import FilterConfig, SortConfig, apply_filters, to_view_record

logger = logging.getLogger("submeet.editorial")

PUBLICATION_LIST_SELECT = (
    "*,forms(id,name,publication_id,publications(id,name)),users(id,name,email),"
    "review_assignments(id,reader_id,is_complete,recommendation,rating),decisions(id,decision_type)"
)


def _rows(resp: Any) -> list[dict]:
    return getattr(resp, "data", None) or []


class EditorialService:
    def __init__(self, client: Any = None, *, activities: Optional[ActivityService] = None):
        self.client = client or supabase_admin
        self.activities = activities or ActivityService(self.client)

    def _load_submission(self, submission_id: str) -> dict:
        try:
            resp = (
                self.client.table("submissions")
                .select("id,user_id,title,status,form_id,forms(id,publication_id)")
                .eq("id", submission_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"load submission {submission_id}: {e}") from e
        rows = _rows(resp)
        if not rows:
            raise NotFound("Submission not found")
        row = dict(rows[0])
        form = row.get("forms") or {}
        row["publication_id"] = str(form.get("publication_id") or "") or None
        return row

    def _set_status(self, submission: dict, to_status: str, *, guard: bool = True) -> dict:
        current = submission.get("status")
        query = (
            self.client.table("submissions")
            .update({"status": to_status, "updated_at": utcnow().isoformat()})
            .eq("id", submission["id"])
        )
        if guard:
            query = query.eq("status", current)
        try:
            resp = query.execute()
        except Exception as e:
            raise UpstreamFailure(f"update status {submission['id']}: {e}") from e
        updated = (_rows(resp) or [None])[0]
        if not updated:
            raise StateConflict("Submission status changed concurrently; reload and retry")
        return updated

    def _rollback_assignment(self, assignment: dict, member: dict, *, publication_id: str) -> None:
        try:
            self.client.table("review_assignments").delete().eq("id", assignment.get("id")).execute()
        except Exception as e:
            logger.error("[Editorial] rollback assignment %s failed: %s", assignment.get("id"), e)
        try:
            self.client.table("publication_members").update(
                {"current_workload": int(member.get("current_workload") or 0)}
            ).eq("publication_id", publication_id).eq("user_id", member.get("user_id")).execute()
        except Exception as e:
            logger.warning("[Editorial] workload rollback failed reader=%s: %s", member.get("user_id"), e)

    def _record_status_activity(self, submission: dict, to_status: str, *, actor_id: str) -> None:
        # 动态记在 writer 名下：writer dashboard 才能看到状态变化
        self.activities.record(
            user_id=submission.get("user_id"),
            activity_type=ActivityType.STATUS_CHANGED,
            metadata={
                "submission_id": submission.get("id"),
                "submission_title": submission.get("title"),
                "from_status": submission.get("status"),
                "to_status": to_status,
                "changed_by": actor_id,
            },
        )

    # === 列表 ===

    def list_publication_submissions(
        self,
        *,
        publication_id: str,
        profile: dict,
        query: str = "",
        filters: Optional[FilterConfig] = None,
        sort: Optional[SortConfig] = None,
    ) -> list[dict]:
        require_capability(profile, "submission:view_publication", publication_id=publication_id)
        try:
            forms = _rows(self.client.table("forms").select("id").eq("publication_id", publication_id).execute())
            form_ids = [f["id"] for f in forms]
            if not form_ids:
                return []
            rows = _rows(
                self.client.table("submissions")
                .select(PUBLICATION_LIST_SELECT)
                .in_("form_id", form_ids)
                .order("submitted_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"list publication submissions {publication_id}: {e}") from e

        records = []
        for row in rows:
            view = to_view_record(row)
            assignments = row.get("review_assignments") or []
            view["review_count"] = len(assignments)
            view["completed_reviews"] = sum(1 for a in assignments if a.get("is_complete"))
            decisions = row.get("decisions") or []
            if isinstance(decisions, dict):
                decisions = [decisions]
            view["decision_type"] = decisions[0].get("decision_type") if decisions else None
            records.append(view)
        return apply_filters(records, query=query, filters=filters, sort=sort)

    # === 状态流转 ===

    def change_status(self, *, submission_id: str, payload: StatusChangeRequest, profile: dict) -> dict:
        submission = self._load_submission(submission_id)
        require_capability(profile, "submission:change_status", publication_id=submission["publication_id"])

        target = normalize_status(payload.status)
        if target is None:
            raise ValidationFailure(f"Unknown status: {payload.status}")

        current = normalize_status(submission.get("status")) or ""
        if payload.force:
            if not profile.get("is_admin"):
                raise Unauthorized("Only admins can force a status change")
            logger.warning(
                "[Editorial] forced status change id=%s %s -> %s by=%s note=%s",
                submission_id,
                current,
                target,
                profile.get("id"),
                payload.note,
            )
        else:
            if target == SubmissionStatus.WITHDRAWN.value:
                raise StateConflict("Only the writer can withdraw a submission")
            if target not in SubmissionStatus.allowed_next(current):
                raise StateConflict(f"Invalid status transition: {current} -> {target}")

        updated = self._set_status(submission, target, guard=not payload.force)
        self._record_status_activity(submission, target, actor_id=profile["id"])
        logger.info("[Editorial] status id=%s %s -> %s by=%s", submission_id, current, target, profile.get("id"))
        return {"id": submission_id, "status": updated.get("status", target), "previous_status": current}

    # === 分配读者 ===

    def assign_reader(self, *, submission_id: str, payload: AssignReaderRequest, profile: dict) -> dict:
        submission = self._load_submission(submission_id)
        publication_id = submission["publication_id"]
        require_capability(profile, "submission:assign", publication_id=publication_id)

        if submission.get("status") not in WITHDRAWABLE_STATUSES:
            raise StateConflict("Readers can only be assigned to open submissions")

        try:
            member_rows = _rows(
                self.client.table("publication_members")
                .select("user_id,role,current_workload")
                .eq("publication_id", publication_id)
                .eq("user_id", payload.reader_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"load reader {payload.reader_id}: {e}") from e
        member = member_rows[0] if member_rows else None
        if not member or member.get("role") != READER_ROLE:
            raise ValidationFailure("Reader is not a member of this publication")

        now = utcnow()
        try:
            resp = (
                self.client.table("review_assignments")
                .insert(
                    {
                        "submission_id": submission_id,
                        "reader_id": payload.reader_id,
                        "assigned_by": profile["id"],
                        "assigned_at": now.isoformat(),
                        "is_complete": False,
                    }
                )
                .execute()
            )
        except Exception as e:
            if is_unique_violation(e):
                raise StateConflict("Reader is already assigned to this submission") from e
            raise UpstreamFailure(f"assign reader: {e}") from e
        assignment = (_rows(resp) or [None])[0]
        if not assignment:
            raise UpstreamFailure("assign reader returned no row")

        # 中文注释: workload 只用于展示，不作为分配上限
        try:
            self.client.table("publication_members").update(
                {"current_workload": int(member.get("current_workload") or 0) + 1}
            ).eq("publication_id", publication_id).eq("user_id", payload.reader_id).execute()
        except Exception as e:
            logger.warning("[Editorial] workload bump failed reader=%s: %s", payload.reader_id, e)

        status = submission.get("status")
        if status == SubmissionStatus.PENDING.value:
            try:
                self._set_status(submission, SubmissionStatus.UNDER_REVIEW.value)
            except SubmeetError:
                # 状态没推进：撤掉分配和 workload，重试时不会卡在 "already assigned"
                self._rollback_assignment(assignment, member, publication_id=publication_id)
                raise
            self._record_status_activity(submission, SubmissionStatus.UNDER_REVIEW.value, actor_id=profile["id"])
            status = SubmissionStatus.UNDER_REVIEW.value

        logger.info("[Editorial] assigned reader=%s submission=%s by=%s", payload.reader_id, submission_id, profile["id"])
        return {"assignment": assignment, "submission_status": status}

    # === 决定 ===

    def record_decision(
        self,
        *,
        submission_id: str,
        payload: DecisionCreate,
        profile: dict,
        now: Optional[datetime] = None,
    ) -> dict:
        submission = self._load_submission(submission_id)
        require_capability(profile, "decision:record", publication_id=submission["publication_id"])

        current = normalize_status(submission.get("status")) or ""
        target = payload.decision_type.resulting_status()
        if target not in SubmissionStatus.allowed_next(current):
            raise StateConflict(f"Cannot record a decision for a submission in status {current}")

        created_at = (now or utcnow()).isoformat()
        try:
            resp = (
                self.client.table("decisions")
                .insert(
                    {
                        "submission_id": submission_id,
                        "decision_type": payload.decision_type.value,
                        "decision_text": payload.decision_text,
                        "decided_by": profile["id"],
                        "created_at": created_at,
                    }
                )
                .execute()
            )
        except Exception as e:
            if is_unique_violation(e):
                raise StateConflict("A decision has already been recorded for this submission") from e
            raise UpstreamFailure(f"record decision: {e}") from e
        decision = (_rows(resp) or [None])[0]
        if not decision:
            raise UpstreamFailure("record decision returned no row")

        try:
            self._set_status(submission, target)
        except SubmeetError:
            # 状态写入失败（并发修改或数据库错误）：撤掉刚写入的决定
            try:
                self.client.table("decisions").delete().eq("id", decision.get("id")).execute()
            except Exception as e:
                logger.error("[Editorial] rollback decision %s failed: %s", decision.get("id"), e)
            raise

        self._record_status_activity(submission, target, actor_id=profile["id"])
        logger.info(
            "[Editorial] decision=%s submission=%s by=%s",
            payload.decision_type.value,
            submission_id,
            profile["id"],
        )
        return {"decision": decision, "status": target}
