"""
Submission Service: 投稿创建 / 查询 / 撤回

中文注释:
1. 所有状态变更通过 Service 统一校验，API 层只做鉴权与参数解析。
2. 表单计数的“检查容量 + 自增”由数据库函数 claim_form_submission_slot 一次完成，
   不在应用层做先读后写，避免并发投稿突破上限。
3. 撤回的 update 带上当前状态条件：状态已被编辑改动时不会发生部分写入。
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from app.core.errors import NotFound, StateConflict, Unauthorized, UpstreamFailure, ValidationFailure
from app.core.roles import require_capability
from app.lib.api_client import supabase_admin
from app.lib.dates import parse_iso_datetime, utcnow
from app.models.schemas import SubmissionCreate
from app.models.submission import (
    DEFAULT_WITHDRAWAL_REASON,
    WITHDRAWABLE_STATUSES,
    ActivityType,
    SubmissionStatus,
    can_withdraw,
)
from app.services.activity_service import ActivityService
from app.services.form_builder import validate_responses
from app.services.form_service import FormService
from app.services.submission_filters import FilterConfig, SortConfig, apply_filters, to_view_record

logger = logging.getLogger("submeet.submissions")

LIST_LIMIT = 50

SUBMISSION_LIST_SELECT = (
    "*,forms(id,name,publication_id,publications(id,name,organizations(id,name))),"
    "users(id,name,email),submission_files(*),decisions(*)"
)

SUBMISSION_DETAIL_SELECT = (
    "*,forms(id,name,publication_id,publications(id,name,organizations(id,name))),"
    "users(id,name,email),submission_files(*),decisions(*),"
    "review_assignments(id,recommendation,rating,comments,is_complete,assigned_at,completed_at,"
    "reader:users!review_assignments_reader_id_fkey(id,name))"
)


def check_creation_eligibility(form: Optional[dict], now: Optional[datetime] = None) -> None:
    """
    投稿创建前置条件（纯函数，任一不满足即抛错）：
    - 表单存在且启用
    - 配置了上限时，计数未达上限
    - 配置了阅读期时，当前时间落在窗口内（未配置视为常开）
    """
    if not form:
        raise NotFound("Form not found")
    if not form.get("is_active"):
        raise StateConflict("Form is not accepting submissions")

    cap = form.get("submission_cap")
    count = int(form.get("current_submission_count") or 0)
    if cap is not None and count >= int(cap):
        raise StateConflict("Submission cap reached")

    current = now or utcnow()
    start = parse_iso_datetime(form.get("reading_period_start"))
    end = parse_iso_datetime(form.get("reading_period_end"))
    if start is not None and current < start:
        raise StateConflict("Reading period has not started")
    if end is not None and current > end:
        raise StateConflict("Reading period has ended")


def _rpc_scalar(resp: Any) -> Any:
    data = getattr(resp, "data", None)
    if isinstance(data, list):
        data = data[0] if data else None
    if isinstance(data, dict):
        data = next(iter(data.values()), None)
    return data


class SubmissionService:
    def __init__(self, client: Any = None, *, activities: Optional[ActivityService] = None):
        self.client = client or supabase_admin
        self.forms = FormService(self.client)
        self.activities = activities or ActivityService(self.client)

    # === 创建 ===

    def _claim_slot(self, form_id: str) -> bool:
        try:
            resp = self.client.rpc("claim_form_submission_slot", {"p_form_id": form_id}).execute()
        except Exception as e:
            raise UpstreamFailure(f"claim slot for form {form_id}: {e}") from e
        return _rpc_scalar(resp) is not None

    def _release_slot(self, form_id: str) -> None:
        try:
            self.client.rpc("release_form_submission_slot", {"p_form_id": form_id}).execute()
        except Exception as e:
            logger.error("[Submissions] release slot failed form=%s: %s", form_id, e)

    def create_submission(self, payload: SubmissionCreate, profile: dict, *, now: Optional[datetime] = None) -> dict:
        require_capability(profile, "submission:create")
        current = now or utcnow()

        form = self.forms.get_form(payload.form_id)
        check_creation_eligibility(form, current)

        field_errors = validate_responses(form.get("fields") or [], payload.responses)
        if field_errors:
            raise ValidationFailure(next(iter(field_errors.values())))

        # 中文注释: 数据库端条件自增；返回空表示在并发下已满或表单已关闭
        if not self._claim_slot(payload.form_id):
            raise StateConflict("Submission cap reached")

        row = {
            "form_id": payload.form_id,
            "user_id": profile["id"],
            "title": payload.title,
            "subtitle": payload.subtitle,
            "genre": payload.genre,
            "word_count": payload.word_count,
            "language": payload.language,
            "is_translation": payload.is_translation,
            "original_language": payload.original_language,
            "translator_name": payload.translator_name,
            "cover_letter": payload.cover_letter,
            "author_bio": payload.author_bio,
            "responses": payload.responses,
            "status": SubmissionStatus.PENDING.value,
            "submitted_at": current.isoformat(),
            "updated_at": current.isoformat(),
        }
        try:
            resp = self.client.table("submissions").insert(row).execute()
            created = (getattr(resp, "data", None) or [None])[0]
            if not created:
                raise RuntimeError("insert returned no row")
        except Exception as e:
            self._release_slot(payload.form_id)
            raise UpstreamFailure(f"create submission: {e}") from e

        publication = (form.get("publications") or {}) if isinstance(form.get("publications"), dict) else {}
        self.activities.record(
            user_id=profile["id"],
            activity_type=ActivityType.SUBMISSION_CREATED,
            metadata={
                "submission_id": created.get("id"),
                "submission_title": created.get("title"),
                "publication_name": publication.get("name"),
            },
        )
        # TODO: send the confirmation email once an email provider is configured
        logger.info("[Submissions] created id=%s form=%s user=%s", created.get("id"), payload.form_id, profile["id"])

        return {
            "id": created.get("id"),
            "title": created.get("title"),
            "status": created.get("status"),
            "submitted_at": created.get("submitted_at"),
            "publication": publication.get("name"),
        }

    # === 查询 ===

    def list_submissions(
        self,
        profile: dict,
        *,
        query: str = "",
        filters: Optional[FilterConfig] = None,
        sort: Optional[SortConfig] = None,
    ) -> list[dict]:
        require_capability(profile, "submission:view_own")
        try:
            resp = (
                self.client.table("submissions")
                .select(SUBMISSION_LIST_SELECT)
                .eq("user_id", profile["id"])
                .order("submitted_at", desc=True)
                .limit(LIST_LIMIT)
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"list submissions: {e}") from e

        records = []
        for row in getattr(resp, "data", None) or []:
            view = to_view_record(row)
            view["decision"] = _first(row.get("decisions"))
            view["files"] = row.get("submission_files") or []
            records.append(view)
        return apply_filters(records, query=query, filters=filters, sort=sort)

    def get_submission(self, submission_id: str, profile: dict) -> dict:
        """按 owner 范围查询：不属于当前用户时与不存在一样返回 404"""
        try:
            resp = (
                self.client.table("submissions")
                .select(SUBMISSION_DETAIL_SELECT)
                .eq("id", submission_id)
                .eq("user_id", profile["id"])
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"get submission {submission_id}: {e}") from e
        rows = getattr(resp, "data", None) or []
        if not rows:
            raise NotFound("Submission not found")

        row = dict(rows[0])
        files = [f for f in (row.get("submission_files") or []) if f.get("upload_state", "stored") == "stored"]
        row["submission_files"] = sorted(files, key=lambda f: str(f.get("uploaded_at") or ""), reverse=True)
        row["decisions"] = _first(row.get("decisions"))
        reviews = row.get("review_assignments") or []
        row["review_assignments"] = sorted(reviews, key=lambda r: str(r.get("assigned_at") or ""), reverse=True)
        return row

    def _load_for_mutation(self, submission_id: str) -> dict:
        try:
            resp = (
                self.client.table("submissions")
                .select("id,user_id,title,status,form_id")
                .eq("id", submission_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"load submission {submission_id}: {e}") from e
        rows = getattr(resp, "data", None) or []
        if not rows:
            raise NotFound("Submission not found")
        return rows[0]

    # === 撤回 ===

    def withdraw_submission(
        self,
        submission_id: str,
        profile: dict,
        *,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        submission = self._load_for_mutation(submission_id)
        if str(submission.get("user_id")) != str(profile["id"]):
            raise Unauthorized("Unauthorized")
        require_capability(profile, "submission:withdraw")

        if not can_withdraw(submission.get("status")):
            raise StateConflict("Cannot withdraw submission that has already been decided")

        current = now or utcnow()
        changes = {
            "status": SubmissionStatus.WITHDRAWN.value,
            "withdrawal_reason": (reason or "").strip() or DEFAULT_WITHDRAWAL_REASON,
            "withdrawn_at": current.isoformat(),
            "updated_at": current.isoformat(),
        }
        try:
            resp = (
                self.client.table("submissions")
                .update(changes)
                .eq("id", submission_id)
                .in_("status", sorted(WITHDRAWABLE_STATUSES))
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"withdraw submission {submission_id}: {e}") from e

        updated = (getattr(resp, "data", None) or [None])[0]
        if not updated:
            # 中文注释: 读取之后状态已被编辑改动（例如刚被接受），本次不做任何写入
            raise StateConflict("Cannot withdraw submission that has already been decided")

        self.activities.record(
            user_id=profile["id"],
            activity_type=ActivityType.STATUS_CHANGED,
            metadata={
                "submission_id": submission_id,
                "submission_title": submission.get("title"),
                "from_status": submission.get("status"),
                "to_status": SubmissionStatus.WITHDRAWN.value,
            },
        )
        logger.info("[Submissions] withdrawn id=%s user=%s", submission_id, profile["id"])

        return {
            "id": updated.get("id"),
            "status": updated.get("status"),
            "withdrawn_at": updated.get("withdrawn_at"),
            "withdrawal_reason": updated.get("withdrawal_reason"),
        }


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value
