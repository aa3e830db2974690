"""
Dashboard 聚合

中文注释:
- writer 个人统计每次请求都从完整投稿集合重新计算，不维护增量计数；
  个人投稿量级很小，线性扫描即可。
- 编辑端统计按 publication 汇总（投稿、待完成审读、读者工作量、近 30 天决定）。
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from app.core.errors import UpstreamFailure
from app.core.roles import require_capability
from app.lib.api_client import supabase_admin
from app.lib.dates import parse_iso_datetime, utcnow
from app.models.dashboard import DashboardStats, PublicationDashboard, ReaderWorkload, WriterDashboard
from app.models.submission import ACTIVE_STATUSES, SubmissionStatus
from app.services.activity_service import ActivityService, describe_activity

logger = logging.getLogger("submeet.dashboard")

RECENT_ACTIVITY_LIMIT = 5
RECENT_DECISION_DAYS = 30


def compute_stats(submissions: Iterable[dict], *, now: Optional[datetime] = None) -> DashboardStats:
    current = now or utcnow()
    total = 0
    active = 0
    accepted = 0
    this_month = 0
    total_words = 0

    for s in submissions:
        total += 1
        status = s.get("status")
        if status in ACTIVE_STATUSES:
            active += 1
        if status == SubmissionStatus.ACCEPTED.value:
            accepted += 1
        submitted = parse_iso_datetime(s.get("submitted_at"))
        if submitted is not None and submitted.year == current.year and submitted.month == current.month:
            this_month += 1
        try:
            total_words += int(s.get("word_count") or 0)
        except (TypeError, ValueError):
            pass

    # Python round() 是银行家舍入，这里按半数进位
    acceptance_rate = int(accepted * 100 / total + 0.5) if total else 0

    return DashboardStats(
        active_submissions=active,
        total_submissions=total,
        accepted_submissions=accepted,
        acceptance_rate=acceptance_rate,
        submissions_this_month=this_month,
        total_words=total_words,
    )


def _data(resp: Any) -> list[dict]:
    return getattr(resp, "data", None) or []


class DashboardService:
    def __init__(self, client: Any = None):
        self.client = client or supabase_admin
        self.activities = ActivityService(self.client)

    def writer_dashboard(self, profile: dict, *, now: Optional[datetime] = None) -> WriterDashboard:
        user_id = profile["id"]
        try:
            submissions = _data(
                self.client.table("submissions")
                .select("id,status,submitted_at,word_count")
                .eq("user_id", user_id)
                .execute()
            )
            bookmarks = _data(
                self.client.table("journal_bookmarks").select("publication_id").eq("user_id", user_id).execute()
            )
            activity_rows = self.activities.list_recent(user_id=user_id, limit=RECENT_ACTIVITY_LIMIT + 1)
        except Exception as e:
            raise UpstreamFailure(f"writer dashboard: {e}") from e

        return WriterDashboard(
            stats=compute_stats(submissions, now=now),
            bookmarked_journals=len(bookmarks),
            recent_activity=[describe_activity(r, now=now) for r in activity_rows[:RECENT_ACTIVITY_LIMIT]],
            has_more_activity=len(activity_rows) > RECENT_ACTIVITY_LIMIT,
        )

    def publication_dashboard(
        self, *, publication_id: str, profile: dict, now: Optional[datetime] = None
    ) -> PublicationDashboard:
        require_capability(profile, "dashboard:publication", publication_id=publication_id)
        current = now or utcnow()

        try:
            forms = _data(self.client.table("forms").select("id").eq("publication_id", publication_id).execute())
            form_ids = [f["id"] for f in forms]
            submissions = (
                _data(
                    self.client.table("submissions")
                    .select("id,status")
                    .in_("form_id", form_ids)
                    .execute()
                )
                if form_ids
                else []
            )
            submission_ids = [s["id"] for s in submissions]
            assignments = (
                _data(
                    self.client.table("review_assignments")
                    .select("id,submission_id,reader_id,is_complete,rating")
                    .in_("submission_id", submission_ids)
                    .execute()
                )
                if submission_ids
                else []
            )
            decisions = (
                _data(
                    self.client.table("decisions")
                    .select("id,created_at")
                    .in_("submission_id", submission_ids)
                    .execute()
                )
                if submission_ids
                else []
            )
            members = _data(
                self.client.table("publication_members")
                .select("user_id,role,current_workload,max_workload,users(id,name,email)")
                .eq("publication_id", publication_id)
                .eq("role", "reader")
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"publication dashboard {publication_id}: {e}") from e

        cutoff = current - timedelta(days=RECENT_DECISION_DAYS)
        recent_decisions = sum(
            1 for d in decisions if (parse_iso_datetime(d.get("created_at")) or cutoff) > cutoff
        )

        per_reader: dict[str, list[dict]] = {}
        for a in assignments:
            per_reader.setdefault(str(a.get("reader_id")), []).append(a)

        readers: list[ReaderWorkload] = []
        for m in members:
            reader_id = str(m.get("user_id"))
            rows = per_reader.get(reader_id, [])
            ratings = [int(r["rating"]) for r in rows if r.get("is_complete") and r.get("rating") is not None]
            user = m.get("users") or {}
            readers.append(
                ReaderWorkload(
                    reader_id=reader_id,
                    name=user.get("name"),
                    email=user.get("email"),
                    active_reviews=sum(1 for r in rows if not r.get("is_complete")),
                    total_reviews=len(rows),
                    average_rating=round(sum(ratings) / len(ratings), 2) if ratings else None,
                    current_workload=int(m.get("current_workload") or 0),
                    max_workload=m.get("max_workload"),
                )
            )

        return PublicationDashboard(
            publication_id=publication_id,
            total_submissions=len(submissions),
            pending_reviews=sum(1 for a in assignments if not a.get("is_complete")),
            active_readers=sum(1 for r in readers if r.active_reviews > 0),
            recent_decisions=recent_decisions,
            status_breakdown=dict(Counter(str(s.get("status")) for s in submissions)),
            readers=readers,
        )
