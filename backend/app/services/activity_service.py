"""
Activity 日志（append-only）

中文注释:
- 每次用户动作追加一条记录，metadata 只用于渲染可读文案。
- 写入失败不影响主流程（主操作已经成功），只记日志。
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from app.lib.api_client import supabase_admin
from app.lib.dates import parse_iso_datetime, utcnow
from app.models.dashboard import ActivityItem
from app.models.submission import ActivityType

logger = logging.getLogger("submeet.activity")


class ActivityService:
    def __init__(self, client: Any = None):
        self.client = client or supabase_admin

    def record(self, *, user_id: str, activity_type: ActivityType, metadata: Optional[dict] = None) -> None:
        try:
            self.client.table("activities").insert(
                {
                    "user_id": user_id,
                    "type": activity_type.value,
                    "metadata": metadata or {},
                }
            ).execute()
        except Exception as e:
            logger.warning("[Activity] record %s failed (ignored): %s", activity_type.value, e)

    def list_recent(self, *, user_id: str, limit: int = 6) -> list[dict]:
        resp = (
            self.client.table("activities")
            .select("id,type,metadata,created_at")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return getattr(resp, "data", None) or []


def format_relative_time(timestamp: Any, *, now: Optional[datetime] = None) -> str:
    ts = parse_iso_datetime(timestamp)
    if ts is None:
        return ""
    current = now or utcnow()
    hours = int((current - ts).total_seconds() // 3600)
    days = hours // 24
    if hours < 1:
        return "Just now"
    if hours < 24:
        return f"{hours}h ago"
    if days < 7:
        return f"{days}d ago"
    return ts.date().isoformat()


def describe_activity(row: dict, *, now: Optional[datetime] = None) -> ActivityItem:
    """把 activities 行渲染成 (title, description)"""
    kind = str(row.get("type") or "")
    meta = row.get("metadata") if isinstance(row.get("metadata"), dict) else {}
    title_text = meta.get("submission_title") or "your submission"
    publication = meta.get("publication_name")

    if kind == ActivityType.SUBMISSION_CREATED.value:
        title = "Submission sent"
        description = f'"{title_text}" was submitted' + (f" to {publication}" if publication else "")
    elif kind == ActivityType.STATUS_CHANGED.value:
        new_status = str(meta.get("to_status") or "").replace("_", " ")
        title = "Status updated"
        description = f'"{title_text}" is now {new_status}' if new_status else f'"{title_text}" status changed'
    elif kind == ActivityType.REVIEW_COMPLETED.value:
        title = "Review completed"
        description = f'You reviewed "{title_text}"'
    elif kind == ActivityType.JOURNAL_BOOKMARKED.value:
        title = "Journal bookmarked"
        description = f"You bookmarked {publication or 'a journal'}"
    else:
        title = "Activity"
        description = kind.replace("_", " ")

    return ActivityItem(
        id=str(row.get("id") or ""),
        type=kind,
        title=title,
        description=description,
        timestamp=parse_iso_datetime(row.get("created_at")),
        relative_time=format_relative_time(row.get("created_at"), now=now),
        metadata=meta,
    )
