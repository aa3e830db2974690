from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

EPOCH_MIN = datetime.min.replace(tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso_datetime(value: Any) -> datetime | None:
    """
    解析数据库 / 前端传来的时间。

    中文注释: 兼容 `Z` 结尾与无时区的字符串；无时区一律按 UTC 处理。
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        raw = str(value).strip()
        if not raw:
            return None
        try:
            dt = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    try:
        return dt.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        # 换算到 UTC 后超出 datetime 可表示范围
        return None


def isoformat(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None
