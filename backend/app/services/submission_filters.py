"""
Submission 筛选 / 排序

中文注释:
1. 纯函数：只处理内存中的 view record 列表，不做任何 I/O，可重复调用。
2. 维度之间 AND，同一维度的多个取值之间 OR；空维度不参与过滤。
3. 排序只按一个 key；相同 key 时以 id 作为次级 key，且次级 key 跟随排序方向，
   因此切换方向总是得到完全相反的顺序。
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable, Literal, Optional, Sequence

from app.lib.dates import EPOCH_MIN, parse_iso_datetime
from app.models.submission import SubmissionStatus

SortDirection = Literal["asc", "desc"]

SORT_KEYS = ("submitted_at", "title", "author", "status", "genre", "word_count", "publication")

STATUS_OPTIONS: list[dict[str, str]] = [
    {"value": SubmissionStatus.PENDING.value, "label": "Pending"},
    {"value": SubmissionStatus.UNDER_REVIEW.value, "label": "Under Review"},
    {"value": SubmissionStatus.SHORTLISTED.value, "label": "Shortlisted"},
    {"value": SubmissionStatus.ACCEPTED.value, "label": "Accepted"},
    {"value": SubmissionStatus.DECLINED.value, "label": "Declined"},
    {"value": SubmissionStatus.WITHDRAWN.value, "label": "Withdrawn"},
]

GENRE_OPTIONS: list[dict[str, str]] = [
    {"value": g, "label": g}
    for g in (
        "Fiction",
        "Non-Fiction",
        "Poetry",
        "Short Story",
        "Essay",
        "Memoir",
        "Science Fiction",
        "Fantasy",
        "Literary Fiction",
        "Creative Non-fiction",
    )
]


@dataclass(frozen=True)
class DateRange:
    """提交时间区间（闭区间；任一端为 None 表示不设限）"""
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def contains(self, value: Optional[datetime]) -> bool:
        if value is None:
            return False
        start = parse_iso_datetime(self.start)
        end = parse_iso_datetime(self.end)
        if start is not None and value < start:
            return False
        if end is not None and value > end:
            return False
        return True


@dataclass(frozen=True)
class WordCountRange:
    min: Optional[int] = None
    max: Optional[int] = None

    def contains(self, value: Optional[int]) -> bool:
        # 中文注释: 未填写字数的投稿在设置了字数区间时不会被返回
        if value is None:
            return False
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True


@dataclass(frozen=True)
class FilterConfig:
    status: frozenset[str] = field(default_factory=frozenset)
    genre: frozenset[str] = field(default_factory=frozenset)
    publication: frozenset[str] = field(default_factory=frozenset)
    date_range: Optional[DateRange] = None
    word_count_range: Optional[WordCountRange] = None

    @classmethod
    def build(
        cls,
        *,
        status: Iterable[str] | None = None,
        genre: Iterable[str] | None = None,
        publication: Iterable[str] | None = None,
        date_from: Any = None,
        date_to: Any = None,
        min_words: Optional[int] = None,
        max_words: Optional[int] = None,
    ) -> "FilterConfig":
        """从查询参数构造（逗号分隔或重复参数都可以）"""
        start = parse_iso_datetime(date_from)
        end = parse_iso_datetime(date_to)
        if date_from is not None and start is None:
            raise ValueError("invalid date_from")
        if date_to is not None and end is None:
            raise ValueError("invalid date_to")
        if start and end and end < start:
            raise ValueError("date_to must not be before date_from")
        if min_words is not None and max_words is not None and max_words < min_words:
            raise ValueError("max_words must not be less than min_words")

        return cls(
            status=_split_values(status),
            genre=_split_values(genre),
            publication=_split_values(publication),
            date_range=DateRange(start, end) if (start or end) else None,
            word_count_range=(
                WordCountRange(min_words, max_words)
                if (min_words is not None or max_words is not None)
                else None
            ),
        )

    def active_count(self) -> int:
        count = sum(1 for values in (self.status, self.genre, self.publication) if values)
        count += int(self.date_range is not None)
        count += int(self.word_count_range is not None)
        return count

    def clear(self) -> "FilterConfig":
        """清空全部筛选条件"""
        return FilterConfig()


def _split_values(values: Iterable[str] | None) -> frozenset[str]:
    out: set[str] = set()
    for raw in values or []:
        for part in str(raw or "").split(","):
            part = part.strip()
            if part:
                out.add(part)
    return frozenset(out)


@dataclass(frozen=True)
class SortConfig:
    key: str = "submitted_at"
    direction: SortDirection = "desc"

    def __post_init__(self) -> None:
        if self.key not in SORT_KEYS:
            raise ValueError(f"unsupported sort key: {self.key}")
        if self.direction not in ("asc", "desc"):
            raise ValueError(f"unsupported sort direction: {self.direction}")

    def toggle(self, key: str) -> "SortConfig":
        """同一 key 翻转方向；换 key 时重置为升序"""
        if key == self.key:
            return replace(self, direction="desc" if self.direction == "asc" else "asc")
        return SortConfig(key=key, direction="asc")


# === record 字段访问 ===

def _publication(record: dict) -> dict:
    pub = record.get("publication")
    if isinstance(pub, dict):
        return pub
    form = record.get("form")
    if isinstance(form, dict) and isinstance(form.get("publication"), dict):
        return form["publication"]
    return {}


def _author(record: dict) -> str:
    author = record.get("author")
    if isinstance(author, dict):
        return str(author.get("name") or "")
    return str(author or "")


def _lower(value: Any) -> str:
    return str(value or "").lower()


def _word_count(record: dict) -> Optional[int]:
    raw = record.get("word_count")
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def matches_query(record: dict, query: str) -> bool:
    q = (query or "").strip().lower()
    if not q:
        return True
    haystacks = (
        _lower(record.get("title")),
        _lower(_author(record)),
        _lower(record.get("genre")),
        _lower(_publication(record).get("name")),
    )
    return any(q in h for h in haystacks)


def matches_filters(record: dict, config: FilterConfig) -> bool:
    if config.status and record.get("status") not in config.status:
        return False
    if config.genre and record.get("genre") not in config.genre:
        return False
    if config.date_range is not None:
        if not config.date_range.contains(parse_iso_datetime(record.get("submitted_at"))):
            return False
    if config.word_count_range is not None:
        if not config.word_count_range.contains(_word_count(record)):
            return False
    if config.publication:
        pub_id = _publication(record).get("id")
        if not pub_id or str(pub_id) not in config.publication:
            return False
    return True


def filter_submissions(records: Sequence[dict], query: str = "", config: FilterConfig | None = None) -> list[dict]:
    cfg = config or FilterConfig()
    return [r for r in records if matches_query(r, query) and matches_filters(r, cfg)]


def _sort_value(record: dict, key: str) -> Any:
    if key == "submitted_at":
        return parse_iso_datetime(record.get("submitted_at")) or EPOCH_MIN
    if key == "word_count":
        return _word_count(record) or 0
    if key == "author":
        return _lower(_author(record))
    if key == "publication":
        return _lower(_publication(record).get("name"))
    return _lower(record.get(key))


def sort_submissions(records: Sequence[dict], config: SortConfig | None = None) -> list[dict]:
    cfg = config or SortConfig()
    return sorted(
        records,
        key=lambda r: (_sort_value(r, cfg.key), str(r.get("id") or "")),
        reverse=cfg.direction == "desc",
    )


def apply_filters(
    records: Sequence[dict],
    *,
    query: str = "",
    filters: FilterConfig | None = None,
    sort: SortConfig | None = None,
) -> list[dict]:
    """筛选后排序；每次输入变化都完整重算"""
    return sort_submissions(filter_submissions(records, query, filters), sort)


def active_filters_count(filters: FilterConfig | None, query: str = "") -> int:
    count = filters.active_count() if filters else 0
    return count + (1 if (query or "").strip() else 0)


def to_view_record(row: dict) -> dict:
    """
    把 PostgREST 返回的 submission 行（内嵌 forms / publications / users）整理成 view record。
    """
    form = row.get("forms") or row.get("form") or {}
    publication = form.get("publications") or form.get("publication") or {}
    user = row.get("users") or row.get("user") or {}
    return {
        "id": row.get("id"),
        "title": row.get("title"),
        "subtitle": row.get("subtitle"),
        "author": user.get("name") or user.get("email") or "",
        "genre": row.get("genre"),
        "status": row.get("status"),
        "submitted_at": row.get("submitted_at"),
        "word_count": row.get("word_count"),
        "form": {"id": form.get("id"), "name": form.get("name")},
        "publication": {"id": publication.get("id"), "name": publication.get("name")},
    }
