from __future__ import annotations

from typing import Optional

from fastapi import Query

from app.core.errors import ValidationFailure
from app.services.submission_filters import FilterConfig, SortConfig, active_filters_count


class ListingParams:
    """
    投稿列表的搜索 / 筛选 / 排序查询参数（writer 列表与编辑端列表共用）。

    中文注释: 多值筛选既支持 `status=a,b` 也支持重复参数 `status=a&status=b`。
    """

    def __init__(
        self,
        q: str = Query("", max_length=200),
        status: Optional[list[str]] = Query(None),
        genre: Optional[list[str]] = Query(None),
        publication: Optional[list[str]] = Query(None),
        date_from: Optional[str] = Query(None, alias="dateFrom"),
        date_to: Optional[str] = Query(None, alias="dateTo"),
        min_words: Optional[int] = Query(None, alias="minWords", ge=0),
        max_words: Optional[int] = Query(None, alias="maxWords", ge=0),
        sort: str = Query("submitted_at"),
        direction: str = Query("desc"),
    ):
        try:
            self.filters = FilterConfig.build(
                status=status,
                genre=genre,
                publication=publication,
                date_from=date_from,
                date_to=date_to,
                min_words=min_words,
                max_words=max_words,
            )
            self.sort = SortConfig(key=sort, direction=direction)
        except ValueError as e:
            raise ValidationFailure(str(e)) from e
        self.query = q

    def meta(self, total: int) -> dict:
        return {
            "total": total,
            "active_filters": active_filters_count(self.filters, self.query),
            "sort": {"key": self.sort.key, "direction": self.sort.direction},
        }
