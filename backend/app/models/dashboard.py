"""
Dashboard 数据模型 (Pydantic v2)

中文注释:
- DashboardStats: writer 个人仪表盘顶部卡片
- ActivityItem: 最近动态（已渲染为可读文案）
- PublicationDashboard / ReaderWorkload: 编辑端仪表盘
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class DashboardStats(BaseModel):
    active_submissions: int = Field(..., ge=0, description="pending / under_review / shortlisted")
    total_submissions: int = Field(..., ge=0)
    accepted_submissions: int = Field(..., ge=0)
    acceptance_rate: int = Field(..., ge=0, le=100, description="百分比，四舍五入")
    submissions_this_month: int = Field(..., ge=0)
    total_words: int = Field(..., ge=0)


class ActivityItem(BaseModel):
    id: str
    type: str
    title: str
    description: str
    timestamp: Optional[datetime] = None
    relative_time: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class WriterDashboard(BaseModel):
    stats: DashboardStats
    bookmarked_journals: int = Field(0, ge=0)
    recent_activity: list[ActivityItem] = Field(default_factory=list)
    has_more_activity: bool = False


class ReaderWorkload(BaseModel):
    reader_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    active_reviews: int = Field(0, ge=0)
    total_reviews: int = Field(0, ge=0)
    average_rating: Optional[float] = None
    current_workload: int = Field(0, ge=0)
    max_workload: Optional[int] = None


class PublicationDashboard(BaseModel):
    publication_id: str
    total_submissions: int = Field(0, ge=0)
    pending_reviews: int = Field(0, ge=0)
    active_readers: int = Field(0, ge=0)
    recent_decisions: int = Field(0, ge=0)
    status_breakdown: dict[str, int] = Field(default_factory=dict)
    readers: list[ReaderWorkload] = Field(default_factory=list)
