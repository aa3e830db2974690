from fastapi import APIRouter, Depends

from app.core.roles import get_current_profile
from app.services.dashboard_service import DashboardService

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard")
async def get_writer_dashboard(profile: dict = Depends(get_current_profile)):
    """writer 个人仪表盘：统计卡片 + 收藏期刊数 + 最近动态"""
    dashboard = DashboardService().writer_dashboard(profile)
    return {"success": True, "data": dashboard.model_dump(mode="json")}
