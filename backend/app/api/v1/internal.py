from fastapi import APIRouter, Depends

from app.core.security import require_admin_key
from app.services.file_intake_service import FileIntakeService

router = APIRouter(prefix="/internal", tags=["Internal"])


@router.post("/cron/sweep-uploads")
async def sweep_uploads(_admin: None = Depends(require_admin_key)):
    """
    清理过期的 provisional 上传（内部接口）
    """
    result = FileIntakeService().sweep_provisional_uploads()
    return {"success": True, **result}
