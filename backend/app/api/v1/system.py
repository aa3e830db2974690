from fastapi import APIRouter

from app.core.config import app_config

router = APIRouter(tags=["System"])


@router.get("/health")
async def health():
    return {"success": True, "status": "ok", "environment": app_config.env}
