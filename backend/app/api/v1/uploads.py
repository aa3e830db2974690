from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from app.core.roles import get_current_profile
from app.services.file_intake_service import FileIntakeService

router = APIRouter(prefix="/upload", tags=["Files"])


@router.post("", status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    submission_id: str = Form("", alias="submissionId"),
    field_id: str = Form("", alias="fieldId"),
    file_type: Optional[str] = Form(None, alias="fileType"),
    profile: dict = Depends(get_current_profile),
):
    """
    上传投稿文件（multipart）。

    中文注释: 大小 / 类型 / 去重校验都在 FileIntakeService 内完成，校验失败不会写 Storage。
    解析 multipart 时 Starlette 已记录文件大小，超限的文件不再读入内存。
    """
    service = FileIntakeService()
    if file.size is not None:
        service.check_size(file.size)
    content = await file.read()
    data = service.upload(
        content=content,
        filename=file.filename or "upload",
        mime_type=file.content_type or "",
        submission_id=submission_id,
        field_id=field_id,
        file_type=file_type,
        profile=profile,
    )
    return {"success": True, **data}


@router.get("")
async def get_download_url(
    file_id: str = Query("", alias="fileId"),
    submission_id: str = Query("", alias="submissionId"),
    profile: dict = Depends(get_current_profile),
):
    """为已上传文件签发短期下载链接"""
    data = FileIntakeService().get_download_url(file_id=file_id, submission_id=submission_id, profile=profile)
    return {"success": True, **data}
