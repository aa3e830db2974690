from typing import Dict, Optional

API_PREFIX = "/api/v1"


def auth_headers(token: Optional[str] = None) -> Dict[str, str]:
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def upload_form(submission_id: str, field_id: str = "manuscript", file_type: Optional[str] = None) -> Dict[str, str]:
    """/upload 的 multipart 文本字段（与前端字段名一致）"""
    data = {"submissionId": submission_id, "fieldId": field_id}
    if file_type:
        data["fileType"] = file_type
    return data
