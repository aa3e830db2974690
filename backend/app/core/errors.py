"""
统一错误分类

中文注释:
- 所有业务错误都是 HTTPException 子类：Service 层直接抛出，路由层无需再翻译。
- `kind` 会写入错误响应的 `type` 字段，前端据此决定提示文案。
- 每个错误对当前请求都是终止性的，后端不做任何自动重试。
"""

from __future__ import annotations

from fastapi import HTTPException
from postgrest.exceptions import APIError


class SubmeetError(HTTPException):
    status_code: int = 500
    kind: str = "server_error"
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class Unauthenticated(SubmeetError):
    status_code = 401
    kind = "unauthenticated"
    default_detail = "Unauthorized"


class Unauthorized(SubmeetError):
    status_code = 403
    kind = "unauthorized"
    default_detail = "Forbidden"


class NotFound(SubmeetError):
    # 中文注释: “不存在”与“存在但不属于你”统一返回 404，避免泄露资源是否存在
    status_code = 404
    kind = "not_found"
    default_detail = "Not found"


class ValidationFailure(SubmeetError):
    status_code = 400
    kind = "validation_error"
    default_detail = "Invalid request"


class StateConflict(SubmeetError):
    status_code = 400
    kind = "state_conflict"
    default_detail = "Operation not allowed in the current state"


class UpstreamFailure(SubmeetError):
    # 中文注释: 对外只暴露通用文案，具体原因只进日志
    status_code = 500
    kind = "server_error"
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(None)
        self.reason = detail


def is_unique_violation(err: Exception) -> bool:
    """PostgREST 唯一约束冲突（23505）"""
    if not isinstance(err, APIError):
        return False
    return err.code == "23505" or "duplicate key" in str(err).lower()
