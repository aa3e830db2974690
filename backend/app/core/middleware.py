import logging
import time

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.errors import SubmeetError, UpstreamFailure

# === 结构化日志配置 ===
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("submeet")


def _error_payload(detail: str, kind: str) -> dict:
    return {"success": False, "detail": detail, "type": kind}


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """
    统一异常捕获中间件
    - 每个请求记录一行访问日志
    - 路由之外逃逸的异常统一转换为 500，不向调用方暴露细节
    """
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            logger.info(f"Method: {request.method} Path: {request.url.path} Status: {response.status_code} Time: {process_time:.4f}s")
            return response
        except HTTPException as exc:
            return JSONResponse(
                status_code=exc.status_code,
                content=_error_payload(str(exc.detail), "http_exception"),
            )
        except Exception as e:
            logger.error(f"Unhandled Exception: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content=_error_payload("Internal server error", "server_error"),
            )


async def submeet_error_handler(request: Request, exc: SubmeetError) -> JSONResponse:
    if isinstance(exc, UpstreamFailure):
        # 中文注释: 上游失败只在日志中保留原因
        logger.error(f"Upstream failure on {request.method} {request.url.path}: {exc.reason}")
    return JSONResponse(status_code=exc.status_code, content=_error_payload(str(exc.detail), exc.kind))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # 中文注释: 请求体校验失败统一按 400 返回（与其他 ValidationFailure 一致），并带上首个字段原因
    errors = exc.errors()
    detail = "Missing required fields"
    if errors:
        first = errors[0]
        loc = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "form"))
        msg = first.get("msg") or "invalid value"
        detail = f"{loc}: {msg}" if loc else str(msg)
    return JSONResponse(status_code=400, content=_error_payload(detail, "validation_error"))
