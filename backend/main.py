import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# 在应用启动前加载环境变量
load_dotenv()

_SENTRY_ENABLED = False
try:
    from app.core.sentry_init import init_sentry

    _SENTRY_ENABLED = init_sentry()
    if _SENTRY_ENABLED:
        print("[sentry] enabled")
except Exception as e:
    # 中文注释: Sentry 任何异常不得阻塞启动
    print(f"[sentry] init failed (ignored): {e}")

from app.api.v1 import (
    dashboard,
    editor,
    forms,
    internal,
    reader,
    submissions,
    system,
    uploads,
)
from app.core.errors import SubmeetError
from app.core.middleware import (
    ExceptionHandlerMiddleware,
    logger,
    submeet_error_handler,
    validation_error_handler,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Submeet API starting (env=%s)", os.environ.get("APP_ENV") or "development")
    yield


app = FastAPI(
    title="Submeet API",
    description="Literary submission management backend",
    version="1.0.0",
    lifespan=lifespan,
)

if _SENTRY_ENABLED:
    try:
        from sentry_sdk.integrations.asgi import SentryAsgiMiddleware

        app.add_middleware(SentryAsgiMiddleware)
    except Exception as e:
        print(f"[sentry] middleware attach failed (ignored): {e}")


def _parse_frontend_origins() -> list[str]:
    """
    解析允许跨域的前端 Origins。

    中文注释:
    - 本地默认: http://localhost:3000
    - 生产/预发: 通过 FRONTEND_ORIGIN 或 FRONTEND_ORIGINS 注入（逗号分隔）
    """
    origins: list[str] = []

    single = (os.environ.get("FRONTEND_ORIGIN") or "").strip()
    if single:
        origins.append(single.rstrip("/"))

    many = (os.environ.get("FRONTEND_ORIGINS") or "").strip()
    if many:
        origins.extend(o.strip().rstrip("/") for o in many.split(",") if o.strip())

    if not origins:
        origins = ["http://localhost:3000"]

    # 去重保持顺序
    return list(dict.fromkeys(origins))


# === 中间件配置 ===
# 1. 跨域资源共享 (CORS) - 允许前端访问
app.add_middleware(
    CORSMiddleware,
    allow_origins=_parse_frontend_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 2. 统一异常处理
app.add_middleware(ExceptionHandlerMiddleware)
app.add_exception_handler(SubmeetError, submeet_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)

# === 路由注册 ===
app.include_router(submissions.router, prefix="/api/v1")
app.include_router(uploads.router, prefix="/api/v1")
app.include_router(dashboard.router, prefix="/api/v1")
app.include_router(forms.router, prefix="/api/v1")
app.include_router(editor.router, prefix="/api/v1")
app.include_router(reader.router, prefix="/api/v1")
app.include_router(internal.router, prefix="/api/v1")
app.include_router(system.router, prefix="/api/v1")


@app.get("/")
async def root():
    return {"message": "Submeet API is running", "docs": "/docs"}
