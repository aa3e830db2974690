import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    return lowered in {"1", "true", "yes", "y", "on"}


def _env_int(key: str, default: int, *, minimum: int = 1) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    return max(value, minimum)


@dataclass(frozen=True)
class AppConfig:
    """
    Application Environment Config
    """
    env: str  # 'development', 'staging', 'production'
    is_staging: bool
    supabase_url: str
    supabase_key: str

    @staticmethod
    def from_env() -> "AppConfig":
        env = (os.environ.get("APP_ENV") or "development").strip().lower()
        is_staging = env == "staging"

        # 中文注释: staging 与生产共用同一组变量名，由部署平台注入不同的值。
        supabase_url = (os.environ.get("SUPABASE_URL") or "").strip()
        supabase_key = (os.environ.get("SUPABASE_SERVICE_ROLE_KEY") or "").strip()

        return AppConfig(
            env=env,
            is_staging=is_staging,
            supabase_url=supabase_url,
            supabase_key=supabase_key
        )

# Global Config Instance
app_config = AppConfig.from_env()


# 稿件允许的 MIME 类型（.txt / .pdf / .rtf / .doc / .docx / .odt）
ALLOWED_MANUSCRIPT_MIME_TYPES: frozenset[str] = frozenset(
    {
        "text/plain",
        "application/pdf",
        "application/rtf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.oasis.opendocument.text",
    }
)


@dataclass(frozen=True)
class StorageConfig:
    """
    文件上传 / Storage 配置

    中文注释:
    1) 上限与白名单是业务规则，默认值与前端提示保持一致（10MB）。
    2) 签名 URL 默认 1 小时过期；下载接口每次请求都会重新签名。
    """

    bucket: str
    max_file_size_bytes: int
    signed_url_expires_in: int
    provisional_upload_ttl_sec: int

    @staticmethod
    def from_env() -> "StorageConfig":
        bucket = (os.environ.get("SUBMISSIONS_BUCKET") or "submissions").strip()
        return StorageConfig(
            bucket=bucket,
            max_file_size_bytes=_env_int("UPLOAD_MAX_FILE_SIZE_BYTES", 10 * 1024 * 1024),
            signed_url_expires_in=_env_int("SIGNED_URL_EXPIRES_IN", 60 * 60),
            provisional_upload_ttl_sec=_env_int("PROVISIONAL_UPLOAD_TTL_SEC", 60 * 60),
        )


def get_admin_api_key() -> Optional[str]:
    """
    内部 Cron 接口鉴权 Key

    中文注释:
    - 仅用于 `/api/v1/internal/cron/*`，避免暴露到公网用户接口。
    """

    raw = os.environ.get("ADMIN_API_KEY")
    return raw.strip() if raw else None


@dataclass(frozen=True)
class SentryConfig:
    """
    Sentry 错误监控配置

    中文注释:
    - 未配置 DSN 时整体关闭，本地/测试环境无需任何额外设置。
    """

    enabled: bool
    dsn: Optional[str]
    environment: str
    traces_sample_rate: float

    @staticmethod
    def from_env() -> "SentryConfig":
        dsn = (os.environ.get("SENTRY_DSN") or "").strip() or None
        enabled = _env_bool("SENTRY_ENABLED", bool(dsn))
        environment = (
            os.environ.get("SENTRY_ENVIRONMENT") or os.environ.get("APP_ENV") or "development"
        ).strip()

        rate_raw = (os.environ.get("SENTRY_TRACES_SAMPLE_RATE") or "0").strip()
        try:
            traces_sample_rate = float(rate_raw)
        except ValueError:
            traces_sample_rate = 0.0
        traces_sample_rate = min(max(traces_sample_rate, 0.0), 1.0)

        return SentryConfig(
            enabled=enabled,
            dsn=dsn,
            environment=environment,
            traces_sample_rate=traces_sample_rate,
        )
