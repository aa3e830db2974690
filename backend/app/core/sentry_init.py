from typing import Any

from app.core.config import SentryConfig

_SENSITIVE_KEYS = {
    "password",
    "access_token",
    "refresh_token",
    "token",
    "jwt",
    "authorization",
    "cookie",
    "set-cookie",
    "x-admin-key",
    "supabase_key",
    "service_role_key",
    "cover_letter",
    "author_bio",
}

# PDF / OLE2 (.doc) / ZIP (.docx, .odt) / RTF
_DOCUMENT_MAGIC = (b"%PDF-", b"\xd0\xcf\x11\xe0", b"PK\x03\x04", b"{\\rtf")


def _looks_like_document(value: Any) -> bool:
    if isinstance(value, (bytes, bytearray)):
        head = bytes(value[:8])
        return any(head.startswith(magic) for magic in _DOCUMENT_MAGIC) or len(value) > 5000
    if isinstance(value, str):
        # 避免把稿件正文/长文本送到 sentry
        return len(value) > 5000
    return False


def _scrub(value: Any) -> Any:
    """
    隐私清洗：递归去除敏感字段与稿件内容。
    """
    if _looks_like_document(value):
        return "[Filtered]"

    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if str(k).strip().lower() in _SENSITIVE_KEYS:
                out[str(k)] = "[Filtered]"
                continue
            out[str(k)] = _scrub(v)
        return out

    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]

    return value


def _before_send(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    # 中文注释: 严格不上传请求体（multipart 稿件、投稿信），只保留必要的诊断信息。
    request = event.get("request")
    if isinstance(request, dict):
        headers = request.get("headers")
        if isinstance(headers, dict):
            request["headers"] = {
                k: v for k, v in headers.items() if str(k).strip().lower() not in _SENSITIVE_KEYS
            }
        for field in ("cookies", "data", "body"):
            if field in request:
                request[field] = "[Filtered]"
        event["request"] = request

    for section in ("extra", "contexts"):
        obj = event.get(section)
        if isinstance(obj, dict):
            event[section] = _scrub(obj)

    return event


def init_sentry() -> bool:
    """
    初始化 Sentry。

    零崩溃原则：
    - 若未配置 DSN / 显式禁用，则直接返回 False。
    - 任何初始化异常都应在调用方 try/except 处理，不得阻塞启动。
    """
    cfg = SentryConfig.from_env()
    if not cfg.enabled or not cfg.dsn:
        return False

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration

    options: dict[str, Any] = {
        "dsn": cfg.dsn,
        "environment": cfg.environment,
        "traces_sample_rate": cfg.traces_sample_rate,
        "integrations": [FastApiIntegration()],
        "send_default_pii": False,
        "before_send": _before_send,
        # 不记录请求体（尤其是 multipart 稿件）
        "max_request_body_size": "never",
    }
    try:
        sentry_sdk.init(**options)
    except Exception as exc:
        # 中文注释: 旧版 sdk 可能不认识 max_request_body_size，降级重试一次
        if "Unknown option" in str(exc) or "unexpected keyword argument" in str(exc):
            options.pop("max_request_body_size", None)
            sentry_sdk.init(**options)
        else:
            raise
    return True
