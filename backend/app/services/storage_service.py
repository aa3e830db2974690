from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from app.lib.api_client import supabase_admin

logger = logging.getLogger("submeet.storage")


def _normalize_signed_url(resp: object) -> str | None:
    if not isinstance(resp, dict):
        return None
    return str(resp.get("signedUrl") or resp.get("signedURL") or resp.get("signed_url") or "") or None


@dataclass(frozen=True)
class SignedUrl:
    url: str
    expires_in: int


class StorageService:
    """
    Supabase Storage 的薄封装：put / sign / remove。

    中文注释:
    - 统一用 service_role client，避免受 Storage RLS 影响。
    - 这里不做重试；调用方把每一次远端写入视为单个可失败步骤。
    """

    def __init__(self, client: Any = None):
        self.client = client or supabase_admin
        self._checked_buckets: set[str] = set()

    def ensure_bucket_exists(self, *, bucket: str, public: bool = False) -> None:
        """
        确保 Storage bucket 存在（开发/演示环境兜底）。

        中文注释:
        - 正式环境建议用 migration / Dashboard 创建 bucket。
        """
        if bucket in self._checked_buckets:
            return
        storage = getattr(self.client, "storage", None)
        if storage is None or not hasattr(storage, "get_bucket") or not hasattr(storage, "create_bucket"):
            return

        try:
            storage.get_bucket(bucket)
            self._checked_buckets.add(bucket)
            return
        except Exception:
            pass

        try:
            storage.create_bucket(bucket, options={"public": bool(public)})
        except Exception as e:
            text = str(e).lower()
            if not ("already" in text or "exists" in text or "duplicate" in text):
                raise
        self._checked_buckets.add(bucket)

    def upload_bytes(self, *, bucket: str, path: str, content: bytes, content_type: str) -> None:
        self.ensure_bucket_exists(bucket=bucket, public=False)
        # storage3 期望 header value 为字符串；传 bool 会触发 httpx "Header value must be str or bytes"。
        opts = {"content-type": content_type, "upsert": "false"}
        self.client.storage.from_(bucket).upload(path, content, opts)

    def create_signed_url(self, *, bucket: str, path: str, expires_in: int) -> SignedUrl:
        signed = self.client.storage.from_(bucket).create_signed_url(path, expires_in)
        url = _normalize_signed_url(signed)
        if not url:
            raise RuntimeError("Failed to create signed url")
        return SignedUrl(url=url, expires_in=expires_in)

    def remove(self, *, bucket: str, paths: list[str]) -> None:
        if not paths:
            return
        self.client.storage.from_(bucket).remove(paths)
