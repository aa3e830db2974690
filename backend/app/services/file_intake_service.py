"""
File Intake: 投稿文件上传 / 下载签名 / 孤儿清理

中文注释:
1. 校验顺序：归属 -> 大小 -> MIME -> 内容哈希去重；任何一步失败都不会写 Storage、不会落库。
2. 全有或全无：先写一条 provisional 元数据，再写 blob，成功后确认为 stored。
   - blob 写入失败：删除 provisional 记录，不留下指向不存在对象的元数据；
   - 确认失败：同样撤掉 blob 与 provisional 记录；撤销本身失败时的残留由 sweep_provisional_uploads 定期清理。
3. 下载不返回长期 URL，每次请求重新签名（默认 1 小时）。
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Optional

from app.core.config import ALLOWED_MANUSCRIPT_MIME_TYPES, StorageConfig
from app.core.errors import NotFound, StateConflict, UpstreamFailure, ValidationFailure, is_unique_violation
from app.core.roles import require_capability
from app.lib.api_client import supabase_admin
from app.lib.dates import utcnow
from app.models.submission import is_terminal, normalize_file_role
from app.services.storage_service import StorageService

logger = logging.getLogger("submeet.files")

_EXTENSION_BY_MIME = {
    "text/plain": "txt",
    "application/pdf": "pdf",
    "application/rtf": "rtf",
    "application/msword": "doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "docx",
    "application/vnd.oasis.opendocument.text": "odt",
}

UPLOAD_STATE_PROVISIONAL = "provisional"
UPLOAD_STATE_STORED = "stored"


def compute_file_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


def _safe_segment(value: str) -> str:
    return "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in str(value or "")) or "field"


def file_extension(filename: str, mime_type: str) -> str:
    name = str(filename or "")
    if "." in name:
        ext = name.rsplit(".", 1)[-1].strip().lower()
        if ext and ext.isalnum():
            return ext
    return _EXTENSION_BY_MIME.get(mime_type, "bin")


def build_storage_key(*, submission_id: str, field_id: str, filename: str, mime_type: str) -> tuple[str, str]:
    """返回 (file_name, file_path)；随机后缀保证全局唯一"""
    suffix = secrets.token_hex(16)
    file_name = f"{submission_id}_{_safe_segment(field_id)}_{suffix}.{file_extension(filename, mime_type)}"
    return file_name, f"submissions/{submission_id}/{file_name}"


def _public_file(row: dict) -> dict:
    return {
        "id": row.get("id"),
        "file_name": row.get("file_name"),
        "original_name": row.get("original_name"),
        "file_size_bytes": row.get("file_size_bytes"),
        "mime_type": row.get("mime_type"),
        "file_type": row.get("file_type"),
        "field_id": row.get("field_id"),
        "file_hash": row.get("file_hash"),
        "uploaded_at": row.get("uploaded_at"),
    }


class FileIntakeService:
    def __init__(
        self,
        client: Any = None,
        *,
        storage: Optional[StorageService] = None,
        config: Optional[StorageConfig] = None,
    ):
        self.client = client or supabase_admin
        self.storage = storage or StorageService(self.client)
        self.config = config or StorageConfig.from_env()

    def _load_owned_submission(self, submission_id: str, profile: dict) -> dict:
        try:
            resp = (
                self.client.table("submissions")
                .select("id,user_id,status")
                .eq("id", submission_id)
                .eq("user_id", profile["id"])
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"load submission {submission_id}: {e}") from e
        rows = getattr(resp, "data", None) or []
        if not rows:
            raise NotFound("Submission not found or unauthorized")
        return rows[0]

    def _find_duplicate(self, submission_id: str, file_hash: str) -> Optional[dict]:
        try:
            resp = (
                self.client.table("submission_files")
                .select("id")
                .eq("submission_id", submission_id)
                .eq("file_hash", file_hash)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"duplicate check: {e}") from e
        rows = getattr(resp, "data", None) or []
        return rows[0] if rows else None

    def _delete_row(self, file_id: Any) -> None:
        try:
            self.client.table("submission_files").delete().eq("id", file_id).execute()
        except Exception as e:
            logger.error("[Files] rollback provisional row %s failed: %s", file_id, e)

    def check_size(self, size: int) -> None:
        if size > self.config.max_file_size_bytes:
            limit_mb = self.config.max_file_size_bytes // (1024 * 1024)
            raise ValidationFailure(f"File too large. Maximum size is {limit_mb}MB.")

    def validate_upload(self, *, content: bytes, mime_type: str) -> None:
        if not content:
            raise ValidationFailure("File is empty")
        self.check_size(len(content))
        if (mime_type or "").strip().lower() not in ALLOWED_MANUSCRIPT_MIME_TYPES:
            raise ValidationFailure("Invalid file type. Accepted: .doc, .docx, .pdf, .txt, .rtf, .odt")

    def upload(
        self,
        *,
        content: bytes,
        filename: str,
        mime_type: str,
        submission_id: str,
        field_id: str,
        file_type: Optional[str],
        profile: dict,
    ) -> dict:
        if not submission_id or not field_id:
            raise ValidationFailure("Missing required fields")
        require_capability(profile, "file:upload")

        submission = self._load_owned_submission(submission_id, profile)
        if is_terminal(submission.get("status")):
            raise StateConflict("Files cannot be added to a closed submission")

        self.validate_upload(content=content, mime_type=mime_type)
        role = normalize_file_role(file_type)
        if role is None:
            raise ValidationFailure("Invalid file role. Accepted: manuscript, cover_letter, bio")

        file_hash = compute_file_hash(content)
        if self._find_duplicate(submission_id, file_hash):
            raise ValidationFailure("This file has already been uploaded for this submission")

        mime = mime_type.strip().lower()
        file_name, file_path = build_storage_key(
            submission_id=submission_id, field_id=field_id, filename=filename, mime_type=mime
        )

        # 1) provisional 元数据
        provisional = {
            "submission_id": submission_id,
            "field_id": field_id,
            "file_name": file_name,
            "original_name": filename,
            "file_size_bytes": len(content),
            "mime_type": mime,
            "file_path": file_path,
            "file_hash": file_hash,
            "file_type": role,
            "upload_state": UPLOAD_STATE_PROVISIONAL,
            "uploaded_at": utcnow().isoformat(),
        }
        try:
            resp = self.client.table("submission_files").insert(provisional).execute()
        except Exception as e:
            if is_unique_violation(e):
                # 并发下的重复上传由唯一约束兜底
                raise ValidationFailure("This file has already been uploaded for this submission") from e
            raise UpstreamFailure(f"insert file metadata: {e}") from e
        row = (getattr(resp, "data", None) or [None])[0]
        if not row:
            raise UpstreamFailure("insert file metadata returned no row")

        # 2) blob
        try:
            self.storage.upload_bytes(
                bucket=self.config.bucket, path=file_path, content=content, content_type=mime
            )
        except Exception as e:
            self._delete_row(row.get("id"))
            raise UpstreamFailure(f"storage upload {file_path}: {e}") from e

        # 3) 确认
        try:
            self.client.table("submission_files").update({"upload_state": UPLOAD_STATE_STORED}).eq(
                "id", row.get("id")
            ).execute()
        except Exception as e:
            # 确认失败：blob 与 provisional 记录一起撤掉，writer 可以立即重传同一文件
            try:
                self.storage.remove(bucket=self.config.bucket, paths=[file_path])
            except Exception as remove_err:
                logger.error("[Files] rollback blob %s failed: %s", file_path, remove_err)
            self._delete_row(row.get("id"))
            raise UpstreamFailure(f"confirm file {row.get('id')}: {e}") from e
        row["upload_state"] = UPLOAD_STATE_STORED

        download_url: Optional[str] = None
        try:
            download_url = self.storage.create_signed_url(
                bucket=self.config.bucket, path=file_path, expires_in=self.config.signed_url_expires_in
            ).url
        except Exception as e:
            # 签名失败不影响上传结果，前端可再走下载接口
            logger.warning("[Files] sign after upload failed path=%s: %s", file_path, e)

        logger.info(
            "[Files] stored id=%s submission=%s size=%s type=%s",
            row.get("id"),
            submission_id,
            len(content),
            mime,
        )
        return {"file": _public_file(row), "download_url": download_url}

    def get_download_url(self, *, file_id: str, submission_id: str, profile: dict) -> dict:
        if not file_id or not submission_id:
            raise ValidationFailure("Missing fileId or submissionId")
        require_capability(profile, "file:download_own")
        self._load_owned_submission(submission_id, profile)

        try:
            resp = (
                self.client.table("submission_files")
                .select("*")
                .eq("id", file_id)
                .eq("submission_id", submission_id)
                .eq("upload_state", UPLOAD_STATE_STORED)
                .limit(1)
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"load file {file_id}: {e}") from e
        rows = getattr(resp, "data", None) or []
        if not rows:
            raise NotFound("File not found or unauthorized")
        row = rows[0]

        try:
            signed = self.storage.create_signed_url(
                bucket=self.config.bucket,
                path=row["file_path"],
                expires_in=self.config.signed_url_expires_in,
            )
        except Exception as e:
            raise UpstreamFailure(f"sign {row.get('file_path')}: {e}") from e

        return {
            "download_url": signed.url,
            "expires_in": signed.expires_in,
            "file": {
                "id": row.get("id"),
                "original_name": row.get("original_name"),
                "file_size_bytes": row.get("file_size_bytes"),
                "mime_type": row.get("mime_type"),
            },
        }

    def sweep_provisional_uploads(self, *, now: Optional[datetime] = None) -> dict:
        """
        清理超过 TTL 仍未确认的 provisional 记录及其 blob（内部 cron 调用）。
        """
        cutoff = (now or utcnow()) - timedelta(seconds=self.config.provisional_upload_ttl_sec)
        try:
            resp = (
                self.client.table("submission_files")
                .select("id,file_path")
                .eq("upload_state", UPLOAD_STATE_PROVISIONAL)
                .lt("uploaded_at", cutoff.isoformat())
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"list provisional uploads: {e}") from e
        rows = getattr(resp, "data", None) or []
        if not rows:
            return {"removed": 0}

        paths = [str(r.get("file_path")) for r in rows if r.get("file_path")]
        try:
            self.storage.remove(bucket=self.config.bucket, paths=paths)
        except Exception as e:
            # 对象可能本来就没写成功；记录后继续删除元数据
            logger.warning("[Files] sweep remove blobs failed (continuing): %s", e)

        ids = [r.get("id") for r in rows]
        try:
            self.client.table("submission_files").delete().in_("id", ids).execute()
        except Exception as e:
            raise UpstreamFailure(f"delete provisional uploads: {e}") from e

        logger.info("[Files] sweep removed %s provisional uploads", len(ids))
        return {"removed": len(ids)}
