from __future__ import annotations

import logging
from typing import Any, Optional

from app.core.errors import NotFound, UpstreamFailure
from app.core.roles import require_capability
from app.lib.api_client import supabase_admin
from app.lib.dates import isoformat
from app.models.schemas import FormCreate, FormUpdate
from app.services.form_builder import build_fields

logger = logging.getLogger("submeet.forms")

FORM_SELECT = (
    "id,publication_id,name,fields,is_active,reading_period_start,reading_period_end,"
    "submission_cap,current_submission_count,publications(id,name)"
)


class FormService:
    """投稿表单的读取与维护（编辑端）"""

    def __init__(self, client: Any = None):
        self.client = client or supabase_admin

    def get_form(self, form_id: str) -> Optional[dict]:
        try:
            resp = self.client.table("forms").select(FORM_SELECT).eq("id", form_id).limit(1).execute()
        except Exception as e:
            raise UpstreamFailure(f"load form {form_id}: {e}") from e
        rows = getattr(resp, "data", None) or []
        return rows[0] if rows else None

    def get_active_form(self, form_id: str) -> dict:
        """writer 端取表单：不存在或已停用都返回 404"""
        form = self.get_form(form_id)
        if not form or not form.get("is_active"):
            raise NotFound("Form not found or inactive")
        return form

    def list_forms(self, *, publication_id: str, profile: dict) -> list[dict]:
        require_capability(profile, "form:manage", publication_id=publication_id)
        try:
            resp = (
                self.client.table("forms")
                .select(FORM_SELECT)
                .eq("publication_id", publication_id)
                .order("name")
                .execute()
            )
        except Exception as e:
            raise UpstreamFailure(f"list forms: {e}") from e
        return getattr(resp, "data", None) or []

    def create_form(self, *, publication_id: str, payload: FormCreate, profile: dict) -> dict:
        require_capability(profile, "form:manage", publication_id=publication_id)
        row = {
            "publication_id": publication_id,
            "name": payload.name,
            "fields": build_fields([f.model_dump() for f in payload.fields]),
            "is_active": payload.is_active,
            "reading_period_start": isoformat(payload.reading_period_start),
            "reading_period_end": isoformat(payload.reading_period_end),
            "submission_cap": payload.submission_cap,
            "current_submission_count": 0,
        }
        try:
            resp = self.client.table("forms").insert(row).execute()
        except Exception as e:
            raise UpstreamFailure(f"create form: {e}") from e
        created = (getattr(resp, "data", None) or [None])[0]
        if not created:
            raise UpstreamFailure("create form returned no row")
        logger.info("[Forms] created form=%s publication=%s by=%s", created.get("id"), publication_id, profile.get("id"))
        return created

    def update_form(
        self, *, form_id: str, payload: FormUpdate, profile: dict, publication_id: Optional[str] = None
    ) -> dict:
        form = self.get_form(form_id)
        if not form or (publication_id and str(form.get("publication_id")) != str(publication_id)):
            raise NotFound("Form not found")
        require_capability(profile, "form:manage", publication_id=form.get("publication_id"))

        changes = payload.model_dump(exclude_unset=True)
        if "fields" in changes and payload.fields is not None:
            changes["fields"] = build_fields([f.model_dump() for f in payload.fields])
        for key in ("reading_period_start", "reading_period_end"):
            if key in changes:
                changes[key] = isoformat(changes[key])
        if not changes:
            return form

        try:
            resp = self.client.table("forms").update(changes).eq("id", form_id).execute()
        except Exception as e:
            raise UpstreamFailure(f"update form {form_id}: {e}") from e
        updated = (getattr(resp, "data", None) or [None])[0]
        return {**form, **(updated or changes)}
