from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic.config import ConfigDict

from app.models.submission import DecisionType, Recommendation

# === 核心请求模型 (Pydantic v2) ===
# 中文注释: 前端沿用 camelCase（formId / wordCount），后端统一 snake_case，两种写法都接受。

_REQUEST_CONFIG = ConfigDict(populate_by_name=True, alias_generator=to_camel, str_strip_whitespace=True)


def _blank_to_none(value):
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    return value


class SubmissionCreate(BaseModel):
    """创建投稿"""
    model_config = _REQUEST_CONFIG

    form_id: str = Field(..., min_length=1, description="目标表单 ID")
    title: str = Field(..., min_length=1, max_length=500)
    subtitle: Optional[str] = Field(None, max_length=500)
    genre: Optional[str] = Field(None, max_length=100)
    word_count: Optional[int] = Field(None, ge=0)
    language: str = Field("English", max_length=100)
    is_translation: bool = False
    original_language: Optional[str] = Field(None, max_length=100)
    translator_name: Optional[str] = Field(None, max_length=200)
    cover_letter: Optional[str] = Field(None, max_length=20000)
    author_bio: Optional[str] = Field(None, max_length=5000)
    responses: dict[str, Any] = Field(default_factory=dict, description="动态表单字段取值（按 field id）")

    @field_validator(
        "subtitle",
        "genre",
        "original_language",
        "translator_name",
        "cover_letter",
        "author_bio",
        mode="before",
    )
    @classmethod
    def normalize_optional_strings(cls, value):
        return _blank_to_none(value)

    @field_validator("language", mode="before")
    @classmethod
    def default_language(cls, value):
        return _blank_to_none(value) or "English"


class WithdrawRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    reason: Optional[str] = Field(None, max_length=2000)

    @field_validator("reason", mode="before")
    @classmethod
    def normalize_reason(cls, value):
        return _blank_to_none(value)


class StatusChangeRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    status: str = Field(..., min_length=1)
    # 仅 admin 可用：绕过状态机
    force: bool = False
    note: Optional[str] = Field(None, max_length=2000)


class AssignReaderRequest(BaseModel):
    model_config = _REQUEST_CONFIG

    reader_id: str = Field(..., min_length=1)


class DecisionCreate(BaseModel):
    model_config = _REQUEST_CONFIG

    decision_type: DecisionType
    decision_text: Optional[str] = Field(None, max_length=20000)


class ReviewSubmit(BaseModel):
    model_config = _REQUEST_CONFIG

    recommendation: Recommendation
    rating: Optional[int] = Field(None, ge=1, le=5)
    comments: Optional[str] = Field(None, max_length=20000)


FieldType = Literal["text", "textarea", "file", "select", "checkbox"]


class FormField(BaseModel):
    """表单字段描述（顺序即展示顺序）"""
    model_config = _REQUEST_CONFIG

    id: Optional[str] = Field(None, min_length=1)
    type: FieldType
    label: str = Field(..., min_length=1, max_length=200)
    required: bool = False
    options: Optional[list[str]] = None
    accept: Optional[str] = None
    max_length: Optional[int] = Field(None, ge=1)


class FormCreate(BaseModel):
    model_config = _REQUEST_CONFIG

    name: str = Field(..., min_length=1, max_length=200)
    fields: list[FormField] = Field(default_factory=list)
    is_active: bool = True
    reading_period_start: Optional[datetime] = None
    reading_period_end: Optional[datetime] = None
    submission_cap: Optional[int] = Field(None, ge=1)

    @field_validator("fields")
    @classmethod
    def unique_field_ids(cls, value: list[FormField]) -> list[FormField]:
        ids = [f.id for f in value if f.id]
        if len(ids) != len(set(ids)):
            raise ValueError("field ids must be unique")
        return value

    @model_validator(mode="after")
    def check_reading_period(self):
        start, end = self.reading_period_start, self.reading_period_end
        if start and end and end < start:
            raise ValueError("reading period end must not be before start")
        return self


class FormUpdate(BaseModel):
    model_config = _REQUEST_CONFIG

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    fields: Optional[list[FormField]] = None
    is_active: Optional[bool] = None
    reading_period_start: Optional[datetime] = None
    reading_period_end: Optional[datetime] = None
    submission_cap: Optional[int] = Field(None, ge=1)
