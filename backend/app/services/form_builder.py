"""
表单构建器状态 + 表单取值校验

中文注释:
- 构建器状态是一个显式的不可变结构：每个操作返回新状态，由调用方（一次编辑会话）自己持有，
  不存在模块级的可变状态。
- 拖拽排序最终只是 move_field(from, to)；start_drag(id) + drop(target) 是按 id 的便捷入口。
- 编辑端保存表单时同样经过构建器（build_fields），补齐 id 与各类型的默认值。
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Mapping, Optional, Sequence
from uuid import uuid4

FIELD_TYPES: tuple[dict[str, str], ...] = (
    {"type": "text", "label": "Text Field"},
    {"type": "textarea", "label": "Long Text"},
    {"type": "file", "label": "File Upload"},
    {"type": "select", "label": "Dropdown"},
    {"type": "checkbox", "label": "Checkbox"},
)

_FIELD_TYPE_NAMES = {ft["type"] for ft in FIELD_TYPES}

DEFAULT_SELECT_OPTIONS = ["Option 1", "Option 2"]
DEFAULT_FILE_ACCEPT = ".doc,.docx,.pdf,.txt,.rtf"

# id / type 创建后不可修改
_IMMUTABLE_KEYS = {"id", "type"}


def _new_field_id() -> str:
    return uuid4().hex[:12]


def new_field(field_type: str, *, id_factory: Callable[[], str] = _new_field_id) -> dict[str, Any]:
    if field_type not in _FIELD_TYPE_NAMES:
        raise ValueError(f"unsupported field type: {field_type}")
    return {
        "id": id_factory(),
        "type": field_type,
        "label": f"New {field_type} field",
        "required": False,
        "options": list(DEFAULT_SELECT_OPTIONS) if field_type == "select" else None,
        "accept": DEFAULT_FILE_ACCEPT if field_type == "file" else None,
        "max_length": None,
    }


@dataclass(frozen=True)
class FormBuilderState:
    fields: tuple[dict[str, Any], ...] = ()
    dragged_field_id: Optional[str] = None

    @classmethod
    def from_fields(cls, fields: Sequence[Mapping[str, Any]]) -> "FormBuilderState":
        return cls(fields=tuple(dict(f) for f in fields))

    def _index_of(self, field_id: str) -> int:
        for i, f in enumerate(self.fields):
            if f.get("id") == field_id:
                return i
        return -1

    def add_field(self, field_type: str, *, id_factory: Callable[[], str] = _new_field_id) -> "FormBuilderState":
        return replace(self, fields=self.fields + (new_field(field_type, id_factory=id_factory),))

    def update_field(self, field_id: str, **changes: Any) -> "FormBuilderState":
        bad = _IMMUTABLE_KEYS.intersection(changes)
        if bad:
            raise ValueError(f"cannot change {', '.join(sorted(bad))}")
        return replace(
            self,
            fields=tuple({**f, **changes} if f.get("id") == field_id else f for f in self.fields),
        )

    def remove_field(self, field_id: str) -> "FormBuilderState":
        return replace(self, fields=tuple(f for f in self.fields if f.get("id") != field_id))

    def move_field(self, from_index: int, to_index: int) -> "FormBuilderState":
        n = len(self.fields)
        if not (0 <= from_index < n and 0 <= to_index < n):
            raise IndexError("field index out of range")
        items = list(self.fields)
        moved = items.pop(from_index)
        items.insert(to_index, moved)
        return replace(self, fields=tuple(items))

    def start_drag(self, field_id: str) -> "FormBuilderState":
        return replace(self, dragged_field_id=field_id)

    def drop(self, target_id: str, dragged_id: Optional[str] = None) -> "FormBuilderState":
        dragged = dragged_id or self.dragged_field_id
        if not dragged:
            return self
        src = self._index_of(dragged)
        dst = self._index_of(target_id)
        state = self
        if src >= 0 and dst >= 0 and src != dst:
            state = state.move_field(src, dst)
        return replace(state, dragged_field_id=None)

    def to_list(self) -> list[dict[str, Any]]:
        return [dict(f) for f in self.fields]


def build_fields(fields: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """
    编辑端提交的字段列表按构建器规则落地：逐个 add_field 再 update_field。

    中文注释: 缺省 id 由构建器生成；select 没给 options、file 没给 accept 时沿用默认值。
    """
    state = FormBuilderState()
    for f in fields:
        given_id = str(f.get("id") or "").strip()
        state = state.add_field(str(f.get("type")), id_factory=(lambda: given_id) if given_id else _new_field_id)
        changes = {
            key: f[key]
            for key in ("label", "required", "options", "accept", "max_length")
            if f.get(key) not in (None, [], "")
        }
        state = state.update_field(state.fields[-1]["id"], **changes)
    return state.to_list()


def _is_blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def validate_responses(
    fields: Sequence[Mapping[str, Any]],
    values: Mapping[str, Any],
) -> dict[str, str]:
    """
    按表单定义校验取值，返回 {field_id: 错误信息}；空字典表示通过。

    中文注释:
    - 文件字段在投稿创建之后才通过 /upload 上传，这里不校验。
    """
    errors: dict[str, str] = {}
    for f in fields:
        field_id = str(f.get("id") or "")
        label = str(f.get("label") or field_id)
        field_type = f.get("type")
        value = values.get(field_id)

        if field_type == "file":
            continue

        if f.get("required") and _is_blank(value):
            errors[field_id] = f"{label} is required"
            continue
        if _is_blank(value):
            continue

        max_length = f.get("max_length")
        if field_type in ("text", "textarea") and max_length and len(str(value)) > int(max_length):
            errors[field_id] = f"{label} must be at most {max_length} characters"
        elif field_type == "select":
            options = f.get("options") or []
            if str(value) not in options:
                errors[field_id] = f"{label} has an invalid option"
    return errors
