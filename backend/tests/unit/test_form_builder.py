import pytest

from app.services.form_builder import FormBuilderState, build_fields, new_field, validate_responses


def _ids(prefix="f"):
    counter = iter(range(100))
    return lambda: f"{prefix}{next(counter)}"


def _state():
    ids = _ids()
    return (
        FormBuilderState()
        .add_field("text", id_factory=ids)
        .add_field("select", id_factory=ids)
        .add_field("file", id_factory=ids)
    )


def test_new_field_defaults_by_type():
    select = new_field("select", id_factory=lambda: "x")
    assert select["options"] == ["Option 1", "Option 2"]
    assert new_field("file", id_factory=lambda: "y")["accept"].startswith(".doc")
    with pytest.raises(ValueError):
        new_field("signature")


def test_operations_return_new_state():
    original = FormBuilderState()
    added = original.add_field("text", id_factory=lambda: "a")
    assert original.fields == ()
    assert [f["id"] for f in added.fields] == ["a"]


def test_update_and_remove():
    state = _state().update_field("f0", label="Title", required=True)
    assert state.fields[0]["label"] == "Title"
    assert state.fields[0]["required"] is True
    with pytest.raises(ValueError):
        state.update_field("f0", type="textarea")
    assert [f["id"] for f in state.remove_field("f1").fields] == ["f0", "f2"]


def test_move_field_and_drag_drop():
    state = _state()
    assert [f["id"] for f in state.move_field(2, 0).fields] == ["f2", "f0", "f1"]
    with pytest.raises(IndexError):
        state.move_field(0, 3)

    dropped = state.start_drag("f0").drop("f2")
    assert [f["id"] for f in dropped.fields] == ["f1", "f2", "f0"]
    assert dropped.dragged_field_id is None
    assert state.drop("f1") is state


def test_validate_responses():
    fields = [
        {"id": "bio", "type": "textarea", "label": "Bio", "required": True, "max_length": 10},
        {"id": "cat", "type": "select", "label": "Category", "options": ["Poetry", "Prose"]},
        {"id": "ms", "type": "file", "label": "Manuscript", "required": True},
        {"id": "ok", "type": "checkbox", "label": "I agree"},
    ]
    errors = validate_responses(fields, {"bio": "  ", "cat": "Drama"})
    assert errors == {"bio": "Bio is required", "cat": "Category has an invalid option"}

    errors = validate_responses(fields, {"bio": "x" * 11})
    assert errors == {"bio": "Bio must be at most 10 characters"}

    assert validate_responses(fields, {"bio": "short", "cat": "Prose"}) == {}
    # 文件字段由上传接口负责，必填也不在这里拦截
    assert "ms" not in validate_responses(fields, {})


def test_build_fields_keeps_order_and_fills_type_defaults():
    fields = build_fields(
        [
            {"id": "bio", "type": "textarea", "label": "Bio", "required": True, "max_length": 300},
            {"type": "select", "label": "Category"},
            {"id": "ms", "type": "file", "label": "Manuscript", "accept": ".pdf"},
            {"type": "file", "label": "Cover letter"},
        ]
    )
    assert [f["label"] for f in fields] == ["Bio", "Category", "Manuscript", "Cover letter"]
    assert fields[0]["id"] == "bio"
    assert fields[0]["required"] is True
    assert fields[0]["max_length"] == 300
    assert fields[1]["id"]
    assert fields[1]["options"] == ["Option 1", "Option 2"]
    assert fields[2]["accept"] == ".pdf"
    assert fields[3]["accept"] == ".doc,.docx,.pdf,.txt,.rtf"
    assert fields[1]["id"] != fields[3]["id"]
