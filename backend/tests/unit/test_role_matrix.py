import pytest

from app.core.errors import Unauthorized
from app.core.role_matrix import can_perform_action
from app.core.roles import require_capability, roles_for_publication


def _profile(memberships=None, is_admin=False):
    return {"id": "u1", "email": "u1@example.com", "memberships": memberships or {}, "is_admin": is_admin}


def test_writer_capabilities_are_implicit():
    roles = roles_for_publication(_profile(), "p1")
    assert roles == {"writer"}
    assert can_perform_action(action="submission:create", roles=roles)
    assert not can_perform_action(action="submission:change_status", roles=roles)


def test_membership_is_scoped_per_publication():
    profile = _profile({"p1": "editor"})
    require_capability(profile, "decision:record", publication_id="p1")
    with pytest.raises(Unauthorized):
        require_capability(profile, "decision:record", publication_id="p2")


def test_reader_cannot_change_status():
    profile = _profile({"p1": "reader"})
    require_capability(profile, "review:submit", publication_id="p1")
    with pytest.raises(Unauthorized):
        require_capability(profile, "submission:change_status", publication_id="p1")


def test_admin_has_every_capability():
    profile = _profile(is_admin=True)
    require_capability(profile, "form:manage", publication_id="anything")
    assert can_perform_action(action="submission:change_status", roles={"admin"})
    assert can_perform_action(action="review:submit", roles={"Reader", ""})
