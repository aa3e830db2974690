from postgrest.exceptions import APIError

from app.core.errors import StateConflict, UpstreamFailure, is_unique_violation
from app.core.roles import load_profile
from tests.utils.fake_supabase import FakeSupabase


def _api_error(code: str, message: str) -> APIError:
    return APIError({"code": code, "message": message, "details": None, "hint": None})


def test_is_unique_violation_only_matches_postgrest_23505():
    assert is_unique_violation(_api_error("23505", 'duplicate key value violates unique constraint "x_key"'))
    assert not is_unique_violation(_api_error("23503", "violates foreign key constraint"))
    assert not is_unique_violation(RuntimeError("duplicate key value"))


def test_error_kinds_and_generic_upstream_detail():
    assert StateConflict().status_code == 400
    assert StateConflict().kind == "state_conflict"
    err = UpstreamFailure("connection reset by peer")
    assert err.status_code == 500
    assert err.detail == "Internal server error"
    assert err.reason == "connection reset by peer"


class _RacingSupabase(FakeSupabase):
    """第一次按 email 查 users 时看不到另一请求刚写入的记录"""

    def __init__(self):
        super().__init__()
        self._first_lookup = True

    def table(self, name: str):
        query = super().table(name)
        if name == "users" and self._first_lookup:
            self._first_lookup = False
            query.eq("id", "not-visible-yet")
        return query


def test_concurrent_first_request_reuses_existing_user():
    db = _RacingSupabase()
    existing = db.add("users", id="user-1", email="poet@example.com", name="Poet")

    profile = load_profile({"id": "user-2", "email": "Poet@example.com"}, client=db)

    assert profile["id"] == existing["id"]
    assert profile["name"] == "Poet"
    assert len(db.rows("users")) == 1
