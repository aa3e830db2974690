from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import NotFound, StateConflict
from app.models.submission import (
    DEFAULT_WITHDRAWAL_REASON,
    DecisionType,
    SubmissionStatus,
    can_withdraw,
    is_terminal,
    normalize_file_role,
    normalize_status,
)
from app.services.submission_service import check_creation_eligibility

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def _form(**overrides):
    base = {
        "id": "f1",
        "is_active": True,
        "submission_cap": None,
        "current_submission_count": 0,
        "reading_period_start": None,
        "reading_period_end": None,
    }
    base.update(overrides)
    return base


def test_editor_graph_only_moves_forward():
    assert SubmissionStatus.allowed_next("pending") == {"under_review"}
    assert SubmissionStatus.allowed_next("under_review") == {"shortlisted", "accepted", "declined"}
    for terminal in ("shortlisted", "accepted", "declined", "withdrawn"):
        assert SubmissionStatus.allowed_next(terminal) == set()


def test_withdraw_only_from_open_states():
    assert can_withdraw("pending")
    assert can_withdraw("under_review")
    for status in ("shortlisted", "accepted", "declined", "withdrawn", None, "bogus"):
        assert not can_withdraw(status)


def test_terminal_and_normalize():
    assert is_terminal("accepted")
    assert not is_terminal("pending")
    assert normalize_status("Under Review") == "under_review"
    assert normalize_status("under-review") == "under_review"
    assert normalize_status("") is None
    assert normalize_status("published") is None
    assert DEFAULT_WITHDRAWAL_REASON == "Writer requested withdrawal"


def test_file_role_defaults_to_manuscript():
    assert normalize_file_role(None) == "manuscript"
    assert normalize_file_role("Cover-Letter") == "cover_letter"
    assert normalize_file_role("resume") is None


@pytest.mark.parametrize(
    "decision,status",
    [
        (DecisionType.ACCEPT, "accepted"),
        (DecisionType.DECLINE, "declined"),
        (DecisionType.SHORTLIST, "shortlisted"),
        (DecisionType.REVISE_RESUBMIT, "declined"),
    ],
)
def test_decision_maps_to_status(decision, status):
    assert decision.resulting_status() == status


def test_eligibility_missing_form():
    with pytest.raises(NotFound):
        check_creation_eligibility(None, NOW)


def test_eligibility_inactive_form():
    with pytest.raises(StateConflict, match="not accepting"):
        check_creation_eligibility(_form(is_active=False), NOW)


def test_eligibility_cap_reached():
    with pytest.raises(StateConflict, match="cap"):
        check_creation_eligibility(_form(submission_cap=3, current_submission_count=3), NOW)
    check_creation_eligibility(_form(submission_cap=3, current_submission_count=2), NOW)


def test_eligibility_reading_period():
    future = (NOW + timedelta(days=1)).isoformat()
    past = (NOW - timedelta(days=1)).isoformat()
    with pytest.raises(StateConflict, match="not started"):
        check_creation_eligibility(_form(reading_period_start=future), NOW)
    with pytest.raises(StateConflict, match="ended"):
        check_creation_eligibility(_form(reading_period_end=past), NOW)
    check_creation_eligibility(_form(reading_period_start=past, reading_period_end=future), NOW)


def test_eligibility_unbounded_form_is_always_open():
    check_creation_eligibility(_form(), NOW)
