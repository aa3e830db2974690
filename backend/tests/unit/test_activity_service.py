from datetime import datetime, timedelta, timezone

from app.models.submission import ActivityType
from app.services.activity_service import ActivityService, describe_activity, format_relative_time

NOW = datetime(2026, 5, 20, 12, 0, tzinfo=timezone.utc)


def test_relative_time_buckets():
    assert format_relative_time((NOW - timedelta(minutes=5)).isoformat(), now=NOW) == "Just now"
    assert format_relative_time((NOW - timedelta(hours=3)).isoformat(), now=NOW) == "3h ago"
    assert format_relative_time((NOW - timedelta(days=2)).isoformat(), now=NOW) == "2d ago"
    assert format_relative_time("2026-04-01T08:00:00Z", now=NOW) == "2026-04-01"
    assert format_relative_time(None, now=NOW) == ""


def test_describe_activity_renders_text():
    item = describe_activity(
        {
            "id": "a1",
            "type": "status_changed",
            "metadata": {"submission_title": "Orchard", "to_status": "under_review"},
            "created_at": (NOW - timedelta(hours=1)).isoformat(),
        },
        now=NOW,
    )
    assert item.title == "Status updated"
    assert item.description == '"Orchard" is now under review'
    assert item.relative_time == "1h ago"

    created = describe_activity(
        {"id": "a2", "type": "submission_created", "metadata": {"submission_title": "T", "publication_name": "Q"}},
        now=NOW,
    )
    assert created.description == '"T" was submitted to Q'


def test_record_failure_does_not_raise(fake_db):
    service = ActivityService(fake_db)
    fake_db.fail("activities", "insert")
    service.record(user_id="u1", activity_type=ActivityType.SUBMISSION_CREATED, metadata={})
    assert fake_db.rows("activities") == []

    service.record(user_id="u1", activity_type=ActivityType.REVIEW_COMPLETED, metadata={"x": 1})
    rows = service.list_recent(user_id="u1")
    assert [r["type"] for r in rows] == ["review_completed"]
