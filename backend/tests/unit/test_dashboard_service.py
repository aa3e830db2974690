from datetime import datetime, timedelta, timezone

from app.services.dashboard_service import DashboardService, compute_stats

NOW = datetime(2026, 6, 15, 9, 0, tzinfo=timezone.utc)


def test_stats_over_empty_collection():
    stats = compute_stats([], now=NOW)
    assert stats.total_submissions == 0
    assert stats.acceptance_rate == 0
    assert stats.total_words == 0


def test_stats_counts_and_rounding():
    rows = [
        {"status": "accepted", "submitted_at": "2026-06-01T00:00:00Z", "word_count": 1000},
        {"status": "pending", "submitted_at": "2026-06-10T00:00:00Z", "word_count": None},
        {"status": "shortlisted", "submitted_at": "2025-06-10T00:00:00Z", "word_count": 500},
        {"status": "declined", "submitted_at": "2026-05-31T23:59:00Z", "word_count": 250},
        {"status": "under_review", "submitted_at": None, "word_count": "300"},
        {"status": "withdrawn", "submitted_at": "2026-06-02T00:00:00Z", "word_count": 0},
        {"status": "accepted", "submitted_at": "2026-01-01T00:00:00Z", "word_count": 0},
        {"status": "accepted", "submitted_at": "2026-01-01T00:00:00Z"},
    ]
    stats = compute_stats(rows, now=NOW)
    assert stats.total_submissions == 8
    assert stats.accepted_submissions == 3
    assert stats.active_submissions == 3
    # 3 / 8 = 37.5% -> 38
    assert stats.acceptance_rate == 38
    # 同年同月才计入本月（2025-06 不算）
    assert stats.submissions_this_month == 3
    assert stats.total_words == 2050


def test_writer_dashboard_limits_recent_activity(fake_db):
    user = fake_db.add("users", email="w@example.com", name="W")
    fake_db.add("journal_bookmarks", user_id=user["id"], publication_id="p1")
    for i in range(7):
        fake_db.add(
            "activities",
            user_id=user["id"],
            type="submission_created",
            metadata={"submission_title": f"S{i}"},
            created_at=(NOW - timedelta(hours=i)).isoformat(),
        )
    profile = {"id": user["id"], "email": user["email"], "memberships": {}, "is_admin": False}

    dashboard = DashboardService(fake_db).writer_dashboard(profile, now=NOW)
    assert dashboard.bookmarked_journals == 1
    assert len(dashboard.recent_activity) == 5
    assert dashboard.has_more_activity is True
    assert dashboard.recent_activity[0].metadata["submission_title"] == "S0"


def test_publication_dashboard_aggregates(fake_db):
    pub = fake_db.add("publications", name="Quarterly")
    form = fake_db.add("forms", publication_id=pub["id"], name="General")
    reader = fake_db.add("users", email="r@example.com", name="Reader")
    fake_db.add("publication_members", publication_id=pub["id"], user_id=reader["id"], role="reader", current_workload=1)
    s1 = fake_db.add("submissions", form_id=form["id"], status="under_review")
    s2 = fake_db.add("submissions", form_id=form["id"], status="accepted")
    fake_db.add("review_assignments", submission_id=s1["id"], reader_id=reader["id"], is_complete=False)
    fake_db.add("review_assignments", submission_id=s2["id"], reader_id=reader["id"], is_complete=True, rating=4)
    fake_db.add("decisions", submission_id=s2["id"], created_at=(NOW - timedelta(days=3)).isoformat())

    profile = {"id": "ed", "email": "ed@example.com", "memberships": {pub["id"]: "editor"}, "is_admin": False}
    dashboard = DashboardService(fake_db).publication_dashboard(publication_id=pub["id"], profile=profile, now=NOW)

    assert dashboard.total_submissions == 2
    assert dashboard.pending_reviews == 1
    assert dashboard.active_readers == 1
    assert dashboard.recent_decisions == 1
    assert dashboard.status_breakdown == {"under_review": 1, "accepted": 1}
    workload = dashboard.readers[0]
    assert (workload.active_reviews, workload.total_reviews, workload.average_rating) == (1, 2, 4.0)
    assert workload.name == "Reader"
