from app.core import sentry_init


def test_init_sentry_disabled_without_dsn(monkeypatch):
    monkeypatch.delenv("SENTRY_DSN", raising=False)
    monkeypatch.delenv("SENTRY_ENABLED", raising=False)
    assert sentry_init.init_sentry() is False


def test_before_send_drops_body_and_sensitive_headers():
    event = {
        "request": {
            "headers": {"Authorization": "Bearer x", "X-Admin-Key": "k", "User-Agent": "pytest"},
            "data": {"cover_letter": "Dear editor"},
        },
        "extra": {"cover_letter": "Dear editor", "file": b"%PDF-1.7 ...", "submission_id": "s1"},
    }
    out = sentry_init._before_send(event, {})
    assert out["request"]["headers"] == {"User-Agent": "pytest"}
    assert out["request"]["data"] == "[Filtered]"
    assert out["extra"] == {"cover_letter": "[Filtered]", "file": "[Filtered]", "submission_id": "s1"}
