from app.core.config import ALLOWED_MANUSCRIPT_MIME_TYPES, SentryConfig, StorageConfig, get_admin_api_key


def test_storage_defaults(monkeypatch):
    for key in ("SUBMISSIONS_BUCKET", "UPLOAD_MAX_FILE_SIZE_BYTES", "SIGNED_URL_EXPIRES_IN"):
        monkeypatch.delenv(key, raising=False)
    cfg = StorageConfig.from_env()
    assert cfg.bucket == "submissions"
    assert cfg.max_file_size_bytes == 10 * 1024 * 1024
    assert cfg.signed_url_expires_in == 3600


def test_storage_env_overrides_and_bad_values(monkeypatch):
    monkeypatch.setenv("SUBMISSIONS_BUCKET", "manuscripts")
    monkeypatch.setenv("UPLOAD_MAX_FILE_SIZE_BYTES", "not-a-number")
    monkeypatch.setenv("SIGNED_URL_EXPIRES_IN", "600")
    cfg = StorageConfig.from_env()
    assert cfg.bucket == "manuscripts"
    assert cfg.max_file_size_bytes == 10 * 1024 * 1024
    assert cfg.signed_url_expires_in == 600


def test_allowed_mime_types():
    assert "application/pdf" in ALLOWED_MANUSCRIPT_MIME_TYPES
    assert "image/png" not in ALLOWED_MANUSCRIPT_MIME_TYPES


def test_sentry_and_admin_key(monkeypatch):
    monkeypatch.setenv("SENTRY_DSN", "https://key@sentry.example/1")
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "7")
    cfg = SentryConfig.from_env()
    assert cfg.enabled is True
    assert cfg.traces_sample_rate == 1.0

    monkeypatch.setenv("ADMIN_API_KEY", "  secret ")
    assert get_admin_api_key() == "secret"
    monkeypatch.delenv("ADMIN_API_KEY")
    assert get_admin_api_key() is None
