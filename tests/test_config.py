"""Tests for configuration defaults and env overrides."""

from pms.core.config import Settings


def test_default_settings():
    settings = Settings(_env_file=None)
    assert settings.mongodb_db == "placement_management"
    assert settings.jwt_algorithm == "HS256"
    assert settings.login_max_attempts == 5
    assert settings.login_window_seconds == 900


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("LOGIN_MAX_ATTEMPTS", "10")
    monkeypatch.setenv("ENVIRONMENT", "production")
    settings = Settings(_env_file=None)
    assert settings.login_max_attempts == 10
    assert settings.is_development is False


def test_public_storage_url():
    assert Settings(_env_file=None, s3_bucket="imgs", s3_region="ap-south-1").public_storage_url == (
        "https://imgs.s3.ap-south-1.amazonaws.com"
    )
    custom = Settings(_env_file=None, s3_bucket="imgs", s3_endpoint_url="http://minio:9000/")
    assert custom.public_storage_url == "http://minio:9000/imgs"
