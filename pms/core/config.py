"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "placement_management"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440
    bcrypt_rounds: int = 12

    # Login throttling (fixed window per client address)
    login_max_attempts: int = 5
    login_window_seconds: int = 15 * 60
    login_sweep_interval_seconds: int = 30 * 60

    # Object storage for profile images (S3 compatible)
    s3_bucket: str = "pms-profile-images"
    s3_region: str = "us-east-1"
    s3_endpoint_url: Optional[str] = None
    s3_public_base_url: Optional[str] = None

    # Outgoing mail
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""
    frontend_url: str = "http://localhost:3000"

    # Uploads
    max_image_size_mb: int = 5
    max_roster_size_mb: int = 10

    # App
    environment: str = "development"
    debug: bool = True
    cors_origins: List[str] = ["http://localhost:3000"]

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def public_storage_url(self) -> str:
        """Base URL that stored object keys are appended to."""
        if self.s3_public_base_url:
            return self.s3_public_base_url.rstrip("/")
        if self.s3_endpoint_url:
            return f"{self.s3_endpoint_url.rstrip('/')}/{self.s3_bucket}"
        return f"https://{self.s3_bucket}.s3.{self.s3_region}.amazonaws.com"

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
