"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # PostgreSQL (identity provider: credentials, revoked tokens)
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "placement_user"
    postgres_password: str = "password"
    postgres_db: str = "placement_db"

    # MongoDB (document store)
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "placement_portal"
    # Transactions need a replica set; disable for a standalone mongod
    mongodb_transactions: bool = True

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440
    password_reset_expire_minutes: int = 30

    # Email notifications
    app_base_url: str = "http://localhost:5173"
    unsubscribe_token_verification: bool = True

    # Object storage (S3 compatible) for resume PDFs
    s3_bucket: str = "placement-resumes"
    s3_endpoint: Optional[str] = None
    s3_region: Optional[str] = None
    s3_access_key: Optional[str] = None
    s3_secret_key: Optional[str] = None
    # When set, download URLs are built from it instead of presigned URLs
    s3_public_base_url: Optional[str] = None
    resume_url_expires: int = 3600

    # App
    debug: bool = True
    log_level: str = "INFO"

    @property
    def postgres_url(self) -> str:
        """Construct PostgreSQL connection URL"""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
