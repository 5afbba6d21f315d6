"""
Configuration management using Pydantic BaseSettings.
All values can be overridden via environment variables or a .env file.
"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── TiDB (MySQL-protocol compatible) ───────────────────────────────────
    tidb_host: str = "tidb"
    tidb_port: int = 4000
    tidb_user: str = "root"
    tidb_password: str = ""
    tidb_database: str = "social_feed"
    # Full SQLAlchemy async URL; overrides the TiDB fields when set
    database_url: Optional[str] = None

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+aiomysql://{self.tidb_user}:{self.tidb_password}"
            f"@{self.tidb_host}:{self.tidb_port}/{self.tidb_database}"
        )

    # ── Sentiment analysis service ─────────────────────────────────────────
    sentiment_analysis_url: Optional[str] = None   # enrichment skipped if unset
    sentiment_timeout_seconds: float = 3.0

    # ── MinIO (S3-compatible) ──────────────────────────────────────────────
    minio_endpoint: str = "minio:9000"
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_bucket: str = "media"
    minio_use_ssl: bool = False
    asset_public_base_url: Optional[str] = None

    @property
    def asset_base_url(self) -> str:
        if self.asset_public_base_url:
            return self.asset_public_base_url.rstrip("/")
        scheme = "https" if self.minio_use_ssl else "http"
        return f"{scheme}://{self.minio_endpoint}/{self.minio_bucket}"

    # ── SMTP (comment notification emails) ────────────────────────────────
    smtp_host: Optional[str] = None                # emails skipped if unset
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from_email: str = "noreply@example.com"
    smtp_from_name: str = "Social Feed"
    smtp_tls: bool = True

    # ── Client links ───────────────────────────────────────────────────────
    client_url: str = "http://localhost:5173"

    # ── Observability ──────────────────────────────────────────────────────
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4317"
    service_name: str = "engagement-service"
    environment: str = "development"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
