"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    database_url: str = Field(default="sqlite:///./claims.db", alias="DATABASE_URL")
    db_pool_timeout_seconds: float = Field(default=10.0, alias="DB_POOL_TIMEOUT_SECONDS")

    auth_jwt_secret: str | None = Field(default=None, alias="AUTH_JWT_SECRET")
    auth_domain: str | None = Field(default=None, alias="AUTH_DOMAIN")
    auth_audience: str | None = Field(default=None, alias="AUTH_AUDIENCE")
    http_timeout_seconds: float = Field(default=5.0, alias="HTTP_TIMEOUT_SECONDS")

    aws_region: str = Field(default="us-west-1", alias="AWS_REGION")
    aws_s3_bucket: str = Field(default="local", alias="AWS_S3_BUCKET")
    aws_access_key_id: str | None = Field(
        default=None, alias="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: str | None = Field(
        default=None, alias="AWS_SECRET_ACCESS_KEY"
    )
    local_storage_path: str = Field(
        default="/tmp/aurelius-claims", alias="LOCAL_STORAGE_PATH"
    )
    storage_timeout_seconds: float = Field(default=10.0, alias="STORAGE_TIMEOUT_SECONDS")

    document_max_bytes: int = Field(default=5 * 1024 * 1024, alias="DOCUMENT_MAX_BYTES")
    document_extensions: str = Field(
        default="pdf,docx,xlsx,doc,xls", alias="DOCUMENT_EXTENSIONS"
    )
    currency_prefix: str = Field(default="R", alias="CURRENCY_PREFIX")

    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @property
    def allowed_document_extensions(self) -> frozenset[str]:
        """Return the accepted attachment extensions, lower-cased and dot-free."""

        return frozenset(
            part.strip().lstrip(".").lower()
            for part in self.document_extensions.split(",")
            if part.strip()
        )

    @property
    def cors_origin_list(self) -> list[str]:
        """Return the configured CORS origins as a list."""

        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def storage_is_local(self) -> bool:
        """Return ``True`` when attachments are kept on the local filesystem."""

        return self.aws_s3_bucket.lower() == "local"


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
