"""Minimal S3 client helpers for supporting documents."""

from __future__ import annotations

import mimetypes
import re
import urllib.parse
from functools import lru_cache
from io import BytesIO
from pathlib import Path

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError
import structlog

from aurelius_claims.core.config import get_settings

LOGGER = structlog.get_logger(__name__)


class ObjectExistsError(Exception):
    """Raised when an upload would overwrite an existing object."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Object already exists: {key}")
        self.key = key


def _local_bucket_root() -> Path:
    settings = get_settings()
    root = Path(settings.local_storage_path)
    root.mkdir(parents=True, exist_ok=True)
    return root


def _is_local_mode() -> bool:
    return get_settings().storage_is_local


@lru_cache()
def _client_config(timeout: float) -> Config:
    return Config(
        signature_version="s3v4",
        s3={"addressing_style": "virtual"},
        connect_timeout=timeout,
        read_timeout=timeout,
        retries={"max_attempts": 1, "mode": "standard"},
    )


def _client() -> BaseClient:
    settings = get_settings()
    client_kwargs: dict[str, object] = {
        "config": _client_config(settings.storage_timeout_seconds),
        "region_name": settings.aws_region,
    }

    if settings.aws_access_key_id and settings.aws_secret_access_key:
        client_kwargs["aws_access_key_id"] = settings.aws_access_key_id
        client_kwargs["aws_secret_access_key"] = settings.aws_secret_access_key

    return boto3.client("s3", **client_kwargs)


def sanitize_filename(filename: str) -> str:
    """Return a filename safe to embed in a single object key segment."""

    safe_name = re.sub(r"[\\/]+", "_", filename or "").strip()
    safe_name = re.sub(r"[^A-Za-z0-9._ -]+", "_", safe_name)
    safe_name = re.sub(r"_+", "_", safe_name).strip(" .")
    return safe_name or "document"


def sanitize_object_key(key: str) -> str:
    """Minimal, safe normalization that preserves exact S3 key semantics."""

    if not key:
        return ""

    sanitized = str(key).strip().strip('"').strip("'")
    sanitized = urllib.parse.unquote(sanitized)
    sanitized = re.sub(r"/+", "/", sanitized)
    if sanitized.startswith("/"):
        sanitized = sanitized[1:]
    return sanitized


def _determine_content_type(filename: str, content_type: str | None = None) -> str:
    """Infer a best-effort content type for uploads."""
    return (
        content_type
        or mimetypes.guess_type(filename)[0]
        or "application/octet-stream"
    )


def _local_path(key: str) -> Path:
    root = _local_bucket_root().resolve()
    destination = (root / key).resolve()
    if root not in destination.parents:
        raise ValueError(f"Object key escapes storage root: {key}")
    return destination


def upload_bytes(
    data: bytes,
    *,
    key: str,
    content_type: str | None = None,
) -> str:
    """Upload in-memory data under ``key`` without overwriting and return the key."""
    settings = get_settings()
    object_key = sanitize_object_key(key)
    resolved_content_type = _determine_content_type(object_key, content_type)

    if _is_local_mode():
        destination = _local_path(object_key)
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            with destination.open("xb") as handle:
                handle.write(data)
        except FileExistsError as exc:
            raise ObjectExistsError(object_key) from exc
        LOGGER.info("stored_local", key=object_key, path=str(destination))
        return object_key

    try:
        client = _client()
        client.put_object(
            Bucket=settings.aws_s3_bucket,
            Key=object_key,
            Body=BytesIO(data),
            ContentType=resolved_content_type,
            IfNoneMatch="*",
        )
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code")
        if code in {"PreconditionFailed", "ConditionalRequestConflict"}:
            raise ObjectExistsError(object_key) from exc
        LOGGER.error("s3_upload_failed", key=object_key, error=str(exc))
        raise
    except (BotoCoreError, NoCredentialsError) as exc:
        LOGGER.error("s3_upload_failed", key=object_key, error=str(exc))
        raise

    LOGGER.info("uploaded_s3", bucket=settings.aws_s3_bucket, key=object_key)
    return object_key


def generate_presigned_url(
    key: str,
    *,
    expires_in: int = 3600,
    download_name: str | None = None,
    response_content_type: str | None = None,
) -> str:
    """Generate a presigned URL; optionally control the downloaded filename."""

    settings = get_settings()
    sanitized_key = sanitize_object_key(key)

    if _is_local_mode():
        return _local_path(sanitized_key).as_uri()

    params: dict[str, str] = {"Bucket": settings.aws_s3_bucket, "Key": sanitized_key}

    if download_name:
        safe_name = re.sub(r"[^A-Za-z0-9._-]+", "_", download_name)
        params["ResponseContentDisposition"] = f'attachment; filename="{safe_name}"'

    if response_content_type:
        params["ResponseContentType"] = response_content_type

    client = _client()
    return client.generate_presigned_url(
        "get_object",
        Params=params,
        ExpiresIn=expires_in,
    )


__all__ = [
    "ObjectExistsError",
    "generate_presigned_url",
    "sanitize_filename",
    "sanitize_object_key",
    "upload_bytes",
]
