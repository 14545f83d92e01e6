"""Supporting document validation and storage."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import status as http_status

from aurelius_claims.core.config import get_settings
from aurelius_claims.core.errors import (
    NoFileError,
    PermissionDeniedError,
    TooLargeError,
    TransportError,
    UnsupportedTypeError,
    ValidationError,
)
from aurelius_claims.services import metrics, s3
from aurelius_claims.services.roles import Caller, require_lecturer

LOGGER = structlog.get_logger(__name__)

MAX_KEY_ATTEMPTS = 3


@dataclass(frozen=True)
class AcceptedDocument:
    filename: str
    extension: str
    size: int


@dataclass(frozen=True)
class StoredDocument:
    key: str
    filename: str
    size: int
    content_type: str | None


def _extension(filename: str) -> str:
    if "." not in filename:
        return ""
    return filename.rsplit(".", 1)[1].lower()


def validate_document(filename: str | None, size: int | None) -> AcceptedDocument:
    """Accept PDF, Word and Excel files strictly smaller than the size limit."""

    if not filename or size is None:
        raise NoFileError()

    settings = get_settings()
    extension = _extension(filename)
    if extension not in settings.allowed_document_extensions:
        raise UnsupportedTypeError()

    limit = settings.document_max_bytes
    if size >= limit:
        raise TooLargeError(f"File size must be less than {limit // (1024 * 1024)}MB.")

    return AcceptedDocument(filename=filename, extension=extension, size=size)


def build_document_key(user_id: str, filename: str, now: datetime | None = None) -> str:
    """Return ``<user_id>/<epoch_ms>_<token>_<filename>`` for a new upload."""

    moment = now or datetime.now(timezone.utc)
    millis = int(moment.timestamp() * 1000)
    token = secrets.token_hex(4)
    return f"{user_id}/{millis}_{token}_{s3.sanitize_filename(filename)}"


def store_document(
    caller: Caller,
    filename: str | None,
    data: bytes | None,
    content_type: str | None = None,
) -> StoredDocument:
    """Validate an upload and store it under the caller's namespace."""

    require_lecturer(caller)
    try:
        accepted = validate_document(filename, None if data is None else len(data))
    except ValidationError as exc:
        metrics.documents_uploaded_total.labels(outcome="rejected").inc()
        LOGGER.info(
            "document_rejected",
            user_id=caller.user_id,
            filename=filename,
            reason=exc.message,
        )
        raise

    for _ in range(MAX_KEY_ATTEMPTS):
        key = build_document_key(caller.user_id, accepted.filename)
        try:
            stored_key = s3.upload_bytes(data, key=key, content_type=content_type)
            break
        except s3.ObjectExistsError:
            LOGGER.warning("document_key_collision", key=key)
            continue
        except (ClientError, BotoCoreError, OSError) as exc:
            metrics.documents_uploaded_total.labels(outcome="failed").inc()
            LOGGER.error("document_store_failed", user_id=caller.user_id, error=str(exc))
            raise TransportError("Unable to store the document") from exc
    else:
        metrics.documents_uploaded_total.labels(outcome="failed").inc()
        raise TransportError(
            "Unable to allocate a storage key for the document",
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    metrics.documents_uploaded_total.labels(outcome="stored").inc()
    LOGGER.info(
        "document_stored",
        user_id=caller.user_id,
        key=stored_key,
        size=accepted.size,
    )
    return StoredDocument(
        key=stored_key,
        filename=accepted.filename,
        size=accepted.size,
        content_type=content_type,
    )


def document_download_url(caller: Caller, key: str) -> str:
    """Return a download URL for an attachment owned by the caller or any approver."""

    sanitized = s3.sanitize_object_key(key)
    if not sanitized or ".." in sanitized.split("/"):
        raise ValidationError("Invalid document key")
    if not sanitized.startswith(f"{caller.user_id}/") and not caller.is_approver:
        raise PermissionDeniedError("You do not have access to this document")

    download_name = sanitized.rsplit("/", 1)[-1].split("_", 2)[-1]
    try:
        return s3.generate_presigned_url(sanitized, download_name=download_name)
    except (ClientError, BotoCoreError) as exc:
        LOGGER.error("document_presign_failed", key=sanitized, error=str(exc))
        raise TransportError("Unable to generate download link") from exc


__all__ = [
    "AcceptedDocument",
    "StoredDocument",
    "build_document_key",
    "document_download_url",
    "store_document",
    "validate_document",
]
