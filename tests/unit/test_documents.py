"""Tests for supporting document validation and storage."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[2]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_claims.db")
os.environ.setdefault("AWS_S3_BUCKET", "local")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/aurelius-claims-tests")
os.environ.setdefault("AUTH_JWT_SECRET", "test-secret")

import pytest
from botocore.exceptions import ClientError

from aurelius_claims.core.errors import (
    NoFileError,
    PermissionDeniedError,
    TooLargeError,
    TransportError,
    UnsupportedTypeError,
    ValidationError,
)
from aurelius_claims.services import documents, s3
from aurelius_claims.services.roles import Caller, Role

MIB = 1024 * 1024

LECTURER = Caller(user_id="lect-docs", email="docs@example.com", full_name="Dana Docs", role=Role.LECTURER)
OTHER_LECTURER = Caller(user_id="lect-else", email="else@example.com", full_name="Eli Else", role=Role.LECTURER)
COORDINATOR = Caller(user_id="coord-docs", email="coord@example.com", full_name="Cora Coord", role=Role.COORDINATOR)


@pytest.fixture()
def storage_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setattr(s3, "_local_bucket_root", lambda: tmp_path)
    return tmp_path


@pytest.mark.parametrize(
    "filename",
    ["claim.pdf", "claim.PDF", "hours.docx", "hours.Doc", "sheet.xlsx", "sheet.XLS", "my.final.report.pdf"],
)
def test_validate_accepts_supported_extensions(filename: str) -> None:
    accepted = documents.validate_document(filename, 1024)

    assert accepted.filename == filename
    assert accepted.extension == filename.rsplit(".", 1)[1].lower()


@pytest.mark.parametrize(
    "filename",
    ["setup.exe", "photo.png", "archive.pdf.zip", "notes.txt", "pdf", "report."],
)
def test_validate_rejects_other_extensions(filename: str) -> None:
    with pytest.raises(UnsupportedTypeError) as exc_info:
        documents.validate_document(filename, 1024)

    assert isinstance(exc_info.value, ValidationError)
    assert exc_info.value.status_code == 400


def test_validate_size_limit_is_exclusive() -> None:
    assert documents.validate_document("claim.pdf", 5 * MIB - 1).size == 5 * MIB - 1

    with pytest.raises(TooLargeError):
        documents.validate_document("claim.pdf", 5 * MIB)


def test_validate_rejects_six_mib_pdf() -> None:
    with pytest.raises(TooLargeError) as exc_info:
        documents.validate_document("claim.pdf", 6 * MIB)

    assert exc_info.value.status_code == 413
    assert exc_info.value.detail == "File size must be less than 5MB."


@pytest.mark.parametrize(("filename", "size"), [(None, 10), ("", 10), ("claim.pdf", None)])
def test_validate_requires_a_file(filename: str | None, size: int | None) -> None:
    with pytest.raises(NoFileError):
        documents.validate_document(filename, size)


def test_document_keys_are_namespaced_and_unique() -> None:
    moment = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    first = documents.build_document_key("lect-docs", "Timesheet March.pdf", now=moment)
    second = documents.build_document_key("lect-docs", "Timesheet March.pdf", now=moment)

    assert first != second
    for key in (first, second):
        assert key.startswith(f"lect-docs/{int(moment.timestamp() * 1000)}_")
        assert key.endswith("_Timesheet March.pdf")


def test_document_key_strips_path_segments_from_filename() -> None:
    key = documents.build_document_key("lect-docs", "../../etc/passwd.pdf")

    assert key.count("/") == 1
    assert ".." not in key.split("/")


def test_store_document_writes_under_user_namespace(storage_root: Path) -> None:
    stored = documents.store_document(LECTURER, "claim.pdf", b"%PDF-1.4 data", "application/pdf")

    assert stored.key.startswith("lect-docs/")
    assert stored.filename == "claim.pdf"
    assert stored.size == len(b"%PDF-1.4 data")
    assert (storage_root / stored.key).read_bytes() == b"%PDF-1.4 data"


def test_repeated_same_name_uploads_do_not_overwrite(storage_root: Path) -> None:
    first = documents.store_document(LECTURER, "claim.pdf", b"first")
    second = documents.store_document(LECTURER, "claim.pdf", b"second")

    assert first.key != second.key
    assert (storage_root / first.key).read_bytes() == b"first"
    assert (storage_root / second.key).read_bytes() == b"second"


def test_store_document_retries_on_key_collision(
    storage_root: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    keys = iter(["lect-docs/1_aaaa_claim.pdf", "lect-docs/1_aaaa_claim.pdf", "lect-docs/1_bbbb_claim.pdf"])
    monkeypatch.setattr(documents, "build_document_key", lambda user_id, filename: next(keys))

    first = documents.store_document(LECTURER, "claim.pdf", b"one")
    second = documents.store_document(LECTURER, "claim.pdf", b"two")

    assert first.key == "lect-docs/1_aaaa_claim.pdf"
    assert second.key == "lect-docs/1_bbbb_claim.pdf"
    assert (storage_root / first.key).read_bytes() == b"one"


def test_store_document_rejects_invalid_files_before_storing(storage_root: Path) -> None:
    with pytest.raises(UnsupportedTypeError):
        documents.store_document(LECTURER, "virus.exe", b"MZ")
    with pytest.raises(NoFileError):
        documents.store_document(LECTURER, None, None)

    assert not any(storage_root.rglob("*.exe"))


def test_store_document_requires_lecturer(storage_root: Path) -> None:
    with pytest.raises(PermissionDeniedError):
        documents.store_document(COORDINATOR, "claim.pdf", b"data")


def test_store_document_surfaces_storage_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_upload(data: bytes, *, key: str, content_type: str | None = None) -> str:
        raise ClientError({"Error": {"Code": "InternalError", "Message": "boom"}}, "PutObject")

    monkeypatch.setattr(s3, "upload_bytes", failing_upload)

    with pytest.raises(TransportError) as exc_info:
        documents.store_document(LECTURER, "claim.pdf", b"data")

    assert exc_info.value.status_code == 502


def test_download_url_limited_to_owner_and_approvers(storage_root: Path) -> None:
    stored = documents.store_document(LECTURER, "claim.pdf", b"data")

    owner_url = documents.document_download_url(LECTURER, stored.key)
    reviewer_url = documents.document_download_url(COORDINATOR, stored.key)

    assert owner_url == reviewer_url
    assert owner_url.startswith("file://")
    with pytest.raises(PermissionDeniedError):
        documents.document_download_url(OTHER_LECTURER, stored.key)
    with pytest.raises(ValidationError):
        documents.document_download_url(LECTURER, "lect-docs/../lect-else/claim.pdf")
