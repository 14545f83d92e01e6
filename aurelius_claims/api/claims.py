"""Claim submission and review endpoints."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from aurelius_claims.core.config import get_settings
from aurelius_claims.core.security import (
    get_current_caller,
    require_approver_caller,
    require_lecturer_caller,
)
from aurelius_claims.db import get_session_dependency
from aurelius_claims.schemas.claim import (
    ClaimCounts,
    ClaimCreate,
    ClaimRead,
    ClaimReject,
    ClaimWithLecturer,
    DocumentRead,
    DocumentUrl,
)
from aurelius_claims.services import claims as claim_service
from aurelius_claims.services import documents as document_service
from aurelius_claims.services.roles import Caller

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/claims", tags=["claims"])

SessionDep = Annotated[Session, Depends(get_session_dependency)]


# --------------------------------------------------------------------------
# Lecturer endpoints
# --------------------------------------------------------------------------
@router.post("", response_model=ClaimRead, status_code=status.HTTP_201_CREATED)
def submit_claim(
    payload: ClaimCreate,
    session: SessionDep,
    caller: Annotated[Caller, Depends(require_lecturer_caller)],
) -> ClaimRead:
    """Submit a new claim in the pending state."""

    claim = claim_service.submit_claim(
        session,
        caller,
        hours_worked=payload.hours_worked,
        hourly_rate=payload.hourly_rate,
        notes=payload.notes,
        document_key=payload.document_key,
    )
    return ClaimRead.from_claim(claim)


@router.get("/mine", response_model=list[ClaimRead])
def list_my_claims(
    session: SessionDep,
    caller: Annotated[Caller, Depends(require_lecturer_caller)],
) -> list[ClaimRead]:
    """Return the caller's own claims, newest first."""

    return [ClaimRead.from_claim(claim) for claim in claim_service.list_own_claims(session, caller)]


@router.post("/documents", response_model=DocumentRead, status_code=status.HTTP_201_CREATED)
async def upload_document(
    caller: Annotated[Caller, Depends(require_lecturer_caller)],
    file: UploadFile | None = File(None),
) -> DocumentRead:
    """Validate and store a supporting document; returns the key to submit with a claim."""

    if file is None:
        stored = await run_in_threadpool(document_service.store_document, caller, None, None)
    else:
        # One byte past the limit is enough to reject an oversize upload.
        contents = await file.read(get_settings().document_max_bytes + 1)
        LOGGER.info(
            "document_upload_received",
            user_id=caller.user_id,
            filename=file.filename,
            size=len(contents),
        )
        stored = await run_in_threadpool(
            document_service.store_document,
            caller,
            file.filename,
            contents,
            file.content_type,
        )

    return DocumentRead(
        key=stored.key,
        filename=stored.filename,
        size=stored.size,
        content_type=stored.content_type,
    )


@router.get("/documents/url", response_model=DocumentUrl)
def document_url(
    caller: Annotated[Caller, Depends(get_current_caller)],
    key: str = Query(..., description="Storage key returned by the upload endpoint"),
) -> DocumentUrl:
    """Return a download link for a supporting document."""

    return DocumentUrl(url=document_service.document_download_url(caller, key))


# --------------------------------------------------------------------------
# Review queue endpoints
# --------------------------------------------------------------------------
@router.get("", response_model=list[ClaimWithLecturer])
def list_claims(
    session: SessionDep,
    reviewer: Annotated[Caller, Depends(require_approver_caller)],
    status_filter: str | None = Query(None, alias="status"),
) -> list[ClaimWithLecturer]:
    """Return all claims, optionally filtered by status."""

    claims = claim_service.list_all_claims(session, reviewer, status_filter)
    return [ClaimWithLecturer.from_claim(claim) for claim in claims]


@router.get("/summary", response_model=ClaimCounts)
def claim_summary(
    session: SessionDep,
    reviewer: Annotated[Caller, Depends(require_approver_caller)],
) -> ClaimCounts:
    """Return claim counts for each review-queue tab."""

    return ClaimCounts(**claim_service.count_claims_by_status(session, reviewer))


@router.get("/{claim_id}", response_model=ClaimWithLecturer)
def read_claim(
    claim_id: int,
    session: SessionDep,
    caller: Annotated[Caller, Depends(get_current_caller)],
) -> ClaimWithLecturer:
    """Return a single claim visible to the caller."""

    return ClaimWithLecturer.from_claim(claim_service.get_claim(session, caller, claim_id))


@router.post("/{claim_id}/approve", response_model=ClaimRead)
def approve_claim(
    claim_id: int,
    session: SessionDep,
    reviewer: Annotated[Caller, Depends(require_approver_caller)],
) -> ClaimRead:
    """Approve a pending claim."""

    return ClaimRead.from_claim(claim_service.approve_claim(session, claim_id, reviewer))


@router.post("/{claim_id}/reject", response_model=ClaimRead)
def reject_claim(
    claim_id: int,
    payload: ClaimReject,
    session: SessionDep,
    reviewer: Annotated[Caller, Depends(require_approver_caller)],
) -> ClaimRead:
    """Reject a pending claim with a reason."""

    return ClaimRead.from_claim(
        claim_service.reject_claim(session, claim_id, reviewer, payload.reason)
    )


__all__ = ["router"]
