"""Claim schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from aurelius_claims.models import Claim
from aurelius_claims.services.display import format_amount, status_badge


class ClaimCreate(BaseModel):
    """Submission payload; amounts are validated by the claim service."""

    hours_worked: Decimal | str | None = None
    hourly_rate: Decimal | str | None = None
    notes: str | None = Field(default=None, max_length=4000)
    document_key: str | None = Field(default=None, max_length=512)


class ClaimReject(BaseModel):
    reason: str | None = None


class LecturerSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: str
    email: str


class ClaimRead(BaseModel):
    """Claim with its presentation fields."""

    id: int
    lecturer_id: str
    hours_worked: Decimal
    hourly_rate: Decimal
    total_amount: Decimal
    total_display: str
    notes: str | None
    status: str
    status_label: str
    status_icon: str
    status_tone: str
    document_key: str | None
    created_at: datetime
    reviewed_by: str | None
    reviewed_at: datetime | None
    rejection_reason: str | None

    @classmethod
    def from_claim(cls, claim: Claim) -> "ClaimRead":
        badge = status_badge(claim.status)
        return cls(
            id=claim.id,
            lecturer_id=claim.lecturer_id,
            hours_worked=claim.hours_worked,
            hourly_rate=claim.hourly_rate,
            total_amount=claim.total_amount,
            total_display=format_amount(claim.total_amount),
            notes=claim.notes,
            status=claim.status,
            status_label=badge.label,
            status_icon=badge.icon,
            status_tone=badge.tone,
            document_key=claim.document_key,
            created_at=claim.created_at,
            reviewed_by=claim.reviewed_by,
            reviewed_at=claim.reviewed_at,
            rejection_reason=claim.rejection_reason,
        )


class ClaimWithLecturer(ClaimRead):
    """Review-queue entry including the submitting lecturer."""

    lecturer: LecturerSummary

    @classmethod
    def from_claim(cls, claim: Claim) -> "ClaimWithLecturer":
        base = ClaimRead.from_claim(claim)
        return cls(
            **base.model_dump(),
            lecturer=LecturerSummary.model_validate(claim.lecturer),
        )


class ClaimCounts(BaseModel):
    all: int
    pending: int
    approved: int
    rejected: int


class DocumentRead(BaseModel):
    key: str
    filename: str
    size: int
    content_type: str | None


class DocumentUrl(BaseModel):
    url: str
