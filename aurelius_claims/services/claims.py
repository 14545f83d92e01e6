"""Claim lifecycle: submission, review transitions and listings.

A claim starts ``pending`` and moves exactly once to ``approved`` or
``rejected``. Review transitions are applied as a single conditional UPDATE
(``WHERE id = :id AND status = 'pending'``) so that when two reviewers act on
the same claim only one of them succeeds; the other gets
:class:`InvalidStateError` and nothing is written.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

import structlog
from fastapi import status as http_status
from sqlalchemy import func, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, joinedload

from aurelius_claims.core.errors import (
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    TransportError,
    ValidationError,
)
from aurelius_claims.models import CLAIM_STATUSES, Claim
from aurelius_claims.services import metrics
from aurelius_claims.services.display import CENTS, quantize_amount
from aurelius_claims.services.roles import Caller, require_approver, require_lecturer

LOGGER = structlog.get_logger(__name__)

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

# Numeric(10, 2) holds at most eight integer digits.
MAX_AMOUNT = Decimal("100000000")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def _store_errors(session: Session, action: str) -> Iterator[None]:
    """Translate connectivity failures of the claim store into ``TransportError``."""

    try:
        yield
    except OperationalError as exc:
        session.rollback()
        LOGGER.error("claim_store_unavailable", action=action, error=str(exc))
        raise TransportError(
            "Claim store unavailable, please try again",
            status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE,
        ) from exc


def parse_amount(value: object, label: str) -> Decimal:
    """Parse a non-negative amount with at most two decimal places."""

    if value is None or isinstance(value, bool):
        raise ValidationError(f"{label} is required")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{label} is required")

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValidationError(f"{label} must be a number") from None

    if not amount.is_finite():
        raise ValidationError(f"{label} must be a number")
    if amount < 0:
        raise ValidationError(f"{label} must not be negative")
    if amount >= MAX_AMOUNT:
        raise ValidationError(f"{label} is too large")
    if amount != amount.quantize(CENTS):
        raise ValidationError(f"{label} must have at most two decimal places")
    return amount.quantize(CENTS)


def _normalize_document_key(caller: Caller, document_key: str | None) -> str | None:
    if document_key is None:
        return None
    key = document_key.strip()
    if not key:
        return None
    if not key.startswith(f"{caller.user_id}/") or ".." in key.split("/"):
        raise ValidationError("Supporting document does not belong to you")
    return key


def submit_claim(
    session: Session,
    caller: Caller,
    *,
    hours_worked: object,
    hourly_rate: object,
    notes: str | None = None,
    document_key: str | None = None,
) -> Claim:
    """Create a pending claim owned by ``caller``.

    The total is computed once here and stored; nothing recomputes it later.
    Submitting twice creates two claims.
    """

    require_lecturer(caller)
    hours = parse_amount(hours_worked, "Hours worked")
    rate = parse_amount(hourly_rate, "Hourly rate")
    cleaned_notes = (notes or "").strip() or None
    key = _normalize_document_key(caller, document_key)

    claim = Claim(
        lecturer_id=caller.user_id,
        hours_worked=hours,
        hourly_rate=rate,
        total_amount=quantize_amount(hours * rate),
        notes=cleaned_notes,
        status=PENDING,
        document_key=key,
        created_at=_utcnow(),
    )
    with _store_errors(session, "submit"):
        session.add(claim)
        session.commit()

    metrics.claims_submitted_total.inc()
    LOGGER.info(
        "claim_submitted",
        claim_id=claim.id,
        lecturer_id=caller.user_id,
        total_amount=str(claim.total_amount),
        has_document=key is not None,
    )
    return claim


def _transition(
    session: Session,
    claim_id: int,
    reviewer: Caller,
    *,
    decision: str,
    rejection_reason: str | None = None,
) -> Claim:
    values: dict[str, object] = {
        "status": decision,
        "reviewed_by": reviewer.user_id,
        "reviewed_at": _utcnow(),
    }
    if rejection_reason is not None:
        values["rejection_reason"] = rejection_reason

    statement = (
        update(Claim)
        .where(Claim.id == claim_id, Claim.status == PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    with _store_errors(session, decision):
        result = session.execute(statement)
        if result.rowcount != 1:
            session.rollback()
            current = session.query(Claim.status).filter(Claim.id == claim_id).one_or_none()
            if current is None:
                raise NotFoundError("Claim not found")
            metrics.claim_review_conflicts_total.inc()
            LOGGER.warning(
                "claim_transition_conflict",
                claim_id=claim_id,
                reviewer_id=reviewer.user_id,
                attempted=decision,
                current=current.status,
            )
            raise InvalidStateError(f"Claim has already been {current.status}")
        session.commit()
        claim = session.get(Claim, claim_id, populate_existing=True)

    metrics.claim_reviews_total.labels(decision=decision).inc()
    LOGGER.info(
        f"claim_{decision}",
        claim_id=claim_id,
        reviewer_id=reviewer.user_id,
        role=reviewer.role.value,
    )
    return claim


def approve_claim(session: Session, claim_id: int, reviewer: Caller) -> Claim:
    """Move a pending claim to ``approved``."""

    require_approver(reviewer)
    return _transition(session, claim_id, reviewer, decision=APPROVED)


def reject_claim(session: Session, claim_id: int, reviewer: Caller, reason: str | None) -> Claim:
    """Move a pending claim to ``rejected`` with a non-blank reason."""

    require_approver(reviewer)
    cleaned = (reason or "").strip()
    if not cleaned:
        raise ValidationError("Please provide a reason for rejection")
    return _transition(
        session,
        claim_id,
        reviewer,
        decision=REJECTED,
        rejection_reason=cleaned,
    )


def _newest_first(query):
    # created_at ties fall back to insertion order.
    return query.order_by(Claim.created_at.desc(), Claim.id.asc())


def list_own_claims(session: Session, caller: Caller) -> list[Claim]:
    """Return the caller's claims, newest first."""

    require_lecturer(caller)
    with _store_errors(session, "list_own"):
        return _newest_first(
            session.query(Claim).filter(Claim.lecturer_id == caller.user_id)
        ).all()


def _validate_status_filter(status: str | None) -> str | None:
    if status is None:
        return None
    normalized = status.strip().lower()
    if normalized in {"", "all"}:
        return None
    if normalized not in CLAIM_STATUSES:
        raise ValidationError(f"Unknown claim status '{status}'")
    return normalized


def list_all_claims(session: Session, reviewer: Caller, status: str | None = None) -> list[Claim]:
    """Return every claim, optionally restricted to one status, newest first."""

    require_approver(reviewer)
    status_filter = _validate_status_filter(status)

    query = session.query(Claim).options(joinedload(Claim.lecturer))
    if status_filter:
        query = query.filter(Claim.status == status_filter)
    with _store_errors(session, "list_all"):
        return _newest_first(query).all()


def get_claim(session: Session, caller: Caller, claim_id: int) -> Claim:
    """Return one claim visible to the caller."""

    with _store_errors(session, "get"):
        claim = (
            session.query(Claim)
            .options(joinedload(Claim.lecturer))
            .filter(Claim.id == claim_id)
            .one_or_none()
        )
    if claim is None:
        raise NotFoundError("Claim not found")
    if claim.lecturer_id != caller.user_id and not caller.is_approver:
        raise PermissionDeniedError("You do not have access to this claim")
    return claim


def count_claims_by_status(session: Session, reviewer: Caller) -> dict[str, int]:
    """Return claim counts per status plus an ``all`` total."""

    require_approver(reviewer)
    with _store_errors(session, "count"):
        rows = session.query(Claim.status, func.count(Claim.id)).group_by(Claim.status).all()

    counts = {status: 0 for status in CLAIM_STATUSES}
    for status, count in rows:
        counts[status] = count
    counts["all"] = sum(counts[status] for status in CLAIM_STATUSES)
    return counts


__all__ = [
    "APPROVED",
    "PENDING",
    "REJECTED",
    "approve_claim",
    "count_claims_by_status",
    "get_claim",
    "list_all_claims",
    "list_own_claims",
    "parse_amount",
    "reject_claim",
    "submit_claim",
]
