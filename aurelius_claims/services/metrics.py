"""Prometheus metric definitions for the claim workflow."""

from __future__ import annotations

from prometheus_client import Counter

claims_submitted_total = Counter(
    "claims_submitted_total",
    "Total claims submitted by lecturers.",
)

claim_reviews_total = Counter(
    "claim_reviews_total",
    "Total claim review decisions by outcome.",
    labelnames=["decision"],
)

claim_review_conflicts_total = Counter(
    "claim_review_conflicts_total",
    "Review attempts that lost the race or targeted an already reviewed claim.",
)

documents_uploaded_total = Counter(
    "documents_uploaded_total",
    "Supporting document uploads by outcome.",
    labelnames=["outcome"],
)

__all__ = [
    "claim_review_conflicts_total",
    "claim_reviews_total",
    "claims_submitted_total",
    "documents_uploaded_total",
]
