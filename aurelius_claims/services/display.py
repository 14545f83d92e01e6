"""Presentation helpers for claim status and amounts."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from aurelius_claims.core.config import get_settings

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class StatusBadge:
    label: str
    icon: str
    tone: str


_STATUS_BADGES: dict[str, StatusBadge] = {
    "pending": StatusBadge(label="Pending", icon="clock", tone="warning"),
    "approved": StatusBadge(label="Approved", icon="check-circle", tone="success"),
    "rejected": StatusBadge(label="Rejected", icon="x-circle", tone="destructive"),
}


def status_badge(status: str) -> StatusBadge:
    """Return the badge shown for a claim status."""

    return _STATUS_BADGES[status]


def quantize_amount(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_amount(value: Decimal | int | float | str, prefix: str | None = None) -> str:
    """Render an amount with the literal currency prefix and two decimals."""

    if prefix is None:
        prefix = get_settings().currency_prefix
    return f"{prefix} {quantize_amount(value):.2f}"


__all__ = ["CENTS", "StatusBadge", "format_amount", "quantize_amount", "status_badge"]
