import os
import sys
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[2]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_claims.db")

import pytest

from aurelius_claims.services.display import format_amount, status_badge


@pytest.mark.parametrize(
    ("status", "label", "icon", "tone"),
    [
        ("pending", "Pending", "clock", "warning"),
        ("approved", "Approved", "check-circle", "success"),
        ("rejected", "Rejected", "x-circle", "destructive"),
    ],
)
def test_status_badge(status: str, label: str, icon: str, tone: str) -> None:
    badge = status_badge(status)

    assert (badge.label, badge.icon, badge.tone) == (label, icon, tone)


def test_format_amount_uses_two_decimals_and_literal_prefix() -> None:
    assert format_amount(Decimal("500")) == "R 500.00"
    assert format_amount("901.875") == "R 901.88"
    assert format_amount(0, prefix="$") == "$ 0.00"
