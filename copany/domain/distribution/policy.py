"""Rules deciding whether stored distribution history may be replaced."""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable

DEFAULT_SKIP_EPSILON = Decimal("0.01")

NO_ACTIVITY = "no_activity"
EXISTING_NONZERO = "existing_nonzero"


def should_skip(existing_amounts: Iterable[Decimal], epsilon: Decimal = DEFAULT_SKIP_EPSILON) -> bool:
    """True when any stored amount is non-zero beyond ``epsilon``.

    Such a period may already have been paid out, so batch recomputes leave it alone.
    """

    return any(abs(Decimal(amount)) > epsilon for amount in existing_amounts)


def has_activity(total_income: Decimal, total_expense: Decimal) -> bool:
    return total_income != 0 or total_expense != 0
