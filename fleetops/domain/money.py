"""
Money helpers.

All amounts are ``decimal.Decimal``.  Storage hands back decimal-precise
values (or strings, or nothing at all); ``to_money`` is the single place
where that loose input becomes a number, and anything missing or
unparseable counts as zero.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

from .enums import Recurrence

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Parse *value* to ``Decimal``; ``None``, blanks and garbage become 0."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, bool):
        return ZERO
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # shortest repr, so 0.1 stays 0.1 rather than its binary expansion
        value = repr(value)
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    return parsed if parsed.is_finite() else ZERO


def to_optional_money(value: Any) -> Optional[Decimal]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return to_money(value)


def quantize(amount: Decimal, places: int = 2) -> Decimal:
    """Round half-up to *places* decimals (cents by default)."""
    return amount.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, rate: Decimal) -> Decimal:
    """``amount x rate / 100``."""
    return amount * rate / HUNDRED


def safe_divide(numerator: Decimal, denominator: Any) -> Optional[Decimal]:
    """Return ``numerator / denominator`` or ``None`` if the denominator is 0."""
    denom = to_money(denominator)
    if denom == 0:
        return None
    return numerator / denom


def ratio_percent(part: Decimal, whole: Decimal) -> Decimal:
    """``part / whole x 100``, or 0 when *whole* is not positive."""
    if whole <= 0:
        return ZERO
    return part / whole * HUNDRED


# ── Proration of recurring business expenses ──────────────────────────


def months_between(start: date, end: date) -> int:
    """Calendar months touched by ``[start, end]``; same month counts as 1."""
    if end < start:
        return 0
    months = (end.year - start.year) * 12 + (end.month - start.month) + 1
    return max(months, 0)


def prorate(
    amount: Any,
    recurrence: Recurrence,
    effective_from: date,
    effective_to: Optional[date],
    period_start: date,
    period_end: date,
) -> Decimal:
    """
    Share of a recurring expense that falls inside ``[period_start, period_end]``.

    monthly: amount x m, quarterly: amount / 3 x m, annual: amount / 12 x m,
    where m is the number of overlapping months.  A one-time expense counts
    in full when ``effective_from`` lies inside the period.  Rounded to cents.
    """
    value = to_money(amount)
    overlap_start = max(effective_from, period_start)
    overlap_end = min(effective_to, period_end) if effective_to else period_end
    overlap = months_between(overlap_start, overlap_end)
    if overlap <= 0:
        return ZERO

    recurrence = Recurrence(recurrence)
    if recurrence is Recurrence.MONTHLY:
        prorated = value * overlap
    elif recurrence is Recurrence.QUARTERLY:
        prorated = value / 3 * overlap
    elif recurrence is Recurrence.ANNUAL:
        prorated = value / 12 * overlap
    elif period_start <= effective_from <= period_end:
        prorated = value
    else:
        prorated = ZERO
    return quantize(prorated)
