"""Amount and ratio helpers.

Amounts travel through the pipeline as integer minor units (cents) so that
every sum is exact.  They are converted to :class:`~decimal.Decimal` major
units only when a record is built.  Ratios are plain floats, guarded so that
a zero denominator never yields NaN or infinity.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Union

from .models import Finite, Undefined


def to_decimal(cents) -> Decimal:
    """Convert integer minor units to exact major units (``12345 -> 123.45``)."""
    return Decimal(int(cents)).scaleb(-2)


def to_cents(major) -> int:
    """Convert a major-unit number (e.g. a configured threshold) to cents."""
    return int((Decimal(str(major)) * 100).to_integral_value())


def percentage(part, whole) -> float:
    """Return ``part / whole * 100`` or ``0.0`` when ``whole`` is zero."""
    if not whole:
        return 0.0
    return float(Decimal(part) / Decimal(whole) * 100)


def percent_change(new, old) -> Union[Finite, Undefined]:
    """Percentage change from ``old`` to ``new`` relative to ``|old|``."""
    if not old:
        return Undefined()
    return Finite(float((Decimal(new) - Decimal(old)) / abs(Decimal(old)) * 100))
