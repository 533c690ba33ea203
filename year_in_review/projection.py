"""Forward projection of cumulative savings.

The projection is a straight-line extrapolation of the actual year's daily
net savings rate.  The projected curve starts from the last actual
cumulative value so the two series meet without a jump at the turn of the
year.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from decimal import ROUND_CEILING, Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import (
    MONTH_NAMES,
    ZERO,
    CumulativePoint,
    DayBucket,
    Milestone,
    MonthBucket,
    Projection,
    ProjectionPoint,
)

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLDS = (
    Decimal(10000), Decimal(25000), Decimal(50000),
    Decimal(100000), Decimal(250000), Decimal(500000),
)
DAYS_PER_MONTH = Decimal("30.44")


def actual_cumulative_series(months: Sequence[MonthBucket], year: int) -> List[CumulativePoint]:
    """Running total of monthly net savings, dated at each month end."""
    series = []
    running = ZERO
    for month in months:
        running += month.net
        month_end = date(year, month.month, calendar.monthrange(year, month.month)[1])
        series.append(
            CumulativePoint(month_label=month.label, month_end=month_end, cumulative_savings=running)
        )
    return series


def daily_averages(days: Sequence[DayBucket], basis: str = 'active') -> Tuple[Decimal, Decimal]:
    """Average daily income and expenses over active or calendar days.

    An active day has at least one included inflow or outflow.
    """
    total_income = sum((day.income for day in days), ZERO)
    total_expenses = sum((day.amount for day in days), ZERO)
    if basis == 'calendar':
        divisor = len(days)
    else:
        divisor = sum(1 for day in days if day.outflow_count or day.income)
    if not divisor:
        return ZERO, ZERO
    return total_income / divisor, total_expenses / divisor


def months_until_zero(cumulative, monthly_rate) -> Optional[int]:
    """Whole months until ``cumulative + monthly_rate * m`` reaches zero.

    Only defined while savings are positive and shrinking; otherwise None.

    Example:
        >>> months_until_zero(600, -200)
        3
        >>> months_until_zero(600, 50) is None
        True
    """
    cumulative = _as_decimal(cumulative)
    monthly_rate = _as_decimal(monthly_rate)
    if monthly_rate >= 0 or cumulative <= 0:
        return None
    return int((cumulative / -monthly_rate).to_integral_value(rounding=ROUND_CEILING))


def detect_milestones(
    actual_series: Sequence[CumulativePoint],
    projected_series: Sequence[ProjectionPoint],
    thresholds: Iterable[Decimal] = DEFAULT_THRESHOLDS,
) -> List[Milestone]:
    """Earliest month end (actual first, then projected) at or above each threshold.

    Thresholds that are never reached are left out.
    """
    timeline = [
        (point.month_end, point.cumulative_savings, False) for point in actual_series
    ] + [
        (point.month_end, point.cumulative_savings, True) for point in projected_series
    ]
    milestones = []
    for threshold in sorted(_as_decimal(value) for value in thresholds):
        for month_end, cumulative, is_projected in timeline:
            if cumulative >= threshold:
                milestones.append(
                    Milestone(
                        milestone_label=milestone_label(threshold),
                        threshold_amount=threshold,
                        date_reached=month_end,
                        cumulative_savings=cumulative,
                        is_projected=is_projected,
                    )
                )
                break
    return milestones


def project(
    actual_series: Sequence[CumulativePoint],
    daily_income_avg: Decimal,
    daily_expense_avg: Decimal,
    remaining_days: int,
    start: date,
    *,
    days_per_month: Decimal = DAYS_PER_MONTH,
    thresholds: Iterable[Decimal] = DEFAULT_THRESHOLDS,
) -> Projection:
    """Extrapolate savings month by month over ``remaining_days`` from ``start``.

    Each projected month adds ``daily_net * days`` to the previous cumulative
    value, starting from the last actual cumulative value.  The final month
    is cut short when ``remaining_days`` runs out mid-month.
    """
    daily_income_avg = _as_decimal(daily_income_avg)
    daily_expense_avg = _as_decimal(daily_expense_avg)
    daily_net = daily_income_avg - daily_expense_avg
    seed = actual_series[-1].cumulative_savings if actual_series else ZERO

    points = []
    cumulative = seed
    day = start
    remaining = max(int(remaining_days), 0)
    while remaining > 0:
        days_left_in_month = calendar.monthrange(day.year, day.month)[1] - day.day + 1
        span = min(days_left_in_month, remaining)
        income = daily_income_avg * span
        expenses = daily_expense_avg * span
        starting = cumulative
        cumulative = starting + (income - expenses)
        end = day + timedelta(days=span - 1)
        points.append(
            ProjectionPoint(
                month_label=f"{MONTH_NAMES[day.month - 1]} {day.year}",
                cumulative_savings=cumulative,
                starting_savings=starting,
                projected_income=income,
                projected_expenses=expenses,
                projected_net_savings=income - expenses,
                days=span,
                month_end=end,
            )
        )
        day = end + timedelta(days=1)
        remaining -= span

    monthly_rate = daily_net * _as_decimal(days_per_month)
    zero_in = months_until_zero(seed, monthly_rate)
    milestones = detect_milestones(actual_series, points, thresholds)
    logger.debug(
        "Projected %d month(s) from %s at %s/day; zero in %s month(s); %d milestone(s)",
        len(points), start, daily_net, zero_in, len(milestones),
    )
    return Projection(
        daily_income_avg=daily_income_avg,
        daily_expense_avg=daily_expense_avg,
        daily_net_savings=daily_net,
        actual_series=tuple(actual_series),
        monthly_projections=tuple(points),
        projected_year_end_savings=cumulative,
        months_until_zero=zero_in,
        milestones=tuple(milestones),
    )


def milestone_label(threshold: Decimal) -> str:
    """Compact label for a threshold, e.g. ``10k``, ``2.5k``, ``1M``."""
    for divisor, suffix in ((Decimal(1000000), 'M'), (Decimal(1000), 'k')):
        if abs(threshold) >= divisor:
            return f"{_plain(threshold / divisor)}{suffix}"
    return _plain(threshold)


def _plain(value: Decimal) -> str:
    text = format(value, 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
