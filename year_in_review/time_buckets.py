"""Calendar bucketing of normalized transactions.

Every rollup is derived from a single zero-filled daily frame that spans the
whole target year, so days, weeks, months, quarters and weekdays always
agree with each other and always present a complete, gap-free axis.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Tuple, Union

import pandas as pd

from .models import (
    MONTH_NAMES,
    QUARTER_MONTHS,
    WEEKDAY_NAMES,
    ZERO,
    DayBucket,
    MonthBucket,
    NormalizedTransaction,
    QuarterBucket,
    SpendingStreaks,
    SpendingVelocity,
    Streak,
    TimeBuckets,
    TopMonth,
    WeekBucket,
    WeekdayBucket,
)
from .money import to_decimal
from .normalizer import transactions_frame

logger = logging.getLogger(__name__)

# Per-day integer metrics; money columns are minor units.
METRICS = ['count', 'outflow_count', 'outflow', 'inflow', 'net']


def calendar_days(year: int) -> pd.DatetimeIndex:
    """Every date of ``year``, Jan 1 through Dec 31 inclusive."""
    return pd.date_range(start=f"{year:04d}-01-01", end=f"{year:04d}-12-31", freq='D')


def sunday_weekday(index: pd.DatetimeIndex) -> pd.Index:
    """Weekday numbers with Sunday=0 .. Saturday=6 (pandas uses Monday=0)."""
    return (index.dayofweek + 1) % 7


def daily_totals(
    transactions: Union[pd.DataFrame, Iterable[NormalizedTransaction]], year: int
) -> pd.DataFrame:
    """Integer metrics per calendar day of ``year``.

    ``count`` counts every transaction regardless of inclusion flags;
    ``outflow_count`` counts included outflows; ``outflow``, ``inflow`` and
    ``net`` sum included amounts.
    """
    frame = _as_frame(transactions)
    working = frame.assign(
        count=1,
        outflow_count=(frame['include_in_totals'] & frame['is_outflow']).astype('int64'),
    )
    grouped = working.groupby('date')[METRICS].sum()
    days = calendar_days(year)
    daily = grouped.reindex(days, fill_value=0).astype('int64')
    daily.index.name = 'date'
    return daily


def bucket(
    transactions: Union[pd.DataFrame, Iterable[NormalizedTransaction]], year: int
) -> TimeBuckets:
    """Bucket transactions into day, week, month, quarter and weekday groups."""
    daily = daily_totals(transactions, year)

    days = tuple(
        DayBucket(date=timestamp.date(), **_bucket_values(row))
        for timestamp, row in daily.iterrows()
    )

    monthly = daily.groupby(daily.index.month).sum().reindex(range(1, 13), fill_value=0)
    months = tuple(
        MonthBucket(month=int(month), label=MONTH_NAMES[month - 1], **_bucket_values(row))
        for month, row in monthly.iterrows()
    )

    quarter_index = (daily.index.month - 1) // 3 + 1
    quarterly = daily.groupby(quarter_index).sum().reindex(range(1, 5), fill_value=0)
    quarters = tuple(
        QuarterBucket(
            quarter=int(quarter),
            label=f"Q{quarter}",
            months=tuple(MONTH_NAMES[m - 1] for m in QUARTER_MONTHS[quarter]),
            **_bucket_values(row),
        )
        for quarter, row in quarterly.iterrows()
    )

    by_weekday = daily.groupby(sunday_weekday(daily.index)).sum().reindex(range(7), fill_value=0)
    weekdays = tuple(
        WeekdayBucket(weekday=int(weekday), label=WEEKDAY_NAMES[weekday], **_bucket_values(row))
        for weekday, row in by_weekday.iterrows()
    )

    weeks = _week_buckets(daily)

    logger.debug(
        "Bucketed %d activity record(s) into %d days, %d weeks for %d",
        int(daily['count'].sum()),
        len(days),
        len(weeks),
        year,
    )
    return TimeBuckets(days=days, weeks=weeks, months=months, quarters=quarters, weekdays=weekdays)


def spending_streaks(days: Iterable[DayBucket]) -> SpendingStreaks:
    """Longest runs of consecutive days with and without included outflows.

    The earliest run wins a tie.
    """
    longest = {True: Streak(), False: Streak()}
    current_kind = None
    current_start = None
    current_length = 0
    totals = {True: 0, False: 0}

    for day in days:
        spent = day.outflow_count > 0
        totals[spent] += 1
        if spent is current_kind:
            current_length += 1
        else:
            current_kind, current_start, current_length = spent, day.date, 1
        if current_length > longest[spent].days:
            longest[spent] = Streak(days=current_length, start=current_start, end=day.date)

    return SpendingStreaks(
        longest_spending=longest[True],
        longest_no_spending=longest[False],
        total_spending_days=totals[True],
        total_no_spending_days=totals[False],
    )


def spending_velocity(weeks: Tuple[WeekBucket, ...], total_days: int) -> SpendingVelocity:
    """Daily average spending plus the fastest and slowest week.

    Weeks are compared by average spending per in-year day; the earliest
    week wins a tie.
    """
    total = sum((week.amount for week in weeks), ZERO)
    daily_average = total / total_days if total_days else ZERO
    fastest = slowest = None
    for week in weeks:
        if fastest is None or week.average_per_day > fastest.average_per_day:
            fastest = week
        if slowest is None or week.average_per_day < slowest.average_per_day:
            slowest = week
    return SpendingVelocity(
        daily_average=daily_average,
        fastest_week=fastest,
        slowest_week=slowest,
        weekly=tuple(weeks),
    )


def top_months(months: Iterable[MonthBucket], n: int = 3) -> List[TopMonth]:
    """Months with the highest spending; earlier months win ties."""
    ranked = sorted(months, key=lambda m: (-m.amount, m.month))
    return [TopMonth(month=m.month, label=m.label, spending=m.amount) for m in ranked[:n]]


def _week_buckets(daily: pd.DataFrame) -> Tuple[WeekBucket, ...]:
    # Weeks start on Sunday; week 1 is the (possibly partial) week holding Jan 1.
    first_offset = int(sunday_weekday(daily.index[:1])[0])
    week_numbers = (daily.index.dayofyear - 1 + first_offset) // 7 + 1
    weekly = daily.groupby(week_numbers)
    sums = weekly.sum()
    bounds = pd.DataFrame(
        {
            'start': daily.index.to_series().groupby(week_numbers).min(),
            'end': daily.index.to_series().groupby(week_numbers).max(),
            'days': weekly.size(),
        }
    )
    return tuple(
        WeekBucket(
            week=int(week),
            label=f"Week {week}",
            start=bounds.at[week, 'start'].date(),
            end=bounds.at[week, 'end'].date(),
            days=int(bounds.at[week, 'days']),
            **_bucket_values(row),
        )
        for week, row in sums.iterrows()
    )


def _bucket_values(row: pd.Series) -> dict:
    return {
        'count': int(row['count']),
        'outflow_count': int(row['outflow_count']),
        'amount': to_decimal(row['outflow']),
        'income': to_decimal(row['inflow']),
        'net': to_decimal(row['net']),
    }


def _as_frame(transactions) -> pd.DataFrame:
    if isinstance(transactions, pd.DataFrame):
        return transactions
    return transactions_frame(transactions)
