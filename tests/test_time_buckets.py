from __future__ import annotations

from datetime import date
from decimal import Decimal

from year_in_review.config import WrappedOptions
from year_in_review.models import MonthBucket, Transaction
from year_in_review.normalizer import normalize, transactions_frame
from year_in_review.time_buckets import (
    bucket,
    daily_totals,
    spending_streaks,
    spending_velocity,
    top_months,
)


def frame_for(transactions, year=2024, **options):
    return transactions_frame(normalize(transactions, WrappedOptions(year=year, **options)))


def spend(id, day, amount=-1000, **kwargs):
    kwargs.setdefault('account_id', 'checking')
    return Transaction(id=id, date=day, amount=amount, **kwargs)


def sample():
    return [
        spend('1', date(2024, 1, 2), -1250),
        spend('2', date(2024, 1, 2), -750),
        spend('3', date(2024, 3, 15), 500000, is_income=True),
        spend('4', date(2024, 7, 4), -9999),
        spend('5', date(2024, 12, 31), -100),
        spend('6', date(2024, 8, 1), -5000, account_id='brokerage', is_off_budget=True),
    ]


def test_leap_year_has_366_day_buckets() -> None:
    buckets = bucket([], 2024)
    assert len(buckets.days) == 366
    assert buckets.days[0].date == date(2024, 1, 1)
    assert buckets.days[-1].date == date(2024, 12, 31)


def test_common_year_has_365_day_buckets() -> None:
    assert len(bucket([], 2023).days) == 365


def test_empty_input_is_zero_filled_everywhere() -> None:
    buckets = bucket([], 2024)
    assert len(buckets.months) == 12
    assert len(buckets.quarters) == 4
    assert len(buckets.weekdays) == 7
    assert all(day.count == 0 and day.amount == 0 for day in buckets.days)
    assert sum(week.days for week in buckets.weeks) == 366


def test_weeks_start_on_sunday_and_are_clipped_to_year() -> None:
    weeks = bucket([], 2024).weeks
    # 2024-01-01 is a Monday, so the first week is Monday through Saturday.
    assert weeks[0].start == date(2024, 1, 1)
    assert weeks[0].end == date(2024, 1, 6)
    assert weeks[0].days == 6
    assert weeks[1].start == date(2024, 1, 7)
    assert weeks[1].days == 7
    assert weeks[-1].end == date(2024, 12, 31)


def test_weekdays_are_sunday_first() -> None:
    buckets = bucket(frame_for([spend('sun', date(2024, 1, 7))]), 2024)
    assert [w.label for w in buckets.weekdays][:2] == ['Sunday', 'Monday']
    assert buckets.weekdays[0].count == 1
    assert buckets.weekdays[0].amount == Decimal('10.00')


def test_all_granularities_agree() -> None:
    buckets = bucket(frame_for(sample()), 2024)
    for metric in ('count', 'outflow_count', 'amount', 'income', 'net'):
        expected = sum(getattr(d, metric) for d in buckets.days)
        for granularity in ('weeks', 'months', 'quarters', 'weekdays'):
            assert sum(getattr(b, metric) for b in getattr(buckets, granularity)) == expected


def test_counts_include_excluded_activity_but_money_does_not() -> None:
    buckets = bucket(frame_for(sample()), 2024)
    august = buckets.months[7]
    assert august.count == 1
    assert august.outflow_count == 0
    assert august.amount == 0
    assert sum(d.count for d in buckets.days) == 6
    assert sum(d.net for d in buckets.days) == Decimal('4879.01')


def test_daily_net_is_signed_sum_of_included_amounts() -> None:
    daily = daily_totals(frame_for(sample()), 2024)
    assert daily.loc['2024-01-02', 'net'] == -2000
    assert daily.loc['2024-01-02', 'outflow'] == 2000
    assert daily.loc['2024-03-15', 'inflow'] == 500000


def test_bucket_accepts_normalized_transactions() -> None:
    normalized = normalize(sample(), WrappedOptions(year=2024))
    assert bucket(normalized, 2024) == bucket(transactions_frame(normalized), 2024)


def test_spending_streaks() -> None:
    transactions = [
        spend('a', date(2024, 1, 2)),
        spend('b', date(2024, 1, 3)),
        spend('c', date(2024, 1, 4)),
        spend('d', date(2024, 1, 10)),
    ]
    streaks = spending_streaks(bucket(frame_for(transactions), 2024).days)
    assert streaks.longest_spending.days == 3
    assert streaks.longest_spending.start == date(2024, 1, 2)
    assert streaks.longest_spending.end == date(2024, 1, 4)
    assert streaks.total_spending_days == 4
    assert streaks.total_no_spending_days == 362
    assert streaks.longest_no_spending.days == 356
    assert streaks.longest_no_spending.start == date(2024, 1, 11)


def test_spending_velocity_picks_fastest_week() -> None:
    buckets = bucket(frame_for([spend('big', date(2024, 3, 6), -70000)]), 2024)
    velocity = spending_velocity(buckets.weeks, len(buckets.days))
    assert velocity.fastest_week.start <= date(2024, 3, 6) <= velocity.fastest_week.end
    assert velocity.fastest_week.average_per_day == Decimal('100.00')
    assert velocity.slowest_week.amount == 0
    assert velocity.daily_average == Decimal('700.00') / 366


def test_top_months_breaks_ties_by_calendar_order() -> None:
    months = [
        MonthBucket(month=1, label='January', amount=Decimal('50.00')),
        MonthBucket(month=2, label='February', amount=Decimal('80.00')),
        MonthBucket(month=3, label='March', amount=Decimal('50.00')),
    ]
    assert [m.label for m in top_months(months, 2)] == ['February', 'January']
