from __future__ import annotations

from datetime import date
from decimal import Decimal

from year_in_review.models import CumulativePoint, DayBucket, MonthBucket
from year_in_review.projection import (
    actual_cumulative_series,
    daily_averages,
    detect_milestones,
    milestone_label,
    months_until_zero,
    project,
)


def test_months_until_zero() -> None:
    assert months_until_zero(600, -200) == 3
    assert months_until_zero(500, -200) == 3
    assert months_until_zero(600, 50) is None
    assert months_until_zero(600, 0) is None
    assert months_until_zero(0, -200) is None


def test_actual_series_is_running_total_at_month_ends() -> None:
    months = [
        MonthBucket(month=m, label=f"M{m}", net=Decimal('100.00') if m % 2 else Decimal('-50.00'))
        for m in range(1, 13)
    ]
    series = actual_cumulative_series(months, 2024)
    assert series[0].cumulative_savings == Decimal('100.00')
    assert series[1].cumulative_savings == Decimal('50.00')
    assert series[1].month_end == date(2024, 2, 29)
    assert series[-1].cumulative_savings == Decimal('300.00')


def test_daily_averages_active_and_calendar_basis() -> None:
    days = [
        DayBucket(date=date(2024, 1, 1), outflow_count=1, amount=Decimal('30.00')),
        DayBucket(date=date(2024, 1, 2), income=Decimal('90.00')),
        DayBucket(date=date(2024, 1, 3)),
    ]
    assert daily_averages(days) == (Decimal('45.00'), Decimal('15.00'))
    assert daily_averages(days, 'calendar') == (Decimal('30.00'), Decimal('10.00'))
    assert daily_averages([DayBucket(date=date(2024, 1, 1))]) == (0, 0)


def actual_points():
    return [
        CumulativePoint('January', date(2024, 1, 31), Decimal('6000')),
        CumulativePoint('February', date(2024, 2, 29), Decimal('12000')),
    ]


def test_projection_is_continuous_with_actual_series() -> None:
    projection = project(
        actual_points(), Decimal('100'), Decimal('0'), 365, date(2025, 1, 1)
    )
    points = projection.monthly_projections
    assert points[0].starting_savings == Decimal('12000')
    for previous, current in zip(points, points[1:]):
        assert current.starting_savings == previous.cumulative_savings
    assert len(points) == 12
    assert sum(p.days for p in points) == 365
    assert points[0].month_label == 'January 2025'
    assert points[-1].month_end == date(2025, 12, 31)
    assert projection.projected_year_end_savings == Decimal('48500')


def test_projection_stops_mid_month_when_days_run_out() -> None:
    projection = project([], Decimal('10'), Decimal('4'), 40, date(2025, 1, 1))
    points = projection.monthly_projections
    assert [p.days for p in points] == [31, 9]
    assert points[-1].month_end == date(2025, 2, 9)
    assert projection.projected_year_end_savings == Decimal('240')


def test_declining_savings_reports_months_until_zero() -> None:
    actual = [CumulativePoint('December', date(2024, 12, 31), Decimal('600'))]
    projection = project(
        actual, Decimal('0'), Decimal('10'), 365, date(2025, 1, 1), days_per_month=Decimal('20')
    )
    assert projection.daily_net_savings == Decimal('-10')
    assert projection.months_until_zero == 3


def test_milestones_cross_from_actual_into_projection() -> None:
    projection = project(
        actual_points(), Decimal('100'), Decimal('0'), 365, date(2025, 1, 1)
    )
    milestones = {m.milestone_label: m for m in projection.milestones}
    assert set(milestones) == {'10k', '25k'}
    assert milestones['10k'].date_reached == date(2024, 2, 29)
    assert milestones['10k'].is_projected is False
    assert milestones['25k'].date_reached == date(2025, 5, 31)
    assert milestones['25k'].is_projected is True


def test_detect_milestones_skips_unreached_thresholds() -> None:
    assert detect_milestones(actual_points(), [], [Decimal('50000')]) == []


def test_milestone_labels() -> None:
    assert milestone_label(Decimal(10000)) == '10k'
    assert milestone_label(Decimal(2500)) == '2.5k'
    assert milestone_label(Decimal(1000000)) == '1M'
    assert milestone_label(Decimal(500)) == '500'
