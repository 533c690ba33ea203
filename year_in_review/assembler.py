"""Assemble the immutable year-in-review record.

This is the only module that knows the shape of :class:`WrappedData`.  It
runs the pipeline in dependency order, checks that independently computed
aggregations agree, and either returns a complete record or raises; it never
returns partial output.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Mapping, Optional, Union

from .budget import compare_budgets
from .config import WrappedOptions, load_options
from .errors import EmptyInputError, InconsistentBucketTotals, WrappedBuildError, WrappedError
from .models import BudgetEntry, Projection, TimeBuckets, Transaction, WrappedData
from .money import percentage, to_decimal
from .normalizer import normalize, transactions_frame
from .projection import actual_cumulative_series, daily_averages, project
from .stats import (
    account_breakdown,
    category_spending,
    distribution,
    expense_amounts,
    payee_summaries,
    top_n,
    transaction_stats,
)
from .time_buckets import bucket, spending_streaks, spending_velocity, top_months
from .trends import by_category, growth_ranking, split_growth, trends

logger = logging.getLogger(__name__)

BUCKET_METRICS = ('count', 'outflow_count', 'amount', 'income', 'net')

OptionsInput = Union[WrappedOptions, Mapping[str, Any], None]


def build_wrapped_data(
    transactions: Iterable[Transaction],
    options: OptionsInput = None,
    *,
    budgets: Optional[Iterable[BudgetEntry]] = None,
) -> WrappedData:
    """Build the year-in-review record for ``options.year``.

    ``options`` may be a :class:`WrappedOptions`, a mapping of overrides
    merged over the configured defaults, or None for the defaults alone.

    Raises:
        EmptyInputError: If no transaction survives normalization and
            ``options.allow_empty`` is not set
        InconsistentBucketTotals: If two aggregations disagree
        WrappedBuildError: For any other failure, chained to its cause
    """
    resolved = resolve_options(options)
    try:
        return _build(list(transactions), resolved, budgets)
    except WrappedError:
        raise
    except Exception as exc:
        raise WrappedBuildError(f"Failed to build year-in-review data: {exc}") from exc


def resolve_options(options: OptionsInput) -> WrappedOptions:
    if isinstance(options, WrappedOptions):
        return options
    if options is None:
        return load_options()
    return load_options(**dict(options))


def validate_bucket_totals(
    buckets: TimeBuckets,
    *,
    total_income: Decimal,
    total_expenses: Decimal,
    net_savings: Decimal,
    activity_count: int,
) -> None:
    """Check that every granularity sums to the same totals.

    Raises:
        InconsistentBucketTotals: On the first metric that disagrees
    """
    expected = {
        'count': activity_count,
        'amount': total_expenses,
        'income': total_income,
        'net': net_savings,
    }
    for metric in BUCKET_METRICS:
        totals = {
            granularity: sum(getattr(item, metric) for item in getattr(buckets, granularity))
            for granularity in ('days', 'weeks', 'months', 'quarters', 'weekdays')
        }
        if metric in expected:
            totals['total'] = expected[metric]
        if len(set(totals.values())) != 1:
            raise InconsistentBucketTotals(metric, totals)


def validate_projection(projection: Projection) -> None:
    """The projected curve must start where the actual curve ends."""
    if not projection.actual_series or not projection.monthly_projections:
        return
    last_actual = projection.actual_series[-1].cumulative_savings
    first_start = projection.monthly_projections[0].starting_savings
    if last_actual != first_start:
        raise InconsistentBucketTotals(
            'cumulative_savings', {'actual_end': last_actual, 'projected_start': first_start}
        )


def _build(
    transactions: list,
    options: WrappedOptions,
    budgets: Optional[Iterable[BudgetEntry]],
) -> WrappedData:
    year = options.year
    normalized = normalize(transactions, options)
    if not normalized and not options.allow_empty:
        raise EmptyInputError(
            f"No usable transactions for {year} ({len(transactions)} supplied); "
            "set allow_empty to build an empty report"
        )

    frame = transactions_frame(normalized)
    income_cents = int(frame['inflow'].sum())
    expense_cents = int(frame['outflow'].sum())
    net_cents = income_cents - expense_cents
    total_income = to_decimal(income_cents)
    total_expenses = to_decimal(expense_cents)
    net_savings = to_decimal(net_cents)

    buckets = bucket(frame, year)
    validate_bucket_totals(
        buckets,
        total_income=total_income,
        total_expenses=total_expenses,
        net_savings=net_savings,
        activity_count=len(normalized),
    )

    payees = payee_summaries(frame)
    categories = category_spending(frame)
    category_trends = trends(by_category(frame), year)
    ranking = growth_ranking(category_trends)
    growing, declining = split_growth(ranking)

    income_avg, expense_avg = daily_averages(buckets.days, options.projection_day_basis)
    next_year = year + 1
    projection = project(
        actual_cumulative_series(buckets.months, year),
        income_avg,
        expense_avg,
        366 if calendar.isleap(next_year) else 365,
        date(next_year, 1, 1),
        days_per_month=options.days_per_month,
        thresholds=options.milestone_thresholds,
    )
    validate_projection(projection)

    record = WrappedData(
        year=year,
        total_income=total_income,
        total_expenses=total_expenses,
        net_savings=net_savings,
        savings_rate=percentage(net_cents, income_cents) if income_cents > 0 else 0.0,
        buckets=buckets,
        top_categories=tuple(categories[:options.top_n]),
        category_trends=tuple(category_trends),
        category_growth=tuple(ranking),
        growing_categories=tuple(growing),
        declining_categories=tuple(declining),
        top_payees=tuple(top_n(payees, 'amount', options.top_n)),
        all_payees=tuple(payees),
        size_distribution=distribution(expense_amounts(frame), options.histogram_edges),
        transaction_stats=transaction_stats(normalized),
        top_months=tuple(top_months(buckets.months, options.top_months)),
        account_breakdown=tuple(account_breakdown(frame)),
        spending_streaks=spending_streaks(buckets.days),
        spending_velocity=spending_velocity(buckets.weeks, len(buckets.days)),
        projection=projection,
        budget_comparison=compare_budgets(frame, budgets, year),
    )
    logger.info(
        "Built year-in-review for %d: income=%s expenses=%s net=%s (%d transactions)",
        year, total_income, total_expenses, net_savings, len(normalized),
    )
    return record
