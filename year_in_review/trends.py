"""Category trend series and growth/decline rankings."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Sequence, Tuple, Union

import pandas as pd

from .models import (
    MONTH_NAMES,
    ZERO,
    CategoryGrowth,
    CategoryTrend,
    MonthAmount,
    MonthlyChange,
    NormalizedTransaction,
    Undefined,
)
from .money import percent_change, to_decimal
from .normalizer import category_rows, transactions_frame

CategoryInput = Union[pd.DataFrame, Sequence[NormalizedTransaction]]


def by_category(frame: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    """Split the category-eligible rows of ``frame`` by category key, in key order."""
    rows = category_rows(frame)
    return {str(key): group for key, group in rows.groupby('category_key', sort=True)}


def trends(transactions_by_category: Mapping[str, CategoryInput], year: int) -> List[CategoryTrend]:
    """Twelve-month, zero-filled spending series for each category.

    Values may be frames produced by :func:`by_category` or plain sequences
    of normalized transactions.  Categories are ordered by yearly total
    (largest first), then by name.
    """
    results = []
    for key, rows in transactions_by_category.items():
        if not isinstance(rows, pd.DataFrame):
            rows = category_rows(transactions_frame(rows))
        in_year = rows[rows['date'].dt.year == year]
        monthly = (
            in_year.groupby(in_year['date'].dt.month)['category_amount']
            .sum()
            .reindex(range(1, 13), fill_value=0)
        )
        name = str(in_year['category_name'].iloc[0]) if not in_year.empty else str(key)
        series = tuple(
            MonthAmount(month=int(month), label=MONTH_NAMES[month - 1], amount=to_decimal(value))
            for month, value in monthly.items()
        )
        results.append(CategoryTrend(category_id=str(key), category_name=name, monthly_series=series))

    results.sort(key=lambda trend: (-trend.total, trend.category_name, trend.category_id))
    return results


def growth_ranking(category_trends: Iterable[CategoryTrend]) -> List[CategoryGrowth]:
    """Change between each category's first and last active month.

    A category quiet in January still reports growth from its first month
    with spending.  Ranked by absolute ``total_change`` (largest first), then
    name, then id.
    """
    ranking = [_growth(trend) for trend in category_trends]
    ranking.sort(key=lambda g: (-abs(g.total_change), g.category_name, g.category_id))
    return ranking


def split_growth(
    ranking: Sequence[CategoryGrowth],
) -> Tuple[List[CategoryGrowth], List[CategoryGrowth]]:
    """Partition a ranking into (growing, declining), preserving its order."""
    growing = [g for g in ranking if g.total_change > 0]
    declining = [g for g in ranking if g.total_change < 0]
    return growing, declining


def _growth(trend: CategoryTrend) -> CategoryGrowth:
    series = trend.monthly_series
    active = [point for point in series if point.amount != 0]
    if active:
        first, last = active[0], active[-1]
        first_amount, last_amount = first.amount, last.amount
        first_month, last_month = first.month, last.month
        change_ratio = percent_change(last_amount, first_amount)
    else:
        first_amount = last_amount = ZERO
        first_month = last_month = None
        change_ratio = Undefined()

    monthly_changes = []
    previous = ZERO
    for point in series:
        monthly_changes.append(
            MonthlyChange(
                month=point.month,
                label=point.label,
                amount=point.amount,
                change=point.amount - previous,
                percentage_change=percent_change(point.amount, previous),
            )
        )
        previous = point.amount

    return CategoryGrowth(
        category_id=trend.category_id,
        category_name=trend.category_name,
        first_month_amount=first_amount,
        last_month_amount=last_amount,
        total_change=last_amount - first_amount,
        percentage_change=change_ratio,
        first_month=first_month,
        last_month=last_month,
        monthly_changes=tuple(monthly_changes),
    )
