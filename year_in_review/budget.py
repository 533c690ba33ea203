"""Budget versus actual spending with month-to-month carry forward.

Unspent budget rolls into the next month's effective budget; overspending
does not reduce it.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, Optional

import pandas as pd

from .models import (
    MONTH_NAMES,
    BudgetComparison,
    BudgetEntry,
    BudgetMonthTotal,
    CategoryBudget,
    MonthlyBudget,
)
from .money import percent_change, to_decimal
from .normalizer import category_rows


def compare_budgets(
    frame: pd.DataFrame, budgets: Optional[Iterable[BudgetEntry]], year: int
) -> Optional[BudgetComparison]:
    """Compare budgeted amounts with actual category spending for ``year``.

    Returns None when no budget entries are given.

    Raises:
        ValueError: If an entry's month is not between 1 and 12
    """
    entries = list(budgets or [])
    if not entries:
        return None

    budgeted: Dict[str, Dict[int, int]] = defaultdict(lambda: defaultdict(int))
    for entry in entries:
        if not 1 <= int(entry.month) <= 12:
            raise ValueError(f"Budget month must be 1-12, got {entry.month} for '{entry.category_id}'")
        budgeted[str(entry.category_id)][int(entry.month)] += int(entry.budgeted_amount)

    rows = category_rows(frame)
    spending = rows[rows['is_outflow'] & (rows['date'].dt.year == year)]
    actual = (
        spending.groupby(['category_key', spending['date'].dt.month])['category_amount']
        .sum()
        .to_dict()
    )
    names = spending.groupby('category_key')['category_name'].first().to_dict()

    category_ids = sorted(set(budgeted) | {key for key, _ in actual})
    categories = []
    for category_id in category_ids:
        months = []
        carry = 0
        for month in range(1, 13):
            planned = budgeted.get(category_id, {}).get(month, 0)
            spent = int(actual.get((category_id, month), 0))
            effective = planned + carry
            remaining = effective - spent
            months.append(
                MonthlyBudget(
                    month=month,
                    label=MONTH_NAMES[month - 1],
                    budgeted=to_decimal(planned),
                    actual=to_decimal(spent),
                    carry_forward=to_decimal(carry),
                    effective_budget=to_decimal(effective),
                    remaining=to_decimal(remaining),
                    variance=to_decimal(spent - effective),
                    variance_percentage=percent_change(spent, effective),
                )
            )
            carry = remaining if remaining > 0 else 0

        total_budgeted = sum(m.budgeted for m in months)
        total_actual = sum(m.actual for m in months)
        total_effective = sum(m.effective_budget for m in months)
        categories.append(
            CategoryBudget(
                category_id=category_id,
                category_name=str(names.get(category_id, category_id)),
                months=tuple(months),
                total_budgeted=total_budgeted,
                total_actual=total_actual,
                total_variance=total_actual - total_effective,
                total_variance_percentage=percent_change(total_actual, total_effective),
            )
        )

    monthly_totals = []
    for index in range(12):
        month_rows = [category.months[index] for category in categories]
        total_actual = sum(m.actual for m in month_rows)
        monthly_totals.append(
            BudgetMonthTotal(
                month=index + 1,
                label=MONTH_NAMES[index],
                budgeted=sum(m.budgeted for m in month_rows),
                actual=total_actual,
                variance=total_actual - sum(m.effective_budget for m in month_rows),
            )
        )

    overall_budgeted = sum(c.total_budgeted for c in categories)
    overall_actual = sum(c.total_actual for c in categories)
    overall_effective = sum(m.effective_budget for c in categories for m in c.months)
    return BudgetComparison(
        categories=tuple(categories),
        monthly_totals=tuple(monthly_totals),
        overall_budgeted=overall_budgeted,
        overall_actual=overall_actual,
        overall_variance=overall_actual - overall_effective,
        overall_variance_percentage=percent_change(overall_actual, overall_effective),
    )
