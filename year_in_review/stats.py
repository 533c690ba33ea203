"""Distribution statistics and rankings.

Amount inputs are integer minor units; results are exact decimals in major
units.  Rankings are deterministic: ties are always broken by ascending
name.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .models import (
    ZERO,
    AccountBreakdown,
    CategorySpending,
    NormalizedTransaction,
    PayeeSummary,
    SizeBucket,
    SizeDistribution,
    TransactionStats,
)
from .money import percentage, to_cents, to_decimal
from .normalizer import category_rows

DEFAULT_EDGES = (Decimal(0), Decimal(10), Decimal(50), Decimal(100), Decimal(500))


def median(amounts: Iterable[int]) -> Decimal:
    """Median of absolute amounts; the mean of the middle pair for even lengths."""
    values = np.sort(np.abs(np.asarray(list(amounts), dtype='int64')))
    size = len(values)
    if size == 0:
        return ZERO
    middle = size // 2
    if size % 2:
        return to_decimal(values[middle])
    return (Decimal(int(values[middle - 1]) + int(values[middle])) / 2).scaleb(-2)


def distribution(
    amounts: Iterable[int], edges: Sequence[Decimal] = DEFAULT_EDGES
) -> SizeDistribution:
    """Histogram, median and mode of transaction sizes.

    ``edges`` are ascending lower bounds in major units starting at 0; each
    bucket includes its lower bound and excludes its upper bound, and the
    last bucket is open-ended.  Amounts are continuous, so the mode is the
    midpoint of the fullest bucket (twice the lower bound for the open-ended
    one).  The fullest bucket is the lowest one on a tie.
    """
    values = np.abs(np.asarray(list(amounts), dtype='int64'))
    edges = tuple(Decimal(edge) for edge in edges)
    edge_cents = np.asarray([to_cents(edge) for edge in edges], dtype='int64')

    if len(values):
        positions = np.searchsorted(edge_cents, values, side='right') - 1
        counts = np.bincount(positions, minlength=len(edges))
    else:
        counts = np.zeros(len(edges), dtype='int64')

    total = int(counts.sum())
    buckets = []
    for index, lower in enumerate(edges):
        upper = edges[index + 1] if index + 1 < len(edges) else None
        count = int(counts[index])
        buckets.append(
            SizeBucket(
                range_label=_range_label(lower, upper),
                lower=lower,
                upper=upper,
                count=count,
                percentage=percentage(count, total),
            )
        )

    if total == 0:
        return SizeDistribution(median=ZERO, mode=ZERO, buckets=tuple(buckets), most_common_range=None)

    fullest = buckets[int(np.argmax(counts))]
    if fullest.upper is None:
        mode = fullest.lower + fullest.lower
    else:
        mode = fullest.lower + (fullest.upper - fullest.lower) / 2
    return SizeDistribution(
        median=median(values),
        mode=mode,
        buckets=tuple(buckets),
        most_common_range=fullest.range_label,
    )


def top_n(
    entities: Iterable[Any], key: Union[str, Callable[[Any], Any]], n: Optional[int]
) -> List[Any]:
    """Sort descending by ``key`` with ties by ascending ``name``; keep ``n``.

    ``key`` is an attribute name (e.g. ``'amount'``, ``'transaction_count'``)
    or a callable.  ``n=None`` keeps every entity.
    """
    if n is not None and n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    getter = key if callable(key) else (lambda entity: getattr(entity, key))
    ranked = sorted(entities, key=_entity_name)
    # Stable sort: equal keys keep the name order from the first pass.
    ranked.sort(key=getter, reverse=True)
    return ranked if n is None else ranked[:n]


def expense_amounts(frame: pd.DataFrame) -> List[int]:
    """Absolute minor-unit sizes of the included outflows."""
    mask = frame['include_in_totals'] & frame['is_outflow']
    return [int(value) for value in frame.loc[mask, 'abs_amount']]


def payee_summaries(frame: pd.DataFrame) -> List[PayeeSummary]:
    """Outflow totals per payee over included, non-transfer transactions."""
    mask = frame['include_in_totals'] & frame['is_outflow'] & ~frame['is_transfer']
    grouped = frame[mask].groupby('payee').agg(
        amount=('abs_amount', 'sum'),
        transaction_count=('id', 'size'),
    )
    payees = [
        PayeeSummary(payee=str(payee), amount=to_decimal(row['amount']),
                     transaction_count=int(row['transaction_count']))
        for payee, row in grouped.iterrows()
    ]
    return top_n(payees, 'amount', None)


def category_spending(frame: pd.DataFrame) -> List[CategorySpending]:
    """Totals per category with each category's share of the overall total."""
    rows = category_rows(frame)
    grouped = rows.groupby('category_key').agg(
        category_name=('category_name', 'first'),
        amount=('category_amount', 'sum'),
        transaction_count=('id', 'size'),
    )
    overall = int(grouped['amount'].sum()) if not grouped.empty else 0
    categories = [
        CategorySpending(
            category_id=str(key),
            category_name=str(row['category_name']),
            amount=to_decimal(row['amount']),
            transaction_count=int(row['transaction_count']),
            percentage=percentage(int(row['amount']), overall),
        )
        for key, row in grouped.iterrows()
    ]
    return top_n(categories, 'amount', None)


def account_breakdown(frame: pd.DataFrame) -> List[AccountBreakdown]:
    """Included outflows per account with each account's share of expenses."""
    mask = frame['include_in_totals'] & frame['is_outflow']
    grouped = frame[mask].groupby('account_id').agg(
        account_name=('account_name', 'first'),
        amount=('abs_amount', 'sum'),
        transaction_count=('id', 'size'),
    )
    overall = int(grouped['amount'].sum()) if not grouped.empty else 0
    accounts = [
        AccountBreakdown(
            account_id=str(key),
            account_name=str(row['account_name']),
            amount=to_decimal(row['amount']),
            transaction_count=int(row['transaction_count']),
            percentage=percentage(int(row['amount']), overall),
        )
        for key, row in grouped.iterrows()
    ]
    return top_n(accounts, 'amount', None)


def transaction_stats(transactions: Sequence[NormalizedTransaction]) -> TransactionStats:
    """Count, mean absolute size and largest of the included transactions."""
    included = [t for t in transactions if t.include_in_totals]
    if not included:
        return TransactionStats(total_count=0, average_amount=ZERO, largest_transaction=None)
    total = sum(abs(int(t.amount)) for t in included)
    largest = min(included, key=lambda t: (-abs(int(t.amount)), t.date, str(t.id)))
    return TransactionStats(
        total_count=len(included),
        average_amount=(Decimal(total) / len(included)).scaleb(-2),
        largest_transaction=largest,
    )


def _entity_name(entity: Any) -> str:
    return str(getattr(entity, 'name', entity))


def _format_edge(value: Decimal) -> str:
    text = format(value, 'f')
    if '.' in text:
        text = text.rstrip('0').rstrip('.')
    return text


def _range_label(lower: Decimal, upper: Optional[Decimal]) -> str:
    if upper is None:
        return f"{_format_edge(lower)}+"
    return f"{_format_edge(lower)}-{_format_edge(upper)}"
