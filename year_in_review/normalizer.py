"""Classify raw ledger transactions before any aggregation happens.

The normalizer decides, once, which transactions count towards money totals
and which feed category analysis.  Every downstream component reads those
flags (usually through :func:`transactions_frame`) and never looks at the
raw transaction list again.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, List

import numpy as np
import pandas as pd

from .config import WrappedOptions
from .errors import InvalidDateRange
from .models import NormalizedTransaction, Transaction

logger = logging.getLogger(__name__)

UNCATEGORIZED_KEY, UNCATEGORIZED_NAME = 'uncategorized', 'Uncategorized'
OFF_BUDGET_KEY, OFF_BUDGET_NAME = 'off-budget', 'Off Budget'
UNKNOWN_PAYEE = 'Unknown'

FRAME_COLUMNS = [
    'id',
    'date',
    'amount',
    'account_id',
    'account_name',
    'category_key',
    'category_name',
    'payee',
    'is_transfer',
    'is_off_budget',
    'is_income',
    'include_in_totals',
    'include_in_categories',
]
_BOOL_COLUMNS = [
    'is_transfer', 'is_off_budget', 'is_income', 'include_in_totals', 'include_in_categories',
]


def normalize(
    transactions: Iterable[Transaction], options: WrappedOptions
) -> List[NormalizedTransaction]:
    """Return the in-year transactions with inclusion flags resolved.

    The tracked universe is every on-budget account, plus off-budget accounts
    when ``options.include_off_budget_accounts`` is set.  Transactions on
    untracked accounts are kept (they still count as activity) but are
    excluded from totals and categories.  Transfers only count when they
    cross the edge of the tracked universe, unless
    ``options.include_all_transfers`` is set.  Income always counts towards
    totals but only feeds category analysis when
    ``options.include_income_in_category_totals`` is set.

    Records with an unparseable date or a date outside ``options.year`` are
    dropped with a warning.  The result is sorted by ``(date, id)``.
    """
    normalized: List[NormalizedTransaction] = []
    dropped = 0
    for txn in transactions:
        try:
            day = _parse_date(txn, options.year)
        except InvalidDateRange as exc:
            dropped += 1
            logger.warning("Dropping transaction: %s", exc)
            continue

        include_in_totals = _include_in_totals(txn, options)
        include_in_categories = include_in_totals and (
            not txn.is_income or options.include_income_in_category_totals
        )
        normalized.append(
            NormalizedTransaction.from_transaction(
                txn,
                day=day,
                include_in_totals=include_in_totals,
                include_in_categories=include_in_categories,
            )
        )

    normalized.sort(key=lambda t: (t.date, str(t.id)))
    logger.info(
        "Normalized %d transaction(s) for %d (%d dropped, %d excluded from totals)",
        len(normalized),
        options.year,
        dropped,
        sum(1 for t in normalized if not t.include_in_totals),
    )
    return normalized


def transactions_frame(transactions: Iterable[NormalizedTransaction]) -> pd.DataFrame:
    """Columnar view of normalized transactions.

    ``amount`` stays in integer minor units.  Category and payee keys are
    resolved here so every consumer groups the same way:

    * no category on an off-budget account -> ``off-budget``
    * no category otherwise -> ``uncategorized``
    * payee name, else payee id, else ``Unknown``
    """
    rows = [
        {
            'id': str(t.id),
            'date': t.date,
            'amount': int(t.amount),
            'account_id': str(t.account_id),
            'account_name': t.account_name or str(t.account_id),
            'category_key': _category_key(t),
            'category_name': _category_name(t),
            'payee': _payee_label(t),
            'is_transfer': t.is_transfer,
            'is_off_budget': t.is_off_budget,
            'is_income': t.is_income,
            'include_in_totals': t.include_in_totals,
            'include_in_categories': t.include_in_categories,
        }
        for t in transactions
    ]
    frame = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    frame['date'] = pd.to_datetime(frame['date'])
    frame['amount'] = frame['amount'].astype('int64')
    for column in _BOOL_COLUMNS:
        frame[column] = frame[column].astype(bool)
    frame['abs_amount'] = frame['amount'].abs()
    frame['is_outflow'] = frame['amount'] < 0
    frame['outflow'] = np.where(frame['include_in_totals'] & frame['is_outflow'], frame['abs_amount'], 0)
    frame['inflow'] = np.where(frame['include_in_totals'] & ~frame['is_outflow'], frame['amount'], 0)
    frame['net'] = np.where(frame['include_in_totals'], frame['amount'], 0)
    for column in ('outflow', 'inflow', 'net'):
        frame[column] = frame[column].astype('int64')
    return frame


def category_rows(frame: pd.DataFrame) -> pd.DataFrame:
    """Rows that feed category analysis, with their contribution in ``category_amount``.

    Outflows count by absolute value.  Inflows only count when they are income
    admitted to categories; refunds are ignored.
    """
    mask = frame['include_in_categories'] & (frame['is_outflow'] | frame['is_income'])
    rows = frame[mask].copy()
    rows['category_amount'] = rows['abs_amount']
    return rows


def _is_tracked(off_budget: bool, options: WrappedOptions) -> bool:
    return not off_budget or options.include_off_budget_accounts


def _include_in_totals(txn: Transaction, options: WrappedOptions) -> bool:
    if not _is_tracked(txn.is_off_budget, options):
        return False
    if not txn.is_transfer or options.include_all_transfers:
        return True
    # Money moving between two tracked accounts is neither income nor expense.
    return not _is_tracked(txn.counterpart_off_budget, options)


def _parse_date(txn: Transaction, year: int) -> date:
    value = txn.date
    if isinstance(value, datetime):
        day = value.date()
    elif isinstance(value, date):
        day = value
    else:
        parsed = pd.to_datetime(value, errors='coerce')
        if parsed is None or pd.isna(parsed):
            raise InvalidDateRange(txn.id, value, year)
        day = parsed.date()
    if day.year != year:
        raise InvalidDateRange(txn.id, value, year)
    return day


def _category_key(txn: NormalizedTransaction) -> str:
    if txn.category_id:
        return str(txn.category_id)
    return OFF_BUDGET_KEY if txn.is_off_budget else UNCATEGORIZED_KEY


def _category_name(txn: NormalizedTransaction) -> str:
    if txn.category_id:
        return txn.category_name or str(txn.category_id)
    return OFF_BUDGET_NAME if txn.is_off_budget else UNCATEGORIZED_NAME


def _payee_label(txn: NormalizedTransaction) -> str:
    name = (txn.payee_name or '').strip()
    if name and name.lower() != UNKNOWN_PAYEE.lower():
        return name
    if txn.payee_id:
        return str(txn.payee_id)
    return UNKNOWN_PAYEE
