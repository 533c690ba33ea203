#!/usr/bin/env python3
"""Build a year-in-review summary from a CSV export and print it as JSON.

The CSV needs ``id``, ``account_id``, ``date`` and ``amount`` (major units,
negative for outflows) columns.  Optional columns: ``category_id``,
``category_name``, ``payee_id``, ``payee_name``, ``account_name``,
``is_transfer``, ``is_off_budget``, ``is_income`` and
``counterpart_off_budget``.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from year_in_review import BudgetEntry, Transaction, WrappedError, build_wrapped_data
from year_in_review.money import to_cents

REQUIRED_COLUMNS = ['id', 'account_id', 'date', 'amount']
TEXT_COLUMNS = ['category_id', 'category_name', 'payee_id', 'payee_name', 'account_name']
FLAG_COLUMNS = ['is_transfer', 'is_off_budget', 'is_income', 'counterpart_off_budget']


def _flag(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {'1', 'true', 'yes', 'y'}
    return bool(value) if not pd.isna(value) else False


def _text(value) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def read_transactions(path: Path) -> List[Transaction]:
    df = pd.read_csv(path, dtype={'id': str, 'account_id': str, 'category_id': str, 'payee_id': str})
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise SystemExit(f"{path}: missing column(s) {', '.join(missing)}")
    for col in TEXT_COLUMNS:
        if col not in df.columns:
            df[col] = None
    for col in FLAG_COLUMNS:
        if col not in df.columns:
            df[col] = False

    return [
        Transaction(
            id=str(row['id']),
            account_id=str(row['account_id']),
            date=row['date'],
            amount=to_cents(row['amount']),
            category_id=_text(row['category_id']),
            payee_id=_text(row['payee_id']),
            payee_name=_text(row['payee_name']),
            is_transfer=_flag(row['is_transfer']),
            is_off_budget=_flag(row['is_off_budget']),
            is_income=_flag(row['is_income']),
            category_name=_text(row['category_name']),
            account_name=_text(row['account_name']),
            counterpart_off_budget=_flag(row['counterpart_off_budget']),
        )
        for row in df.to_dict('records')
    ]


def read_budgets(path: Path) -> List[BudgetEntry]:
    """Budget CSV with ``category_id``, ``month`` and ``budgeted`` (major units)."""
    df = pd.read_csv(path, dtype={'category_id': str})
    return [
        BudgetEntry(
            category_id=str(row['category_id']),
            month=int(row['month']),
            budgeted_amount=to_cents(row['budgeted']),
        )
        for row in df.to_dict('records')
    ]


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Build a year-in-review summary as JSON.')
    parser.add_argument('csv', type=Path, help='Transactions CSV export')
    parser.add_argument('--year', type=int, help='Target year (defaults to configuration)')
    parser.add_argument('--budgets', type=Path, help='Optional budget CSV')
    parser.add_argument('--include-off-budget', action='store_true', default=None,
                        help='Count off-budget accounts towards totals')
    parser.add_argument('--include-all-transfers', action='store_true', default=None,
                        help='Count every transfer towards totals')
    parser.add_argument('--include-income-in-categories', action='store_true', default=None,
                        help='Let income feed category analysis')
    parser.add_argument('--allow-empty', action='store_true', default=None,
                        help='Build a zero-filled report when nothing matches')
    parser.add_argument('--log-level', default='INFO', help='Logging level (default INFO)')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    options = {
        'year': args.year,
        'include_off_budget_accounts': args.include_off_budget,
        'include_all_transfers': args.include_all_transfers,
        'include_income_in_category_totals': args.include_income_in_categories,
        'allow_empty': args.allow_empty,
    }
    options = {key: value for key, value in options.items() if value is not None}
    budgets = read_budgets(args.budgets) if args.budgets else None

    try:
        record = build_wrapped_data(read_transactions(args.csv), options, budgets=budgets)
    except WrappedError as exc:
        logging.getLogger(__name__).error("%s", exc)
        return 1

    print(json.dumps(record.as_dict(), default=str, indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())
