from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from year_in_review.config import WrappedOptions
from year_in_review.models import PayeeSummary, Transaction
from year_in_review.normalizer import normalize, transactions_frame
from year_in_review.stats import (
    account_breakdown,
    category_spending,
    distribution,
    expense_amounts,
    median,
    payee_summaries,
    top_n,
    transaction_stats,
)


def make_txn(id, amount, day=date(2024, 4, 1), **kwargs) -> Transaction:
    kwargs.setdefault('account_id', 'checking')
    return Transaction(id=id, date=day, amount=amount, **kwargs)


def frame_for(transactions, **options):
    return transactions_frame(normalize(transactions, WrappedOptions(year=2024, **options)))


def test_median_of_odd_and_even_lengths() -> None:
    assert median([1000, 2000, 3000]) == Decimal('20.00')
    assert median([4000, 1000, 3000, 2000]) == Decimal('25.00')
    assert median([]) == 0


def test_median_ignores_order_and_sign() -> None:
    assert median([-3000, 1000, -2000]) == median([2000, 3000, 1000])


def test_mode_lies_in_the_fullest_bucket() -> None:
    amounts = [3000, 3250, 3500, 3999, 60000]
    result = distribution(amounts, edges=[0, 30, 40, 100])
    assert result.most_common_range == '30-40'
    assert Decimal(30) <= result.mode < Decimal(40)


def test_default_edges_and_lower_bound_inclusion() -> None:
    result = distribution([999, 1000, 4999, 5000])
    counts = {b.range_label: b.count for b in result.buckets}
    assert counts == {'0-10': 1, '10-50': 2, '50-100': 1, '100-500': 0, '500+': 0}
    assert result.most_common_range == '10-50'
    assert result.mode == Decimal(30)


def test_open_ended_bucket_mode() -> None:
    result = distribution([75000, 120000])
    assert result.most_common_range == '500+'
    assert result.mode == Decimal(1000)


def test_histogram_tie_goes_to_lowest_range() -> None:
    result = distribution([500, 2000])
    assert result.most_common_range == '0-10'


def test_bucket_percentages_add_up() -> None:
    result = distribution([100, 2000, 2500, 7000, 90000])
    assert sum(b.count for b in result.buckets) == 5
    assert sum(b.percentage for b in result.buckets) == pytest.approx(100.0)


def test_empty_distribution() -> None:
    result = distribution([])
    assert result.median == 0
    assert result.mode == 0
    assert result.most_common_range is None
    assert all(b.count == 0 and b.percentage == 0.0 for b in result.buckets)


def test_top_n_breaks_ties_by_name() -> None:
    payees = [
        PayeeSummary('Bakery', Decimal('10.00'), 1),
        PayeeSummary('Apothecary', Decimal('10.00'), 3),
        PayeeSummary('Cinema', Decimal('20.00'), 1),
    ]
    assert [p.payee for p in top_n(payees, 'amount', 2)] == ['Cinema', 'Apothecary']
    assert [p.payee for p in top_n(payees, 'transaction_count', None)] == [
        'Apothecary', 'Bakery', 'Cinema',
    ]
    assert top_n(payees, 'amount', 0) == []


def test_top_n_rejects_negative_n() -> None:
    with pytest.raises(ValueError):
        top_n([], 'amount', -1)


def test_payees_exclude_transfers_and_income() -> None:
    transactions = [
        make_txn('1', -1500, payee_name='Grocer'),
        make_txn('2', -500, payee_name='Grocer'),
        make_txn('3', -9000, payee_name='Landlord'),
        make_txn('4', -20000, payee_name='Savings', is_transfer=True, counterpart_off_budget=True),
        make_txn('5', 250000, payee_name='Employer', is_income=True),
    ]
    payees = payee_summaries(frame_for(transactions))
    assert [(p.payee, p.amount, p.transaction_count) for p in payees] == [
        ('Landlord', Decimal('90.00'), 1),
        ('Grocer', Decimal('20.00'), 2),
    ]


def test_expense_amounts_only_cover_included_outflows() -> None:
    transactions = [
        make_txn('1', -1500),
        make_txn('2', 4000),
        make_txn('3', -7000, account_id='brokerage', is_off_budget=True),
    ]
    assert expense_amounts(frame_for(transactions)) == [1500]


def test_category_spending_shares() -> None:
    transactions = [
        make_txn('1', -7500, category_id='rent', category_name='Rent'),
        make_txn('2', -2500, category_id='food', category_name='Food'),
        make_txn('3', -100),
        make_txn('4', 100000, is_income=True, category_id='salary', category_name='Salary'),
    ]
    categories = category_spending(frame_for(transactions))
    assert [c.category_id for c in categories] == ['rent', 'food', 'uncategorized']
    assert categories[0].percentage == pytest.approx(7500 / 10100 * 100)

    with_income = category_spending(frame_for(transactions, include_income_in_category_totals=True))
    assert with_income[0].category_id == 'salary'


def test_account_breakdown() -> None:
    transactions = [
        make_txn('1', -3000, account_id='visa', account_name='Visa'),
        make_txn('2', -1000, account_id='checking', account_name='Checking'),
        make_txn('3', -1000, account_id='visa', account_name='Visa'),
    ]
    accounts = account_breakdown(frame_for(transactions))
    assert [(a.name, a.amount, a.transaction_count) for a in accounts] == [
        ('Visa', Decimal('40.00'), 2),
        ('Checking', Decimal('10.00'), 1),
    ]
    assert accounts[0].percentage == pytest.approx(80.0)


def test_transaction_stats_largest_and_average() -> None:
    normalized = normalize(
        [
            make_txn('a', -5000, day=date(2024, 2, 1)),
            make_txn('b', 5000, day=date(2024, 1, 1)),
            make_txn('c', -1000),
            make_txn('d', -9999, account_id='brokerage', is_off_budget=True),
        ],
        WrappedOptions(year=2024),
    )
    stats = transaction_stats(normalized)
    assert stats.total_count == 3
    assert stats.average_amount.quantize(Decimal('0.01')) == Decimal('36.67')
    assert stats.largest_transaction.id == 'b'


def test_transaction_stats_empty() -> None:
    stats = transaction_stats([])
    assert stats.total_count == 0
    assert stats.largest_transaction is None
