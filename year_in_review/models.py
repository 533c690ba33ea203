"""Record types for the year-in-review pipeline.

Every record is a frozen dataclass and every sequence inside a record is a
tuple, so a finished :class:`WrappedData` can be handed to any number of
consumers without defensive copies.  Money is :class:`~decimal.Decimal` in
major units; ratios are floats.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Union

ZERO = Decimal("0.00")

MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
)
WEEKDAY_NAMES = ('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')
QUARTER_MONTHS = {1: (1, 2, 3), 2: (4, 5, 6), 3: (7, 8, 9), 4: (10, 11, 12)}


# ---------------------------------------------------------------------------
# Tagged ratio values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Finite:
    """A ratio that could be computed."""
    value: float

    @property
    def is_defined(self) -> bool:
        return True


@dataclass(frozen=True)
class Undefined:
    """A ratio whose base is zero, e.g. growth of a brand new category."""
    reason: str = 'new category'

    @property
    def is_defined(self) -> bool:
        return False

    @property
    def value(self) -> None:
        return None


Ratio = Union[Finite, Undefined]


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Transaction:
    """A raw ledger transaction.

    ``amount`` is signed integer minor units: negative is an outflow.
    ``counterpart_off_budget`` marks a transfer whose other side is an
    off-budget account.
    """
    id: str
    account_id: str
    date: Any
    amount: int
    category_id: Optional[str] = None
    payee_id: Optional[str] = None
    payee_name: Optional[str] = None
    is_transfer: bool = False
    is_off_budget: bool = False
    is_income: bool = False
    category_name: Optional[str] = None
    account_name: Optional[str] = None
    counterpart_off_budget: bool = False


@dataclass(frozen=True)
class NormalizedTransaction(Transaction):
    """A transaction with a parsed ``date`` and resolved inclusion flags."""
    include_in_totals: bool = True
    include_in_categories: bool = True

    @classmethod
    def from_transaction(
        cls,
        txn: Transaction,
        *,
        day: date,
        include_in_totals: bool,
        include_in_categories: bool,
    ) -> 'NormalizedTransaction':
        values = {f.name: getattr(txn, f.name) for f in fields(Transaction)}
        values['date'] = day
        return cls(
            **values,
            include_in_totals=include_in_totals,
            include_in_categories=include_in_categories,
        )

    @property
    def is_outflow(self) -> bool:
        return self.amount < 0


# ---------------------------------------------------------------------------
# Time buckets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DayBucket:
    date: date
    count: int = 0
    outflow_count: int = 0
    amount: Decimal = ZERO
    income: Decimal = ZERO
    net: Decimal = ZERO


@dataclass(frozen=True)
class WeekBucket:
    week: int
    label: str
    start: date
    end: date
    days: int
    count: int = 0
    outflow_count: int = 0
    amount: Decimal = ZERO
    income: Decimal = ZERO
    net: Decimal = ZERO

    @property
    def average_per_day(self) -> Decimal:
        return self.amount / self.days if self.days else ZERO


@dataclass(frozen=True)
class MonthBucket:
    month: int
    label: str
    count: int = 0
    outflow_count: int = 0
    amount: Decimal = ZERO
    income: Decimal = ZERO
    net: Decimal = ZERO


@dataclass(frozen=True)
class QuarterBucket:
    quarter: int
    label: str
    months: Tuple[str, ...]
    count: int = 0
    outflow_count: int = 0
    amount: Decimal = ZERO
    income: Decimal = ZERO
    net: Decimal = ZERO


@dataclass(frozen=True)
class WeekdayBucket:
    weekday: int
    label: str
    count: int = 0
    outflow_count: int = 0
    amount: Decimal = ZERO
    income: Decimal = ZERO
    net: Decimal = ZERO

    @property
    def average_transaction_size(self) -> Decimal:
        return self.amount / self.outflow_count if self.outflow_count else ZERO


@dataclass(frozen=True)
class TimeBuckets:
    days: Tuple[DayBucket, ...]
    weeks: Tuple[WeekBucket, ...]
    months: Tuple[MonthBucket, ...]
    quarters: Tuple[QuarterBucket, ...]
    weekdays: Tuple[WeekdayBucket, ...]


@dataclass(frozen=True)
class Streak:
    days: int = 0
    start: Optional[date] = None
    end: Optional[date] = None


@dataclass(frozen=True)
class SpendingStreaks:
    longest_spending: Streak
    longest_no_spending: Streak
    total_spending_days: int
    total_no_spending_days: int


@dataclass(frozen=True)
class SpendingVelocity:
    daily_average: Decimal
    fastest_week: Optional[WeekBucket]
    slowest_week: Optional[WeekBucket]
    weekly: Tuple[WeekBucket, ...]


@dataclass(frozen=True)
class TopMonth:
    month: int
    label: str
    spending: Decimal


# ---------------------------------------------------------------------------
# Statistics and rankings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SizeBucket:
    range_label: str
    lower: Decimal
    upper: Optional[Decimal]
    count: int
    percentage: float


@dataclass(frozen=True)
class SizeDistribution:
    median: Decimal
    mode: Decimal
    buckets: Tuple[SizeBucket, ...]
    most_common_range: Optional[str]


@dataclass(frozen=True)
class PayeeSummary:
    payee: str
    amount: Decimal
    transaction_count: int

    @property
    def name(self) -> str:
        return self.payee


@dataclass(frozen=True)
class CategorySpending:
    category_id: str
    category_name: str
    amount: Decimal
    transaction_count: int
    percentage: float

    @property
    def name(self) -> str:
        return self.category_name


@dataclass(frozen=True)
class AccountBreakdown:
    account_id: str
    account_name: str
    amount: Decimal
    transaction_count: int
    percentage: float

    @property
    def name(self) -> str:
        return self.account_name


@dataclass(frozen=True)
class TransactionStats:
    total_count: int
    average_amount: Decimal
    largest_transaction: Optional[NormalizedTransaction]


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MonthAmount:
    month: int
    label: str
    amount: Decimal


@dataclass(frozen=True)
class CategoryTrend:
    category_id: str
    category_name: str
    monthly_series: Tuple[MonthAmount, ...]

    @property
    def name(self) -> str:
        return self.category_name

    @property
    def total(self) -> Decimal:
        return sum((point.amount for point in self.monthly_series), ZERO)


@dataclass(frozen=True)
class MonthlyChange:
    month: int
    label: str
    amount: Decimal
    change: Decimal
    percentage_change: Ratio


@dataclass(frozen=True)
class CategoryGrowth:
    category_id: str
    category_name: str
    first_month_amount: Decimal
    last_month_amount: Decimal
    total_change: Decimal
    percentage_change: Ratio
    first_month: Optional[int] = None
    last_month: Optional[int] = None
    monthly_changes: Tuple[MonthlyChange, ...] = ()

    @property
    def name(self) -> str:
        return self.category_name


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CumulativePoint:
    month_label: str
    month_end: date
    cumulative_savings: Decimal


@dataclass(frozen=True)
class ProjectionPoint:
    month_label: str
    cumulative_savings: Decimal
    starting_savings: Decimal = ZERO
    projected_income: Decimal = ZERO
    projected_expenses: Decimal = ZERO
    projected_net_savings: Decimal = ZERO
    days: int = 0
    month_end: Optional[date] = None


@dataclass(frozen=True)
class Milestone:
    milestone_label: str
    threshold_amount: Decimal
    date_reached: date
    cumulative_savings: Decimal
    is_projected: bool = False


@dataclass(frozen=True)
class Projection:
    daily_income_avg: Decimal
    daily_expense_avg: Decimal
    daily_net_savings: Decimal
    actual_series: Tuple[CumulativePoint, ...]
    monthly_projections: Tuple[ProjectionPoint, ...]
    projected_year_end_savings: Decimal
    months_until_zero: Optional[int]
    milestones: Tuple[Milestone, ...]


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BudgetEntry:
    """Budgeted amount (minor units) for a category in a month (1-12)."""
    category_id: str
    month: int
    budgeted_amount: int


@dataclass(frozen=True)
class MonthlyBudget:
    month: int
    label: str
    budgeted: Decimal
    actual: Decimal
    carry_forward: Decimal
    effective_budget: Decimal
    remaining: Decimal
    variance: Decimal
    variance_percentage: Ratio


@dataclass(frozen=True)
class CategoryBudget:
    category_id: str
    category_name: str
    months: Tuple[MonthlyBudget, ...]
    total_budgeted: Decimal
    total_actual: Decimal
    total_variance: Decimal
    total_variance_percentage: Ratio


@dataclass(frozen=True)
class BudgetMonthTotal:
    month: int
    label: str
    budgeted: Decimal
    actual: Decimal
    variance: Decimal


@dataclass(frozen=True)
class BudgetComparison:
    categories: Tuple[CategoryBudget, ...]
    monthly_totals: Tuple[BudgetMonthTotal, ...]
    overall_budgeted: Decimal
    overall_actual: Decimal
    overall_variance: Decimal
    overall_variance_percentage: Ratio


# ---------------------------------------------------------------------------
# Output record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WrappedData:
    """The finished year-in-review summary."""
    year: int
    total_income: Decimal
    total_expenses: Decimal
    net_savings: Decimal
    savings_rate: float
    buckets: TimeBuckets
    top_categories: Tuple[CategorySpending, ...]
    category_trends: Tuple[CategoryTrend, ...]
    category_growth: Tuple[CategoryGrowth, ...]
    growing_categories: Tuple[CategoryGrowth, ...]
    declining_categories: Tuple[CategoryGrowth, ...]
    top_payees: Tuple[PayeeSummary, ...]
    all_payees: Tuple[PayeeSummary, ...]
    size_distribution: SizeDistribution
    transaction_stats: TransactionStats
    top_months: Tuple[TopMonth, ...]
    account_breakdown: Tuple[AccountBreakdown, ...]
    spending_streaks: SpendingStreaks
    spending_velocity: SpendingVelocity
    projection: Projection
    budget_comparison: Optional[BudgetComparison] = None

    @property
    def calendar(self) -> Tuple[DayBucket, ...]:
        return self.buckets.days

    @property
    def milestones(self) -> Tuple[Milestone, ...]:
        return self.projection.milestones

    def as_dict(self) -> Dict[str, Any]:
        """Plain nested dictionaries, e.g. for JSON serialization."""
        return asdict(self)
