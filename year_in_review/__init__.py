"""Top-level package for the year-in-review ("Wrapped") summary builder.

The pipeline turns one calendar year of ledger transactions into a single
immutable :class:`~year_in_review.models.WrappedData` record.  The primary
modules are:

* ``normalizer`` - inclusion policy and the shared transactions frame
* ``time_buckets`` - day, week, month, quarter and weekday rollups
* ``stats`` - size distribution, payee/category/account rankings
* ``trends`` - per-category monthly series and growth rankings
* ``projection`` - cumulative savings, projection and milestones
* ``budget`` - budget versus actual with carry forward
* ``assembler`` - runs the pipeline and checks the totals agree

To build a record from a CSV export on the command line:

```bash
python scripts/build_wrapped.py transactions.csv --year 2024
```
"""

from .assembler import build_wrapped_data
from .config import WrappedOptions, load_options
from .errors import (
    ConfigError,
    EmptyInputError,
    InconsistentBucketTotals,
    InvalidDateRange,
    WrappedBuildError,
    WrappedError,
)
from .models import BudgetEntry, Transaction, WrappedData

__all__ = [
    "build_wrapped_data",
    "WrappedOptions",
    "load_options",
    "Transaction",
    "BudgetEntry",
    "WrappedData",
    "WrappedError",
    "InvalidDateRange",
    "EmptyInputError",
    "InconsistentBucketTotals",
    "ConfigError",
    "WrappedBuildError",
]
