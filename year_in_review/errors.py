"""Exception classes for the year-in-review pipeline."""


class WrappedError(Exception):
    """Base exception for the year-in-review pipeline."""
    pass


class InvalidDateRange(WrappedError, ValueError):
    """A transaction date is unparseable or outside the target year.

    Raised per record by the normalizer, which drops the record and logs a
    warning instead of failing the build.
    """

    def __init__(self, transaction_id, value, year: int):
        self.transaction_id = transaction_id
        self.value = value
        self.year = year
        super().__init__(
            f"Transaction {transaction_id!r} has date {value!r} outside {year}"
        )


class EmptyInputError(WrappedError, ValueError):
    """No usable transactions and an empty-year report was not requested."""
    pass


class InconsistentBucketTotals(WrappedError, RuntimeError):
    """Two aggregations that must agree do not."""

    def __init__(self, metric: str, totals):
        self.metric = metric
        self.totals = dict(totals)
        detail = ", ".join(f"{name}={value}" for name, value in self.totals.items())
        super().__init__(f"Bucket totals disagree for '{metric}': {detail}")


class ConfigError(WrappedError, ValueError):
    """Invalid options or defaults file."""
    pass


class WrappedBuildError(WrappedError):
    """Unexpected failure while assembling the summary record."""
    pass
