"""Configuration management for the year-in-review pipeline.

Defaults live in ``defaults.json`` next to this module.  Environment
variables override the defaults, and keyword overrides passed to
:func:`load_options` override both.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigError

DEFAULTS_PATH = Path(
    os.getenv("WRAPPED_DEFAULTS_PATH", Path(__file__).parent / "defaults.json")
)

# Environment variable -> option name
ENV_OVERRIDES = {
    "WRAPPED_YEAR": "year",
    "WRAPPED_INCLUDE_OFF_BUDGET": "include_off_budget_accounts",
    "WRAPPED_INCLUDE_ALL_TRANSFERS": "include_all_transfers",
    "WRAPPED_INCLUDE_INCOME_IN_CATEGORIES": "include_income_in_category_totals",
}

PROJECTION_DAY_BASES = {"active", "calendar"}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class WrappedOptions:
    """Options recognized by :func:`year_in_review.build_wrapped_data`.

    ``histogram_edges`` and ``milestone_thresholds`` are in major units.
    The last histogram bucket is open-ended.
    """
    year: int
    include_off_budget_accounts: bool = False
    include_all_transfers: bool = False
    include_income_in_category_totals: bool = False
    allow_empty: bool = False
    top_n: int = 10
    top_months: int = 3
    histogram_edges: Tuple[Decimal, ...] = (
        Decimal(0), Decimal(10), Decimal(50), Decimal(100), Decimal(500),
    )
    milestone_thresholds: Tuple[Decimal, ...] = (
        Decimal(10000), Decimal(25000), Decimal(50000),
        Decimal(100000), Decimal(250000), Decimal(500000),
    )
    days_per_month: Decimal = Decimal("30.44")
    projection_day_basis: str = "active"

    def __post_init__(self) -> None:
        # Coerce loosely typed input (JSON numbers, env strings) in place.
        object.__setattr__(self, "year", _coerce_int("year", self.year))
        object.__setattr__(self, "top_n", _coerce_int("top_n", self.top_n))
        object.__setattr__(self, "top_months", _coerce_int("top_months", self.top_months))
        for name in (
            "include_off_budget_accounts",
            "include_all_transfers",
            "include_income_in_category_totals",
            "allow_empty",
        ):
            object.__setattr__(self, name, _coerce_bool(name, getattr(self, name)))
        object.__setattr__(
            self, "histogram_edges", _coerce_decimals("histogram_edges", self.histogram_edges)
        )
        object.__setattr__(
            self,
            "milestone_thresholds",
            _coerce_decimals("milestone_thresholds", self.milestone_thresholds),
        )
        object.__setattr__(
            self, "days_per_month", _coerce_decimal("days_per_month", self.days_per_month)
        )

        if not 1 <= self.year <= 9998:
            raise ConfigError(f"year must be between 1 and 9998, got {self.year}")
        if self.top_n < 1 or self.top_months < 1:
            raise ConfigError("top_n and top_months must be positive")
        edges = self.histogram_edges
        if not edges or edges[0] != 0 or any(b <= a for a, b in zip(edges, edges[1:])):
            raise ConfigError(
                f"histogram_edges must start at 0 and be strictly ascending, got {list(edges)}"
            )
        thresholds = self.milestone_thresholds
        if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
            raise ConfigError("milestone_thresholds must be strictly ascending")
        if self.days_per_month <= 0:
            raise ConfigError("days_per_month must be positive")
        if self.projection_day_basis not in PROJECTION_DAY_BASES:
            raise ConfigError(
                f"projection_day_basis must be one of {sorted(PROJECTION_DAY_BASES)}, "
                f"got '{self.projection_day_basis}'"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'WrappedOptions':
        """Build options from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown option(s): {', '.join(unknown)}")
        if "year" not in data:
            raise ConfigError("Option 'year' is required")
        return cls(**dict(data))

    def with_overrides(self, **overrides: Any) -> 'WrappedOptions':
        return replace(self, **overrides)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def load_defaults(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the defaults file.

    Raises:
        ConfigError: If the file is missing or is not a JSON object
    """
    target = Path(path) if path is not None else DEFAULTS_PATH
    if not target.exists():
        raise ConfigError(f"Defaults file not found: {target}")
    try:
        with target.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Could not read defaults file {target}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Defaults file {target} must contain a JSON object")
    return data


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Collect option overrides from ``WRAPPED_*`` environment variables."""
    source = os.environ if environ is None else environ
    return {
        option: source[variable]
        for variable, option in ENV_OVERRIDES.items()
        if variable in source
    }


def load_options(
    defaults_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> WrappedOptions:
    """Merge defaults file, environment and explicit overrides.

    Example:
        >>> options = load_options(year=2024, include_off_budget_accounts=True)
        >>> options.top_n
        10
    """
    merged = load_defaults(defaults_path)
    merged.update(env_overrides(environ))
    merged.update({key: value for key, value in overrides.items() if value is not None})
    return WrappedOptions.from_mapping(merged)


def _coerce_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    if isinstance(value, int):
        return bool(value)
    raise ConfigError(f"Option '{name}' must be a boolean, got {value!r}")


def _coerce_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Option '{name}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Option '{name}' must be an integer, got {value!r}") from exc


def _coerce_decimal(name: str, value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ConfigError(f"Option '{name}' must be numeric, got {value!r}") from exc


def _coerce_decimals(name: str, values: Any) -> Tuple[Decimal, ...]:
    if isinstance(values, (str, bytes)) or not hasattr(values, '__iter__'):
        raise ConfigError(f"Option '{name}' must be a list of numbers, got {values!r}")
    return tuple(_coerce_decimal(name, value) for value in values)
