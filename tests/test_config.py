from __future__ import annotations

import json
from decimal import Decimal

import pytest

from year_in_review.config import WrappedOptions, env_overrides, load_defaults, load_options
from year_in_review.errors import ConfigError


def test_packaged_defaults_load() -> None:
    options = load_options(environ={})
    assert options.include_off_budget_accounts is False
    assert options.histogram_edges[-1] == Decimal(500)
    assert options.days_per_month == Decimal('30.44')
    assert options.projection_day_basis == 'active'


def test_environment_overrides_defaults() -> None:
    environ = {'WRAPPED_YEAR': '2023', 'WRAPPED_INCLUDE_OFF_BUDGET': 'true', 'UNRELATED': 'x'}
    assert env_overrides(environ) == {'year': '2023', 'include_off_budget_accounts': 'true'}

    options = load_options(environ=environ)
    assert options.year == 2023
    assert options.include_off_budget_accounts is True


def test_keyword_overrides_win_and_none_is_ignored() -> None:
    options = load_options(environ={'WRAPPED_YEAR': '2023'}, year=2022, top_n=None)
    assert options.year == 2022
    assert options.top_n == 10


def test_custom_defaults_file(tmp_path) -> None:
    path = tmp_path / 'defaults.json'
    path.write_text(json.dumps({'year': 2021, 'top_n': 5}), encoding='utf-8')
    options = load_options(defaults_path=path, environ={})
    assert options.year == 2021
    assert options.top_n == 5
    assert options.top_months == 3


def test_missing_defaults_file(tmp_path) -> None:
    with pytest.raises(ConfigError):
        load_defaults(tmp_path / 'missing.json')


def test_defaults_file_must_be_an_object(tmp_path) -> None:
    path = tmp_path / 'defaults.json'
    path.write_text('[1, 2]', encoding='utf-8')
    with pytest.raises(ConfigError):
        load_defaults(path)


def test_unknown_and_missing_keys_are_rejected() -> None:
    with pytest.raises(ConfigError, match='Unknown'):
        WrappedOptions.from_mapping({'year': 2024, 'colour': 'blue'})
    with pytest.raises(ConfigError, match='year'):
        WrappedOptions.from_mapping({'top_n': 3})


@pytest.mark.parametrize(
    'overrides',
    [
        {'projection_day_basis': 'weekly'},
        {'histogram_edges': [10, 50]},
        {'histogram_edges': [0, 50, 50]},
        {'include_all_transfers': 'maybe'},
        {'top_n': 0},
        {'year': 'next'},
        {'days_per_month': '0'},
    ],
)
def test_invalid_values_raise_config_error(overrides) -> None:
    with pytest.raises(ConfigError):
        WrappedOptions(year=2024).with_overrides(**overrides)


def test_options_are_coerced() -> None:
    options = WrappedOptions(year='2024', allow_empty='yes', histogram_edges=[0, '12.5', 40])
    assert options.year == 2024
    assert options.allow_empty is True
    assert options.histogram_edges == (Decimal(0), Decimal('12.5'), Decimal(40))
