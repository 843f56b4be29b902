"""Tests for whole/decimal amount conversion."""

from decimal import Decimal

import pytest
from hypothesis import given, strategies as st

from btcmarkets.amounts import decimal_to_whole, has_two_decimal_places, whole_to_decimal

INT64 = st.integers(min_value=-(2 ** 63), max_value=2 ** 63 - 1)


@given(INT64)
def test_round_trip_is_exact_over_int64(whole):
    assert decimal_to_whole(whole_to_decimal(whole)) == whole


@given(INT64)
def test_string_round_trip(whole):
    assert decimal_to_whole(str(whole_to_decimal(whole))) == whole


@pytest.mark.parametrize('whole, expected', [
    (0, Decimal('0')),
    (1, Decimal('0.00000001')),
    (100000000, Decimal('1')),
    (150000000, Decimal('1.5')),
    (-250000000, Decimal('-2.5')),
])
def test_whole_to_decimal(whole, expected):
    assert whole_to_decimal(whole) == expected


@pytest.mark.parametrize('amount, expected', [
    (0.1, 10000000),
    (1.23456789, 123456789),
    ('0.00000001', 1),
    (Decimal('845.98'), 84598000000),
    (3, 300000000),
    ('0.000000005', 1),
    ('0.000000004', 0),
])
def test_decimal_to_whole(amount, expected):
    assert decimal_to_whole(amount) == expected


@pytest.mark.parametrize('value', [1.5, '100', None, True])
def test_whole_to_decimal_rejects_non_int(value):
    with pytest.raises(TypeError):
        whole_to_decimal(value)


@pytest.mark.parametrize('value', ['abc', 'NaN', 'Infinity', float('inf')])
def test_decimal_to_whole_rejects_non_numbers(value):
    with pytest.raises(ValueError):
        decimal_to_whole(value)


def test_decimal_to_whole_rejects_bool():
    with pytest.raises(TypeError):
        decimal_to_whole(True)


def test_two_decimal_places():
    assert has_two_decimal_places(decimal_to_whole('845.98'))
    assert not has_two_decimal_places(decimal_to_whole('845.981'))
