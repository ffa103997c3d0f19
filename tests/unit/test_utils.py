"""Tests for shared helper functions."""

from decimal import Decimal

import pytest

from floor_arbitrage.utils import (
    basis_points_to_decimal,
    calculate_percentage,
    deep_merge,
    get_nested_value,
    is_valid_address,
    sanitize_params,
    timestamp_to_iso,
    to_decimal,
)


def test_timestamp_to_iso():
    assert timestamp_to_iso(0) == "1970-01-01T00:00:00+00:00"


def test_sanitize_params():
    params = {
        "collection": "0xabc",
        "limit": 10,
        "continuation": None,
        "includeRawData": True,
        "normalizeRoyalties": False,
        "ids": ["a", None, "b"],
        "empty": [],
    }
    assert sanitize_params(params) == {
        "collection": "0xabc",
        "limit": "10",
        "includeRawData": "true",
        "normalizeRoyalties": "false",
        "ids": ["a", "b"],
    }
    assert sanitize_params(None) == {}


@pytest.mark.parametrize(
    "value, expected",
    [
        (1.2, Decimal("1.2")),
        ("0.05", Decimal("0.05")),
        (3, Decimal("3")),
        (Decimal("7.5"), Decimal("7.5")),
        (None, None),
        (True, None),
        ("abc", None),
        ("NaN", None),
        (float("inf"), None),
    ],
)
def test_to_decimal(value, expected):
    assert to_decimal(value) == expected


def test_calculate_percentage():
    assert calculate_percentage(Decimal("0.2"), Decimal("1.0")) == Decimal("20")
    assert calculate_percentage(Decimal("1"), Decimal("0")) == Decimal("0")


def test_basis_points_to_decimal():
    assert basis_points_to_decimal(100) == Decimal("0.01")
    assert basis_points_to_decimal(2.5) == Decimal("0.00025")


def test_deep_merge():
    base = {"a": 1, "b": {"c": 2, "d": 3}}
    update = {"b": {"c": 4, "e": 5}, "f": 6}

    result = deep_merge(base, update)

    assert result == {"a": 1, "b": {"c": 4, "d": 3, "e": 5}, "f": 6}
    assert base == {"a": 1, "b": {"c": 2, "d": 3}}


def test_get_nested_value():
    data = {"criteria": {"data": {"token": {"tokenId": "42"}}}}
    assert get_nested_value(data, "criteria.data.token.tokenId") == "42"
    assert get_nested_value(data, "criteria.data.collection.id", "none") == "none"
    assert get_nested_value(None, "a.b") is None


def test_is_valid_address():
    assert is_valid_address("0x" + "aB" * 20)
    assert not is_valid_address("0x123")
    assert not is_valid_address("ab" * 21)
    assert not is_valid_address(None)
