import json

import pytest

from pricecompare.errors import ValidationError
from pricecompare.utils import parse_decimal, parse_number_list, parse_optional_int


def test_optional_int_accepts_whole_numbers():
    assert parse_optional_int(None, "n") is None
    assert parse_optional_int("", "n") is None
    assert parse_optional_int(3, "n") == 3
    assert parse_optional_int("4", "n") == 4
    assert parse_optional_int(2.0, "n") == 2


@pytest.mark.parametrize("value", [1.9, "0.5", float("inf"), "1e400", 10**30, True, "abc"])
def test_optional_int_rejects(value):
    with pytest.raises(ValidationError):
        parse_optional_int(value, "n")


def test_decimal_accepts_comma():
    assert str(parse_decimal("12,5", "price")) == "12.5"


@pytest.mark.parametrize("value", ["1e400", float("inf"), "nan", -1])
def test_decimal_rejects(value):
    with pytest.raises(ValidationError):
        parse_decimal(value, "price")


def test_number_list_stays_valid_json():
    numbers = parse_number_list([1, "2,5", None, ""], "prices")
    assert numbers == [1.0, 2.5, 0.0, 0.0]
    json.loads(json.dumps(numbers, allow_nan=False))


def test_number_list_rejects_out_of_float_range():
    with pytest.raises(ValidationError):
        parse_number_list([1, "1e400"], "prices")
