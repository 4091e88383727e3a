"""Unit Converter — tests for exact quantity conversion.

Tests cover:
    - convert within mass and length dimensions (exact Decimal results)
    - identity conversion returns the value unchanged
    - unknown or cross-dimension units raise UnconvertibleUnitsError
    - quantity_le / quantity_eq honour EPSILON
    - dimension_of / KNOWN_UNITS lookups
"""

from decimal import Decimal

import pytest

from rulebook.core.domain_types import EPSILON, Dimension
from rulebook.core.errors import UnconvertibleUnitsError
from rulebook.core.units import (
    KNOWN_UNITS, convert, dimension_of, quantity_eq, quantity_le, to_decimal,
)


# ─── convert ─────────────────────────────────────────────────────

def test_convert_tonnes_to_kilograms():
    assert convert(2.5, "t", "kg", Dimension.MASS) == Decimal("2500")


def test_convert_pounds_to_kilograms_is_exact():
    assert convert(100, "lb", "kg", Dimension.MASS) == Decimal("45.359237")


def test_convert_grams_to_tonnes():
    assert convert(1_000_000, "g", "t", Dimension.MASS) == Decimal("1")


def test_convert_feet_to_metres():
    assert convert(10, "ft", "m", Dimension.LENGTH) == Decimal("3.048")


def test_convert_inches_to_centimetres():
    assert convert(1, "in", "cm", Dimension.LENGTH) == Decimal("2.54")


def test_convert_same_unit_returns_value():
    assert convert(0.1, "kg", "kg", Dimension.MASS) == Decimal("0.1")


def test_convert_float_goes_through_string_form():
    """0.1 must not become 0.1000000000000000055511151231257827."""
    assert to_decimal(0.1) == Decimal("0.1")


def test_convert_rejects_cross_dimension_units():
    with pytest.raises(UnconvertibleUnitsError) as exc:
        convert(5, "m", "kg", Dimension.MASS)
    assert exc.value.from_unit == "m"
    assert exc.value.to_unit == "kg"
    assert exc.value.http_status == 422


def test_convert_rejects_unknown_unit():
    with pytest.raises(UnconvertibleUnitsError):
        convert(5, "stone", "kg", Dimension.MASS)


# ─── comparisons ─────────────────────────────────────────────────

def test_quantity_le_tolerates_epsilon():
    assert quantity_le(Decimal("10") + EPSILON, Decimal("10"))


def test_quantity_le_rejects_beyond_epsilon():
    assert not quantity_le(Decimal("10") + EPSILON * 2, Decimal("10"))


def test_quantity_eq_within_epsilon():
    assert quantity_eq(Decimal("1.0000000001"), Decimal("1"))
    assert not quantity_eq(Decimal("1.00001"), Decimal("1"))


# ─── lookups ─────────────────────────────────────────────────────

def test_dimension_of_known_and_unknown_units():
    assert dimension_of("lb") == Dimension.MASS
    assert dimension_of("mm") == Dimension.LENGTH
    assert dimension_of("furlong") is None


def test_known_units_covers_both_dimensions():
    assert {"kg", "g", "t", "lb", "m", "cm", "mm", "ft", "in"} == set(KNOWN_UNITS)
