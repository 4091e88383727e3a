"""Unit Converter — exact normalisation of dimensioned quantities.

Invariants:
    - All functions are PURE: no IO, no state
    - Factors are exact Decimals to a per-dimension base unit (kg, m)
    - A unit outside the requested dimension is never guessed: UnconvertibleUnitsError
    - EPSILON (1e-9) is the only tolerance, applied by quantity_le / quantity_eq

Design Decisions:
    - Decimal over float: sums of many converted weights must not drift
    - Called only by the consistency checker; the field validator checks spelling, not dimension
"""

from decimal import Decimal

from rulebook.core.domain_types import EPSILON, Dimension
from rulebook.core.errors import UnconvertibleUnitsError


_FACTORS: dict[Dimension, dict[str, Decimal]] = {
    Dimension.MASS: {
        "kg": Decimal("1"),
        "g": Decimal("0.001"),
        "t": Decimal("1000"),
        "lb": Decimal("0.45359237"),
    },
    Dimension.LENGTH: {
        "m": Decimal("1"),
        "cm": Decimal("0.01"),
        "mm": Decimal("0.001"),
        "ft": Decimal("0.3048"),
        "in": Decimal("0.0254"),
    },
}

KNOWN_UNITS: frozenset[str] = frozenset(
    unit for table in _FACTORS.values() for unit in table
)


def dimension_of(unit: str) -> Dimension | None:
    """Which dimension a unit belongs to, or None when unknown."""
    for dimension, table in _FACTORS.items():
        if unit in table:
            return dimension
    return None


def is_unit_of(unit: str, dimension: Dimension) -> bool:
    return unit in _FACTORS[dimension]


def to_decimal(value: int | float | Decimal | str) -> Decimal:
    """Lift a JSON number into Decimal via its string form (no binary float noise)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def convert(
    value: int | float | Decimal, from_unit: str, to_unit: str, dimension: Dimension,
) -> Decimal:
    """Convert value from from_unit to to_unit within dimension."""
    table = _FACTORS[dimension]
    if from_unit not in table or to_unit not in table:
        raise UnconvertibleUnitsError(from_unit, to_unit, dimension.value)
    if from_unit == to_unit:
        return to_decimal(value)
    return to_decimal(value) * table[from_unit] / table[to_unit]


def quantity_le(left: Decimal, right: Decimal) -> bool:
    """left <= right within EPSILON."""
    return left - right <= EPSILON


def quantity_eq(left: Decimal, right: Decimal) -> bool:
    return abs(left - right) <= EPSILON
