"""Measurement units and quantity arithmetic.

Amounts are plain floats normalized to six decimal places after every
operation, so sums over many small transfers compare equal within
``EPSILON`` instead of drifting.
"""

from dataclasses import dataclass
from enum import Enum

from kitchen_inventory.domain.errors import (
    IncompatibleUnitError,
    InsufficientQuantityError,
)

EPSILON = 1e-6
_PRECISION = 6


class UnitFamily(Enum):
    """Physical dimension a unit measures."""

    MASS = "mass"
    VOLUME = "volume"
    COUNT = "count"


class Unit(Enum):
    """Units an inventory package can be recorded in."""

    G = "g"
    KG = "kg"
    OZ = "oz"
    LBS = "lbs"
    ML = "ml"
    L = "l"
    FL_OZ = "fl oz"
    GALLON = "gallon"
    CUP = "cup"
    TBSP = "tbsp"
    TSP = "tsp"
    PCS = "pcs"

    @property
    def family(self) -> UnitFamily:
        """Return the family this unit belongs to."""
        return _FAMILIES[self]

    @property
    def base_factor(self) -> float:
        """Return how many base units (g, ml, pcs) one of this unit holds."""
        return _BASE_FACTORS[self]


_FAMILIES: dict[Unit, UnitFamily] = {
    Unit.G: UnitFamily.MASS,
    Unit.KG: UnitFamily.MASS,
    Unit.OZ: UnitFamily.MASS,
    Unit.LBS: UnitFamily.MASS,
    Unit.ML: UnitFamily.VOLUME,
    Unit.L: UnitFamily.VOLUME,
    Unit.FL_OZ: UnitFamily.VOLUME,
    Unit.GALLON: UnitFamily.VOLUME,
    Unit.CUP: UnitFamily.VOLUME,
    Unit.TBSP: UnitFamily.VOLUME,
    Unit.TSP: UnitFamily.VOLUME,
    Unit.PCS: UnitFamily.COUNT,
}

_BASE_FACTORS: dict[Unit, float] = {
    Unit.G: 1.0,
    Unit.KG: 1000.0,
    Unit.OZ: 28.349523125,
    Unit.LBS: 453.59237,
    Unit.ML: 1.0,
    Unit.L: 1000.0,
    Unit.FL_OZ: 29.5735295625,
    Unit.GALLON: 3785.411784,
    Unit.CUP: 236.5882365,
    Unit.TBSP: 14.78676478125,
    Unit.TSP: 4.92892159375,
    Unit.PCS: 1.0,
}

_ALIASES: dict[str, Unit] = {
    "gram": Unit.G,
    "grams": Unit.G,
    "kilogram": Unit.KG,
    "kilograms": Unit.KG,
    "ounce": Unit.OZ,
    "ounces": Unit.OZ,
    "lb": Unit.LBS,
    "pound": Unit.LBS,
    "pounds": Unit.LBS,
    "milliliter": Unit.ML,
    "milliliters": Unit.ML,
    "liter": Unit.L,
    "liters": Unit.L,
    "floz": Unit.FL_OZ,
    "gal": Unit.GALLON,
    "gallons": Unit.GALLON,
    "cups": Unit.CUP,
    "tablespoon": Unit.TBSP,
    "tablespoons": Unit.TBSP,
    "teaspoon": Unit.TSP,
    "teaspoons": Unit.TSP,
    "piece": Unit.PCS,
    "pieces": Unit.PCS,
    "pc": Unit.PCS,
}

_SYSTEM_UNITS: dict[str, list[Unit]] = {
    "metric": [Unit.G, Unit.KG, Unit.ML, Unit.L, Unit.PCS],
    "us": [
        Unit.OZ,
        Unit.LBS,
        Unit.FL_OZ,
        Unit.GALLON,
        Unit.CUP,
        Unit.TBSP,
        Unit.TSP,
        Unit.PCS,
    ],
}


def normalize(amount: float) -> float:
    """Round an amount to the shared precision, folding -0.0 into 0.0."""
    rounded = round(float(amount), _PRECISION)
    return rounded + 0.0


def amounts_equal(left: float, right: float) -> bool:
    """Return True when two amounts are equal within EPSILON."""
    return abs(normalize(left) - normalize(right)) < EPSILON


def is_zero(amount: float) -> bool:
    """Return True when an amount is zero within EPSILON."""
    return amounts_equal(amount, 0.0)


def same_family(first: Unit, second: Unit) -> bool:
    """Return True when both units measure the same dimension."""
    return first.family is second.family


def parse_unit(text: str | None) -> Unit | None:
    """Parse a unit symbol or common alias, returning None when unknown."""
    if text is None:
        return None
    cleaned = " ".join(text.strip().lower().rstrip(".").split())
    if not cleaned:
        return None
    for unit in Unit:
        if unit.value == cleaned:
            return unit
    return _ALIASES.get(cleaned)


def units_for_system(system: str) -> list[Unit]:
    """Return the units offered in forms for a unit system preference."""
    try:
        return list(_SYSTEM_UNITS[system])
    except KeyError as exc:
        raise ValueError(f"Unknown unit system: {system}") from exc


@dataclass(frozen=True)
class Quantity:
    """A non-negative amount in a unit."""

    amount: float
    unit: Unit

    def __post_init__(self) -> None:
        amount = normalize(self.amount)
        if amount < 0:
            raise InsufficientQuantityError(
                f"Quantity cannot be negative: {self.amount} {self.unit.value}"
            )
        object.__setattr__(self, "amount", amount)

    @property
    def is_zero(self) -> bool:
        """Return True for a depleted quantity."""
        return is_zero(self.amount)

    def __str__(self) -> str:
        return f"{self.amount:g} {self.unit.value}"


def convert(quantity: Quantity, unit: Unit) -> Quantity:
    """Express a quantity in another unit of the same family."""
    if quantity.unit is unit:
        return quantity
    _require_same_family(quantity.unit, unit)
    base = quantity.amount * quantity.unit.base_factor
    return Quantity(base / unit.base_factor, unit)


def add(first: Quantity, second: Quantity) -> Quantity:
    """Add two quantities, returning the result in the first one's unit."""
    other = convert(second, first.unit)
    return Quantity(first.amount + other.amount, first.unit)


def subtract(first: Quantity, second: Quantity) -> Quantity:
    """Subtract two quantities; going below zero by more than EPSILON is an error."""
    other = convert(second, first.unit)
    result = normalize(first.amount - other.amount)
    if result < 0:
        if result > -EPSILON:
            return Quantity(0.0, first.unit)
        raise InsufficientQuantityError(f"Cannot take {other} from {first}")
    return Quantity(result, first.unit)


def _require_same_family(first: Unit, second: Unit) -> None:
    if not same_family(first, second):
        raise IncompatibleUnitError(
            f"Cannot combine {first.value} ({first.family.value}) with "
            f"{second.value} ({second.family.value})"
        )
