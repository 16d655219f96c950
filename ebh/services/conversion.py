"""
Unit conversion between a material's primary unit (mass, Tấn) and secondary
unit (volume, m³).

density = primary units per secondary unit:
    m³  = Tấn / density
    Tấn = m³ × density

Prices move the opposite way so that a line's money total does not depend on
the unit it is expressed in:
    price_per_m³  = price_per_Tấn × density
    price_per_Tấn = price_per_m³ / density
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

from ebh.core.errors import ValidationError

QUANTITY_PLACES = Decimal("0.001")
PRICE_PLACES = Decimal("0.0001")
MONEY_PLACES = Decimal("0.01")
DENSITY_PLACES = Decimal("0.0001")

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Decimal from int/float/str/Decimal; None and garbage become 0, NaN and infinity are rejected"""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            number = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return ZERO
    if not number.is_finite():
        raise ValidationError(f"{value} is not a finite number")
    return number


def _quantize(value: Any, places: Decimal) -> Decimal:
    try:
        return to_decimal(value).quantize(places, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"{value} is out of range")


def round_quantity(value: Any) -> Decimal:
    return _quantize(value, QUANTITY_PLACES)


def round_money(value: Any) -> Decimal:
    return _quantize(value, MONEY_PLACES)


def round_density(value: Any) -> Decimal:
    return _quantize(value, DENSITY_PLACES)


def to_secondary(primary_qty: Any, density: Any) -> Decimal:
    """Tấn -> m³. A non-positive density yields 0 instead of raising."""
    d = to_decimal(density)
    if d <= 0:
        return round_quantity(ZERO)
    return round_quantity(to_decimal(primary_qty) / d)


def to_primary(secondary_qty: Any, density: Any) -> Decimal:
    """m³ -> Tấn"""
    return round_quantity(to_decimal(secondary_qty) * to_decimal(density))


def price_to_secondary(price_primary: Any, density: Any) -> Decimal:
    """Price per Tấn -> price per m³"""
    return _quantize(to_decimal(price_primary) * to_decimal(density), PRICE_PLACES)


def price_to_primary(price_secondary: Any, density: Any) -> Decimal:
    """Price per m³ -> price per Tấn"""
    d = to_decimal(density)
    if d <= 0:
        return ZERO.quantize(PRICE_PLACES)
    return _quantize(to_decimal(price_secondary) / d, PRICE_PLACES)


def line_total(quantity: Any, unit_price: Any) -> Decimal:
    """Money total of a line, quantity and price in the same unit"""
    return round_money(to_decimal(quantity) * to_decimal(unit_price))


def convert_entered_quantity(quantity: Any, entered_unit: str, density: Any) -> tuple:
    """
    Both quantities of a line from the one the user typed.

    Returns:
        (quantity_primary, quantity_secondary)
    """
    if entered_unit == "secondary":
        quantity_secondary = round_quantity(quantity)
        return to_primary(quantity_secondary, density), quantity_secondary
    quantity_primary = round_quantity(quantity)
    return quantity_primary, to_secondary(quantity_primary, density)
