"""Table-driven unit conversion and brewing-friendly rounding.

Conversion strategy:
- Linear pairs are listed once with their multiplication factor; the reverse
  direction divides by the same factor.
- Temperatures use the standard affine formulas.
- Unknown pairs never raise. They return the input unchanged and log a
  warning.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from beerxml_import.ingredients import to_number
from beerxml_import.schema import RawImportedIngredient, RawImportedRecipe, UnitSystem
from beerxml_import.units.system import derive_mash_temp_unit, derive_unit_system

logger = logging.getLogger(__name__)

MeasurementType = Literal["weight", "hop_weight", "yeast", "other", "volume", "temperature"]

LINEAR_FACTORS: dict[tuple[str, str], float] = {
    ("kg", "lb"): 2.20462,
    ("oz", "g"): 28.3495,
    ("kg", "g"): 1000.0,
    ("lb", "oz"): 16.0,
    ("gal", "l"): 3.78541,
    ("gal", "qt"): 4.0,
    ("qt", "l"): 0.946353,
    ("qt", "ml"): 946.353,
    ("l", "ml"): 1000.0,
}

UNIT_ALIASES = {
    "gram": "g",
    "grams": "g",
    "kilogram": "kg",
    "kilograms": "kg",
    "kgs": "kg",
    "ounce": "oz",
    "ounces": "oz",
    "pound": "lb",
    "pounds": "lb",
    "lbs": "lb",
    "liter": "l",
    "liters": "l",
    "litre": "l",
    "litres": "l",
    "milliliter": "ml",
    "milliliters": "ml",
    "gallon": "gal",
    "gallons": "gal",
    "quart": "qt",
    "quarts": "qt",
    "c": "C",
    "celsius": "C",
    "f": "F",
    "fahrenheit": "F",
}

MASS_UNITS = {"g", "kg", "oz", "lb"}
VOLUME_UNITS = {"ml", "l", "qt", "gal"}
METRIC_UNITS = {"g", "kg", "ml", "l", "C"}
COUNT_UNITS = {"pkg", "pkgs", "packet", "packets", "each", "item", "items", "unit", "units", "tsp", "tbsp"}

# (step, threshold below which the finer step applies, finer step)
SNAP_STEPS: dict[str, tuple[float, float, float]] = {
    "g": (10.0, 10.0, 0.5),
    "kg": (0.05, 0.0, 0.05),
    "oz": (0.25, 0.0, 0.25),
    "lb": (0.25, 0.0, 0.25),
    "l": (0.25, 0.0, 0.25),
    "gal": (0.25, 0.0, 0.25),
    "qt": (0.25, 0.0, 0.25),
    "ml": (5.0, 0.0, 5.0),
    "C": (0.5, 0.0, 0.5),
    "F": (1.0, 0.0, 1.0),
}


@dataclass(frozen=True)
class UnitConversion:
    value: float
    unit: str


@dataclass(frozen=True)
class RecipeConversion:
    recipe: RawImportedRecipe
    warnings: list[str] = field(default_factory=list)


def canonical_unit(unit: Any) -> str:
    if not isinstance(unit, str):
        return ""
    text = unit.strip()
    if text in ("C", "F"):
        return text
    lowered = text.lower()
    return UNIT_ALIASES.get(lowered, lowered)


def _factor(from_unit: str, to_unit: str) -> float | None:
    if (from_unit, to_unit) in LINEAR_FACTORS:
        return LINEAR_FACTORS[(from_unit, to_unit)]
    if (to_unit, from_unit) in LINEAR_FACTORS:
        return 1.0 / LINEAR_FACTORS[(to_unit, from_unit)]
    return None


def convert_unit(value: Any, from_unit: str, to_unit: str) -> UnitConversion:
    """Convert ``value`` between two units.

    Non-numeric values convert to ``0`` in the target unit. A pair that is not
    in the table returns the original value and unit.
    """
    number = to_number(value)
    if number is None:
        return UnitConversion(value=0.0, unit=to_unit)

    source = canonical_unit(from_unit)
    target = canonical_unit(to_unit)
    if source == target:
        return UnitConversion(value=number, unit=to_unit)

    if source == "F" and target == "C":
        return UnitConversion(value=(number - 32) * 5 / 9, unit=to_unit)
    if source == "C" and target == "F":
        return UnitConversion(value=number * 9 / 5 + 32, unit=to_unit)

    factor = _factor(source, target)
    if factor is None:
        logger.warning("No conversion available from %s to %s", from_unit, to_unit)
        return UnitConversion(value=number, unit=from_unit)
    return UnitConversion(value=number * factor, unit=to_unit)


def _convert_chained(value: float, from_unit: str, to_unit: str) -> float | None:
    """Convert through one intermediate unit when no direct pair exists."""
    if from_unit == to_unit:
        return value
    factor = _factor(from_unit, to_unit)
    if factor is not None:
        return value * factor
    for pivot in ("kg", "g", "lb", "oz", "l", "qt", "gal", "ml"):
        first = _factor(from_unit, pivot)
        second = _factor(pivot, to_unit)
        if first is not None and second is not None:
            return value * first * second
    return None


def preferred_unit(measurement_type: MeasurementType, unit_system: UnitSystem) -> str:
    metric = unit_system == "metric"
    if measurement_type == "weight":
        return "kg" if metric else "lb"
    if measurement_type in ("hop_weight", "other"):
        return "g" if metric else "oz"
    if measurement_type == "yeast":
        return "pkg"
    if measurement_type == "volume":
        return "l" if metric else "gal"
    if measurement_type == "temperature":
        return "C" if metric else "F"
    return "kg" if metric else "lb"


def convert_for_display(
    value: Any,
    storage_unit: str,
    measurement_type: MeasurementType,
    unit_system: UnitSystem,
) -> UnitConversion:
    return convert_unit(value, storage_unit, preferred_unit(measurement_type, unit_system))


def normalize_amount(value: float, unit: str) -> float:
    """Snap a quantity to a practical brewing increment (28.3 g -> 30 g)."""
    steps = SNAP_STEPS.get(canonical_unit(unit))
    if steps is None or not math.isfinite(value):
        return value

    step, fine_below, fine_step = steps
    if abs(value) < fine_below:
        step = fine_step
    snapped = round(math.floor(value / step + 0.5) * step, 4)
    if snapped == 0 and value != 0:
        return round(value, 2)
    return snapped


def _unit_system_of(unit: str) -> UnitSystem:
    return "metric" if unit in METRIC_UNITS else "imperial"


def _target_ingredient_unit(ingredient_type: str, unit: str, target: UnitSystem) -> str:
    metric = target == "metric"
    if unit in MASS_UNITS:
        if ingredient_type == "grain":
            return "kg" if metric else "lb"
        return "g" if metric else "oz"
    return "l" if metric else "qt"


def _step_down(value: float, unit: str) -> tuple[float, str]:
    if value >= 1:
        return value, unit
    if unit == "kg":
        return value * 1000.0, "g"
    if unit == "lb":
        return value * 16.0, "oz"
    if unit == "l":
        return value * 1000.0, "ml"
    return value, unit


def _convert_ingredient(
    item: Any,
    target: UnitSystem,
    normalize: bool,
    warnings: list[str],
) -> Any:
    if isinstance(item, RawImportedIngredient):
        raw = item
    elif isinstance(item, Mapping):
        raw = RawImportedIngredient.model_validate(dict(item))
    else:
        return item

    amount = to_number(raw.amount)
    unit = canonical_unit(raw.unit)
    if amount is None or not unit:
        return item

    if unit not in MASS_UNITS and unit not in VOLUME_UNITS:
        if unit not in COUNT_UNITS:
            warnings.append(f"{raw.name}: no conversion for unit '{raw.unit}'")
        return item

    if _unit_system_of(unit) == target:
        new_amount, new_unit = amount, unit
    else:
        ingredient_type = str(raw.type or "").strip().lower()
        new_unit = _target_ingredient_unit(ingredient_type, unit, target)
        converted = _convert_chained(amount, unit, new_unit)
        if converted is None:
            warnings.append(f"{raw.name}: no conversion from {unit} to {new_unit}")
            return item
        new_amount, new_unit = _step_down(converted, new_unit)

    if normalize:
        new_amount = normalize_amount(new_amount, new_unit)

    if isinstance(item, RawImportedIngredient):
        return item.model_copy(update={"amount": new_amount, "unit": new_unit})
    return {**item, "amount": new_amount, "unit": new_unit}


def convert_recipe_units(
    recipe: RawImportedRecipe,
    target_unit_system: UnitSystem,
    normalize: bool = True,
) -> RecipeConversion:
    """Convert a whole imported recipe to ``target_unit_system``.

    Quantities are snapped to brewing-friendly increments when ``normalize``
    is set, even when the recipe is already in the target system. The input
    recipe is left untouched.

    Args:
        recipe: Recipe as produced by the parser.
        target_unit_system: ``"metric"`` or ``"imperial"``.
        normalize: Snap converted quantities to practical increments.

    Returns:
        RecipeConversion with the converted recipe and conversion warnings.
    """
    warnings: list[str] = []
    source_system = derive_unit_system(recipe.batch_size_unit, recipe.unit_system)
    update: dict[str, Any] = {"unit_system": target_unit_system}

    batch_size = to_number(recipe.batch_size)
    if batch_size is not None:
        batch_unit = canonical_unit(recipe.batch_size_unit) or ("l" if source_system == "metric" else "gal")
        target_batch_unit = "l" if target_unit_system == "metric" else "gal"
        if batch_unit in VOLUME_UNITS:
            converted = _convert_chained(batch_size, batch_unit, target_batch_unit)
            if normalize:
                converted = normalize_amount(converted, target_batch_unit)
            update["batch_size"] = converted
            update["batch_size_unit"] = target_batch_unit
        else:
            warnings.append(f"batch size: no conversion for unit '{recipe.batch_size_unit}'")

    mash_temperature = to_number(recipe.mash_temperature)
    if mash_temperature is not None:
        mash_unit = derive_mash_temp_unit(recipe.mash_temp_unit, source_system)
        target_mash_unit = "C" if target_unit_system == "metric" else "F"
        converted = convert_unit(mash_temperature, mash_unit, target_mash_unit).value
        if normalize:
            converted = normalize_amount(converted, target_mash_unit)
        update["mash_temperature"] = converted
        update["mash_temp_unit"] = target_mash_unit

    update["ingredients"] = [
        _convert_ingredient(item, target_unit_system, normalize, warnings)
        for item in recipe.ingredients
    ]

    for warning in warnings:
        logger.warning("Unit conversion: %s", warning)

    return RecipeConversion(recipe=recipe.model_copy(update=update), warnings=warnings)
