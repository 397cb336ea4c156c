"""Unit system derivation and conversion utilities."""

from beerxml_import.units.axis import AxisRange, get_temperature_axis_config
from beerxml_import.units.conversion import (
    RecipeConversion,
    UnitConversion,
    convert_for_display,
    convert_recipe_units,
    convert_unit,
    normalize_amount,
    preferred_unit,
)
from beerxml_import.units.system import derive_mash_temp_unit, derive_unit_system, normalize_units

__all__ = [
    "AxisRange",
    "RecipeConversion",
    "UnitConversion",
    "convert_for_display",
    "convert_recipe_units",
    "convert_unit",
    "derive_mash_temp_unit",
    "derive_unit_system",
    "get_temperature_axis_config",
    "normalize_amount",
    "normalize_units",
    "preferred_unit",
]
