"""Unit system and recipe parameter derivation."""

from __future__ import annotations

import logging
from typing import Any

from beerxml_import.config import PipelineConfig
from beerxml_import.ingredients import coerce_ingredient_time, to_number
from beerxml_import.schema import RawImportedRecipe, RecipeParameters, TemperatureUnit, UnitSystem

logger = logging.getLogger(__name__)

IMPERIAL_BATCH_UNITS = {"gal", "gallons"}


def derive_unit_system(batch_size_unit: Any, explicit_unit_system: Any = None) -> UnitSystem:
    """Pick the recipe's unit system.

    An explicit ``"metric"`` or ``"imperial"`` always wins. Otherwise the
    batch size unit decides: gallons mean imperial, anything else metric.
    """
    if explicit_unit_system in ("metric", "imperial"):
        return explicit_unit_system

    if explicit_unit_system is not None:
        logger.warning(
            "Invalid explicit unit_system %r, deriving from batch_size_unit", explicit_unit_system
        )

    unit = batch_size_unit.strip().lower() if isinstance(batch_size_unit, str) else ""
    return "imperial" if unit in IMPERIAL_BATCH_UNITS else "metric"


def derive_mash_temp_unit(mash_temp_unit: Any, unit_system: UnitSystem) -> TemperatureUnit:
    """Validate the mash temperature unit, falling back to the system default."""
    if mash_temp_unit:
        normalized = str(mash_temp_unit).strip().upper()
        if normalized in ("C", "F"):
            return normalized
        logger.warning(
            "Invalid mash_temp_unit %r, using default for %s", mash_temp_unit, unit_system
        )
    return "C" if unit_system == "metric" else "F"


def normalize_units(
    raw: RawImportedRecipe,
    config: PipelineConfig | None = None,
) -> RecipeParameters:
    """Derive canonical recipe parameters from an imported recipe.

    Args:
        raw: Recipe as produced by the parser.
        config: Source of default values. Defaults to PipelineConfig().

    Returns:
        RecipeParameters. ``warnings`` lists every field that had to be
        derived or defaulted.
    """
    config = config or PipelineConfig()
    warnings: list[str] = []

    if raw.unit_system is not None and raw.unit_system not in ("metric", "imperial"):
        warnings.append("unit_system_invalid")
    unit_system = derive_unit_system(raw.batch_size_unit, raw.unit_system)

    if raw.mash_temp_unit and str(raw.mash_temp_unit).strip().upper() not in ("C", "F"):
        warnings.append("mash_temp_unit_invalid")
    mash_temp_unit = derive_mash_temp_unit(raw.mash_temp_unit, unit_system)

    batch_size = to_number(raw.batch_size)
    if batch_size is None or batch_size <= 0:
        warnings.append("batch_size_defaulted")
        batch_size = config.default_batch_size

    if isinstance(raw.batch_size_unit, str) and raw.batch_size_unit.strip():
        batch_size_unit = raw.batch_size_unit.strip()
    else:
        batch_size_unit = "l" if unit_system == "metric" else "gal"

    efficiency = to_number(raw.efficiency)
    if efficiency is None or efficiency <= 0:
        warnings.append("efficiency_defaulted")
        efficiency = config.default_efficiency

    boil_time = coerce_ingredient_time(raw.boil_time)
    if boil_time is None:
        warnings.append("boil_time_defaulted")
        boil_time = config.default_boil_time

    mash_temperature = to_number(raw.mash_temperature)
    if mash_temperature is None:
        warnings.append("mash_temperature_defaulted")
        mash_temperature = (
            config.default_mash_temperature_c
            if mash_temp_unit == "C"
            else config.default_mash_temperature_f
        )

    return RecipeParameters(
        unit_system=unit_system,
        mash_temp_unit=mash_temp_unit,
        batch_size=batch_size,
        batch_size_unit=batch_size_unit,
        boil_time=boil_time,
        efficiency=efficiency,
        mash_temperature=mash_temperature,
        warnings=warnings,
    )
