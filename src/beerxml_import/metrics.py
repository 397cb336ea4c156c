"""Offline brewing metrics with a validation gate.

Formulas:
- OG from gravity points: potential * weight(lb) * efficiency / batch(gal)
- FG from the average attenuation (75% when none is known)
- ABV = (OG - FG) * 131.25
- IBU with Tinseth utilization
- SRM with the Morey equation over malt color units
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence

from beerxml_import.exceptions import MetricsCalculationError
from beerxml_import.schema import NormalizedIngredient, RecipeMetrics, RecipeParameters
from beerxml_import.units.conversion import convert_unit

logger = logging.getLogger(__name__)

DEFAULT_POTENTIAL = 35.0
DEFAULT_COLOR = 2.0
DEFAULT_ALPHA_ACID = 5.0
DEFAULT_ATTENUATION = 75.0
NO_GRAIN_OG = 1.04
NO_GRAIN_SRM = 2.0

MetricsKey = tuple


def validate_recipe_data(
    ingredients: Sequence[NormalizedIngredient],
    params: RecipeParameters,
) -> list[str]:
    """Return the reasons the input cannot produce metrics. Empty when valid."""
    errors: list[str] = []
    if not params.batch_size or params.batch_size <= 0:
        errors.append("Batch size must be greater than 0")
    if not params.efficiency or params.efficiency <= 0 or params.efficiency > 100:
        errors.append("Efficiency must be between 1 and 100")
    if not ingredients:
        errors.append("At least one ingredient is required")
    return errors


def _in_unit(ingredient: NormalizedIngredient, unit: str) -> float:
    return convert_unit(ingredient.amount, ingredient.unit, unit).value


def _batch_gallons(params: RecipeParameters) -> float:
    return convert_unit(params.batch_size, params.batch_size_unit, "gal").value


def calculate_og(grains: Sequence[NormalizedIngredient], batch_gal: float, efficiency: float) -> float:
    if not grains:
        return NO_GRAIN_OG
    points = 0.0
    for grain in grains:
        potential = grain.potential or DEFAULT_POTENTIAL
        points += potential * _in_unit(grain, "lb") * (efficiency / 100) / batch_gal
    return 1 + points / 1000


def calculate_fg(og: float, ingredients: Sequence[NormalizedIngredient]) -> float:
    attenuations = [i.attenuation for i in ingredients if i.attenuation and i.attenuation > 0]
    attenuation = sum(attenuations) / len(attenuations) if attenuations else DEFAULT_ATTENUATION
    gravity_points = (og - 1) * 1000
    return 1 + (gravity_points - gravity_points * attenuation / 100) / 1000


def calculate_abv(og: float, fg: float) -> float:
    return (og - fg) * 131.25


def hop_utilization(boil_minutes: float, og: float) -> float:
    gravity_factor = 1.65 * math.pow(0.000125, og - 1)
    time_factor = (1 - math.exp(-0.04 * boil_minutes)) / 4.15
    return gravity_factor * time_factor


def calculate_ibu(
    hops: Sequence[NormalizedIngredient],
    batch_gal: float,
    og: float,
    boil_time: float,
) -> float:
    total = 0.0
    for hop in hops:
        alpha_acid = hop.alpha_acid or DEFAULT_ALPHA_ACID
        minutes = boil_time if hop.time is None else hop.time
        total += _in_unit(hop, "oz") * alpha_acid * hop_utilization(minutes, og) * 75 / batch_gal
    return total


def calculate_srm(grains: Sequence[NormalizedIngredient], batch_gal: float) -> float:
    if not grains:
        return NO_GRAIN_SRM
    mcu = sum((grain.color or DEFAULT_COLOR) * _in_unit(grain, "lb") / batch_gal for grain in grains)
    return 1.4922 * math.pow(mcu, 0.6859)


def calculate_metrics(
    ingredients: Sequence[NormalizedIngredient],
    params: RecipeParameters,
) -> RecipeMetrics:
    """Run the formulas. Assumes the input passed validate_recipe_data."""
    grains = [i for i in ingredients if i.type == "grain"]
    hops = [i for i in ingredients if i.type == "hop"]
    batch_gal = _batch_gallons(params)

    og = calculate_og(grains, batch_gal, params.efficiency)
    fg = calculate_fg(og, ingredients)
    values = {
        "og": og,
        "fg": fg,
        "abv": calculate_abv(og, fg),
        "ibu": calculate_ibu(hops, batch_gal, og, params.boil_time),
        "srm": calculate_srm(grains, batch_gal),
    }
    bad = [name for name, value in values.items() if not math.isfinite(value)]
    if bad:
        raise ArithmeticError(f"non-finite result for {', '.join(bad)}")

    return RecipeMetrics(
        og=round(values["og"], 3),
        fg=round(values["fg"], 3),
        abv=round(values["abv"], 1),
        ibu=round(values["ibu"], 1),
        srm=round(values["srm"], 1),
    )


def compute_metrics(
    finalized: Sequence[NormalizedIngredient],
    params: RecipeParameters,
) -> RecipeMetrics | None:
    """Metrics for the finalized ingredients, or None when input is insufficient.

    Raises:
        MetricsCalculationError: If the calculation itself fails.
    """
    errors = validate_recipe_data(finalized, params)
    if errors:
        logger.warning("Invalid recipe data for metrics calculation: %s", errors)
        return None

    try:
        return calculate_metrics(finalized, params)
    except Exception as e:
        logger.exception("Unexpected metrics calculation failure")
        raise MetricsCalculationError(f"Could not calculate metrics: {e}") from e


def metrics_fingerprint(
    ingredients: Sequence[NormalizedIngredient],
    params: RecipeParameters,
) -> MetricsKey:
    """Cache key over ingredient identity, quantities and recipe parameters."""
    return (
        tuple(
            (
                i.ingredient_id,
                i.type,
                i.amount,
                i.unit,
                i.use,
                i.time,
                i.potential,
                i.color,
                i.alpha_acid,
                i.attenuation,
            )
            for i in ingredients
        ),
        params.batch_size,
        params.batch_size_unit,
        params.efficiency,
        params.boil_time,
        params.mash_temperature,
        params.mash_temp_unit,
    )


class MetricsCache:
    """Never-expiring cache for compute_metrics.

    The calculation is deterministic, so an entry stays valid forever.
    Validation failures (None) are cached; internal faults are not.
    """

    def __init__(self):
        self._entries: dict[MetricsKey, RecipeMetrics | None] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_compute(
        self,
        ingredients: Sequence[NormalizedIngredient],
        params: RecipeParameters,
    ) -> RecipeMetrics | None:
        key = metrics_fingerprint(ingredients, params)
        if key in self._entries:
            return self._entries[key]
        result = compute_metrics(ingredients, params)
        self._entries[key] = result
        return result
