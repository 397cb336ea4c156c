"""BeerXML file checks and import statistics."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from beerxml_import.config import PipelineConfig
from beerxml_import.exceptions import ParseError
from beerxml_import.schema import MatchResult, RawImportedRecipe

SUPPORTED_FILE_TYPES = (".xml",)
RECIPES_ELEMENT = re.compile(r"<\s*RECIPES\b", re.IGNORECASE)

METRIC_BATCH_UNITS = {"l", "liter", "liters", "litre", "litres", "ml"}
IMPERIAL_BATCH_UNITS = {"gal", "gallon", "gallons"}
METRIC_WEIGHT_UNITS = {"g", "kg", "gram", "grams", "kilogram", "kilograms"}
IMPERIAL_WEIGHT_UNITS = {"oz", "lb", "lbs", "ounce", "ounces", "pound", "pounds"}
INGREDIENT_TYPES = ("grain", "hop", "yeast", "other")


@dataclass(frozen=True)
class FileValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MatchingStats:
    matched: int = 0
    new_required: int = 0
    high_confidence: int = 0


@dataclass(frozen=True)
class ImportSummary:
    total_recipes: int
    total_ingredients: int
    ingredients_by_type: dict[str, int]


def validate_file(name: str, size: int, config: PipelineConfig | None = None) -> FileValidationResult:
    config = config or PipelineConfig()
    errors: list[str] = []

    extension = name.lower().rsplit(".", 1)[-1] if "." in name else ""
    if f".{extension}" not in SUPPORTED_FILE_TYPES:
        errors.append(f"Unsupported file type. Supported types: {', '.join(SUPPORTED_FILE_TYPES)}")

    if size > config.max_file_bytes:
        errors.append(f"File too large. Maximum size is {config.max_file_bytes / 1024 / 1024:.1f}MB")

    return FileValidationResult(valid=not errors, errors=errors)


def validate_beerxml_content(content: str, config: PipelineConfig | None = None) -> None:
    """Cheap sanity checks before sending content to a parser.

    Raises:
        ParseError: If the content is empty, has no RECIPES element, or is
            larger than the configured limit.
    """
    config = config or PipelineConfig()
    if not content or not content.strip():
        raise ParseError("XML content is empty")
    if not RECIPES_ELEMENT.search(content):
        raise ParseError("Invalid BeerXML format - missing RECIPES element")

    size = len(content.encode("utf-8"))
    if size > config.max_file_bytes:
        raise ParseError(
            f"File too large. Maximum size is {config.max_file_bytes / 1024 / 1024:.1f}MB, "
            f"got {size / 1024 / 1024:.1f}MB"
        )


def _ingredient_field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def generate_import_summary(recipes: Sequence[RawImportedRecipe]) -> ImportSummary:
    by_type = {ingredient_type: 0 for ingredient_type in INGREDIENT_TYPES}
    total = 0
    for recipe in recipes:
        total += len(recipe.ingredients)
        for item in recipe.ingredients:
            ingredient_type = str(_ingredient_field(item, "type") or "").lower()
            if ingredient_type in by_type:
                by_type[ingredient_type] += 1
    return ImportSummary(total_recipes=len(recipes), total_ingredients=total, ingredients_by_type=by_type)


def calculate_matching_stats(
    results: Sequence[MatchResult],
    high_confidence: float = 0.8,
    min_confidence: float = 0.0,
) -> MatchingStats:
    matched = new_required = high = 0
    for result in results:
        best = result.best_match
        if best is not None and best.confidence > min_confidence:
            matched += 1
            if best.confidence >= high_confidence:
                high += 1
        else:
            new_required += 1
    return MatchingStats(matched=matched, new_required=new_required, high_confidence=high)


def detect_recipe_unit_system(recipe: RawImportedRecipe) -> Literal["metric", "imperial", "mixed"]:
    """Vote over the batch size unit and ingredient weight units."""
    metric = imperial = 0

    batch_unit = str(recipe.batch_size_unit or "").strip().lower()
    if batch_unit in METRIC_BATCH_UNITS:
        metric += 1
    elif batch_unit in IMPERIAL_BATCH_UNITS:
        imperial += 1

    for item in recipe.ingredients:
        unit = str(_ingredient_field(item, "unit") or "").strip().lower()
        if unit in METRIC_WEIGHT_UNITS:
            metric += 1
        elif unit in IMPERIAL_WEIGHT_UNITS:
            imperial += 1

    if metric > imperial:
        return "metric"
    if imperial > metric:
        return "imperial"
    return "mixed"
