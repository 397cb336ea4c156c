"""Validation and coercion of imported ingredient rows."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from beerxml_import.schema import NormalizedIngredient, RawImportedIngredient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DroppedIngredient:
    index: int
    name: str | None
    reason: str


@dataclass(frozen=True)
class IngredientValidationResult:
    kept: list[NormalizedIngredient] = field(default_factory=list)
    dropped: list[DroppedIngredient] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        return len(self.dropped)

    @property
    def total(self) -> int:
        return len(self.kept) + len(self.dropped)


def to_number(value: Any) -> float | None:
    """Coerce ``value`` to a finite float, or None. Booleans are not numbers."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def coerce_ingredient_time(value: Any) -> float | None:
    """Coerce an ingredient time value.

    Missing values stay missing, booleans are ignored, and an explicit zero
    (``0``, ``"0"`` or an empty string) is kept as ``0``. Anything else must
    be a finite, non-negative number.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return 0.0
    if value == 0 or value == "0":
        return 0.0
    number = to_number(value)
    if number is None or number < 0:
        return None
    return number


def validate_and_coerce_ingredients(raw_items: Any) -> IngredientValidationResult:
    """Filter raw ingredient rows down to well-formed line-items.

    Args:
        raw_items: Ingredient rows from the parser. Each row may be a
            RawImportedIngredient or a plain mapping.

    Returns:
        IngredientValidationResult with kept ingredients in input order and
        the reason for every dropped row.
    """
    if not isinstance(raw_items, (list, tuple)):
        return IngredientValidationResult()

    kept: list[NormalizedIngredient] = []
    dropped: list[DroppedIngredient] = []

    for index, item in enumerate(raw_items):
        raw = _as_raw_ingredient(item)
        if raw is None:
            logger.error("Ingredient row %d is not a mapping: %r", index, item)
            dropped.append(DroppedIngredient(index=index, name=None, reason="not_a_mapping"))
            continue

        reason = _rejection_reason(raw)
        if reason is not None:
            display_name = raw.name if isinstance(raw.name, str) else None
            if reason == "missing_ingredient_id":
                logger.warning("Ingredient missing ingredient_id: %r", raw.model_dump())
            else:
                logger.error("Ingredient dropped (%s): %r", reason, raw.model_dump())
            dropped.append(DroppedIngredient(index=index, name=display_name, reason=reason))
            continue

        kept.append(_normalize(raw))

    return IngredientValidationResult(kept=kept, dropped=dropped)


def _as_raw_ingredient(item: Any) -> RawImportedIngredient | None:
    if isinstance(item, RawImportedIngredient):
        return item
    if isinstance(item, Mapping):
        try:
            return RawImportedIngredient.model_validate(dict(item))
        except ValidationError:
            return None
    return None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _rejection_reason(raw: RawImportedIngredient) -> str | None:
    if _is_blank(raw.ingredient_id):
        return "missing_ingredient_id"
    if _is_blank(raw.name) or _is_blank(raw.type) or _is_blank(raw.unit):
        return "missing_required_fields"
    if raw.amount is None or raw.amount == "":
        return "missing_amount"
    amount = to_number(raw.amount)
    if amount is None or amount <= 0:
        return "invalid_amount"
    return None


def _normalize(raw: RawImportedIngredient) -> NormalizedIngredient:
    ingredient_type = str(raw.type).strip().lower()
    data: dict[str, Any] = {
        "ingredient_id": str(raw.ingredient_id),
        "name": str(raw.name),
        "type": ingredient_type,
        "amount": to_number(raw.amount),
        "unit": str(raw.unit),
        "use": str(raw.use) if not _is_blank(raw.use) else None,
        "time": coerce_ingredient_time(raw.time),
    }

    if ingredient_type == "grain":
        data["potential"] = to_number(raw.potential)
        data["color"] = to_number(raw.color)
        data["grain_type"] = str(raw.grain_type) if not _is_blank(raw.grain_type) else None
    elif ingredient_type == "hop":
        data["alpha_acid"] = to_number(raw.alpha_acid)
    elif ingredient_type == "yeast":
        data["attenuation"] = to_number(raw.attenuation)

    if isinstance(raw.beerxml_data, Mapping) and raw.beerxml_data:
        data["beerxml_data"] = dict(raw.beerxml_data)

    return NormalizedIngredient(**data)
