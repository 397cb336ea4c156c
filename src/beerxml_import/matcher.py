"""Default ingredient decisions from store lookups."""

from __future__ import annotations

import logging

from beerxml_import.exceptions import MatchServiceError
from beerxml_import.schema import (
    DecisionList,
    IngredientDecision,
    IngredientDraft,
    MatchResult,
    NormalizedIngredient,
)
from beerxml_import.stores.base import IngredientStore

logger = logging.getLogger(__name__)

IMPORT_DESCRIPTION = "Imported from BeerXML"
DEFAULT_GRAIN_TYPE = "base_malt"


class IngredientMatcher:
    """Builds one default decision per validated ingredient."""

    def __init__(self, store: IngredientStore, min_confidence: float | None = None):
        self.store = store
        self.min_confidence = min_confidence
        self.results: list[MatchResult] = []

    @property
    def threshold(self) -> float:
        if self.min_confidence is not None:
            return self.min_confidence
        return self.store.min_confidence

    def match_ingredients(self, ingredients: list[NormalizedIngredient]) -> DecisionList:
        """Look up every ingredient in one batch and build default decisions.

        Args:
            ingredients: Kept ingredients from validation, in order.

        Returns:
            DecisionList whose decision ``i`` belongs to ``ingredients[i]``.

        Raises:
            MatchServiceError: If the store fails or answers for a different
                number of ingredients.
        """
        if not ingredients:
            self.results = []
            return DecisionList()

        try:
            results = self.store.match(list(ingredients))
        except MatchServiceError:
            raise
        except Exception as e:
            raise MatchServiceError(f"Failed to match ingredients: {e}") from e

        if len(results) != len(ingredients):
            raise MatchServiceError(
                f"Match service returned {len(results)} results for {len(ingredients)} ingredients"
            )
        self.results = list(results)

        decisions = tuple(
            self._default_decision(source, result) for source, result in zip(ingredients, results)
        )
        logger.debug(
            "Matched %d ingredients, %d use existing",
            len(decisions),
            sum(1 for d in decisions if d.action == "use_existing"),
        )
        return DecisionList(decisions=decisions)

    def _default_decision(
        self, source: NormalizedIngredient, result: MatchResult
    ) -> IngredientDecision:
        best = result.best_match
        if best is not None and best.confidence > self.threshold:
            return IngredientDecision(
                source=source,
                action="use_existing",
                confidence=best.confidence,
                selected_match=best.ingredient,
                draft=result.suggested_payload or build_draft(source),
            )

        return IngredientDecision(
            source=source,
            action="create_new",
            confidence=best.confidence if best is not None else 0.0,
            selected_match=best.ingredient if best is not None else None,
            draft=result.suggested_payload or build_draft(source),
        )


def build_draft(source: NormalizedIngredient) -> IngredientDraft:
    """Creation payload copied from an imported ingredient."""
    fields: dict = {
        "name": source.name,
        "type": source.type,
        "description": IMPORT_DESCRIPTION,
    }
    if source.type == "grain":
        fields["grain_type"] = source.grain_type or DEFAULT_GRAIN_TYPE
        fields["potential"] = source.potential
        fields["color"] = source.color
    elif source.type == "hop":
        fields["alpha_acid"] = source.alpha_acid
    elif source.type == "yeast":
        fields["attenuation"] = source.attenuation

    if source.beerxml_data:
        fields["notes"] = f"Origin: {source.beerxml_data.get('origin') or 'Unknown'}"
    return IngredientDraft(**fields)


def match_ingredients(
    ingredients: list[NormalizedIngredient],
    store: IngredientStore,
    min_confidence: float | None = None,
) -> DecisionList:
    return IngredientMatcher(store, min_confidence=min_confidence).match_ingredients(ingredients)
