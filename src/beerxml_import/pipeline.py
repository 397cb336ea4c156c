"""Import session driving a recipe through every pipeline stage."""

from __future__ import annotations

import logging
from typing import Any

from beerxml_import.beerxml import MatchingStats, calculate_matching_stats
from beerxml_import.config import PipelineConfig
from beerxml_import.exceptions import BeerXMLImportError, MetricsCalculationError
from beerxml_import.ingredients import IngredientValidationResult, validate_and_coerce_ingredients
from beerxml_import.matcher import IngredientMatcher
from beerxml_import.metrics import MetricsCache
from beerxml_import.reconciler import ReconciliationResult, Reconciler
from beerxml_import.schema import (
    DecisionAction,
    DecisionList,
    FinalizedIngredient,
    IngredientDraft,
    PersistedIngredient,
    RawImportedRecipe,
    RecipeMetrics,
    RecipeParameters,
    UnitSystem,
)
from beerxml_import.stores.base import IngredientStore, RecipeStore
from beerxml_import.units.conversion import convert_recipe_units
from beerxml_import.units.system import normalize_units

logger = logging.getLogger(__name__)


class ImportSession:
    """State of a single recipe import.

    Stages run in order: unit normalization, ingredient validation, matching,
    reconciliation, metrics and persistence. Earlier stages may be re-run
    until reconciliation commits; the finalized ingredient list survives a
    failed persistence call so it can be retried.
    """

    def __init__(
        self,
        raw: RawImportedRecipe,
        ingredient_store: IngredientStore,
        recipe_store: RecipeStore | None = None,
        config: PipelineConfig | None = None,
    ):
        self.raw = raw
        self.ingredient_store = ingredient_store
        self.recipe_store = recipe_store
        self.config = config or PipelineConfig()
        self.matcher = IngredientMatcher(
            ingredient_store, min_confidence=self.config.match_min_confidence
        )
        self.reconciler = Reconciler(ingredient_store)
        self.metrics_cache = MetricsCache()
        self.decisions: DecisionList | None = None
        self.reconciliation: ReconciliationResult | None = None
        self.persisted: dict[str, Any] | None = None
        self._validation: IngredientValidationResult | None = None
        self._validated_rows: list[Any] | None = None

    @property
    def finalized(self) -> list[FinalizedIngredient] | None:
        return self.reconciliation.finalized if self.reconciliation else None

    @property
    def created_ingredients_count(self) -> int:
        return self.reconciliation.created_count if self.reconciliation else 0

    def convert_units(self, target_unit_system: UnitSystem, normalize: bool = True) -> list[str]:
        """Convert the recipe before matching. Returns conversion warnings."""
        if self.reconciliation is not None:
            raise BeerXMLImportError("Cannot convert units after ingredients were reconciled")
        conversion = convert_recipe_units(self.raw, target_unit_system, normalize=normalize)
        self.raw = conversion.recipe
        self.decisions = None
        return conversion.warnings

    def normalize_units(self) -> RecipeParameters:
        return normalize_units(self.raw, self.config)

    def validate_ingredients(self) -> IngredientValidationResult:
        rows = self.raw.ingredients
        if self._validation is None or self._validated_rows is not rows:
            self._validation = validate_and_coerce_ingredients(rows)
            self._validated_rows = rows
        return self._validation

    def match_ingredients(self) -> DecisionList:
        self.decisions = self.matcher.match_ingredients(self.validate_ingredients().kept)
        return self.decisions

    def matching_stats(self) -> MatchingStats:
        """Counts over the latest lookup, split at the configured confidence levels."""
        return calculate_matching_stats(
            self.matcher.results,
            high_confidence=self.config.high_confidence_threshold,
            min_confidence=self.matcher.threshold,
        )

    def update_decision(
        self,
        index: int,
        *,
        action: DecisionAction | None = None,
        selected_match: PersistedIngredient | None = None,
        draft: IngredientDraft | None = None,
    ) -> DecisionList:
        if self.decisions is None:
            raise BeerXMLImportError("Ingredients have not been matched yet")
        self.decisions = self.decisions.with_decision(
            index, action=action, selected_match=selected_match, draft=draft
        )
        return self.decisions

    def reconcile(self, decisions: DecisionList | None = None) -> ReconciliationResult:
        snapshot = decisions or self.decisions
        if snapshot is None:
            raise BeerXMLImportError("Ingredients have not been matched yet")
        self.reconciliation = self.reconciler.reconcile(snapshot)
        if self.reconciliation.needs_relinking:
            logger.warning(
                "%d ingredients need re-linking", len(self.reconciliation.issues)
            )
        return self.reconciliation

    def compute_metrics(self) -> RecipeMetrics | None:
        """Metrics over the finalized ingredients, or the validated ones before commit.

        Raises:
            MetricsCalculationError: If the calculation itself fails.
        """
        ingredients = self.finalized
        if ingredients is None:
            ingredients = self.validate_ingredients().kept
        return self.metrics_cache.get_or_compute(ingredients, self.normalize_units())

    def build_recipe_payload(self, metrics: RecipeMetrics | None = None) -> dict[str, Any]:
        if self.finalized is None:
            raise BeerXMLImportError("Ingredients have not been reconciled yet")

        params = self.normalize_units()
        payload: dict[str, Any] = {
            "name": self.raw.name,
            "style": self.raw.style or "",
            "description": self.raw.description or "",
            "notes": self.raw.notes or "",
            "batch_size": params.batch_size,
            "batch_size_unit": params.batch_size_unit,
            "boil_time": params.boil_time,
            "efficiency": params.efficiency,
            "unit_system": params.unit_system,
            "mash_temp_unit": params.mash_temp_unit,
            "mash_temperature": params.mash_temperature,
            "is_public": False,
            "ingredients": [
                item.model_dump(exclude={"instance_id", "resolved"}, exclude_none=True)
                for item in self.finalized
            ],
        }
        if metrics is not None:
            payload.update(
                estimated_og=metrics.og,
                estimated_fg=metrics.fg,
                estimated_abv=metrics.abv,
                estimated_ibu=metrics.ibu,
                estimated_srm=metrics.srm,
            )
        return payload

    def persist(self) -> dict[str, Any]:
        """Create the recipe through the recipe store.

        Metrics that cannot be calculated are left out of the payload.

        Raises:
            PersistenceError: If the store rejects the recipe or is
                unavailable. The finalized ingredients are kept for a retry.
        """
        if self.recipe_store is None:
            raise BeerXMLImportError("No recipe store configured")
        if self.persisted is not None:
            return self.persisted

        try:
            metrics = self.compute_metrics()
        except MetricsCalculationError:
            metrics = None
        payload = self.build_recipe_payload(metrics)
        self.persisted = self.recipe_store.create(payload)
        return self.persisted
