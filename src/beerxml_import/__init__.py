"""beerxml-import: Normalize, reconcile and score BeerXML recipe imports."""

from beerxml_import.ingredients import coerce_ingredient_time, validate_and_coerce_ingredients
from beerxml_import.matcher import match_ingredients
from beerxml_import.metrics import compute_metrics
from beerxml_import.pipeline import ImportSession
from beerxml_import.reconciler import reconcile
from beerxml_import.schema import (
    DecisionList,
    FinalizedIngredient,
    IngredientDecision,
    NormalizedIngredient,
    RawImportedIngredient,
    RawImportedRecipe,
    RecipeMetrics,
    RecipeParameters,
)
from beerxml_import.units import derive_mash_temp_unit, derive_unit_system, normalize_units

__version__ = "0.1.0"

__all__ = [
    "DecisionList",
    "FinalizedIngredient",
    "ImportSession",
    "IngredientDecision",
    "NormalizedIngredient",
    "RawImportedIngredient",
    "RawImportedRecipe",
    "RecipeMetrics",
    "RecipeParameters",
    "coerce_ingredient_time",
    "compute_metrics",
    "derive_mash_temp_unit",
    "derive_unit_system",
    "match_ingredients",
    "normalize_units",
    "reconcile",
    "validate_and_coerce_ingredients",
    "__version__",
]
