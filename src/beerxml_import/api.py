import logging
import os

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from beerxml_import import __version__
from beerxml_import.beerxml import detect_recipe_unit_system, generate_import_summary, validate_file
from beerxml_import.config import PipelineConfig
from beerxml_import.exceptions import MetricsCalculationError
from beerxml_import.ingredients import DroppedIngredient, validate_and_coerce_ingredients
from beerxml_import.metrics import MetricsCache
from beerxml_import.schema import (
    NormalizedIngredient,
    RawImportedRecipe,
    RecipeMetrics,
    RecipeParameters,
    UnitSystem,
)
from beerxml_import.units.conversion import convert_recipe_units
from beerxml_import.units.system import normalize_units

app = FastAPI(title="beerxml-import API", version=__version__)
logger = logging.getLogger(__name__)
CONFIG = PipelineConfig.from_env()
METRICS_CACHE = MetricsCache()

raw_origins = os.getenv("FRONTEND_ORIGINS", "*")
allow_origins = [origin.strip() for origin in raw_origins.split(",") if origin.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
def health() -> dict[str, bool]:
    return {"ok": True}


class FileCheckRequest(BaseModel):
    name: str
    size: int = Field(ge=0)


class FileCheckResponse(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)


class PreviewRequest(BaseModel):
    recipe: RawImportedRecipe


class DroppedResponse(BaseModel):
    index: int
    name: str | None = None
    reason: str


class SummaryResponse(BaseModel):
    totalRecipes: int
    totalIngredients: int
    ingredientsByType: dict[str, int]


class PreviewResponse(BaseModel):
    parameters: RecipeParameters
    detectedUnitSystem: str
    summary: SummaryResponse
    ingredients: list[NormalizedIngredient]
    dropped: list[DroppedResponse] = Field(default_factory=list)
    metrics: RecipeMetrics | None = None


class ConvertRequest(BaseModel):
    recipe: RawImportedRecipe
    targetUnitSystem: UnitSystem
    normalize: bool = True


class ConvertResponse(BaseModel):
    recipe: RawImportedRecipe
    warnings: list[str] = Field(default_factory=list)


def _dropped(item: DroppedIngredient) -> DroppedResponse:
    return DroppedResponse(index=item.index, name=item.name, reason=item.reason)


@app.post("/validate-file", response_model=FileCheckResponse)
def check_file(body: FileCheckRequest) -> FileCheckResponse:
    result = validate_file(body.name, body.size, CONFIG)
    return FileCheckResponse(valid=result.valid, errors=result.errors)


@app.post("/preview", response_model=PreviewResponse)
def preview(body: PreviewRequest) -> PreviewResponse:
    params = normalize_units(body.recipe, CONFIG)
    summary = generate_import_summary([body.recipe])
    validation = validate_and_coerce_ingredients(body.recipe.ingredients)

    try:
        metrics = METRICS_CACHE.get_or_compute(validation.kept, params)
    except MetricsCalculationError as exc:
        raise HTTPException(status_code=500, detail="metrics_calculation_failed") from exc

    return PreviewResponse(
        parameters=params,
        detectedUnitSystem=detect_recipe_unit_system(body.recipe),
        summary=SummaryResponse(
            totalRecipes=summary.total_recipes,
            totalIngredients=summary.total_ingredients,
            ingredientsByType=summary.ingredients_by_type,
        ),
        ingredients=validation.kept,
        dropped=[_dropped(item) for item in validation.dropped],
        metrics=metrics,
    )


@app.post("/convert", response_model=ConvertResponse)
def convert(body: ConvertRequest) -> ConvertResponse:
    conversion = convert_recipe_units(body.recipe, body.targetUnitSystem, normalize=body.normalize)
    return ConvertResponse(recipe=conversion.recipe, warnings=conversion.warnings)
