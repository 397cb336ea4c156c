"""Command-line interface for beerxml-import."""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from beerxml_import import __version__
from beerxml_import.beerxml import generate_import_summary
from beerxml_import.config import PipelineConfig
from beerxml_import.exceptions import BeerXMLImportError, MetricsCalculationError
from beerxml_import.pipeline import ImportSession
from beerxml_import.schema import PersistedIngredient, RawImportedRecipe
from beerxml_import.stores import (
    BackendClient,
    HttpBeerXMLParser,
    HttpIngredientStore,
    HttpRecipeStore,
    InMemoryIngredientStore,
    InMemoryRecipeStore,
)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="beerxml-import",
        description="Review a BeerXML recipe import: units, ingredient matches and metrics",
    )
    parser.add_argument("recipe", help="Parsed recipe JSON, or a BeerXML file when --api-url is set")
    parser.add_argument("--catalog", help="JSON list of known ingredients for offline matching")
    parser.add_argument(
        "--unit-system",
        choices=["metric", "imperial"],
        help="Convert the recipe to this unit system before matching",
    )
    parser.add_argument("--index", type=int, default=0, help="Recipe to import when the file has several")
    parser.add_argument("--api-url", help="Backend base URL (default: BEERXML_API_URL env var)")
    parser.add_argument("--save", action="store_true", help="Create the recipe after reconciliation")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pipeline warnings")
    parser.add_argument("--version", action="version", version=f"beerxml-import {__version__}")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.ERROR)

    config = PipelineConfig.from_env()
    if args.api_url:
        config = replace(config, api_base_url=args.api_url)

    try:
        session, recipes = _build_session(args, config)
        report = _run(session, recipes, args)
    except (BeerXMLImportError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(report, indent=2, ensure_ascii=False))
    else:
        _print_formatted(report)
    return 0


def _build_session(
    args: argparse.Namespace, config: PipelineConfig
) -> tuple[ImportSession, list[RawImportedRecipe]]:
    text = Path(args.recipe).read_text(encoding="utf-8")

    if config.api_base_url:
        client = BackendClient.from_config(config)
        if args.recipe.lower().endswith(".xml"):
            recipes = HttpBeerXMLParser(client, config).parse(text)
        else:
            recipes = _load_recipes(text)
        ingredient_store = HttpIngredientStore(client)
        recipe_store = HttpRecipeStore(client)
    else:
        recipes = _load_recipes(text)
        catalog = []
        if args.catalog:
            data = json.loads(Path(args.catalog).read_text(encoding="utf-8"))
            catalog = [PersistedIngredient.model_validate(item) for item in data]
        ingredient_store = InMemoryIngredientStore(catalog)
        recipe_store = InMemoryRecipeStore(ingredient_store)

    if not 0 <= args.index < len(recipes):
        raise BeerXMLImportError(f"No recipe at index {args.index} ({len(recipes)} found)")
    return ImportSession(recipes[args.index], ingredient_store, recipe_store, config), recipes


def _load_recipes(text: str) -> list[RawImportedRecipe]:
    data = json.loads(text)
    if isinstance(data, dict) and isinstance(data.get("recipes"), list):
        items = data["recipes"]
    elif isinstance(data, list):
        items = data
    else:
        items = [data]
    return [RawImportedRecipe.model_validate(item) for item in items if isinstance(item, dict)]


def _run(session: ImportSession, recipes: list[RawImportedRecipe], args: argparse.Namespace) -> dict:
    warnings: list[str] = []
    if args.unit_system:
        warnings.extend(session.convert_units(args.unit_system))

    params = session.normalize_units()
    validation = session.validate_ingredients()
    decisions = session.match_ingredients()
    stats = session.matching_stats()
    summary = generate_import_summary(recipes)

    # Reconciliation creates ingredients in the store; only --save commits.
    result = session.reconcile(decisions) if args.save else None
    ingredients = result.finalized if result else validation.kept

    metrics_error = None
    try:
        metrics = session.compute_metrics()
    except MetricsCalculationError as e:
        metrics, metrics_error = None, str(e)

    saved = session.persist() if args.save else None

    return {
        "name": session.raw.name,
        "parameters": params.model_dump(),
        "summary": {
            "recipes": summary.total_recipes,
            "ingredients": summary.total_ingredients,
            "by_type": summary.ingredients_by_type,
        },
        "kept": len(validation.kept),
        "dropped": validation.dropped_count,
        "matching": {
            "matched": stats.matched,
            "new_required": stats.new_required,
            "high_confidence": stats.high_confidence,
        },
        "decisions": [
            {
                "name": d.source.name,
                "action": d.action,
                "confidence": d.confidence,
                "match": d.selected_match.name if d.selected_match else None,
            }
            for d in decisions.decisions
        ],
        "ingredients": [item.model_dump(exclude={"instance_id"}, exclude_none=True) for item in ingredients],
        "created": result.created_count if result else 0,
        "needs_relinking": [issue.name for issue in result.issues] if result else [],
        "metrics": metrics.model_dump() if metrics else None,
        "metrics_error": metrics_error,
        "conversion_warnings": warnings,
        "recipe_id": saved.get("id") if saved else None,
    }


def _print_formatted(report: dict) -> None:
    """Print the import review in human-readable format."""
    params = report["parameters"]
    print()
    print(f"  {report['name'] or 'Untitled recipe'}")
    print()
    print(f"  {'Unit system:':<16} {params['unit_system']}")
    print(f"  {'Batch size:':<16} {params['batch_size']:g} {params['batch_size_unit']}")
    print(f"  {'Mash temp:':<16} {params['mash_temperature']:g} {params['mash_temp_unit']}")
    print(f"  {'Ingredients:':<16} {report['kept']} kept, {report['dropped']} dropped")
    matching = report["matching"]
    print(
        f"  {'Matches:':<16} {matching['matched']} found, {matching['new_required']} new, "
        f"{matching['high_confidence']} high confidence"
    )
    print()

    for decision in report["decisions"]:
        if decision["action"] == "use_existing":
            detail = f"use {decision['match']} ({decision['confidence']:.0%})"
        else:
            detail = "create new"
        print(f"  - {decision['name']:<28} {detail}")

    if report["needs_relinking"]:
        print()
        print(f"  Needs re-linking: {', '.join(report['needs_relinking'])}")

    print()
    metrics = report["metrics"]
    if metrics:
        print(
            f"  OG {metrics['og']:.3f}  FG {metrics['fg']:.3f}  ABV {metrics['abv']:.1f}%  "
            f"IBU {metrics['ibu']:.1f}  SRM {metrics['srm']:.1f}"
        )
    elif report["metrics_error"]:
        print("  Could not calculate metrics")
    else:
        print("  Metrics: -")
    print()


if __name__ == "__main__":
    sys.exit(main())
