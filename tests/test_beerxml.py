"""Tests for BeerXML file checks and import statistics."""

import pytest

from beerxml_import import NormalizedIngredient, RawImportedRecipe
from beerxml_import.beerxml import (
    calculate_matching_stats,
    detect_recipe_unit_system,
    generate_import_summary,
    validate_beerxml_content,
    validate_file,
)
from beerxml_import.config import PipelineConfig
from beerxml_import.exceptions import ParseError
from beerxml_import.schema import MatchCandidate, MatchResult, PersistedIngredient

XML = "<?xml version='1.0'?><RECIPES><RECIPE><NAME>Test</NAME></RECIPE></RECIPES>"


def test_validate_file_accepts_xml():
    result = validate_file("recipe.XML", 1024)

    assert result.valid
    assert result.errors == []


def test_validate_file_rejects_type_and_size():
    result = validate_file("recipe.json", 20 * 1024 * 1024)

    assert not result.valid
    assert len(result.errors) == 2
    assert "Unsupported file type" in result.errors[0]
    assert "10.0MB" in result.errors[1]


def test_validate_file_without_extension():
    assert not validate_file("recipe", 10).valid


def test_validate_content_ok():
    validate_beerxml_content(XML)


@pytest.mark.parametrize("content", ["", "   ", "<RECIPE></RECIPE>"])
def test_validate_content_rejects(content):
    with pytest.raises(ParseError):
        validate_beerxml_content(content)


def test_validate_content_size_limit():
    with pytest.raises(ParseError, match="too large"):
        validate_beerxml_content(XML, PipelineConfig(max_file_bytes=10))


def test_import_summary():
    recipes = [
        RawImportedRecipe(
            ingredients=[{"type": "grain"}, {"type": "Hop"}, {"type": "hop"}, {"type": "water"}]
        ),
        RawImportedRecipe(ingredients=[{"type": "yeast"}]),
    ]

    summary = generate_import_summary(recipes)

    assert summary.total_recipes == 2
    assert summary.total_ingredients == 5
    assert summary.ingredients_by_type == {"grain": 1, "hop": 2, "yeast": 1, "other": 0}


def test_matching_stats():
    imported = NormalizedIngredient(ingredient_id="x", name="X", type="grain", amount=1, unit="kg")
    ingredient = PersistedIngredient(id="db", name="X")
    results = [
        MatchResult(imported=imported, best_match=MatchCandidate(ingredient=ingredient, confidence=0.95)),
        MatchResult(imported=imported, best_match=MatchCandidate(ingredient=ingredient, confidence=0.7)),
        MatchResult(imported=imported, best_match=MatchCandidate(ingredient=ingredient, confidence=0.3)),
        MatchResult(imported=imported),
    ]

    stats = calculate_matching_stats(results, min_confidence=0.5)

    assert (stats.matched, stats.new_required, stats.high_confidence) == (2, 2, 1)


@pytest.mark.parametrize(
    ("batch_unit", "units", "expected"),
    [
        ("l", ["kg", "g"], "metric"),
        ("gal", ["lb", "oz"], "imperial"),
        ("gal", ["kg", "g"], "metric"),
        ("l", ["lb"], "mixed"),
        (None, [], "mixed"),
    ],
)
def test_detect_recipe_unit_system(batch_unit, units, expected):
    recipe = RawImportedRecipe(batch_size_unit=batch_unit, ingredients=[{"unit": unit} for unit in units])

    assert detect_recipe_unit_system(recipe) == expected
