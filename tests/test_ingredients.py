"""Tests for ingredient validation and coercion."""

import math

import pytest

from beerxml_import import RawImportedIngredient, coerce_ingredient_time, validate_and_coerce_ingredients
from beerxml_import.ingredients import to_number


def _grain(**overrides):
    data = {
        "ingredient_id": "g-1",
        "name": "Pale Malt",
        "type": "grain",
        "amount": 5,
        "unit": "kg",
        "use": "mash",
        "time": 60,
        "potential": 37,
        "color": 3,
        "grain_type": "base_malt",
    }
    data.update(overrides)
    return data


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, None),
        (True, None),
        (False, None),
        ("", 0.0),
        ("   ", 0.0),
        (0, 0.0),
        ("0", 0.0),
        (15, 15.0),
        ("15", 15.0),
        (-5, None),
        ("abc", None),
        (float("nan"), None),
        (float("inf"), None),
    ],
)
def test_coerce_ingredient_time(value, expected):
    assert coerce_ingredient_time(value) == expected


def test_to_number_rejects_booleans_and_non_finite():
    assert to_number(True) is None
    assert to_number(" 2.5 ") == 2.5
    assert to_number("") is None
    assert to_number(math.inf) is None
    assert to_number([1]) is None


def test_keeps_well_formed_rows_in_order():
    rows = [_grain(), _grain(ingredient_id="g-2", name="Munich", amount="1.5")]

    result = validate_and_coerce_ingredients(rows)

    assert [item.name for item in result.kept] == ["Pale Malt", "Munich"]
    assert result.kept[1].amount == 1.5
    assert result.dropped == []
    assert result.total == 2


def test_drops_rows_without_ingredient_id():
    result = validate_and_coerce_ingredients([_grain(ingredient_id=""), _grain(ingredient_id=None)])

    assert result.kept == []
    assert result.dropped_count == 2
    assert {item.reason for item in result.dropped} == {"missing_ingredient_id"}


def test_accepts_id_alias():
    row = _grain()
    row["id"] = row.pop("ingredient_id")

    result = validate_and_coerce_ingredients([row])

    assert result.kept[0].ingredient_id == "g-1"


@pytest.mark.parametrize(
    ("overrides", "reason"),
    [
        ({"name": ""}, "missing_required_fields"),
        ({"type": None}, "missing_required_fields"),
        ({"unit": "  "}, "missing_required_fields"),
        ({"amount": None}, "missing_amount"),
        ({"amount": ""}, "missing_amount"),
        ({"amount": 0}, "invalid_amount"),
        ({"amount": -1}, "invalid_amount"),
        ({"amount": "lots"}, "invalid_amount"),
        ({"amount": True}, "invalid_amount"),
        ({"amount": float("nan")}, "invalid_amount"),
    ],
)
def test_drop_reasons(overrides, reason):
    result = validate_and_coerce_ingredients([_grain(**overrides)])

    assert result.kept == []
    assert result.dropped[0].reason == reason
    assert result.dropped[0].index == 0


def test_non_mapping_rows_are_dropped():
    result = validate_and_coerce_ingredients(["grain", 42, _grain()])

    assert len(result.kept) == 1
    assert [item.reason for item in result.dropped] == ["not_a_mapping", "not_a_mapping"]


@pytest.mark.parametrize("value", [None, "ingredients", {"a": 1}, 3])
def test_non_list_input_returns_empty(value):
    result = validate_and_coerce_ingredients(value)

    assert result.kept == []
    assert result.dropped == []


def test_type_specific_fields():
    rows = [
        _grain(),
        {
            "ingredient_id": "h-1",
            "name": "Cascade",
            "type": "Hop",
            "amount": 28,
            "unit": "g",
            "use": "boil",
            "time": 0,
            "alpha_acid": "5.5",
            "potential": 99,
        },
        {
            "ingredient_id": "y-1",
            "name": "US-05",
            "type": "yeast",
            "amount": 1,
            "unit": "pkg",
            "attenuation": 81,
            "color": 7,
        },
    ]

    grain, hop, yeast = validate_and_coerce_ingredients(rows).kept

    assert grain.potential == 37 and grain.color == 3 and grain.grain_type == "base_malt"
    assert hop.type == "hop"
    assert hop.alpha_acid == 5.5
    assert hop.time == 0.0
    assert hop.potential is None
    assert yeast.attenuation == 81
    assert yeast.color is None
    assert yeast.time is None


def test_beerxml_data_copied_only_when_non_empty():
    rows = [
        _grain(beerxml_data={"origin": "Germany"}),
        _grain(ingredient_id="g-2", beerxml_data={}),
        _grain(ingredient_id="g-3", beerxml_data="Germany"),
    ]

    kept = validate_and_coerce_ingredients(rows).kept

    assert kept[0].beerxml_data == {"origin": "Germany"}
    assert kept[1].beerxml_data is None
    assert kept[2].beerxml_data is None


def test_raw_model_rows_and_unique_instance_ids():
    rows = [RawImportedIngredient(**_grain()), RawImportedIngredient(**_grain())]

    kept = validate_and_coerce_ingredients(rows).kept

    assert len(kept) == 2
    assert kept[0].instance_id != kept[1].instance_id
    assert kept[0].instance_id.startswith("ing_")


MIXED_ROWS = [
    _grain(),
    _grain(ingredient_id=""),
    "grain",
    _grain(ingredient_id="g-2", name="Munich", amount="1.5"),
    _grain(ingredient_id="g-3", amount=0),
    {"id": "h-1", "name": "Cascade", "type": "hop", "amount": "28", "unit": "g", "time": "", "alpha_acid": 5.5},
    _grain(ingredient_id="g-4", unit=None),
]


def test_kept_and_dropped_account_for_every_row():
    result = validate_and_coerce_ingredients(MIXED_ROWS)

    assert len(result.kept) + result.dropped_count == len(MIXED_ROWS)
    assert [item.ingredient_id for item in result.kept] == ["g-1", "g-2", "h-1"]
    assert [item.index for item in result.dropped] == [1, 2, 4, 6]


def test_validation_is_repeatable_apart_from_instance_ids():
    first = validate_and_coerce_ingredients(MIXED_ROWS)
    second = validate_and_coerce_ingredients(MIXED_ROWS)

    assert [item.model_dump(exclude={"instance_id"}) for item in first.kept] == [
        item.model_dump(exclude={"instance_id"}) for item in second.kept
    ]
    assert first.dropped == second.dropped
