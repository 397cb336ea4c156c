"""Tests for default ingredient decisions."""

import pytest

from beerxml_import import NormalizedIngredient, match_ingredients
from beerxml_import.exceptions import MatchServiceError
from beerxml_import.matcher import IngredientMatcher, build_draft
from beerxml_import.schema import IngredientDraft, MatchCandidate, MatchResult, PersistedIngredient
from beerxml_import.stores import InMemoryIngredientStore


def _ingredient(name, ingredient_type="grain", **extra):
    return NormalizedIngredient(
        ingredient_id=f"src-{name}",
        name=name,
        type=ingredient_type,
        amount=1,
        unit="kg" if ingredient_type == "grain" else "g",
        **extra,
    )


def _result(ingredient, confidence=None, payload=None):
    best = None
    if confidence is not None:
        best = MatchCandidate(
            ingredient=PersistedIngredient(id=f"db-{ingredient.name}", name=ingredient.name),
            confidence=confidence,
        )
    return MatchResult(imported=ingredient, best_match=best, suggested_payload=payload)


def _fake_store(mocker, results, min_confidence=0.0):
    store = mocker.MagicMock()
    store.min_confidence = min_confidence
    store.match.return_value = results
    return store


def test_empty_input_skips_store(mocker):
    store = _fake_store(mocker, [])

    decisions = match_ingredients([], store)

    assert decisions.decisions == ()
    store.match.assert_not_called()


def test_one_decision_per_ingredient_in_a_single_call(mocker):
    items = [_ingredient("Pale Malt"), _ingredient("Cascade", "hop"), _ingredient("US-05", "yeast")]
    store = _fake_store(mocker, [_result(items[0], 0.95), _result(items[1]), _result(items[2], 0.4)])

    decisions = match_ingredients(items, store, min_confidence=0.5)

    store.match.assert_called_once()
    assert len(decisions.decisions) == 3
    assert [d.source for d in decisions.decisions] == items
    assert [d.action for d in decisions.decisions] == ["use_existing", "create_new", "create_new"]


def test_use_existing_carries_match_and_draft(mocker):
    item = _ingredient("Pale Malt")
    store = _fake_store(mocker, [_result(item, 0.9)])

    decision = match_ingredients([item], store).decisions[0]

    assert decision.action == "use_existing"
    assert decision.confidence == 0.9
    assert decision.selected_match.id == "db-Pale Malt"
    assert decision.draft is not None


def test_threshold_is_exclusive(mocker):
    item = _ingredient("Pale Malt")
    store = _fake_store(mocker, [_result(item, 0.6)])

    decision = match_ingredients([item], store, min_confidence=0.6).decisions[0]

    assert decision.action == "create_new"
    assert decision.selected_match.id == "db-Pale Malt"
    assert decision.confidence == 0.6


def test_threshold_falls_back_to_store(mocker):
    store = _fake_store(mocker, [], min_confidence=0.7)

    assert IngredientMatcher(store).threshold == 0.7
    assert IngredientMatcher(store, min_confidence=0.2).threshold == 0.2


def test_suggested_payload_is_preferred(mocker):
    item = _ingredient("Crystal 60")
    payload = IngredientDraft(name="Crystal 60L", type="grain", grain_type="caramel_crystal")
    store = _fake_store(mocker, [_result(item, payload=payload)])

    decision = match_ingredients([item], store).decisions[0]

    assert decision.action == "create_new"
    assert decision.selected_match is None
    assert decision.draft is payload


def test_result_count_mismatch_raises(mocker):
    items = [_ingredient("Pale Malt"), _ingredient("Munich")]
    store = _fake_store(mocker, [_result(items[0], 0.9)])

    with pytest.raises(MatchServiceError):
        match_ingredients(items, store)


def test_store_failure_is_wrapped(mocker):
    store = _fake_store(mocker, [])
    store.match.side_effect = ConnectionError("boom")

    with pytest.raises(MatchServiceError) as exc_info:
        match_ingredients([_ingredient("Pale Malt")], store)

    assert isinstance(exc_info.value.__cause__, ConnectionError)
    assert exc_info.value.retryable is True


def test_build_draft_grain_defaults():
    draft = build_draft(_ingredient("Pale Malt", potential=37, color=3, beerxml_data={"origin": "UK"}))

    assert draft.description == "Imported from BeerXML"
    assert draft.grain_type == "base_malt"
    assert draft.potential == 37
    assert draft.notes == "Origin: UK"


def test_build_draft_type_fields():
    hop = build_draft(_ingredient("Cascade", "hop", alpha_acid=5.5, beerxml_data={"form": "pellet"}))
    yeast = build_draft(_ingredient("US-05", "yeast", attenuation=81))

    assert hop.alpha_acid == 5.5
    assert hop.grain_type is None
    assert hop.notes == "Origin: Unknown"
    assert yeast.attenuation == 81
    assert yeast.notes is None
    assert hop.correlation_token != yeast.correlation_token


def test_with_in_memory_store():
    store = InMemoryIngredientStore(
        [
            PersistedIngredient(id="db-1", name="Pale Malt (2 Row) US", type="grain"),
            PersistedIngredient(id="db-2", name="Cascade", type="hop"),
        ]
    )
    items = [_ingredient("Cascade", "hop"), _ingredient("Vanilla Bean", "other")]

    decisions = match_ingredients(items, store)

    assert decisions.decisions[0].action == "use_existing"
    assert decisions.decisions[0].selected_match.id == "db-2"
    assert decisions.decisions[1].action == "create_new"
    assert store.match_calls == 1
