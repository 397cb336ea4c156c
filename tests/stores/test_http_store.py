"""Tests for backend-backed collaborators."""

import io
import json
from urllib import error

import pytest

import beerxml_import.stores.http as http_module
from beerxml_import import NormalizedIngredient
from beerxml_import.config import PipelineConfig
from beerxml_import.exceptions import (
    BeerXMLImportError,
    CreateError,
    MatchServiceError,
    ParseError,
    RecipeStoreUnavailable,
    RecipeValidationError,
)
from beerxml_import.schema import IngredientDraft
from beerxml_import.stores import BackendClient, HttpBeerXMLParser, HttpIngredientStore, HttpRecipeStore

XML = "<RECIPES><RECIPE><NAME>Test</NAME></RECIPE></RECIPES>"


class FakeResponse:
    def __init__(self, payload):
        self.body = json.dumps(payload).encode("utf-8") if payload is not None else b""

    def read(self):
        return self.body

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False


def _install(monkeypatch, *responses):
    calls = []
    queue = list(responses)

    def fake_urlopen(req, timeout=None):
        calls.append(
            {
                "url": req.full_url,
                "headers": dict(req.header_items()),
                "body": json.loads(req.data.decode("utf-8")),
                "timeout": timeout,
            }
        )
        response = queue.pop(0)
        if isinstance(response, Exception):
            raise response
        return FakeResponse(response)

    monkeypatch.setattr(http_module.request, "urlopen", fake_urlopen)
    return calls


def _http_error(code):
    return error.HTTPError("https://brew.example/recipes", code, "failed", {}, io.BytesIO(b""))


def _client():
    return BackendClient("https://brew.example/api/", token="secret", timeout_sec=3)


def _ingredient(name="Cascade"):
    return NormalizedIngredient(ingredient_id="h1", name=name, type="hop", amount=28, unit="g", time=60)


def test_client_sends_json_with_token(monkeypatch):
    calls = _install(monkeypatch, {"ok": True})

    assert _client().post_json("/ping", {"a": 1}) == {"ok": True}

    assert calls[0]["url"] == "https://brew.example/api/ping"
    assert calls[0]["headers"]["Authorization"] == "Bearer secret"
    assert calls[0]["body"] == {"a": 1}
    assert calls[0]["timeout"] == 3


def test_client_requires_url():
    with pytest.raises(BeerXMLImportError):
        BackendClient.from_config(PipelineConfig())


def test_parser_maps_recipes(monkeypatch):
    calls = _install(
        monkeypatch,
        {
            "recipes": [
                {
                    "recipe": {"name": "Test", "batch_size": 20, "batch_size_unit": "l"},
                    "ingredients": [{"id": "g1", "name": "Pale", "type": "grain"}],
                    "metadata": {"source": "beersmith"},
                }
            ]
        },
    )

    recipes = HttpBeerXMLParser(_client()).parse(XML)

    assert calls[0]["body"] == {"xml_content": XML}
    assert recipes[0].name == "Test"
    assert recipes[0].ingredients[0]["id"] == "g1"
    assert recipes[0].metadata == {"source": "beersmith"}


def test_parser_validates_before_sending(monkeypatch):
    calls = _install(monkeypatch)

    with pytest.raises(ParseError):
        HttpBeerXMLParser(_client()).parse("<xml/>")

    assert calls == []


def test_parser_empty_response(monkeypatch):
    _install(monkeypatch, {"recipes": []})

    assert HttpBeerXMLParser(_client()).parse(XML) == []


def test_parser_transport_error(monkeypatch):
    _install(monkeypatch, error.URLError("refused"))

    with pytest.raises(ParseError, match="unreachable"):
        HttpBeerXMLParser(_client()).parse(XML)


def test_match_maps_results(monkeypatch):
    calls = _install(
        monkeypatch,
        {
            "matching_results": [
                {
                    "best_match": {
                        "ingredient": {"ingredient_id": "db-1", "name": "Cascade", "type": "hop"},
                        "confidence": 0.92,
                        "reasons": ["name"],
                    },
                    "suggestedIngredientData": {"name": "Cascade", "type": "hop", "alpha_acid": 5.5},
                },
                {"best_match": None},
            ]
        },
    )

    results = HttpIngredientStore(_client()).match([_ingredient(), _ingredient("Mystery")])

    assert calls[0]["body"]["ingredients"][0] == {
        "name": "Cascade",
        "type": "hop",
        "amount": 28.0,
        "unit": "g",
        "time": 60.0,
    }
    assert results[0].best_match.ingredient.id == "db-1"
    assert results[0].best_match.confidence == 0.92
    assert results[0].suggested_payload.alpha_acid == 5.5
    assert results[1].best_match is None
    assert results[1].suggested_payload is None


def test_match_length_mismatch(monkeypatch):
    _install(monkeypatch, {"matched_ingredients": []})

    with pytest.raises(MatchServiceError):
        HttpIngredientStore(_client()).match([_ingredient()])


def test_match_bad_shape(monkeypatch):
    _install(monkeypatch, {"unexpected": True})

    with pytest.raises(MatchServiceError):
        HttpIngredientStore(_client()).match([_ingredient()])


def test_create_many(monkeypatch):
    calls = _install(
        monkeypatch,
        {"created_ingredients": [{"id": "ing-1", "name": "Citra", "type": "hop", "correlation_token": "t1"}]},
    )
    draft = IngredientDraft(name="Citra", type="hop", correlation_token="t1")

    created = HttpIngredientStore(_client()).create_many([draft])

    assert calls[0]["body"]["ingredients"][0]["correlation_token"] == "t1"
    assert created[0].id == "ing-1"
    assert created[0].correlation_token == "t1"


def test_create_many_failure(monkeypatch):
    _install(monkeypatch, _http_error(500))

    with pytest.raises(CreateError):
        HttpIngredientStore(_client()).create_many([IngredientDraft(name="Citra", type="hop")])


def test_recipe_store_success(monkeypatch):
    _install(monkeypatch, {"id": "rec-1", "name": "Test"})

    assert HttpRecipeStore(_client()).create({"name": "Test"}) == {"id": "rec-1", "name": "Test"}


def test_recipe_store_client_error(monkeypatch):
    _install(monkeypatch, _http_error(422))

    with pytest.raises(RecipeValidationError) as exc_info:
        HttpRecipeStore(_client()).create({"name": "Test"})

    assert exc_info.value.status_code == 422


@pytest.mark.parametrize("failure", [_http_error(503), error.URLError("timeout"), TimeoutError()])
def test_recipe_store_unavailable(monkeypatch, failure):
    _install(monkeypatch, failure)

    with pytest.raises(RecipeStoreUnavailable) as exc_info:
        HttpRecipeStore(_client()).create({"name": "Test"})

    assert exc_info.value.retryable is True
