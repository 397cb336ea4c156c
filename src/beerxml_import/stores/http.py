"""Collaborators backed by the brewing backend's JSON API."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib import error, request

from pydantic import ValidationError

from beerxml_import.beerxml import validate_beerxml_content
from beerxml_import.config import PipelineConfig
from beerxml_import.exceptions import (
    BeerXMLImportError,
    CreateError,
    MatchServiceError,
    ParseError,
    RecipeStoreUnavailable,
    RecipeValidationError,
)
from beerxml_import.schema import (
    IngredientDraft,
    MatchCandidate,
    MatchResult,
    NormalizedIngredient,
    PersistedIngredient,
    RawImportedRecipe,
)
from beerxml_import.stores.base import IngredientStore, RecipeParser, RecipeStore

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (error.URLError, TimeoutError, ValueError)


class BackendClient:
    """Minimal JSON client for the backend API."""

    def __init__(self, base_url: str, *, token: str | None = None, timeout_sec: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout_sec = timeout_sec

    @classmethod
    def from_config(cls, config: PipelineConfig) -> "BackendClient":
        if not config.api_base_url:
            raise BeerXMLImportError("No backend URL configured. Set BEERXML_API_URL.")
        return cls(config.api_base_url, token=config.api_token, timeout_sec=config.api_timeout_sec)

    def post_json(self, path: str, payload: dict[str, Any]) -> Any:
        """POST ``payload`` and decode the JSON response.

        Raises:
            urllib.error.HTTPError: On a 4xx/5xx response.
            urllib.error.URLError: If the backend cannot be reached.
            ValueError: If the response is not JSON.
        """
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        req = request.Request(
            f"{self.base_url}{path}",
            data=data,
            headers=headers,
            method="POST",
        )
        with request.urlopen(req, timeout=self.timeout_sec) as response:
            body = response.read()
        if not body:
            return {}
        return json.loads(body.decode("utf-8"))


def _describe(exc: Exception) -> str:
    if isinstance(exc, error.HTTPError):
        return f"HTTP {exc.code}: {exc.reason}"
    if isinstance(exc, error.URLError):
        return f"backend unreachable: {exc.reason}"
    return str(exc)


class HttpBeerXMLParser(RecipeParser):
    def __init__(self, client: BackendClient, config: PipelineConfig | None = None):
        self.client = client
        self.config = config or PipelineConfig()

    def parse(self, text: str) -> list[RawImportedRecipe]:
        validate_beerxml_content(text, self.config)
        try:
            data = self.client.post_json("/beerxml/parse", {"xml_content": text})
        except TRANSPORT_ERRORS as e:
            raise ParseError(f"Failed to parse BeerXML: {_describe(e)}") from e

        recipes = data.get("recipes") if isinstance(data, dict) else None
        if not isinstance(recipes, list) or not recipes:
            logger.warning("No recipes found in parse response")
            return []

        parsed: list[RawImportedRecipe] = []
        for entry in recipes:
            if not isinstance(entry, dict):
                continue
            recipe = entry.get("recipe") if isinstance(entry.get("recipe"), dict) else {}
            parsed.append(
                RawImportedRecipe.model_validate(
                    {
                        **recipe,
                        "ingredients": entry.get("ingredients"),
                        "metadata": entry.get("metadata"),
                    }
                )
            )
        return parsed


class HttpIngredientStore(IngredientStore):
    def __init__(self, client: BackendClient, min_confidence: float = 0.0):
        self.client = client
        self.min_confidence = min_confidence

    def match(self, ingredients: list[NormalizedIngredient]) -> list[MatchResult]:
        payload = {"ingredients": [_match_payload(item) for item in ingredients]}
        try:
            data = self.client.post_json("/beerxml/match-ingredients", payload)
        except TRANSPORT_ERRORS as e:
            raise MatchServiceError(f"Failed to match ingredients: {_describe(e)}") from e

        results = None
        if isinstance(data, dict):
            results = data.get("matching_results", data.get("matched_ingredients"))
        if not isinstance(results, list):
            raise MatchServiceError("Unexpected match-ingredients response shape")
        if len(results) != len(ingredients):
            raise MatchServiceError(
                f"Match service returned {len(results)} results for {len(ingredients)} ingredients"
            )

        try:
            return [
                MatchResult(
                    imported=ingredient,
                    best_match=_candidate(entry.get("best_match")),
                    suggested_payload=_draft(entry.get("suggestedIngredientData")),
                )
                for ingredient, entry in zip(ingredients, results)
            ]
        except (AttributeError, ValidationError) as e:
            raise MatchServiceError(f"Malformed match result: {e}") from e

    def create_many(self, drafts: list[IngredientDraft]) -> list[PersistedIngredient]:
        payload = {"ingredients": [draft.model_dump(exclude_none=True) for draft in drafts]}
        try:
            data = self.client.post_json("/beerxml/create-ingredients", payload)
        except TRANSPORT_ERRORS as e:
            raise CreateError(f"Failed to create ingredients: {_describe(e)}") from e

        created = data.get("created_ingredients") if isinstance(data, dict) else None
        if not isinstance(created, list):
            return []
        return [PersistedIngredient.model_validate(item) for item in created if isinstance(item, dict)]


class HttpRecipeStore(RecipeStore):
    def __init__(self, client: BackendClient):
        self.client = client

    def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            data = self.client.post_json("/recipes", payload)
        except error.HTTPError as e:
            if 400 <= e.code < 500:
                raise RecipeValidationError(_describe(e), status_code=e.code) from e
            raise RecipeStoreUnavailable(_describe(e), status_code=e.code) from e
        except TRANSPORT_ERRORS as e:
            raise RecipeStoreUnavailable(_describe(e)) from e
        return data if isinstance(data, dict) else {"data": data}


def _match_payload(ingredient: NormalizedIngredient) -> dict[str, Any]:
    return ingredient.model_dump(
        include={
            "name",
            "type",
            "amount",
            "unit",
            "use",
            "time",
            "potential",
            "color",
            "grain_type",
            "alpha_acid",
            "attenuation",
            "beerxml_data",
        },
        exclude_none=True,
    )


def _candidate(data: Any) -> MatchCandidate | None:
    if not isinstance(data, dict) or not isinstance(data.get("ingredient"), dict):
        return None
    confidence = data.get("confidence")
    confidence = float(confidence) if isinstance(confidence, (int, float)) else 0.0
    return MatchCandidate(
        ingredient=PersistedIngredient.model_validate(data["ingredient"]),
        confidence=max(0.0, min(1.0, confidence)),
        reasons=[str(reason) for reason in data.get("reasons") or []],
    )


def _draft(data: Any) -> IngredientDraft | None:
    if not isinstance(data, dict) or not data.get("name") or not data.get("type"):
        return None
    return IngredientDraft.model_validate(data)
