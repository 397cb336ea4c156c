"""In-memory collaborators with dictionary-style fuzzy matching."""

from __future__ import annotations

import re
import unicodedata
import uuid
from difflib import SequenceMatcher
from typing import Any

from beerxml_import.exceptions import RecipeValidationError
from beerxml_import.schema import (
    IngredientDraft,
    MatchCandidate,
    MatchResult,
    NormalizedIngredient,
    PersistedIngredient,
)
from beerxml_import.stores.base import IngredientStore, RecipeStore

TYPE_BONUS = 0.1
TYPE_PENALTY = 0.25


class InMemoryIngredientStore(IngredientStore):
    """Ingredient catalog held in memory.

    Matching scores the name similarity of every catalog entry, adds a bonus
    when the ingredient type agrees and a penalty when it does not.
    """

    def __init__(
        self,
        catalog: list[PersistedIngredient] | None = None,
        *,
        min_confidence: float = 0.6,
        echo_tokens: bool = True,
        create_limit: int | None = None,
    ):
        self.catalog: list[PersistedIngredient] = list(catalog or [])
        self.min_confidence = min_confidence
        self.echo_tokens = echo_tokens
        self.create_limit = create_limit
        self.match_calls = 0
        self.create_calls: list[list[IngredientDraft]] = []

    def match(self, ingredients: list[NormalizedIngredient]) -> list[MatchResult]:
        self.match_calls += 1
        return [
            MatchResult(imported=ingredient, best_match=self._best_match(ingredient))
            for ingredient in ingredients
        ]

    def create_many(self, drafts: list[IngredientDraft]) -> list[PersistedIngredient]:
        self.create_calls.append(list(drafts))
        limit = len(drafts) if self.create_limit is None else self.create_limit

        created: list[PersistedIngredient] = []
        for draft in drafts[:limit]:
            record = PersistedIngredient(
                id=f"ing-{uuid.uuid4().hex[:8]}",
                name=draft.name,
                type=draft.type,
                correlation_token=draft.correlation_token if self.echo_tokens else None,
            )
            self.catalog.append(record)
            created.append(record)
        return created

    def _best_match(self, ingredient: NormalizedIngredient) -> MatchCandidate | None:
        normalized_name = _normalize_text(ingredient.name)
        best: MatchCandidate | None = None

        for record in self.catalog:
            if not record.name:
                continue
            candidate_name = _normalize_text(record.name)
            reasons: list[str] = []
            if normalized_name == candidate_name:
                score = 1.0
                reasons.append("exact name")
            else:
                score = SequenceMatcher(None, normalized_name, candidate_name).ratio()
                reasons.append("name similarity")

            if record.type and record.type.lower() == ingredient.type:
                score += TYPE_BONUS
                reasons.append("type match")
            elif record.type:
                score -= TYPE_PENALTY

            confidence = round(max(0.0, min(1.0, score)), 2)
            if best is None or confidence > best.confidence:
                best = MatchCandidate(ingredient=record, confidence=confidence, reasons=reasons)

        if best is None or best.confidence <= self.min_confidence:
            return None
        return best


class InMemoryRecipeStore(RecipeStore):
    """Recipe store that applies the backend's basic payload checks.

    When an ingredient store is given, every ingredient id must exist in its
    catalog.
    """

    def __init__(self, ingredients: InMemoryIngredientStore | None = None):
        self.ingredients = ingredients
        self.recipes: list[dict[str, Any]] = []

    def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        if not payload.get("name"):
            raise RecipeValidationError("recipe name is required", status_code=400)

        known_ids = (
            {record.id for record in self.ingredients.catalog} if self.ingredients else None
        )
        unresolved = [
            item.get("name")
            for item in payload.get("ingredients", [])
            if not item.get("ingredient_id")
            or (known_ids is not None and item.get("ingredient_id") not in known_ids)
        ]
        if unresolved:
            raise RecipeValidationError(
                f"unknown ingredients: {', '.join(map(str, unresolved))}",
                status_code=422,
            )

        record = {**payload, "id": f"rec-{uuid.uuid4().hex[:8]}"}
        self.recipes.append(record)
        return record


def _normalize_text(value: str) -> str:
    text = unicodedata.normalize("NFKC", value).lower().strip()
    text = text.replace("_", " ").replace("-", " ")
    text = re.sub(r"[^\w\s]", " ", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()
