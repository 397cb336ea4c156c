"""Collaborator interfaces consumed by the import pipeline."""

from abc import ABC, abstractmethod
from typing import Any

from beerxml_import.schema import (
    IngredientDraft,
    MatchResult,
    NormalizedIngredient,
    PersistedIngredient,
    RawImportedRecipe,
)


class RecipeParser(ABC):
    """Turns raw BeerXML text into imported recipes."""

    @abstractmethod
    def parse(self, text: str) -> list[RawImportedRecipe]:
        """Parse BeerXML content.

        Args:
            text: Raw file content.

        Returns:
            Recipes found in the content. Empty for a valid file without
            recipes.

        Raises:
            ParseError: If the content is not BeerXML.
        """
        pass


class IngredientStore(ABC):
    """Persisted ingredient lookup and creation."""

    min_confidence: float = 0.0

    @abstractmethod
    def match(self, ingredients: list[NormalizedIngredient]) -> list[MatchResult]:
        """Find the best persisted candidate for every ingredient.

        Args:
            ingredients: Validated ingredients, matched as one batch.

        Returns:
            One MatchResult per ingredient, in input order. A missing
            ``best_match`` means no candidate was found.

        Raises:
            MatchServiceError: If the lookup service fails.
        """
        pass

    @abstractmethod
    def create_many(self, drafts: list[IngredientDraft]) -> list[PersistedIngredient]:
        """Create ingredients in a single call.

        The response may be shorter than ``drafts`` on partial success and its
        order is not guaranteed.

        Raises:
            CreateError: If the call fails.
        """
        pass


class RecipeStore(ABC):
    """Recipe persistence."""

    @abstractmethod
    def create(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Persist a recipe and return the stored record.

        Raises:
            RecipeValidationError: If the payload is rejected.
            RecipeStoreUnavailable: On a transient failure.
        """
        pass
