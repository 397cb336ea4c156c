"""Collaborators for the import pipeline."""

from beerxml_import.stores.base import IngredientStore, RecipeParser, RecipeStore
from beerxml_import.stores.http import BackendClient, HttpBeerXMLParser, HttpIngredientStore, HttpRecipeStore
from beerxml_import.stores.memory import InMemoryIngredientStore, InMemoryRecipeStore

__all__ = [
    "BackendClient",
    "HttpBeerXMLParser",
    "HttpIngredientStore",
    "HttpRecipeStore",
    "InMemoryIngredientStore",
    "InMemoryRecipeStore",
    "IngredientStore",
    "RecipeParser",
    "RecipeStore",
]
