"""Custom exceptions for beerxml-import."""


class BeerXMLImportError(Exception):
    """Base exception for beerxml-import."""

    pass


class ParseError(BeerXMLImportError):
    """Raised when input cannot be interpreted as BeerXML."""

    pass


class CollaboratorError(BeerXMLImportError):
    """Raised when an external store call fails. Safe to retry."""

    retryable = True


class MatchServiceError(CollaboratorError):
    """Raised when the ingredient lookup service fails."""

    pass


class CreateError(CollaboratorError):
    """Raised when batch ingredient creation fails."""

    pass


class PersistenceError(CollaboratorError):
    """Raised when the recipe store rejects or cannot accept a recipe."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RecipeValidationError(PersistenceError):
    """Raised when the recipe store rejects the payload (4xx)."""

    retryable = False


class RecipeStoreUnavailable(PersistenceError):
    """Raised on a transient recipe store failure (5xx, network)."""

    pass


class MetricsCalculationError(BeerXMLImportError):
    """Raised when the metrics calculation itself fails on valid input."""

    pass
