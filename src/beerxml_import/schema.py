"""Data models for beerxml-import."""

from __future__ import annotations

import uuid
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

UnitSystem = Literal["metric", "imperial"]
TemperatureUnit = Literal["C", "F"]
DecisionAction = Literal["use_existing", "create_new"]


def new_instance_id(prefix: str = "ing") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def new_correlation_token() -> str:
    return uuid.uuid4().hex


class RawImportedIngredient(BaseModel):
    """Ingredient row as produced by the BeerXML parser. Nothing is trusted."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    ingredient_id: Any = Field(
        default=None, validation_alias=AliasChoices("ingredient_id", "id")
    )
    name: Any = None
    type: Any = None
    amount: Any = None
    unit: Any = None
    use: Any = None
    time: Any = None
    potential: Any = None
    color: Any = None
    grain_type: Any = None
    alpha_acid: Any = None
    attenuation: Any = None
    beerxml_data: Any = None


class RawImportedRecipe(BaseModel):
    """Recipe as produced by the BeerXML parser. Immutable once created."""

    model_config = ConfigDict(extra="allow", frozen=True)

    name: Any = None
    style: Any = None
    batch_size: Any = None
    batch_size_unit: Any = None
    boil_time: Any = None
    efficiency: Any = None
    mash_temperature: Any = None
    mash_temp_unit: Any = None
    unit_system: Any = None
    description: Any = None
    notes: Any = None
    metadata: dict[str, Any] | None = None
    ingredients: list[Any] = Field(default_factory=list)

    @field_validator("ingredients", mode="before")
    @classmethod
    def _coerce_ingredient_list(cls, value: Any) -> list[Any]:
        if isinstance(value, (list, tuple)):
            return list(value)
        return []

    @field_validator("metadata", mode="before")
    @classmethod
    def _coerce_metadata(cls, value: Any) -> dict[str, Any] | None:
        return value if isinstance(value, dict) else None


class NormalizedIngredient(BaseModel):
    """Validated ingredient line-item."""

    ingredient_id: str
    name: str
    type: str
    amount: float = Field(gt=0)
    unit: str
    use: str | None = None
    time: float | None = Field(default=None, ge=0)
    potential: float | None = None
    color: float | None = None
    grain_type: str | None = None
    alpha_acid: float | None = None
    attenuation: float | None = None
    beerxml_data: dict[str, Any] | None = None
    instance_id: str = Field(default_factory=new_instance_id)


class FinalizedIngredient(NormalizedIngredient):
    """Ingredient whose id points at a persisted ingredient record."""

    resolved: bool = True


class IngredientDraft(BaseModel):
    """Payload for creating a new persisted ingredient."""

    model_config = ConfigDict(extra="allow")

    name: str
    type: str
    description: str | None = None
    notes: str | None = None
    grain_type: str | None = None
    potential: float | None = None
    color: float | None = None
    alpha_acid: float | None = None
    attenuation: float | None = None
    correlation_token: str = Field(default_factory=new_correlation_token)


class PersistedIngredient(BaseModel):
    """Ingredient record owned by the ingredient store."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = Field(default=None, validation_alias=AliasChoices("id", "ingredient_id"))
    name: str | None = None
    type: str | None = None
    correlation_token: str | None = None


class MatchCandidate(BaseModel):
    """Best persisted ingredient found for an imported one."""

    ingredient: PersistedIngredient
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    reasons: list[str] = Field(default_factory=list)


class MatchResult(BaseModel):
    """Lookup outcome for a single imported ingredient."""

    imported: NormalizedIngredient
    best_match: MatchCandidate | None = None
    suggested_payload: IngredientDraft | None = None


class IngredientDecision(BaseModel):
    """Whether an imported ingredient reuses a persisted one or creates a new one."""

    model_config = ConfigDict(frozen=True)

    source: NormalizedIngredient
    action: DecisionAction
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    selected_match: PersistedIngredient | None = None
    draft: IngredientDraft | None = None


class DecisionList(BaseModel):
    """Snapshot of the decision list. Edits produce a new version."""

    model_config = ConfigDict(frozen=True)

    decisions: tuple[IngredientDecision, ...] = ()
    version: int = 0

    def with_decision(
        self,
        index: int,
        *,
        action: DecisionAction | None = None,
        selected_match: PersistedIngredient | None = None,
        draft: IngredientDraft | None = None,
    ) -> DecisionList:
        """Return a new list with the decision at ``index`` edited.

        Args:
            index: Position of the decision in the list.
            action: New action. Keeps the current one when omitted.
            selected_match: Persisted ingredient to use. Keeps the current one
                when omitted.
            draft: Replacement creation payload. Keeps the current one when
                omitted.

        Raises:
            IndexError: If ``index`` is out of range.
            ValueError: If the edit leaves ``use_existing`` without a match.
        """
        if not 0 <= index < len(self.decisions):
            raise IndexError(f"decision index out of range: {index}")

        current = self.decisions[index]
        update: dict[str, Any] = {}
        if action is not None:
            update["action"] = action
        if selected_match is not None:
            update["selected_match"] = selected_match
        if draft is not None:
            update["draft"] = draft

        edited = current.model_copy(update=update)
        if edited.action == "use_existing" and edited.selected_match is None:
            raise ValueError("use_existing requires a selected match")

        decisions = list(self.decisions)
        decisions[index] = edited
        return DecisionList(decisions=tuple(decisions), version=self.version + 1)


class RecipeParameters(BaseModel):
    """Recipe-level parameters in a canonical unit system."""

    unit_system: UnitSystem
    mash_temp_unit: TemperatureUnit
    batch_size: float
    batch_size_unit: str
    boil_time: float
    efficiency: float
    mash_temperature: float
    warnings: list[str] = Field(default_factory=list)


class RecipeMetrics(BaseModel):
    """Derived brewing metrics. Either all present or not computed at all."""

    og: float
    fg: float
    abv: float
    ibu: float
    srm: float
