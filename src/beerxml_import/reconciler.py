"""Resolve ingredient decisions to persisted ingredient ids.

Created records are correlated with their drafts by the echoed
``correlation_token`` when the store supports it. For stores that do not echo
tokens, the position of the draft in the creation batch is located by object
identity, then by name and type, then by the ordinal position of the decision
among the ``create_new`` decisions.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field

from beerxml_import.exceptions import CreateError
from beerxml_import.schema import (
    DecisionList,
    FinalizedIngredient,
    IngredientDecision,
    IngredientDraft,
    NormalizedIngredient,
    PersistedIngredient,
)
from beerxml_import.stores.base import IngredientStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationIssue:
    decision_index: int
    name: str
    reason: str
    tier: str | None = None
    computed_index: int | None = None
    expected_count: int = 0
    created_count: int = 0


@dataclass(frozen=True)
class ReconciliationResult:
    finalized: list[FinalizedIngredient]
    issues: list[ReconciliationIssue] = field(default_factory=list)
    created: list[PersistedIngredient] = field(default_factory=list)
    version: int = 0

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def needs_relinking(self) -> bool:
        return bool(self.issues)


@dataclass(frozen=True)
class CreatedLookup:
    record: PersistedIngredient | None
    tier: str
    index: int | None = None


def locate_batch_index(
    decision_index: int,
    decisions: Sequence[IngredientDecision],
    batch_inputs: Sequence[IngredientDraft],
    skip: Collection[int] = (),
) -> tuple[int, str]:
    """Position of a decision's draft in the creation batch.

    Tries object identity, then name and type equality, then the ordinal
    count of ``create_new`` decisions up to ``decision_index`` (positions in
    ``skip`` are not counted).
    """
    draft = decisions[decision_index].draft

    for i, item in enumerate(batch_inputs):
        if item is draft:
            return i, "identity"

    if draft is not None:
        for i, item in enumerate(batch_inputs):
            if item.name == draft.name and item.type == draft.type:
                return i, "structural"

    ordinal = sum(
        1
        for i, decision in enumerate(decisions[: decision_index + 1])
        if decision.action == "create_new" and i not in skip
    )
    return ordinal - 1, "ordinal"


def find_created_record(
    decision_index: int,
    decisions: Sequence[IngredientDecision],
    batch_inputs: Sequence[IngredientDraft],
    created: Sequence[PersistedIngredient],
    skip: Collection[int] = (),
) -> CreatedLookup:
    draft = decisions[decision_index].draft
    if draft is not None:
        for record in created:
            if record.correlation_token and record.correlation_token == draft.correlation_token:
                return CreatedLookup(record=record, tier="token")

    index, tier = locate_batch_index(decision_index, decisions, batch_inputs, skip)
    record = created[index] if 0 <= index < len(created) else None
    return CreatedLookup(record=record, tier=tier, index=index)


def _finalize(
    source: NormalizedIngredient,
    ingredient_id: str,
    name: str,
    resolved: bool = True,
) -> FinalizedIngredient:
    data = source.model_dump()
    data.update(ingredient_id=ingredient_id, name=name, resolved=resolved)
    return FinalizedIngredient.model_validate(data)


class Reconciler:
    """Commits the decisions of one import session.

    Drafts created by an earlier attempt are remembered by correlation token
    and never sent again. A result without issues is reused only for the
    decision list snapshot it was computed from.
    """

    def __init__(self, store: IngredientStore):
        self.store = store
        self._created_by_token: dict[str, PersistedIngredient] = {}
        self._all_created: list[PersistedIngredient] = []
        self._result: ReconciliationResult | None = None
        self._snapshot: DecisionList | None = None

    @property
    def result(self) -> ReconciliationResult | None:
        return self._result

    def reconcile(self, decisions: DecisionList) -> ReconciliationResult:
        """Create pending ingredients and map every decision to an id.

        Args:
            decisions: Snapshot of the user-confirmed decisions.

        Returns:
            ReconciliationResult. Decisions that could not be resolved keep
            their imported id, are flagged ``resolved=False`` and listed in
            ``issues``.

        Raises:
            CreateError: If the creation call fails. Nothing from that
                attempt is recorded, so the call can be retried.
        """
        if (
            self._result is not None
            and not self._result.issues
            and (self._snapshot is decisions or self._snapshot == decisions)
        ):
            return self._result

        items = decisions.decisions
        pending = [
            i
            for i, decision in enumerate(items)
            if decision.action == "create_new"
            and decision.draft is not None
            and decision.draft.correlation_token not in self._created_by_token
        ]
        skip = {
            i for i, decision in enumerate(items) if decision.action == "create_new" and i not in pending
        }
        batch_inputs = [items[i].draft for i in pending]

        created = self._create(batch_inputs)
        self._all_created.extend(created)

        finalized: list[FinalizedIngredient] = []
        issues: list[ReconciliationIssue] = []
        for index, decision in enumerate(items):
            if decision.action == "use_existing":
                finalized.append(self._resolve_existing(index, decision, issues))
            else:
                finalized.append(
                    self._resolve_created(index, items, batch_inputs, created, skip, issues)
                )

        self._result = ReconciliationResult(
            finalized=finalized,
            issues=issues,
            created=list(self._all_created),
            version=decisions.version,
        )
        self._snapshot = decisions
        return self._result

    def _create(self, drafts: list[IngredientDraft]) -> list[PersistedIngredient]:
        if not drafts:
            return []
        try:
            return list(self.store.create_many(drafts))
        except CreateError:
            raise
        except Exception as e:
            raise CreateError(f"Failed to create ingredients: {e}") from e

    def _resolve_existing(
        self,
        index: int,
        decision: IngredientDecision,
        issues: list[ReconciliationIssue],
    ) -> FinalizedIngredient:
        source = decision.source
        match = decision.selected_match
        if match is None or not match.id:
            logger.error("No persisted ingredient selected for %s", source.name)
            issues.append(
                ReconciliationIssue(
                    decision_index=index, name=source.name, reason="missing_selected_match"
                )
            )
            return _finalize(source, source.ingredient_id, source.name, resolved=False)
        return _finalize(source, match.id, match.name or source.name)

    def _resolve_created(
        self,
        index: int,
        items: Sequence[IngredientDecision],
        batch_inputs: list[IngredientDraft],
        created: list[PersistedIngredient],
        skip: set[int],
        issues: list[ReconciliationIssue],
    ) -> FinalizedIngredient:
        decision = items[index]
        source = decision.source
        draft = decision.draft
        if draft is None:
            logger.error("No creation payload for %s", source.name)
            issues.append(
                ReconciliationIssue(decision_index=index, name=source.name, reason="missing_draft")
            )
            return _finalize(source, source.ingredient_id, source.name, resolved=False)

        record = self._created_by_token.get(draft.correlation_token)
        if record is not None:
            return _finalize(source, record.id, record.name or source.name)

        lookup = find_created_record(index, items, batch_inputs, created, skip)
        record = lookup.record
        if record is None or not record.id:
            logger.error(
                "Failed to associate created ingredient for %s: created=%r index=%s tier=%s expected=%d",
                source.name,
                [item.model_dump() for item in created],
                lookup.index,
                lookup.tier,
                len(batch_inputs),
            )
            issues.append(
                ReconciliationIssue(
                    decision_index=index,
                    name=source.name,
                    reason="created_ingredient_not_found",
                    tier=lookup.tier,
                    computed_index=lookup.index,
                    expected_count=len(batch_inputs),
                    created_count=len(created),
                )
            )
            return _finalize(source, source.ingredient_id, source.name, resolved=False)

        self._created_by_token[draft.correlation_token] = record
        return _finalize(source, record.id, record.name or source.name)


def reconcile(decisions: DecisionList, store: IngredientStore) -> ReconciliationResult:
    return Reconciler(store).reconcile(decisions)
