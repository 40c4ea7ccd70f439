"""
Line-item reconciliation.

A save always carries the complete desired item list. Entries with an id
update that item, entries without one are created, and every persisted item
whose id was not sent is deleted.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Sequence

from hris.schemas.performance import LineItemInput

# Fields a caller may write through a save; ratings are excluded on purpose
EDITABLE_FIELDS = (
    "category",
    "sort_order",
    "description",
    "success_indicator",
    "accountable_party",
    "allotted_budget",
    "accomplishment",
    "remarks",
)


@dataclass
class ReconciliationPlan:
    form_id: int
    updates: List[Dict[str, Any]] = field(default_factory=list)
    creates: List[Dict[str, Any]] = field(default_factory=list)
    keep_ids: FrozenSet[int] = frozenset()
    delete_ids: FrozenSet[int] = frozenset()

    @property
    def delete_all(self) -> bool:
        return not self.keep_ids


def _values(item: LineItemInput) -> Dict[str, Any]:
    return {name: getattr(item, name) for name in EDITABLE_FIELDS}


def plan_reconciliation(form_id: int, current_ids: Iterable[int], targets: Sequence[LineItemInput]) -> ReconciliationPlan:
    """
    Build the update/create/delete plan turning `current_ids` into `targets`.

    Updates are planned for every id the caller sent, even ids that are not
    under this form; the store scopes the update by form so those are no-ops.
    """
    plan = ReconciliationPlan(form_id=form_id)
    keep = set()
    for target in targets:
        if target.id is not None:
            plan.updates.append({"id": target.id, **_values(target)})
            keep.add(target.id)
        else:
            plan.creates.append(_values(target))

    plan.keep_ids = frozenset(keep)
    plan.delete_ids = frozenset(set(current_ids) - keep)
    return plan
