from decimal import Decimal

from hris.models.performance import ItemCategory
from hris.schemas.performance import LineItemInput
from hris.services.reconciler import EDITABLE_FIELDS, plan_reconciliation

CORE = ItemCategory.CORE_FUNCTION
SUPPORT = ItemCategory.SUPPORT_FUNCTION


def test_mixed_save_plans_update_create_and_delete():
    targets = [
        LineItemInput(id=11, category=CORE, sort_order=1, description="Tax maps updated"),
        LineItemInput(category=SUPPORT, sort_order=1, description="Attended trainings"),
    ]
    plan = plan_reconciliation(7, [11, 12, 13], targets)

    assert plan.form_id == 7
    assert [u["id"] for u in plan.updates] == [11]
    assert plan.updates[0]["description"] == "Tax maps updated"
    assert len(plan.creates) == 1
    assert plan.creates[0]["category"] == SUPPORT
    assert plan.keep_ids == frozenset({11})
    assert plan.delete_ids == frozenset({12, 13})
    assert not plan.delete_all

def test_empty_target_deletes_everything():
    plan = plan_reconciliation(7, [1, 2], [])
    assert plan.delete_all
    assert plan.delete_ids == frozenset({1, 2})
    assert plan.updates == [] and plan.creates == []

def test_first_save_only_creates():
    targets = [LineItemInput(category=CORE), LineItemInput(category=CORE, sort_order=2)]
    plan = plan_reconciliation(3, [], targets)
    assert len(plan.creates) == 2
    assert plan.delete_all
    assert plan.delete_ids == frozenset()

def test_foreign_ids_are_kept_in_the_plan():
    """Ids that are not on the form still become updates; the store scopes them to the form."""
    plan = plan_reconciliation(3, [1], [LineItemInput(id=99, category=CORE)])
    assert plan.updates[0]["id"] == 99
    assert plan.delete_ids == frozenset({1})

def test_only_editable_fields_are_carried():
    item = LineItemInput(category=CORE, allotted_budget=Decimal("1500.00"), accomplishment="Done")
    values = plan_reconciliation(1, [], [item]).creates[0]
    assert set(values) == set(EDITABLE_FIELDS)
    assert "rating_average" not in values
    assert values["allotted_budget"] == Decimal("1500.00")
