import pytest

from hris.core.exceptions import InvalidStateError
from hris.models.performance import FormKind, FormStatus, TERMINAL_STATUSES
from hris.services.authorization import Operation
from hris.services.state_machine import STATUSES, TRANSITIONS, check_transition, transition_for

S = FormStatus

# Every legal (kind, operation, from) -> to; None means status unchanged
LEGAL = {
    (FormKind.INDIVIDUAL, Operation.SAVE_ITEMS, S.DRAFT): None,
    (FormKind.INDIVIDUAL, Operation.SAVE_ITEMS, S.RETURNED): None,
    (FormKind.INDIVIDUAL, Operation.SUBMIT, S.DRAFT): S.SUBMITTED,
    (FormKind.INDIVIDUAL, Operation.SUBMIT, S.RETURNED): S.SUBMITTED,
    (FormKind.INDIVIDUAL, Operation.REVIEW, S.SUBMITTED): S.REVIEWED,
    (FormKind.INDIVIDUAL, Operation.FINALIZE, S.REVIEWED): S.FINALIZED,
    (FormKind.INDIVIDUAL, Operation.RETURN, S.REVIEWED): S.RETURNED,
    (FormKind.DEPARTMENT, Operation.SAVE_ITEMS, S.DRAFT): None,
    (FormKind.DEPARTMENT, Operation.SUBMIT, S.DRAFT): S.SUBMITTED,
    (FormKind.DEPARTMENT, Operation.APPROVE, S.SUBMITTED): S.APPROVED,
    (FormKind.OFFICE, Operation.SAVE_ITEMS, S.DRAFT): None,
    (FormKind.OFFICE, Operation.SUBMIT, S.DRAFT): S.SUBMITTED,
    (FormKind.OFFICE, Operation.APPROVE, S.SUBMITTED): S.APPROVED,
}

WRITE_OPERATIONS = [
    Operation.SAVE_ITEMS,
    Operation.SUBMIT,
    Operation.REVIEW,
    Operation.FINALIZE,
    Operation.APPROVE,
    Operation.RETURN,
]

ALL_CASES = [
    (kind, op, status)
    for kind in FormKind
    for op in WRITE_OPERATIONS
    for status in sorted(STATUSES[kind], key=lambda s: s.value)
]


@pytest.mark.parametrize("kind,op,status", [c for c in ALL_CASES if c in LEGAL])
def test_legal_transitions(kind, op, status):
    transition = check_transition(kind, op, status)
    assert transition.target == LEGAL[(kind, op, status)]

@pytest.mark.parametrize("kind,op,status", [c for c in ALL_CASES if c not in LEGAL])
def test_everything_else_is_invalid_state(kind, op, status):
    with pytest.raises(InvalidStateError):
        check_transition(kind, op, status)

@pytest.mark.parametrize("kind", list(FormKind))
def test_terminal_statuses_allow_nothing(kind):
    for status in STATUSES[kind] & TERMINAL_STATUSES:
        for op in WRITE_OPERATIONS:
            with pytest.raises(InvalidStateError):
                check_transition(kind, op, status)

def test_review_does_not_exist_for_department_forms():
    with pytest.raises(InvalidStateError) as exc:
        transition_for(FormKind.DEPARTMENT, Operation.REVIEW)
    assert exc.value.error_code == "INVALID_STATE"
    assert exc.value.details["operation"] == "review"

def test_table_has_no_unexpected_entries():
    table = {
        (kind, op, status): transition.target
        for (kind, op), transition in TRANSITIONS.items()
        for status in transition.sources
    }
    assert table == LEGAL
