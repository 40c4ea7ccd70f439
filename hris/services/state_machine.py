"""
Status transitions for performance forms.

IPCR:      draft|returned -> submitted -> reviewed -> finalized | returned
DPCR/OPCR: draft -> submitted -> approved
"""
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Tuple

from hris.core.exceptions import InvalidStateError
from hris.models.performance import FormKind, FormStatus, TERMINAL_STATUSES
from hris.services.authorization import Operation

S = FormStatus


@dataclass(frozen=True)
class Transition:
    sources: FrozenSet[FormStatus]
    # None means the status is left unchanged (saving line items)
    target: Optional[FormStatus]
    error: str


_EDITABLE_IPCR = frozenset({S.DRAFT, S.RETURNED})

TRANSITIONS: Dict[Tuple[FormKind, Operation], Transition] = {
    (FormKind.INDIVIDUAL, Operation.SAVE_ITEMS): Transition(_EDITABLE_IPCR, None, "Cannot edit submitted or finalized IPCR"),
    (FormKind.INDIVIDUAL, Operation.SUBMIT): Transition(_EDITABLE_IPCR, S.SUBMITTED, "Only draft or returned IPCRs can be submitted"),
    (FormKind.INDIVIDUAL, Operation.REVIEW): Transition(frozenset({S.SUBMITTED}), S.REVIEWED, "Only submitted IPCRs can be reviewed"),
    (FormKind.INDIVIDUAL, Operation.FINALIZE): Transition(frozenset({S.REVIEWED}), S.FINALIZED, "Only reviewed IPCRs can be finalized"),
    (FormKind.INDIVIDUAL, Operation.RETURN): Transition(frozenset({S.REVIEWED}), S.RETURNED, "Only reviewed IPCRs can be returned"),

    (FormKind.DEPARTMENT, Operation.SAVE_ITEMS): Transition(frozenset({S.DRAFT}), None, "Cannot edit submitted or approved DPCR"),
    (FormKind.DEPARTMENT, Operation.SUBMIT): Transition(frozenset({S.DRAFT}), S.SUBMITTED, "Only draft DPCRs can be submitted"),
    (FormKind.DEPARTMENT, Operation.APPROVE): Transition(frozenset({S.SUBMITTED}), S.APPROVED, "Only submitted DPCRs can be approved"),

    (FormKind.OFFICE, Operation.SAVE_ITEMS): Transition(frozenset({S.DRAFT}), None, "Cannot edit submitted or approved OPCR"),
    (FormKind.OFFICE, Operation.SUBMIT): Transition(frozenset({S.DRAFT}), S.SUBMITTED, "Only draft OPCRs can be submitted"),
    (FormKind.OFFICE, Operation.APPROVE): Transition(frozenset({S.SUBMITTED}), S.APPROVED, "Only submitted OPCRs can be approved"),
}

# Statuses each kind can ever be in
STATUSES: Dict[FormKind, FrozenSet[FormStatus]] = {
    FormKind.INDIVIDUAL: frozenset({S.DRAFT, S.SUBMITTED, S.REVIEWED, S.FINALIZED, S.RETURNED}),
    FormKind.DEPARTMENT: frozenset({S.DRAFT, S.SUBMITTED, S.APPROVED}),
    FormKind.OFFICE: frozenset({S.DRAFT, S.SUBMITTED, S.APPROVED}),
}


def transition_for(kind: FormKind, operation: Operation) -> Transition:
    transition = TRANSITIONS.get((kind, operation))
    if transition is None:
        raise InvalidStateError(
            f"{kind.value.upper()} forms do not support '{operation.value}'",
            details={"kind": kind.value, "operation": operation.value},
        )
    return transition


def check_transition(kind: FormKind, operation: Operation, current: FormStatus) -> Transition:
    """Return the transition if legal from `current`, else raise InvalidStateError."""
    transition = transition_for(kind, operation)
    if current in TERMINAL_STATUSES or current not in transition.sources:
        raise InvalidStateError(
            transition.error,
            details={"status": current.value, "operation": operation.value},
        )
    return transition
