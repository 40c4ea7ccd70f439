"""
Authorization guard for performance-form operations.

A pure decision over (actor role, form kind, operation, relation). The
relation is resolved by the caller from the store; nothing here does I/O.
"""
import enum
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from hris.core.exceptions import AccessDeniedError, AuthenticationError
from hris.models.performance import FormKind
from hris.models.user import UserRole, HR_MANAGER_ROLES


class Operation(str, enum.Enum):
    CREATE = "create"
    VIEW = "view"
    SAVE_ITEMS = "save_items"
    SUBMIT = "submit"
    REVIEW = "review"
    FINALIZE = "finalize"
    APPROVE = "approve"
    RETURN = "return"


@dataclass(frozen=True)
class Actor:
    """The calling user, as supplied by the identity provider."""
    id: int
    role: UserRole
    division: Optional[str] = None

    @property
    def is_hr_manager(self) -> bool:
        return self.role in HR_MANAGER_ROLES

    @property
    def is_division_chief(self) -> bool:
        return self.role == UserRole.DIVISION_CHIEF


@dataclass(frozen=True)
class Relation:
    """How the actor relates to the record being acted on."""
    is_subject: bool = False
    is_preparer: bool = False
    supervises_unit: bool = False

    @classmethod
    def resolve(cls, actor: Actor, subject_id: Optional[int], prepared_by_id: Optional[int], org_unit: Optional[str]) -> "Relation":
        return cls(
            is_subject=subject_id is not None and subject_id == actor.id,
            is_preparer=prepared_by_id is not None and prepared_by_id == actor.id,
            supervises_unit=actor.is_division_chief and org_unit is not None and org_unit == actor.division,
        )


Rule = Callable[[Actor, Relation], bool]


def _subject(actor: Actor, rel: Relation) -> bool:
    return rel.is_subject


def _subject_or_hr(actor: Actor, rel: Relation) -> bool:
    return rel.is_subject or actor.is_hr_manager


def _owner(actor: Actor, rel: Relation) -> bool:
    return rel.is_preparer or actor.is_hr_manager


def _hr_manager(actor: Actor, rel: Relation) -> bool:
    return actor.is_hr_manager


def _unit_reviewer(actor: Actor, rel: Relation) -> bool:
    return actor.is_hr_manager or rel.supervises_unit


def _unit_member_view(actor: Actor, rel: Relation) -> bool:
    return rel.is_subject or rel.is_preparer or actor.is_hr_manager or rel.supervises_unit


def _division_manager(actor: Actor, rel: Relation) -> bool:
    return actor.is_hr_manager or rel.supervises_unit


# (kind, operation) -> (rule, denial message). Missing pairs are denied.
RULES: Dict[Tuple[FormKind, Operation], Tuple[Rule, str]] = {
    (FormKind.INDIVIDUAL, Operation.CREATE): (_subject_or_hr, "You can only create an IPCR for yourself"),
    (FormKind.INDIVIDUAL, Operation.VIEW): (_unit_member_view, "You cannot view this IPCR"),
    (FormKind.INDIVIDUAL, Operation.SAVE_ITEMS): (_subject, "Only the owner can edit this IPCR"),
    (FormKind.INDIVIDUAL, Operation.SUBMIT): (_subject, "Only the owner can submit this IPCR"),
    (FormKind.INDIVIDUAL, Operation.REVIEW): (_unit_reviewer, "Only the division chief of this employee or an HR manager can review this IPCR"),
    (FormKind.INDIVIDUAL, Operation.FINALIZE): (_hr_manager, "Only the Head of Office or Admin Staff can finalize an IPCR"),
    (FormKind.INDIVIDUAL, Operation.RETURN): (_hr_manager, "Only the Head of Office or Admin Staff can return an IPCR"),

    (FormKind.DEPARTMENT, Operation.CREATE): (_division_manager, "Only the division chief or an HR manager can create this DPCR"),
    (FormKind.DEPARTMENT, Operation.VIEW): (_unit_member_view, "You cannot view this DPCR"),
    (FormKind.DEPARTMENT, Operation.SAVE_ITEMS): (_owner, "Only the preparer or an HR manager can edit this DPCR"),
    (FormKind.DEPARTMENT, Operation.SUBMIT): (_owner, "Only the preparer or an HR manager can submit this DPCR"),
    (FormKind.DEPARTMENT, Operation.APPROVE): (_hr_manager, "Only the Head of Office or Admin Staff can approve the DPCR"),

    (FormKind.OFFICE, Operation.CREATE): (_hr_manager, "Only the Head of Office or Admin Staff can create the OPCR"),
    (FormKind.OFFICE, Operation.VIEW): (_hr_manager, "Only the Head of Office or Admin Staff can view the OPCR"),
    (FormKind.OFFICE, Operation.SAVE_ITEMS): (_owner, "Only the preparer or an HR manager can edit the OPCR"),
    (FormKind.OFFICE, Operation.SUBMIT): (_owner, "Only the preparer or an HR manager can submit the OPCR"),
    (FormKind.OFFICE, Operation.APPROVE): (_hr_manager, "Only the Head of Office or Admin Staff can approve the OPCR"),
}


def is_allowed(actor: Actor, kind: FormKind, operation: Operation, relation: Relation) -> bool:
    rule = RULES.get((kind, operation))
    if rule is None:
        return False
    return rule[0](actor, relation)


def authorize(actor: Optional[Actor], kind: FormKind, operation: Operation, relation: Relation) -> None:
    """Raise AuthenticationError / AccessDeniedError unless the actor may proceed."""
    if actor is None or actor.id is None:
        raise AuthenticationError("Unauthorized")
    rule = RULES.get((kind, operation))
    if rule is None:
        raise AccessDeniedError(f"Operation '{operation.value}' is not available for {kind.value.upper()} forms")
    check, message = rule
    if not check(actor, relation):
        raise AccessDeniedError(message)


def require_actor(actor: Optional[Actor]) -> Actor:
    if actor is None or actor.id is None:
        raise AuthenticationError("Unauthorized")
    return actor
