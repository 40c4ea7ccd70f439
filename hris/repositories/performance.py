"""
Record store adapter for performance forms and their line items.

Every status change goes through `update_status_if`, an UPDATE conditioned on
the status the caller observed. Zero affected rows means another request
moved the record first; callers must treat that as a failed transition.
"""
import abc
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hris.core.exceptions import DuplicateFormError
from hris.models.performance import FormKind, FormStatus, PerformanceForm, PerformanceLineItem
from hris.models.spms_cycle import SPMSCycle
from hris.models.user import User
from hris.services.reconciler import ReconciliationPlan

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormFilter:
    kind: FormKind
    cycle_id: Optional[int] = None
    status: Optional[FormStatus] = None
    subject_id: Optional[int] = None
    # Visibility scope; both None means unrestricted
    division: Optional[str] = None
    own_user_id: Optional[int] = None


class FormStore(abc.ABC):
    """Narrow persistence interface used by the workflow engine."""

    @abc.abstractmethod
    def get_form(self, form_id: int) -> Optional[PerformanceForm]: ...

    @abc.abstractmethod
    def find_form_id(self, kind: FormKind, cycle_id: int, subject_id: Optional[int], org_unit: Optional[str]) -> Optional[int]: ...

    @abc.abstractmethod
    def create_form(self, values: Dict[str, Any]) -> PerformanceForm: ...

    @abc.abstractmethod
    def list_forms(self, flt: FormFilter) -> List[Tuple[PerformanceForm, int]]: ...

    @abc.abstractmethod
    def list_items(self, form_id: int) -> List[PerformanceLineItem]: ...

    @abc.abstractmethod
    def count_items(self, form_id: int) -> int: ...

    @abc.abstractmethod
    def apply_reconciliation(self, plan: ReconciliationPlan, editable: Iterable[FormStatus]) -> bool: ...

    @abc.abstractmethod
    def update_status_if(
        self,
        form_id: int,
        expected: FormStatus,
        values: Dict[str, Any],
        item_ratings: Sequence[Dict[str, Any]] = (),
    ) -> bool: ...

    @abc.abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abc.abstractmethod
    def get_cycle(self, cycle_id: int) -> Optional[SPMSCycle]: ...


class SqlAlchemyFormStore(FormStore):
    def __init__(self, db: Session):
        self.db = db

    # --- single-row reads -------------------------------------------------

    def get_form(self, form_id: int) -> Optional[PerformanceForm]:
        # populate_existing: the status check must see the row as it is now
        return (
            self.db.query(PerformanceForm)
            .filter(PerformanceForm.id == form_id)
            .populate_existing()
            .first()
        )

    def find_form_id(self, kind, cycle_id, subject_id, org_unit):
        query = self.db.query(PerformanceForm.id).filter(
            PerformanceForm.kind == kind,
            PerformanceForm.cycle_id == cycle_id,
        )
        if kind == FormKind.INDIVIDUAL:
            query = query.filter(PerformanceForm.subject_id == subject_id)
        elif kind == FormKind.DEPARTMENT:
            query = query.filter(PerformanceForm.org_unit == org_unit)
        row = query.order_by(PerformanceForm.id).first()
        return row[0] if row else None

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_cycle(self, cycle_id: int) -> Optional[SPMSCycle]:
        return self.db.get(SPMSCycle, cycle_id)

    # --- multi-row reads --------------------------------------------------

    def list_forms(self, flt: FormFilter) -> List[Tuple[PerformanceForm, int]]:
        counts = (
            self.db.query(
                PerformanceLineItem.form_id.label("form_id"),
                func.count(PerformanceLineItem.id).label("item_count"),
            )
            .group_by(PerformanceLineItem.form_id)
            .subquery()
        )
        query = (
            self.db.query(PerformanceForm, func.coalesce(counts.c.item_count, 0))
            .outerjoin(counts, counts.c.form_id == PerformanceForm.id)
            .filter(PerformanceForm.kind == flt.kind)
        )

        if flt.cycle_id is not None:
            query = query.filter(PerformanceForm.cycle_id == flt.cycle_id)
        if flt.status is not None:
            query = query.filter(PerformanceForm.status == flt.status)
        if flt.subject_id is not None:
            query = query.filter(PerformanceForm.subject_id == flt.subject_id)

        scope = []
        if flt.own_user_id is not None:
            scope.append(PerformanceForm.subject_id == flt.own_user_id)
            scope.append(PerformanceForm.prepared_by_id == flt.own_user_id)
        if flt.division is not None:
            if flt.kind == FormKind.INDIVIDUAL:
                query = query.outerjoin(User, User.id == PerformanceForm.subject_id)
                scope.append(User.division == flt.division)
            else:
                scope.append(PerformanceForm.org_unit == flt.division)
        if scope:
            query = query.filter(or_(*scope))

        rows = query.order_by(PerformanceForm.created_at.desc(), PerformanceForm.id.desc()).all()
        return [(form, int(count)) for form, count in rows]

    def list_items(self, form_id: int) -> List[PerformanceLineItem]:
        return (
            self.db.query(PerformanceLineItem)
            .filter(PerformanceLineItem.form_id == form_id)
            .order_by(PerformanceLineItem.sort_order, PerformanceLineItem.id)
            .populate_existing()
            .all()
        )

    def count_items(self, form_id: int) -> int:
        return (
            self.db.query(func.count(PerformanceLineItem.id))
            .filter(PerformanceLineItem.form_id == form_id)
            .scalar()
        ) or 0

    # --- writes -----------------------------------------------------------

    def create_form(self, values: Dict[str, Any]) -> PerformanceForm:
        """
        Insert a new form. Raises DuplicateFormError when a concurrent request
        created the same (kind, key, cycle) form after the caller checked.
        """
        form = PerformanceForm(**values)
        self.db.add(form)
        try:
            self.db.commit()
            self.db.refresh(form)
        except IntegrityError:
            self.db.rollback()
            existing_id = self.find_form_id(values["kind"], values["cycle_id"], values.get("subject_id"), values.get("org_unit"))
            if existing_id is None:
                raise
            logger.warning(f"Lost create race for {values['kind'].value} in cycle {values['cycle_id']}; form {existing_id} exists")
            raise DuplicateFormError("This form already exists.", existing_id)
        except Exception:
            self.db.rollback()
            raise
        return form

    def apply_reconciliation(self, plan: ReconciliationPlan, editable: Iterable[FormStatus]) -> bool:
        """
        Replace the form's item set in one transaction.

        The form row is touched with a status-conditioned UPDATE first, so a
        save racing a submit either lands before it or not at all. Removed
        items are deleted before new ones are inserted so that freshly
        created rows are never caught by the delete.
        """
        try:
            touched = (
                self.db.query(PerformanceForm)
                .filter(PerformanceForm.id == plan.form_id, PerformanceForm.status.in_(list(editable)))
                .update({PerformanceForm.updated_at: func.now()}, synchronize_session=False)
            )
            if touched != 1:
                self.db.rollback()
                return False

            delete_query = self.db.query(PerformanceLineItem).filter(PerformanceLineItem.form_id == plan.form_id)
            if not plan.delete_all:
                delete_query = delete_query.filter(PerformanceLineItem.id.notin_(plan.keep_ids))
            deleted = delete_query.delete(synchronize_session="fetch")

            for values in plan.updates:
                fields = {k: v for k, v in values.items() if k != "id"}
                # Scoped by form: an id from another form updates nothing
                self.db.query(PerformanceLineItem).filter(
                    PerformanceLineItem.id == values["id"],
                    PerformanceLineItem.form_id == plan.form_id,
                ).update(fields, synchronize_session=False)

            for values in plan.creates:
                self.db.add(PerformanceLineItem(form_id=plan.form_id, **values))

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            f"Reconciled items of form {plan.form_id}: "
            f"{len(plan.updates)} updated, {len(plan.creates)} created, {deleted} deleted"
        )
        return True

    def update_status_if(self, form_id, expected, values, item_ratings=()):
        try:
            updated = (
                self.db.query(PerformanceForm)
                .filter(PerformanceForm.id == form_id, PerformanceForm.status == expected)
                .update(values, synchronize_session=False)
            )
            if updated != 1:
                self.db.rollback()
                logger.warning(f"Conditional update lost on form {form_id}: expected status '{expected.value}'")
                return False

            for rating in item_ratings:
                fields = {k: v for k, v in rating.items() if k != "id"}
                self.db.query(PerformanceLineItem).filter(
                    PerformanceLineItem.id == rating["id"],
                    PerformanceLineItem.form_id == form_id,
                ).update(fields, synchronize_session=False)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return True
