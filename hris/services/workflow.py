"""
Performance-review workflow engine.

Every public operation takes the calling Actor explicitly, runs the guard,
validates the current status against the state machine, writes through the
store with a status-conditioned update, then records an audit event and
fires the invalidation and notification hooks. Public operations always
return an ApiResponse; domain errors never escape as exceptions.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from hris.core.exceptions import InvalidStateError, NotFoundError, ValidationError, DuplicateFormError
from hris.core.schemas import result_boundary
from hris.models.performance import (
    ALLOWED_CATEGORIES,
    FormKind,
    FormStatus,
    PerformanceForm,
)
from hris.repositories.performance import FormFilter, FormStore
from hris.schemas.performance import (
    CreatedForm,
    FormCreate,
    FormDetail,
    FormResponse,
    FormSummary,
    ItemRating,
    LineItemInput,
    LineItemResponse,
)
from hris.services import rating as rating_service
from hris.services.audit import AuditSink
from hris.services.authorization import Actor, Operation, Relation, authorize, require_actor
from hris.services.invalidation import InvalidationHook, form_paths
from hris.services.notification import NotificationDispatcher
from hris.services.reconciler import plan_reconciliation
from hris.services.state_machine import Transition, check_transition, transition_for

logger = logging.getLogger(__name__)

# Audit event suffix per status-changing operation
_EVENTS = {
    Operation.SUBMIT: "submitted",
    Operation.REVIEW: "reviewed",
    Operation.FINALIZE: "finalized",
    Operation.APPROVE: "approved",
    Operation.RETURN: "returned",
}

# Timestamp column stamped by each transition
_TIMESTAMPS = {
    Operation.SUBMIT: "submitted_at",
    Operation.REVIEW: "reviewed_at",
    Operation.FINALIZE: "finalized_at",
    Operation.APPROVE: "approved_at",
}


def _label(kind: FormKind) -> str:
    return kind.value.upper()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _duplicate_message(kind: FormKind) -> str:
    if kind == FormKind.INDIVIDUAL:
        return "An IPCR for this employee and period already exists. Would you like to edit it?"
    return f"A {_label(kind)} for this cycle already exists."


class PerformanceWorkflow:
    def __init__(
        self,
        store: FormStore,
        audit: Optional[AuditSink] = None,
        notifier: Optional[NotificationDispatcher] = None,
        invalidator: Optional[InvalidationHook] = None,
    ):
        self.store = store
        self.audit = audit
        self.notifier = notifier
        self.invalidator = invalidator

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @result_boundary
    def get_form(self, actor: Actor, kind: FormKind, form_id: int) -> FormDetail:
        actor = require_actor(actor)
        form = self._load(kind, form_id)
        authorize(actor, kind, Operation.VIEW, self._relation(actor, form))

        items = sorted(self.store.list_items(form.id), key=lambda item: (item.display_key, item.id))
        return FormDetail(
            form=FormResponse.model_validate(form),
            items=[LineItemResponse.model_validate(item) for item in items],
        )

    @result_boundary
    def list_forms(
        self,
        actor: Actor,
        kind: FormKind,
        cycle_id: Optional[int] = None,
        status: Optional[FormStatus] = None,
        subject_id: Optional[int] = None,
    ) -> List[FormSummary]:
        actor = require_actor(actor)
        if kind == FormKind.OFFICE:
            authorize(actor, kind, Operation.VIEW, Relation())

        if actor.is_hr_manager:
            scope = {}
        elif actor.is_division_chief:
            scope = {"division": actor.division, "own_user_id": actor.id}
        else:
            scope = {"own_user_id": actor.id}

        rows = self.store.list_forms(
            FormFilter(kind=kind, cycle_id=cycle_id, status=status, subject_id=subject_id, **scope)
        )
        return [
            FormSummary(**FormResponse.model_validate(form).model_dump(), item_count=count)
            for form, count in rows
        ]

    @result_boundary
    def list_pending(self, actor: Actor) -> List[FormSummary]:
        """Forms waiting on this actor: reviews for chiefs, final rating for HR managers."""
        actor = require_actor(actor)
        wanted = []
        if actor.is_hr_manager:
            wanted = [
                FormFilter(kind=FormKind.INDIVIDUAL, status=FormStatus.SUBMITTED),
                FormFilter(kind=FormKind.INDIVIDUAL, status=FormStatus.REVIEWED),
                FormFilter(kind=FormKind.DEPARTMENT, status=FormStatus.SUBMITTED),
                FormFilter(kind=FormKind.OFFICE, status=FormStatus.SUBMITTED),
            ]
        elif actor.is_division_chief and actor.division:
            wanted = [
                FormFilter(kind=FormKind.INDIVIDUAL, status=FormStatus.SUBMITTED, division=actor.division),
            ]

        pending = []
        for flt in wanted:
            for form, count in self.store.list_forms(flt):
                if form.subject_id == actor.id:
                    continue
                pending.append(FormSummary(**FormResponse.model_validate(form).model_dump(), item_count=count))
        return pending

    # ------------------------------------------------------------------
    # Creation and editing
    # ------------------------------------------------------------------

    @result_boundary
    def create_form(self, actor: Actor, kind: FormKind, payload: FormCreate) -> CreatedForm:
        actor = require_actor(actor)

        cycle = self.store.get_cycle(payload.cycle_id)
        if cycle is None:
            raise NotFoundError("SPMS cycle not found")

        subject_id = None
        org_unit = None
        supervisor_id = None
        if kind == FormKind.INDIVIDUAL:
            subject_id = payload.subject_id or actor.id
            subject = self.store.get_user(subject_id)
            if subject is None:
                raise NotFoundError("Employee not found")
            relation = Relation.resolve(actor, subject_id, None, subject.division)
            supervisor_id = payload.immediate_supervisor_id
            if supervisor_id is not None and self.store.get_user(supervisor_id) is None:
                raise NotFoundError("Immediate supervisor not found")
        elif kind == FormKind.DEPARTMENT:
            org_unit = payload.org_unit or actor.division
            if not org_unit:
                raise ValidationError("A division is required for a DPCR")
            relation = Relation.resolve(actor, None, None, org_unit)
        else:
            relation = Relation()

        authorize(actor, kind, Operation.CREATE, relation)

        if not cycle.is_active:
            raise ValidationError("No active SPMS cycle found or selected cycle is not active")

        existing_id = self.store.find_form_id(kind, cycle.id, subject_id, org_unit)
        if existing_id is not None:
            raise DuplicateFormError(_duplicate_message(kind), existing_id)

        try:
            form = self.store.create_form({
                "kind": kind,
                "cycle_id": cycle.id,
                "subject_id": subject_id,
                "org_unit": org_unit,
                "prepared_by_id": actor.id,
                "immediate_supervisor_id": supervisor_id,
                "status": FormStatus.DRAFT,
            })
        except DuplicateFormError as e:
            raise DuplicateFormError(_duplicate_message(kind), e.existing_id)
        form_id = form.id
        logger.info(f"Created {_label(kind)} {form_id} in cycle {cycle.id}")

        self._record(actor, kind, f"{kind.value}.created", form_id, {"cycle_id": cycle.id})
        self._invalidate(kind, form_id)
        return CreatedForm(id=form_id)

    @result_boundary
    def save_line_items(self, actor: Actor, kind: FormKind, form_id: int, items: Sequence[LineItemInput]) -> Dict[str, int]:
        actor = require_actor(actor)
        transition = transition_for(kind, Operation.SAVE_ITEMS)
        form = self._load(kind, form_id)
        authorize(actor, kind, Operation.SAVE_ITEMS, self._relation(actor, form))
        check_transition(kind, Operation.SAVE_ITEMS, form.status)

        allowed = ALLOWED_CATEGORIES[kind]
        seen_ids = set()
        for item in items:
            if item.category not in allowed:
                raise ValidationError("Invalid category", details={"category": item.category.value})
            if item.id is not None:
                if item.id in seen_ids:
                    raise ValidationError("The same output was sent twice", details={"item_id": item.id})
                seen_ids.add(item.id)

        current_ids = [item.id for item in self.store.list_items(form.id)]
        plan = plan_reconciliation(form.id, current_ids, items)
        if not self.store.apply_reconciliation(plan, transition.sources):
            raise InvalidStateError(transition.error)

        summary = {
            "updated": len(plan.updates),
            "created": len(plan.creates),
            "deleted": len(plan.delete_ids),
        }
        self._record(actor, kind, f"{kind.value}.outputs_saved", form_id, summary)
        self._invalidate(kind, form_id)
        return summary

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @result_boundary
    def submit(self, actor: Actor, kind: FormKind, form_id: int) -> FormResponse:
        actor = require_actor(actor)
        transition_for(kind, Operation.SUBMIT)
        form = self._load(kind, form_id)
        authorize(actor, kind, Operation.SUBMIT, self._relation(actor, form))
        transition = check_transition(kind, Operation.SUBMIT, form.status)

        if self.store.count_items(form.id) == 0:
            raise ValidationError("Add at least one output before submitting.")

        updated = self._transition(actor, form, Operation.SUBMIT, transition, {})
        if updated.immediate_supervisor_id:
            self._notify(updated.immediate_supervisor_id, "performance.submitted", updated)
        return FormResponse.model_validate(updated)

    @result_boundary
    def review(self, actor: Actor, kind: FormKind, form_id: int, comments: Optional[str] = None) -> FormResponse:
        actor = require_actor(actor)
        transition_for(kind, Operation.REVIEW)
        form = self._load(kind, form_id)
        authorize(actor, kind, Operation.REVIEW, self._relation(actor, form))
        transition = check_transition(kind, Operation.REVIEW, form.status)

        updated = self._transition(actor, form, Operation.REVIEW, transition, {
            "review_comments": comments or None,
            "reviewer_id": actor.id,
        })
        self._notify(updated.subject_id, "performance.reviewed", updated)
        return FormResponse.model_validate(updated)

    @result_boundary
    def finalize(self, actor: Actor, kind: FormKind, form_id: int, ratings: Sequence[ItemRating], remarks: Optional[str] = None) -> FormResponse:
        return self._rate(actor, kind, form_id, ratings, remarks, Operation.FINALIZE)

    @result_boundary
    def approve(self, actor: Actor, kind: FormKind, form_id: int, ratings: Sequence[ItemRating], remarks: Optional[str] = None) -> FormResponse:
        return self._rate(actor, kind, form_id, ratings, remarks, Operation.APPROVE)

    @result_boundary
    def return_form(self, actor: Actor, kind: FormKind, form_id: int, remarks: Optional[str]) -> FormResponse:
        actor = require_actor(actor)
        transition_for(kind, Operation.RETURN)
        form = self._load(kind, form_id)
        authorize(actor, kind, Operation.RETURN, self._relation(actor, form))
        transition = check_transition(kind, Operation.RETURN, form.status)

        if not remarks or not remarks.strip():
            raise ValidationError(f"Remarks required for returning {_label(kind)}")

        updated = self._transition(actor, form, Operation.RETURN, transition, {
            "final_remarks": remarks.strip(),
        }, detail={"remarks": remarks.strip()})
        self._notify(updated.subject_id, "performance.returned", updated, remarks=remarks.strip())
        return FormResponse.model_validate(updated)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _rate(self, actor, kind, form_id, ratings, remarks, operation: Operation) -> FormResponse:
        actor = require_actor(actor)
        transition_for(kind, operation)
        form = self._load(kind, form_id)
        authorize(actor, kind, operation, self._relation(actor, form))
        transition = check_transition(kind, operation, form.status)

        item_ratings = self._rate_items(form, ratings)
        result = rating_service.rate_form(r["rating_average"] for r in item_ratings)

        values = {
            "final_average_rating": result.average,
            "adjectival_rating": result.adjectival,
            "final_remarks": remarks or None,
            "approver_id": actor.id,
        }
        updated = self._transition(
            actor, form, operation, transition, values,
            item_ratings=item_ratings,
            detail={"final_average_rating": str(result.average), "adjectival_rating": result.adjectival},
        )

        recipient = updated.subject_id if kind == FormKind.INDIVIDUAL else updated.prepared_by_id
        template = "performance.finalized" if operation == Operation.FINALIZE else "performance.approved"
        if recipient and recipient != actor.id:
            self._notify(recipient, template, updated)
        return FormResponse.model_validate(updated)

    def _rate_items(self, form: PerformanceForm, ratings: Sequence[ItemRating]) -> List[Dict[str, Any]]:
        if not ratings:
            raise ValidationError("No ratings provided")

        item_ids = {item.id for item in self.store.list_items(form.id)}
        rated = []
        seen = set()
        for r in ratings:
            if r.item_id not in item_ids:
                raise ValidationError("Rating refers to an output that is not on this form", details={"item_id": r.item_id})
            if r.item_id in seen:
                raise ValidationError("An output was rated more than once", details={"item_id": r.item_id})
            seen.add(r.item_id)
            rated.append({
                "id": r.item_id,
                "rating_quantity": Decimal(r.rating_quantity),
                "rating_efficiency": Decimal(r.rating_efficiency),
                "rating_timeliness": Decimal(r.rating_timeliness),
                "rating_average": rating_service.item_average(r.rating_quantity, r.rating_efficiency, r.rating_timeliness),
            })

        missing = item_ids - seen
        if missing:
            raise ValidationError("Every output must be rated", details={"unrated_item_ids": sorted(missing)})
        return rated

    def _transition(
        self,
        actor: Actor,
        form: PerformanceForm,
        operation: Operation,
        transition: Transition,
        values: Dict[str, Any],
        item_ratings: Sequence[Dict[str, Any]] = (),
        detail: Optional[Dict[str, Any]] = None,
    ) -> PerformanceForm:
        kind = form.kind
        form_id = form.id
        observed = form.status

        changes = {"status": transition.target, **values}
        stamp = _TIMESTAMPS.get(operation)
        if stamp:
            changes[stamp] = _now()

        if not self.store.update_status_if(form_id, observed, changes, item_ratings):
            raise InvalidStateError(
                f"{transition.error}. The form was changed by another request; reload it and try again.",
                details={"expected_status": observed.value},
            )
        logger.info(f"{_label(kind)} {form_id}: {observed.value} -> {transition.target.value}")

        self._record(actor, kind, f"{kind.value}.{_EVENTS[operation]}", form_id, {
            "from": observed.value,
            "to": transition.target.value,
            **(detail or {}),
        })
        self._invalidate(kind, form_id)
        return self.store.get_form(form_id)

    def _load(self, kind: FormKind, form_id: int) -> PerformanceForm:
        form = self.store.get_form(form_id)
        if form is None or form.kind != kind:
            raise NotFoundError(f"{_label(kind)} not found")
        return form

    def _relation(self, actor: Actor, form: PerformanceForm) -> Relation:
        if form.kind == FormKind.INDIVIDUAL:
            subject = self.store.get_user(form.subject_id) if form.subject_id else None
            unit = subject.division if subject else None
        else:
            unit = form.org_unit
        return Relation.resolve(actor, form.subject_id, form.prepared_by_id, unit)

    # --- best-effort collaborators ----------------------------------------

    def _record(self, actor: Actor, kind: FormKind, event_type: str, form_id: int, detail: Dict[str, Any]) -> None:
        if self.audit is None:
            return
        try:
            self.audit.record(event_type, "performance_forms", form_id, {"kind": kind.value, **detail}, actor)
        except Exception as e:
            logger.error(f"Audit failed for {event_type} on form {form_id}: {e}", exc_info=True)

    def _invalidate(self, kind: FormKind, form_id: int) -> None:
        if self.invalidator is None:
            return
        try:
            self.invalidator.invalidate(*form_paths(kind.value, form_id))
        except Exception as e:
            logger.warning(f"Invalidation failed for form {form_id}: {e}", exc_info=True)

    def _notify(self, recipient_id: Optional[int], template_key: str, form: PerformanceForm, **extra: Any) -> None:
        if self.notifier is None or not recipient_id:
            return
        try:
            cycle = self.store.get_cycle(form.cycle_id)
            subject = self.store.get_user(form.subject_id) if form.subject_id else None
            context = {
                "form_id": form.id,
                "label": _label(form.kind),
                "cycle_name": cycle.name if cycle else "the current cycle",
                "subject_name": (subject.full_name or subject.email) if subject else (form.org_unit or "The office"),
                "rating": form.final_average_rating,
                "adjectival": form.adjectival_rating,
                "remarks": form.final_remarks,
                "link": f"/performance/{form.kind.value}/forms/{form.id}",
                **extra,
            }
            self.notifier.dispatch(recipient_id, template_key, context)
        except Exception as e:
            logger.warning(f"Notification {template_key} failed for user {recipient_id}: {e}", exc_info=True)
