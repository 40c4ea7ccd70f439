from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hris.database import get_db
from hris.models.performance import FormKind, FormStatus
from hris.repositories.performance import SqlAlchemyFormStore
from hris.routers._responses import respond
from hris.routers.auth_deps import get_current_actor
from hris.schemas.performance import (
    FormCreate,
    RatingRequest,
    ReturnRequest,
    ReviewRequest,
    SaveLineItemsRequest,
)
from hris.services.audit import AuditService
from hris.services.authorization import Actor
from hris.services.invalidation import invalidator
from hris.services.notification import NotificationService
from hris.services.workflow import PerformanceWorkflow

router = APIRouter(prefix="/performance", tags=["performance"])


def get_workflow(db: Session = Depends(get_db)) -> PerformanceWorkflow:
    return PerformanceWorkflow(
        store=SqlAlchemyFormStore(db),
        audit=AuditService(db),
        notifier=NotificationService(db),
        invalidator=invalidator,
    )


@router.get("/approvals")
def pending_approvals(
    actor: Actor = Depends(get_current_actor),
    workflow: PerformanceWorkflow = Depends(get_workflow),
):
    return respond(workflow.list_pending(actor))


@router.get("/{kind}/forms")
def list_forms(
    kind: FormKind,
    cycle_id: Optional[int] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    subject_id: Optional[int] = None,
    actor: Actor = Depends(get_current_actor),
    workflow: PerformanceWorkflow = Depends(get_workflow),
):
    form_status = None
    if status_filter and status_filter != "all":
        try:
            form_status = FormStatus(status_filter)
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Unknown status: {status_filter}")
    return respond(workflow.list_forms(actor, kind, cycle_id=cycle_id, status=form_status, subject_id=subject_id))


@router.post("/{kind}/forms")
def create_form(
    kind: FormKind,
    payload: FormCreate,
    actor: Actor = Depends(get_current_actor),
    workflow: PerformanceWorkflow = Depends(get_workflow),
):
    return respond(workflow.create_form(actor, kind, payload), success_status=status.HTTP_201_CREATED)


@router.get("/{kind}/forms/{form_id}")
def get_form(
    kind: FormKind,
    form_id: int,
    actor: Actor = Depends(get_current_actor),
    workflow: PerformanceWorkflow = Depends(get_workflow),
):
    return respond(workflow.get_form(actor, kind, form_id))


@router.put("/{kind}/forms/{form_id}/items")
def save_line_items(
    kind: FormKind,
    form_id: int,
    payload: SaveLineItemsRequest,
    actor: Actor = Depends(get_current_actor),
    workflow: PerformanceWorkflow = Depends(get_workflow),
):
    return respond(workflow.save_line_items(actor, kind, form_id, payload.items))


@router.post("/{kind}/forms/{form_id}/submit")
def submit_form(
    kind: FormKind,
    form_id: int,
    actor: Actor = Depends(get_current_actor),
    workflow: PerformanceWorkflow = Depends(get_workflow),
):
    return respond(workflow.submit(actor, kind, form_id))


@router.post("/{kind}/forms/{form_id}/review")
def review_form(
    kind: FormKind,
    form_id: int,
    payload: ReviewRequest,
    actor: Actor = Depends(get_current_actor),
    workflow: PerformanceWorkflow = Depends(get_workflow),
):
    return respond(workflow.review(actor, kind, form_id, payload.comments))


@router.post("/{kind}/forms/{form_id}/finalize")
def finalize_form(
    kind: FormKind,
    form_id: int,
    payload: RatingRequest,
    actor: Actor = Depends(get_current_actor),
    workflow: PerformanceWorkflow = Depends(get_workflow),
):
    return respond(workflow.finalize(actor, kind, form_id, payload.ratings, payload.remarks))


@router.post("/{kind}/forms/{form_id}/approve")
def approve_form(
    kind: FormKind,
    form_id: int,
    payload: RatingRequest,
    actor: Actor = Depends(get_current_actor),
    workflow: PerformanceWorkflow = Depends(get_workflow),
):
    return respond(workflow.approve(actor, kind, form_id, payload.ratings, payload.remarks))


@router.post("/{kind}/forms/{form_id}/return")
def return_form(
    kind: FormKind,
    form_id: int,
    payload: ReturnRequest,
    actor: Actor = Depends(get_current_actor),
    workflow: PerformanceWorkflow = Depends(get_workflow),
):
    return respond(workflow.return_form(actor, kind, form_id, payload.remarks))
