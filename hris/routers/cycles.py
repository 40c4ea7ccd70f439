from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hris.database import get_db
from hris.routers._responses import respond
from hris.routers.auth_deps import get_current_actor
from hris.schemas.cycle import CycleCreate, CycleUpdate
from hris.services.audit import AuditService
from hris.services.authorization import Actor
from hris.services.cycles import CycleService

router = APIRouter(prefix="/cycles", tags=["spms-cycles"])


def get_cycle_service(db: Session = Depends(get_db)) -> CycleService:
    return CycleService(db, audit=AuditService(db))


@router.get("")
def list_cycles(actor: Actor = Depends(get_current_actor), service: CycleService = Depends(get_cycle_service)):
    return respond(service.list_cycles(actor))


@router.get("/active")
def get_active_cycle(actor: Actor = Depends(get_current_actor), service: CycleService = Depends(get_cycle_service)):
    return respond(service.get_active_cycle(actor))


@router.post("")
def create_cycle(
    payload: CycleCreate,
    actor: Actor = Depends(get_current_actor),
    service: CycleService = Depends(get_cycle_service),
):
    return respond(service.create_cycle(actor, payload), success_status=status.HTTP_201_CREATED)


@router.patch("/{cycle_id}")
def update_cycle(
    cycle_id: int,
    payload: CycleUpdate,
    actor: Actor = Depends(get_current_actor),
    service: CycleService = Depends(get_cycle_service),
):
    return respond(service.update_cycle(actor, cycle_id, payload))


@router.post("/{cycle_id}/activate")
def activate_cycle(
    cycle_id: int,
    actor: Actor = Depends(get_current_actor),
    service: CycleService = Depends(get_cycle_service),
):
    return respond(service.activate_cycle(actor, cycle_id))
