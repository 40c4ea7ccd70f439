"""
SPMS cycle management. At most one cycle is active at a time; activating
one deactivates the rest in the same transaction.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from hris.core.exceptions import AccessDeniedError, NotFoundError, ValidationError
from hris.core.schemas import result_boundary
from hris.models.spms_cycle import SPMSCycle
from hris.schemas.cycle import CycleCreate, CycleResponse, CycleUpdate
from hris.services.audit import AuditSink
from hris.services.authorization import Actor, require_actor

logger = logging.getLogger(__name__)


class CycleService:
    def __init__(self, db: Session, audit: Optional[AuditSink] = None):
        self.db = db
        self.audit = audit

    def _require_hr(self, actor: Optional[Actor]) -> Actor:
        actor = require_actor(actor)
        if not actor.is_hr_manager:
            raise AccessDeniedError("Only the Head of Office or Admin Staff can manage SPMS cycles")
        return actor

    def _deactivate_others(self, keep_id: Optional[int] = None) -> None:
        query = self.db.query(SPMSCycle).filter(SPMSCycle.is_active.is_(True))
        if keep_id is not None:
            query = query.filter(SPMSCycle.id != keep_id)
        query.update({SPMSCycle.is_active: False}, synchronize_session=False)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _audit(self, actor: Actor, action: str, cycle_id: int) -> None:
        if self.audit is None:
            return
        try:
            self.audit.record(action, "spms_cycles", cycle_id, {}, actor)
        except Exception as e:
            logger.error(f"Audit failed for {action}: {e}", exc_info=True)

    @result_boundary
    def list_cycles(self, actor: Actor) -> List[CycleResponse]:
        require_actor(actor)
        cycles = self.db.query(SPMSCycle).order_by(SPMSCycle.period_start.desc()).all()
        return [CycleResponse.model_validate(c) for c in cycles]

    @result_boundary
    def get_active_cycle(self, actor: Actor) -> CycleResponse:
        require_actor(actor)
        cycle = self.db.query(SPMSCycle).filter(SPMSCycle.is_active.is_(True)).first()
        if cycle is None:
            raise NotFoundError("No active SPMS cycle")
        return CycleResponse.model_validate(cycle)

    @result_boundary
    def create_cycle(self, actor: Actor, payload: CycleCreate) -> CycleResponse:
        actor = self._require_hr(actor)
        if payload.is_active:
            self._deactivate_others()
        cycle = SPMSCycle(
            name=payload.name,
            period_start=payload.period_start,
            period_end=payload.period_end,
            is_active=payload.is_active,
        )
        self.db.add(cycle)
        self._commit()
        self.db.refresh(cycle)
        self._audit(actor, "spms_cycle.created", cycle.id)
        return CycleResponse.model_validate(cycle)

    @result_boundary
    def update_cycle(self, actor: Actor, cycle_id: int, payload: CycleUpdate) -> CycleResponse:
        actor = self._require_hr(actor)
        cycle = self.db.get(SPMSCycle, cycle_id)
        if cycle is None:
            raise NotFoundError("SPMS cycle not found")

        changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
        start = changes.get("period_start", cycle.period_start)
        end = changes.get("period_end", cycle.period_end)
        if end < start:
            raise ValidationError("period_end must not be before period_start")

        if changes.get("is_active"):
            self._deactivate_others(keep_id=cycle.id)
        for field, value in changes.items():
            setattr(cycle, field, value)
        self._commit()
        self.db.refresh(cycle)
        self._audit(actor, "spms_cycle.updated", cycle.id)
        return CycleResponse.model_validate(cycle)

    @result_boundary
    def activate_cycle(self, actor: Actor, cycle_id: int) -> CycleResponse:
        actor = self._require_hr(actor)
        cycle = self.db.get(SPMSCycle, cycle_id)
        if cycle is None:
            raise NotFoundError("SPMS cycle not found")
        self._deactivate_others(keep_id=cycle.id)
        cycle.is_active = True
        self._commit()
        self.db.refresh(cycle)
        self._audit(actor, "spms_cycle.activated", cycle.id)
        return CycleResponse.model_validate(cycle)
