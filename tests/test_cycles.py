import pytest
from datetime import date

from hris.models.audit_log import AuditLog
from hris.models.spms_cycle import SPMSCycle
from hris.schemas.cycle import CycleCreate, CycleUpdate
from hris.services.audit import AuditService
from hris.services.cycles import CycleService


@pytest.fixture
def service(db_session):
    return CycleService(db_session, audit=AuditService(db_session))

def _active_ids(db_session):
    db_session.expire_all()
    return [c.id for c in db_session.query(SPMSCycle).filter(SPMSCycle.is_active.is_(True)).all()]


def test_create_active_cycle_deactivates_others(service, actor_for, head, cycle, db_session):
    payload = CycleCreate(name="Jul-Dec 2026", period_start=date(2026, 7, 1), period_end=date(2026, 12, 31), is_active=True)
    result = service.create_cycle(actor_for(head), payload)
    assert result.success, result.error
    assert _active_ids(db_session) == [result.data.id]

def test_activate_keeps_single_active_cycle(service, actor_for, admin_staff, cycle, db_session):
    later = SPMSCycle(name="Jul-Dec 2026", period_start=date(2026, 7, 1), period_end=date(2026, 12, 31))
    db_session.add(later)
    db_session.commit()

    result = service.activate_cycle(actor_for(admin_staff), later.id)
    assert result.data.is_active
    assert _active_ids(db_session) == [later.id]

    actions = [row.action for row in db_session.query(AuditLog).all()]
    assert actions == ["spms_cycle.activated"]

def test_get_active_cycle(service, actor_for, staff, cycle):
    result = service.get_active_cycle(actor_for(staff))
    assert result.data.name == "Jan-Jun 2026"

def test_no_active_cycle(service, actor_for, staff, db_session):
    assert service.get_active_cycle(actor_for(staff)).error.code == "NOT_FOUND"

def test_staff_cannot_manage_cycles(service, actor_for, staff, chief):
    payload = CycleCreate(name="Jul-Dec 2026", period_start=date(2026, 7, 1), period_end=date(2026, 12, 31))
    assert service.create_cycle(actor_for(staff), payload).error.code == "FORBIDDEN"
    assert service.create_cycle(actor_for(chief), payload).error.code == "FORBIDDEN"

def test_update_rejects_inverted_period(service, actor_for, head, cycle):
    result = service.update_cycle(actor_for(head), cycle.id, CycleUpdate(period_end=date(2025, 12, 31)))
    assert result.error.code == "VALIDATION_ERROR"

def test_update_renames(service, actor_for, head, cycle):
    result = service.update_cycle(actor_for(head), cycle.id, CycleUpdate(name="First Semester 2026"))
    assert result.data.name == "First Semester 2026"
    assert result.data.is_active

def test_update_missing_cycle(service, actor_for, head, db_session):
    assert service.update_cycle(actor_for(head), 404, CycleUpdate(name="x")).error.code == "NOT_FOUND"

def test_create_payload_validates_period():
    with pytest.raises(ValueError):
        CycleCreate(name="Bad", period_start=date(2026, 7, 1), period_end=date(2026, 1, 1))
