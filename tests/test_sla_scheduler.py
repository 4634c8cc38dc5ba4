"""
Batch SLA processing: counts, failure isolation and single-flight runs
"""
import asyncio
from datetime import timedelta

import pytest

from app.core.clock import as_utc
from app.models.complaint import Complaint, ComplaintStatus, Department
from app.models.user import UserRole
from app.services.sla_calculator import SLACalculator

from conftest import BASE_TIME

BREACHED_AT = BASE_TIME + timedelta(hours=49)


@pytest.fixture
def seeded(test_db, make_user, make_complaint):
    """One breached complaint due for escalation, one fresh, one resolved"""
    make_user(UserRole.ADMIN, city="Riverdale", department=Department.PLUMBING)
    calculator = SLACalculator()

    overdue = make_complaint(department=Department.PLUMBING)
    calculator.initialize(overdue, BASE_TIME)
    calculator.refresh(overdue, BREACHED_AT)

    fresh = make_complaint(department=Department.STRUCTURAL, created_at=BREACHED_AT)
    calculator.initialize(fresh, BREACHED_AT)

    resolved = make_complaint(department=Department.ELECTRICAL)
    calculator.initialize(resolved, BASE_TIME)
    resolved.resolve(BASE_TIME + timedelta(hours=1))

    test_db.commit()
    return {"overdue": overdue.id, "fresh": fresh.id, "resolved": resolved.id}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_run_once_refreshes_and_escalates(test_db, scheduler, seeded):
    result = await scheduler.run_once(now=BREACHED_AT + timedelta(hours=7))

    assert result.updated_count == 2
    assert result.escalated_count == 1
    assert result.failed_count == 0
    assert result.skipped is False

    test_db.expire_all()
    overdue = test_db.get(Complaint, seeded["overdue"])
    assert overdue.escalation_level == 1
    assert overdue.auto_escalated is True

    fresh = test_db.get(Complaint, seeded["fresh"])
    assert fresh.sla_time_remaining_hours == 65
    assert fresh.escalation_level == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_terminal_complaints_are_not_touched(test_db, scheduler, seeded):
    await scheduler.run_once(now=BREACHED_AT + timedelta(hours=100))

    test_db.expire_all()
    resolved = test_db.get(Complaint, seeded["resolved"])
    assert resolved.status == ComplaintStatus.RESOLVED
    assert resolved.sla_is_overdue is False
    assert resolved.sla_breached_at is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_one_failure_does_not_stop_the_batch(test_db, scheduler, seeded, monkeypatch):
    original_refresh = scheduler.sla_calculator.refresh

    def flaky_refresh(complaint, now=None):
        if complaint.id == seeded["fresh"]:
            raise RuntimeError("simulated failure")
        return original_refresh(complaint, now)

    monkeypatch.setattr(scheduler.sla_calculator, "refresh", flaky_refresh)

    result = await scheduler.run_once(now=BREACHED_AT + timedelta(hours=7))

    assert result.failed_count == 1
    assert result.updated_count == 1
    assert result.escalated_count == 1

    test_db.expire_all()
    fresh = test_db.get(Complaint, seeded["fresh"])
    assert as_utc(fresh.sla_deadline) == BREACHED_AT + timedelta(hours=72)
    assert fresh.sla_time_remaining_hours == 72


@pytest.mark.unit
@pytest.mark.asyncio
async def test_repeated_passes_keep_first_breach(test_db, scheduler, seeded):
    await scheduler.run_once(now=BREACHED_AT + timedelta(hours=7))
    await scheduler.run_once(now=BREACHED_AT + timedelta(hours=8))

    test_db.expire_all()
    overdue = test_db.get(Complaint, seeded["overdue"])
    assert as_utc(overdue.sla_breached_at) == BREACHED_AT
    assert overdue.escalation_level == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_timer_tick_skips_while_a_pass_is_running(scheduler):
    async with scheduler._lock:
        result = await scheduler.run_once(wait=False)

    assert result.skipped is True
    assert scheduler.last_result is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_manual_triggers_are_serialized(scheduler, seeded):
    now = BREACHED_AT + timedelta(hours=7)

    first, second = await asyncio.gather(scheduler.run_once(now=now), scheduler.run_once(now=now))

    assert not first.skipped and not second.skipped
    # The second pass sees the escalation already applied
    assert first.escalated_count + second.escalated_count == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_start_and_stop(scheduler):
    assert scheduler.start() is True
    assert scheduler.start() is False
    assert scheduler.status()["running"] is True

    assert await scheduler.stop() is True
    assert scheduler.running is False
    assert await scheduler.stop() is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_status_reports_last_run(scheduler, seeded):
    await scheduler.run_once(now=BREACHED_AT + timedelta(hours=7))

    status = scheduler.status()

    assert status["name"] == "sla_processing"
    assert status["in_progress"] is False
    assert status["max_workers"] == 2
    assert status["last_result"]["escalated_count"] == 1
