"""
SLA deadlines, breach detection and refresh behaviour
"""
from datetime import timedelta

import pytest

from app.core.clock import as_utc
from app.core.exceptions import ComplaintStateError
from app.models.complaint import ComplaintStatus, Department
from app.services.sla_calculator import SLACalculator, DEFAULT_SLA_HOURS

from conftest import BASE_TIME


@pytest.mark.unit
@pytest.mark.parametrize("department,hours", [
    (Department.SANITATION, 24),
    (Department.PLUMBING, 48),
    (Department.STRUCTURAL, 72),
    (Department.ELECTRICAL, 12),
    (None, DEFAULT_SLA_HOURS),
])
def test_initialize_sets_department_deadline(make_complaint, department, hours):
    complaint = make_complaint(department=department)

    state = SLACalculator().initialize(complaint, BASE_TIME)

    assert state.deadline == BASE_TIME + timedelta(hours=hours)
    assert state.time_remaining_hours == hours
    assert state.is_overdue is False
    assert complaint.sla_breached_at is None


@pytest.mark.unit
def test_refresh_counts_down_whole_hours(make_complaint):
    complaint = make_complaint(department=Department.PLUMBING)
    calculator = SLACalculator()
    calculator.initialize(complaint, BASE_TIME)

    state = calculator.refresh(complaint, BASE_TIME + timedelta(hours=10, minutes=30))

    assert state.time_remaining_hours == 37
    assert state.is_overdue is False


@pytest.mark.unit
def test_refresh_is_idempotent_for_same_instant(make_complaint):
    complaint = make_complaint(department=Department.ELECTRICAL)
    calculator = SLACalculator()
    calculator.initialize(complaint, BASE_TIME)
    now = BASE_TIME + timedelta(hours=13)

    first = calculator.refresh(complaint, now)
    second = calculator.refresh(complaint, now)

    assert first == second


@pytest.mark.unit
def test_first_breach_time_is_kept(make_complaint):
    complaint = make_complaint(department=Department.ELECTRICAL)
    calculator = SLACalculator()
    calculator.initialize(complaint, BASE_TIME)
    first_seen = BASE_TIME + timedelta(hours=13)

    calculator.refresh(complaint, first_seen)
    later = calculator.refresh(complaint, BASE_TIME + timedelta(hours=40))

    assert later.is_overdue is True
    assert later.time_remaining_hours == 0
    assert as_utc(later.breached_at) == first_seen
    assert as_utc(complaint.sla_breached_at) == first_seen


@pytest.mark.unit
def test_breach_survives_a_reload(test_db, make_complaint):
    complaint = make_complaint(department=Department.ELECTRICAL)
    calculator = SLACalculator()
    calculator.initialize(complaint, BASE_TIME)
    calculator.refresh(complaint, BASE_TIME + timedelta(hours=12, minutes=1))
    test_db.commit()
    test_db.expire_all()

    state = calculator.refresh(complaint, BASE_TIME + timedelta(hours=20))

    assert as_utc(state.breached_at) == BASE_TIME + timedelta(hours=12, minutes=1)
    assert as_utc(state.deadline) == BASE_TIME + timedelta(hours=12)


@pytest.mark.unit
def test_terminal_complaints_are_frozen(make_complaint):
    complaint = make_complaint(department=Department.ELECTRICAL)
    calculator = SLACalculator()
    calculator.initialize(complaint, BASE_TIME)
    complaint.resolve(BASE_TIME + timedelta(hours=2))

    state = calculator.refresh(complaint, BASE_TIME + timedelta(hours=30))

    assert complaint.status == ComplaintStatus.RESOLVED
    assert state.is_overdue is False
    assert complaint.sla_breached_at is None
    assert complaint.sla_time_remaining_hours == 12


@pytest.mark.unit
def test_compute_does_not_mutate(make_complaint):
    complaint = make_complaint(department=Department.ELECTRICAL)
    calculator = SLACalculator()
    calculator.initialize(complaint, BASE_TIME)

    state = calculator.compute(complaint, BASE_TIME + timedelta(hours=15))

    assert state.is_overdue is True
    assert complaint.sla_is_overdue is False
    assert complaint.sla_breached_at is None


@pytest.mark.unit
def test_clearing_breach_is_refused(make_complaint):
    complaint = make_complaint(department=Department.ELECTRICAL)
    calculator = SLACalculator()
    calculator.initialize(complaint, BASE_TIME)
    calculator.refresh(complaint, BASE_TIME + timedelta(hours=13))

    with pytest.raises(ComplaintStateError):
        calculator.initialize(complaint, BASE_TIME)
