"""
Test Suite for the Fair-Share Planner

Covers the greedy selection order, tie-breaking, skipping of dates without
available employees, and the planner service running against the data
manager, including the end-to-end weekend scenario.
"""

import pytest
import sys
from datetime import date
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from vacation_planner.availability import find_conflicts, find_over_capacity_days, shift_counts
from vacation_planner.calendar_utils import Period
from vacation_planner.data_manager import DataManager, PermissionDeniedError
from vacation_planner.models import (
    Absence,
    AbsenceType,
    Employee,
    ProposedAssignment,
    Role,
    Shift,
)
from vacation_planner.planner import (
    FairSharePlanner,
    distribute,
    open_slots,
    open_weekend_dates,
    plan_assignments,
)

A = Employee("1", "A")
B = Employee("2", "B")
C = Employee("3", "C")

SAT = date(2024, 7, 13)
SUN = date(2024, 7, 14)


def vacation(abs_id, emp_id, start, end):
    return Absence(id=abs_id, emp_id=emp_id, type=AbsenceType.VACATION, start=start, end=end)


@pytest.fixture
def data_manager(tmp_path):
    """Fixture for a clean DataManager on an isolated file."""
    dm = DataManager(str(tmp_path / "planner_data.json"))
    dm.add_employee("A")
    dm.add_employee("B")
    dm.set_period("2024-07-06", "2024-07-07")
    return dm


@pytest.fixture
def planner(data_manager):
    return FairSharePlanner(data_manager)


def test_least_loaded_employee_wins_and_load_updates_within_batch():
    """
    Why this is important: loads [0, 2, 1] must send the first date to the
    idle employee and must never reach the busiest one while someone less
    loaded is available. The second date is a tie at load 1, settled by
    roster order.
    """
    existing = [
        Shift("e1", date(2024, 6, 1), B.id),
        Shift("e2", date(2024, 6, 2), B.id),
        Shift("e3", date(2024, 6, 8), C.id),
    ]

    proposals = distribute([SAT, SUN], [A, B, C], [], existing)

    assert [p.emp_id for p in proposals] == [A.id, A.id]
    assert all(p.emp_id != B.id for p in proposals)


def test_tie_break_follows_roster_order():
    proposals = distribute([SAT], [C, B, A], [], [])
    assert proposals[0].emp_id == C.id


def test_dates_processed_in_ascending_order_regardless_of_input_order():
    proposals = distribute([SUN, SAT], [A, B], [], [])
    assert [(p.date, p.emp_id) for p in proposals] == [(SAT, A.id), (SUN, B.id)]


def test_greedy_does_not_backtrack():
    """
    The first date takes A by tie-break even though only A can work the
    second date. A global optimum would give the first date to B; the
    planner intentionally does not look ahead.
    """
    absences = [vacation("v1", B.id, SUN, SUN)]
    proposals = distribute([SAT, SUN], [A, B], absences, [])
    assert [p.emp_id for p in proposals] == [A.id, A.id]


def test_skip_date_when_nobody_is_available():
    absences = [vacation("v1", A.id, SAT, SAT), vacation("v2", B.id, SAT, SAT)]

    proposals, skipped = plan_assignments([SAT, SUN], [A, B], absences, [])

    assert [p.date for p in proposals] == [SUN]
    assert skipped == [SAT]


def test_shift_free_wish_blocks_assignment():
    absences = [Absence("w1", A.id, AbsenceType.SHIFT_FREE, SAT, SAT)]
    proposals = distribute([SAT], [A, B], absences, [])
    assert proposals[0].emp_id == B.id


def test_open_slots_keep_their_id_and_type():
    slot = Shift("open-1", SAT, None, "24h")
    proposals = distribute([slot], [A, B], [], [slot])
    assert proposals == [ProposedAssignment(date=SAT, emp_id=A.id, type="24h", shift_id="open-1")]


def test_two_slots_on_same_date_go_to_different_employees():
    """An employee never ends up with two shifts on the same day."""
    slots = [Shift("o1", SAT), Shift("o2", SAT)]
    proposals = distribute(slots, [A, B], [], slots)
    assert {p.emp_id for p in proposals} == {A.id, B.id}
    assert [p.shift_id for p in proposals] == ["o1", "o2"]


def test_employee_already_working_that_day_is_not_chosen():
    existing = [Shift("e1", SAT, A.id), Shift("o1", SAT)]
    proposals = distribute(open_slots(existing), [A, B], [], existing)
    assert proposals[0].emp_id == B.id


def test_empty_roster_proposes_nothing():
    proposals, skipped = plan_assignments([SAT], [], [], [])
    assert proposals == []
    assert skipped == [SAT]


def test_open_weekend_dates_skips_dates_with_any_shift():
    period = Period(date(2024, 7, 6), date(2024, 7, 14))
    existing = [Shift("s1", date(2024, 7, 6), A.id), Shift("s2", SAT, None)]
    assert open_weekend_dates(period, existing) == [date(2024, 7, 7), SUN]


def test_open_slots_restricted_to_period():
    shifts = [Shift("s1", SAT), Shift("s2", date(2024, 8, 3)), Shift("s3", SUN, A.id)]
    assert [s.id for s in open_slots(shifts, Period(SAT, SUN))] == ["s1"]


def test_end_to_end_weekend_scenario(planner, data_manager):
    """
    A is on vacation the whole weekend, so both days go to B. No conflicts
    arise, and with a limit of zero each day carries one warning.
    """
    emp_a = data_manager.get_employee_by_name("A")
    emp_b = data_manager.get_employee_by_name("B")
    data_manager.add_absence(emp_a.id, "vacation", "2024-07-06", "2024-07-07")
    data_manager.set_max_away(0)

    result = planner.auto_distribute()
    snapshot = data_manager.snapshot()

    assert [s.emp_id for s in result.committed] == [emp_b.id, emp_b.id]
    assert shift_counts(snapshot.employees, snapshot.shifts) == {emp_a.id: 0, emp_b.id: 2}
    assert find_conflicts(snapshot.absences, snapshot.shifts, snapshot.employees) == []

    warnings = find_over_capacity_days(
        data_manager.get_period(), snapshot.employees, snapshot.absences, data_manager.get_max_away()
    )
    assert [(w.date, w.count, w.limit) for w in warnings] == [
        (date(2024, 7, 6), 1, 0),
        (date(2024, 7, 7), 1, 0),
    ]


def test_propose_does_not_write(planner, data_manager):
    result = planner.propose()
    assert len(result.proposals) == 2
    assert data_manager.get_shifts() == []


def test_propose_fills_open_slots_and_new_weekend_dates(planner, data_manager):
    open_shift = data_manager.add_shift("2024-07-06", shift_type="24h")

    result = planner.propose()

    assert [(p.date, p.shift_id, p.type) for p in result.proposals] == [
        (date(2024, 7, 6), open_shift.id, "24h"),
        (date(2024, 7, 7), None, "weekend"),
    ]


def test_auto_distribute_requires_planner(planner):
    with pytest.raises(PermissionDeniedError):
        planner.auto_distribute(role=Role.EMPLOYEE)


def test_commit_skips_dates_taken_since_proposal(planner, data_manager):
    """
    Why this is important: another planner may write between our proposal
    and our commit. The re-check prevents a second shift on that date.
    """
    result = planner.propose()
    emp_a = data_manager.get_employee_by_name("A")
    data_manager.add_shift("2024-07-06", emp_a.id)

    committed = data_manager.commit_assignments(result.proposals)

    assert [s.date for s in committed] == [date(2024, 7, 7)]
    assert len(data_manager.get_shifts()) == 2


def test_repeated_runs_are_idempotent(planner, data_manager):
    first = planner.auto_distribute()
    second = planner.auto_distribute()
    assert len(first.committed) == 2
    assert second.proposals == []
    assert len(data_manager.get_shifts()) == 2
