"""
Availability and Conflict Engine

Cross-references absences against days and shifts to answer who is
available when, which shifts collide with an absence, and which days
have more people on vacation than the configured limit.

All functions are pure: they take snapshots and return new values.
Dangling employee ids never raise; they simply fail to resolve to a name.
"""

from datetime import date
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .calendar_utils import Period, enumerate_days, is_weekend
from .models import (
    Absence,
    AbsenceType,
    CapacityWarning,
    Conflict,
    Employee,
    Shift,
)


# Both kinds of wish block shift assignment; only vacation counts toward capacity.
BLOCKING_ABSENCE_TYPES = frozenset({AbsenceType.VACATION, AbsenceType.SHIFT_FREE})


class DayStatus(Enum):
    """Overview matrix cell classification, highest precedence first"""
    CONFLICT = "conflict"
    SHIFT = "shift"
    VACATION = "vacation"
    SHIFT_FREE = "shift_free"
    WEEKEND = "weekend"
    FREE = "free"


def _absence_order(absence: Absence) -> Tuple[date, str]:
    return (absence.start, absence.id)


def absence_on(day: date, emp_id: str, absences: Iterable[Absence]) -> Optional[Absence]:
    """
    Return the absence covering day for emp_id, or None.

    When several absences of the employee overlap the day, the one with the
    earliest start wins, then the lowest id.
    """
    matches = [a for a in absences if a.emp_id == emp_id and a.covers(day)]
    if not matches:
        return None
    return min(matches, key=_absence_order)


def shift_on(day: date, emp_id: str, shifts: Iterable[Shift]) -> Optional[Shift]:
    """Return the shift emp_id holds on day (lowest id if duplicated), or None"""
    matches = [s for s in shifts if s.emp_id == emp_id and s.date == day]
    if not matches:
        return None
    return min(matches, key=lambda s: s.id)


def is_available(day: date, emp_id: str, absences: Iterable[Absence],
                 blocking_types: frozenset = BLOCKING_ABSENCE_TYPES) -> bool:
    """True if no blocking absence of emp_id covers day"""
    return not any(
        a.emp_id == emp_id and a.type in blocking_types and a.covers(day)
        for a in absences
    )


def available_employees(day: date, employees: Sequence[Employee],
                        absences: Sequence[Absence]) -> List[Employee]:
    """Employees free for a shift on day, in roster order"""
    return [emp for emp in employees if is_available(day, emp.id, absences)]


def suggest_employee(day: date, employees: Sequence[Employee],
                     absences: Sequence[Absence]) -> Optional[Employee]:
    """First available employee, used as the default pick for a manual shift"""
    candidates = available_employees(day, employees, absences)
    return candidates[0] if candidates else None


def find_conflicts(absences: Sequence[Absence], shifts: Iterable[Shift],
                   employees: Iterable[Employee]) -> List[Conflict]:
    """
    Pair every assigned shift with the absence covering its date.

    Ordered by shift date, then employee name. Shifts of unknown employees
    still produce a conflict, with employee_name None, sorted after the
    named ones of the same day.
    """
    names = {emp.id: emp.name for emp in employees}
    conflicts = []
    for shift in shifts:
        if shift.emp_id is None:
            continue
        absence = absence_on(shift.date, shift.emp_id, absences)
        if absence is not None:
            conflicts.append(Conflict(
                shift=shift,
                absence=absence,
                employee_name=names.get(shift.emp_id),
            ))

    conflicts.sort(key=lambda c: (
        c.shift.date,
        c.employee_name is None,
        c.employee_name or "",
        c.shift.id,
    ))
    return conflicts


def away_counts(period: Period, employees: Sequence[Employee],
                absences: Sequence[Absence]) -> List[Tuple[date, int]]:
    """Number of roster employees on vacation for each day of the period"""
    vacations: Dict[str, List[Absence]] = {emp.id: [] for emp in employees}
    for absence in absences:
        if absence.type is AbsenceType.VACATION and absence.emp_id in vacations:
            vacations[absence.emp_id].append(absence)

    counts = []
    for day in enumerate_days(period):
        away = sum(
            1 for emp_absences in vacations.values()
            if any(a.covers(day) for a in emp_absences)
        )
        counts.append((day, away))
    return counts


def find_over_capacity_days(period: Period, employees: Sequence[Employee],
                            absences: Sequence[Absence], max_away: int) -> List[CapacityWarning]:
    """Warn for every day on which more than max_away employees are on vacation"""
    return [
        CapacityWarning(date=day, count=count, limit=max_away)
        for day, count in away_counts(period, employees, absences)
        if count > max_away
    ]


def shift_counts(employees: Iterable[Employee], shifts: Iterable[Shift]) -> Dict[str, int]:
    """
    Current load per roster employee.

    A second shift for the same employee on the same date is a duplicate and
    is not counted twice. Shifts of unknown employees are ignored.
    """
    counts = {emp.id: 0 for emp in employees}
    seen = set()
    for shift in shifts:
        if shift.emp_id not in counts:
            continue
        key = (shift.date, shift.emp_id)
        if key in seen:
            continue
        seen.add(key)
        counts[shift.emp_id] += 1
    return counts


def day_status(day: date, emp_id: str, absences: Sequence[Absence],
               shifts: Sequence[Shift]) -> DayStatus:
    """Classify one cell of the employee x day overview"""
    absence = absence_on(day, emp_id, absences)
    has_shift = shift_on(day, emp_id, shifts) is not None

    if absence is not None and has_shift:
        return DayStatus.CONFLICT
    if has_shift:
        return DayStatus.SHIFT
    if absence is not None:
        if absence.type is AbsenceType.VACATION:
            return DayStatus.VACATION
        return DayStatus.SHIFT_FREE
    if is_weekend(day):
        return DayStatus.WEEKEND
    return DayStatus.FREE
