"""
Reporting Module for the Vacation Planner

Builds the derived views the presentation layer renders: the employee x
day overview matrix, the per-day vacation count row, the load summary
and readable conflict/warning messages, as pandas objects or text.
"""

import pandas as pd
from typing import List, Optional

from .availability import (
    away_counts,
    day_status,
    find_conflicts,
    find_over_capacity_days,
    shift_counts,
)
from .calendar_utils import Period, enumerate_days, format_date, is_weekend
from .data_manager import DataManager, Snapshot
from .models import AbsenceType, CapacityWarning, Conflict


def _short_date(value) -> str:
    return f"{value.day} {value.strftime('%b')}"


def conflict_message(conflict: Conflict) -> str:
    """Human-readable line for one conflict"""
    name = conflict.employee_name or f"Unknown employee ({conflict.shift.emp_id})"
    kind = "vacation" if conflict.absence.type is AbsenceType.VACATION else "a shift-free wish"
    return (
        f"Conflict: {name} has a weekend shift on {_short_date(conflict.shift.date)} "
        f"but has {kind} in this period."
    )


def warning_message(warning: CapacityWarning) -> str:
    """Human-readable line for one over-capacity day"""
    return (
        f"On {_short_date(warning.date)} there are {warning.count} employees on vacation "
        f"(the limit is {warning.limit})."
    )


def build_overview_matrix(period: Period, snapshot: Snapshot) -> pd.DataFrame:
    """Employees as rows, ISO dates as columns, DayStatus values as cells"""
    days = enumerate_days(period)
    columns = [format_date(day) for day in days]
    rows = [
        [day_status(day, emp.id, snapshot.absences, snapshot.shifts).value for day in days]
        for emp in snapshot.employees
    ]
    index = pd.Index([emp.name for emp in snapshot.employees], name="Employee")
    return pd.DataFrame(rows, index=index, columns=columns)


def build_away_counts(period: Period, snapshot: Snapshot, max_away: int) -> pd.DataFrame:
    """Per-day vacation head count with an over-limit flag"""
    data = []
    for day, count in away_counts(period, snapshot.employees, snapshot.absences):
        data.append({
            'Date': format_date(day),
            'Weekend': is_weekend(day),
            'Away': count,
            'Over_Limit': count > max_away,
        })
    return pd.DataFrame(data, columns=['Date', 'Weekend', 'Away', 'Over_Limit'])


def build_load_summary(snapshot: Snapshot) -> pd.DataFrame:
    """Weekend shift count per employee, in roster order"""
    counts = shift_counts(snapshot.employees, snapshot.shifts)
    data = []
    for emp in snapshot.employees:
        data.append({
            'ID': emp.id,
            'Employee': emp.name,
            'Shifts': counts[emp.id],
            'Absences': sum(1 for a in snapshot.absences if a.emp_id == emp.id),
        })
    return pd.DataFrame(data, columns=['ID', 'Employee', 'Shifts', 'Absences'])


class ReportGenerator:
    """Derives conflicts, warnings and summary tables from the data manager"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager

    def _period(self, period: Optional[Period]) -> Period:
        return period or self.data_manager.get_period()

    def conflicts(self) -> List[Conflict]:
        snapshot = self.data_manager.snapshot()
        return find_conflicts(snapshot.absences, snapshot.shifts, snapshot.employees)

    def warnings(self, period: Optional[Period] = None) -> List[CapacityWarning]:
        snapshot = self.data_manager.snapshot()
        return find_over_capacity_days(
            self._period(period), snapshot.employees, snapshot.absences,
            self.data_manager.get_max_away(),
        )

    def overview(self, period: Optional[Period] = None) -> pd.DataFrame:
        return build_overview_matrix(self._period(period), self.data_manager.snapshot())

    def away_counts(self, period: Optional[Period] = None) -> pd.DataFrame:
        return build_away_counts(
            self._period(period), self.data_manager.snapshot(), self.data_manager.get_max_away()
        )

    def load_summary(self) -> pd.DataFrame:
        return build_load_summary(self.data_manager.snapshot())

    def create_dashboard_summary(self, period: Optional[Period] = None) -> str:
        """Create text summary for console display"""
        period = self._period(period)
        snapshot = self.data_manager.snapshot()
        conflicts = find_conflicts(snapshot.absences, snapshot.shifts, snapshot.employees)
        warnings = find_over_capacity_days(
            period, snapshot.employees, snapshot.absences, self.data_manager.get_max_away()
        )
        loads = build_load_summary(snapshot)
        open_shifts = sum(1 for s in snapshot.shifts if s.is_open and s.date in period)

        summary = f"""
PLANNING SUMMARY - {format_date(period.start)} to {format_date(period.end)}

Team Overview:
• Employees: {len(snapshot.employees)}
• Absences: {len(snapshot.absences)}
• Weekend Shifts: {len(snapshot.shifts)} ({open_shifts} open in period)
• Vacation Limit: {self.data_manager.get_max_away()} per day

Issues:
• Conflicts: {len(conflicts)}
• Over-Capacity Days: {len(warnings)}
"""
        for conflict in conflicts:
            summary += f"\n• {conflict_message(conflict)}"
        for warning in warnings:
            summary += f"\n• {warning_message(warning)}"

        if not loads.empty:
            summary += "\n\nShift Distribution:\n"
            summary += loads.to_string(index=False)

        return summary.strip()
