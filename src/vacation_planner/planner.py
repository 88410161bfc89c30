"""
Fair-Share Assignment Planner

Fills open weekend shifts with a single-pass greedy heuristic: dates are
processed in ascending order and each goes to the least-loaded available
employee. Ties go to the employee listed first in the roster. The load of
the chosen employee is bumped before the next date is considered, so
assignments made earlier in the batch count toward fairness.

The heuristic never backtracks. An early date can take the least-loaded
employee even when a later date has fewer candidates; this is the
expected behavior, not something to optimize away.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence, Tuple, Union
import logging

from .availability import is_available, shift_counts
from .calendar_utils import Period, format_date, weekend_days
from .data_manager import DataManager
from .models import (
    DEFAULT_SHIFT_TYPE,
    Absence,
    Employee,
    ProposedAssignment,
    Role,
    Shift,
)

logger = logging.getLogger(__name__)

Target = Union[Shift, date]


@dataclass
class DistributionResult:
    """Outcome of an auto-distribution run"""
    proposals: List[ProposedAssignment]
    committed: List[Shift] = field(default_factory=list)
    skipped_dates: List[date] = field(default_factory=list)
    message: str = ""


def open_slots(shifts: Sequence[Shift], period: Optional[Period] = None) -> List[Shift]:
    """Unassigned shift records, optionally restricted to a period"""
    return [s for s in shifts if s.is_open and (period is None or s.date in period)]


def open_weekend_dates(period: Period, existing_shifts: Sequence[Shift]) -> List[date]:
    """Weekend days of the period that have no shift record at all"""
    covered = {s.date for s in existing_shifts}
    return [day for day in weekend_days(period) if day not in covered]


def _slot_of(target: Target, default_type: str) -> Tuple[date, Optional[str], str]:
    if isinstance(target, Shift):
        return target.date, target.id, target.type or default_type
    return target, None, default_type


def plan_assignments(targets: Sequence[Target], employees: Sequence[Employee],
                     absences: Sequence[Absence], existing_shifts: Sequence[Shift],
                     shift_type: str = DEFAULT_SHIFT_TYPE
                     ) -> Tuple[List[ProposedAssignment], List[date]]:
    """Run the greedy pass, returning the proposals and the dates left unfilled"""
    load = shift_counts(employees, existing_shifts)
    # An employee never gets two shifts on one date
    taken = {(s.date, s.emp_id) for s in existing_shifts if s.emp_id is not None}

    # sorted() is stable: open slots sharing a date keep their input order
    slots = sorted((_slot_of(t, shift_type) for t in targets), key=lambda slot: slot[0])

    proposals = []
    skipped = []
    for day, shift_id, slot_type in slots:
        candidates = [
            emp for emp in employees
            if is_available(day, emp.id, absences) and (day, emp.id) not in taken
        ]
        if not candidates:
            logger.warning(f"No available employee on {format_date(day)}, leaving it unassigned")
            skipped.append(day)
            continue

        # min() keeps the first of equal keys, i.e. roster order breaks ties
        chosen = min(candidates, key=lambda emp: load[emp.id])
        proposals.append(ProposedAssignment(
            date=day,
            emp_id=chosen.id,
            type=slot_type,
            shift_id=shift_id,
        ))
        load[chosen.id] += 1
        taken.add((day, chosen.id))

    return proposals, skipped


def distribute(targets: Sequence[Target], employees: Sequence[Employee],
               absences: Sequence[Absence], existing_shifts: Sequence[Shift],
               shift_type: str = DEFAULT_SHIFT_TYPE) -> List[ProposedAssignment]:
    """
    Propose an employee for every target date.

    Args:
        targets: open Shift records and/or bare dates needing a new shift
        employees: the roster, in its canonical order
        absences: absence snapshot
        existing_shifts: shift snapshot used to seed the load counters
        shift_type: type for targets that do not carry their own

    Dates with no available employee are left out of the result.
    """
    proposals, _ = plan_assignments(targets, employees, absences, existing_shifts, shift_type)
    return proposals


class FairSharePlanner:
    """Runs the greedy planner against the data manager's current snapshot"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager

    def collect_targets(self, period: Period, shifts: Sequence[Shift]) -> List[Target]:
        """Open slots inside the period plus weekend days without any shift"""
        targets: List[Target] = list(open_slots(shifts, period))
        targets.extend(open_weekend_dates(period, shifts))
        return targets

    def propose(self, period: Optional[Period] = None) -> DistributionResult:
        """Compute proposals without writing anything"""
        period = period or self.data_manager.get_period()
        employees = self.data_manager.get_employees()
        absences = self.data_manager.get_absences()
        shifts = self.data_manager.get_shifts()

        targets = self.collect_targets(period, shifts)
        proposals, skipped = plan_assignments(
            targets, employees, absences, shifts,
            shift_type=self.data_manager.get_default_shift_type(),
        )
        logger.info(
            f"Proposed {len(proposals)} assignments for {len(targets)} open dates "
            f"({len(skipped)} without available employees)"
        )
        return DistributionResult(
            proposals=proposals,
            skipped_dates=skipped,
            message=f"Proposed {len(proposals)} new shift assignments",
        )

    def auto_distribute(self, period: Optional[Period] = None,
                        role: Role = Role.PLANNER) -> DistributionResult:
        """Propose and commit; concurrent writers are handled by the commit re-check"""
        self.data_manager.require_planner(role, "auto-distribute shifts")
        result = self.propose(period)
        result.committed = self.data_manager.commit_assignments(result.proposals)
        result.message = f"Auto-distribution complete: {len(result.committed)} shifts added"
        if len(result.committed) < len(result.proposals):
            result.message += f" ({len(result.proposals) - len(result.committed)} already taken)"
        return result
