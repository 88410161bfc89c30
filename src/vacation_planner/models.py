"""
Data Records for the Vacation Planner

Plain immutable records shared by the rule engine, the persistence layer
and the reporting layer. Identifiers are opaque strings throughout.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Any, Optional

from .calendar_utils import parse_date, format_date


DEFAULT_SHIFT_TYPE = "weekend"


class AbsenceType(Enum):
    VACATION = "vacation"
    SHIFT_FREE = "shift_free"

    @classmethod
    def parse(cls, value: Any) -> 'AbsenceType':
        """Parse a stored absence type, accepting the legacy "vagtfri" tag"""
        if isinstance(value, cls):
            return value
        if value == "vagtfri":
            return cls.SHIFT_FREE
        return cls(value)


class Role(Enum):
    PLANNER = "planner"
    EMPLOYEE = "employee"


@dataclass(frozen=True)
class Employee:
    """A roster member"""
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Employee':
        # Older data files stored numeric ids
        return cls(id=str(data["id"]), name=data["name"])


@dataclass(frozen=True)
class Absence:
    """A vacation or shift-free wish covering start..end inclusive"""
    id: str
    emp_id: str
    type: AbsenceType
    start: date
    end: date

    @property
    def is_valid(self) -> bool:
        return self.start <= self.end

    def covers(self, day: date) -> bool:
        """True if day falls inside the range; an inverted range covers nothing"""
        return self.start <= day <= self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "empId": self.emp_id,
            "type": self.type.value,
            "start": format_date(self.start),
            "end": format_date(self.end),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Absence':
        return cls(
            id=str(data["id"]),
            emp_id=str(data["empId"]),
            type=AbsenceType.parse(data.get("type", AbsenceType.VACATION.value)),
            start=parse_date(data["start"]),
            end=parse_date(data["end"]),
        )


@dataclass(frozen=True)
class Shift:
    """A single-day shift slot; emp_id is None for an open slot"""
    id: str
    date: date
    emp_id: Optional[str] = None
    type: str = DEFAULT_SHIFT_TYPE

    @property
    def is_open(self) -> bool:
        return self.emp_id is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "empId": self.emp_id,
            "date": format_date(self.date),
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Shift':
        emp_id = data.get("empId")
        # Older clients wrote the number 0 for "nobody selected"
        if emp_id == "" or (type(emp_id) is int and emp_id == 0):
            emp_id = None
        return cls(
            id=str(data["id"]),
            date=parse_date(data["date"]),
            emp_id=str(emp_id) if emp_id is not None else None,
            type=data.get("type") or DEFAULT_SHIFT_TYPE,
        )


@dataclass(frozen=True)
class Conflict:
    """A shift falling inside an absence of the same employee"""
    shift: Shift
    absence: Absence
    employee_name: Optional[str]


@dataclass(frozen=True)
class CapacityWarning:
    """A day on which more employees are on vacation than the limit allows"""
    date: date
    count: int
    limit: int


@dataclass(frozen=True)
class ProposedAssignment:
    """A planner proposal; shift_id is set when it fills an existing open slot"""
    date: date
    emp_id: str
    type: str = DEFAULT_SHIFT_TYPE
    shift_id: Optional[str] = None
