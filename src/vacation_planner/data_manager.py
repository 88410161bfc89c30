"""
Data Manager for the Vacation Planner

Handles JSON persistence and CRUD operations for employees, absences,
weekend shifts and application settings, and commits planner proposals
one at a time with an "already assigned" re-check before each write.
"""

import json
import logging
import threading
import uuid
from datetime import date
from typing import Dict, List, Optional, Any, Union
from dataclasses import dataclass
from pathlib import Path

from .calendar_utils import Period, default_period, format_date, is_weekend, parse_date
from .models import (
    DEFAULT_SHIFT_TYPE,
    Absence,
    AbsenceType,
    Employee,
    ProposedAssignment,
    Role,
    Shift,
)


APP_VERSION = "1.0.0"
DEFAULT_MAX_AWAY = 3
DEFAULT_ROSTER_SIZE = 10

# Serializes every write so concurrent planners cannot double-assign a slot
_write_lock = threading.RLock()

# Unparseable JSON, or records with missing keys, unknown types or bad dates
_LOAD_ERRORS = (json.JSONDecodeError, IOError, KeyError, ValueError, TypeError)


class DataManagerError(Exception):
    """Base exception for DataManager operations"""
    pass


class DataFileCorruptedError(DataManagerError):
    """Raised when the data file is corrupted"""
    pass


class DataFileNotFoundError(DataManagerError):
    """Raised when the data file is not found"""
    pass


class DataSaveError(DataManagerError):
    """Raised when saving data fails"""
    pass


class DataValidationError(DataManagerError):
    """Raised when data validation fails"""
    pass


class PermissionDeniedError(DataManagerError):
    """Raised when the acting role may not perform an operation"""
    pass


class RecordNotFoundError(DataManagerError):
    """Raised when a referenced record does not exist"""
    pass


@dataclass(frozen=True)
class Snapshot:
    """Immutable view of all records at one point in time"""
    employees: List[Employee]
    absences: List[Absence]
    shifts: List[Shift]


def _new_id() -> str:
    return uuid.uuid4().hex


class DataManager:
    """Manages all data persistence and CRUD operations"""

    def __init__(self, data_file: Union[str, Path] = "data/planner_data.json"):
        if str(data_file) == "data/planner_data.json":
            # Use path relative to the package directory
            data_file = Path(__file__).parent.parent / "data" / "planner_data.json"
        self.data_file = Path(data_file)
        self.data = self._load_or_create_data()

    def _read_file(self, path: Path) -> Dict[str, Any]:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def _load_or_create_data(self) -> Dict[str, Any]:
        """Load existing data or create default structure with recovery from backup"""
        backup_file = self.data_file.with_suffix('.bak')

        if self.data_file.exists():
            try:
                return self._validate_and_migrate_data(self._read_file(self.data_file))
            except _LOAD_ERRORS as e:
                logging.error(f"Error loading main data file {self.data_file}: {e}")
                if not backup_file.exists():
                    raise DataFileCorruptedError(f"Main data file corrupted and no backup available: {e}")
                return self._recover_from_backup(backup_file)

        if backup_file.exists():
            logging.info(f"Main data file missing, attempting recovery from backup {backup_file}")
            return self._recover_from_backup(backup_file)

        logging.info("No data file found, creating default data")
        return self._create_default_data()

    def _recover_from_backup(self, backup_file: Path) -> Dict[str, Any]:
        try:
            logging.info(f"Attempting recovery from backup file {backup_file}")
            data = self._validate_and_migrate_data(self._read_file(backup_file))
            backup_file.replace(self.data_file)
            logging.info("Successfully recovered data from backup")
            return data
        except _LOAD_ERRORS as backup_e:
            logging.error(f"Backup file also corrupted: {backup_e}")
            logging.info("Creating default data due to corrupted files")
            return self._create_default_data()

    def _validate_and_migrate_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and migrate data structure to current version"""
        default_data = self._create_default_data()

        # Older files kept shifts under "weekendShifts"
        if "weekendShifts" in data and "shifts" not in data:
            data["shifts"] = data.pop("weekendShifts")

        for key in default_data:
            if key not in data:
                data[key] = default_data[key]
        for key, value in default_data["settings"].items():
            data["settings"].setdefault(key, value)

        # Normalize ids to strings and legacy type tags through the record classes
        data["employees"] = [Employee.from_dict(e).to_dict() for e in data["employees"]]
        data["absences"] = [Absence.from_dict(a).to_dict() for a in data["absences"]]
        data["shifts"] = [Shift.from_dict(s).to_dict() for s in data["shifts"]]

        return data

    def _create_default_data(self) -> Dict[str, Any]:
        """Create default data structure"""
        period = default_period()
        return {
            "settings": {
                "appVersion": APP_VERSION,
                "periodStart": format_date(period.start),
                "periodEnd": format_date(period.end),
                "maxAway": DEFAULT_MAX_AWAY,
                "defaultShiftType": DEFAULT_SHIFT_TYPE,
                "dataFile": str(self.data_file)
            },
            "employees": [],
            "absences": [],
            "shifts": []
        }

    def _validate_saved_data(self) -> bool:
        """Validate that the saved data file matches current data"""
        try:
            if not self.data_file.exists():
                raise DataFileNotFoundError(f"Saved data file {self.data_file} does not exist")

            saved_data = self._read_file(self.data_file)

            for key in ["settings", "employees", "absences", "shifts"]:
                if key not in saved_data:
                    raise DataValidationError(f"Required section '{key}' missing from saved data")

            if saved_data.get("settings", {}).get("appVersion") != self.data.get("settings", {}).get("appVersion"):
                raise DataValidationError("App version mismatch in saved data")

            return True

        except (json.JSONDecodeError, IOError) as e:
            raise DataValidationError(f"Failed to validate saved data: {e}")

    def save_data(self) -> bool:
        """Save current data to file atomically with validation"""
        temp_file = None
        backup_file = self.data_file.with_suffix('.bak')

        with _write_lock:
            try:
                self.data_file.parent.mkdir(parents=True, exist_ok=True)

                # Keep the previous version as backup
                if self.data_file.exists():
                    self.data_file.replace(backup_file)

                temp_file = self.data_file.with_suffix('.tmp')
                with open(temp_file, 'w', encoding='utf-8') as f:
                    json.dump(self.data, f, indent=2, ensure_ascii=False)

                temp_file.replace(self.data_file)
                self._validate_saved_data()
                return True

            except DataValidationError as e:
                logging.error(f"Data validation failed after save: {e}", exc_info=True)
                if backup_file.exists():
                    try:
                        backup_file.replace(self.data_file)
                    except OSError as restore_e:
                        logging.error(f"Failed to restore from backup: {restore_e}", exc_info=True)
                raise DataSaveError(f"Save operation failed validation: {e}")

            except (IOError, OSError) as e:
                logging.error(f"I/O error during save operation: {e}", exc_info=True)
                raise DataSaveError(f"Failed to save data due to I/O error: {e}")

            finally:
                if temp_file and temp_file.exists():
                    try:
                        temp_file.unlink()
                    except OSError as cleanup_e:
                        logging.error(f"Failed to clean up temporary file {temp_file}: {cleanup_e}", exc_info=True)

    # Settings
    def get_setting(self, key: str, default=None):
        """Get application setting"""
        return self.data.get("settings", {}).get(key, default)

    def set_setting(self, key: str, value):
        """Set application setting"""
        self.data.setdefault("settings", {})[key] = value

    def get_period(self) -> Period:
        fallback = default_period()
        return Period(
            parse_date(self.get_setting("periodStart", format_date(fallback.start))),
            parse_date(self.get_setting("periodEnd", format_date(fallback.end))),
        )

    def set_period(self, start: Union[str, date], end: Union[str, date]):
        """Set the planning window; start must not be after end"""
        start, end = parse_date(start), parse_date(end)
        if start > end:
            raise DataValidationError(f"Period start {start} is after end {end}")
        self.set_setting("periodStart", format_date(start))
        self.set_setting("periodEnd", format_date(end))

    def get_max_away(self) -> int:
        return int(self.get_setting("maxAway", DEFAULT_MAX_AWAY))

    def set_max_away(self, max_away: int):
        if max_away < 0:
            raise DataValidationError(f"maxAway must not be negative, got {max_away}")
        self.set_setting("maxAway", int(max_away))

    def get_default_shift_type(self) -> str:
        return self.get_setting("defaultShiftType", DEFAULT_SHIFT_TYPE)

    def require_planner(self, role: Role, action: str):
        """Raise PermissionDeniedError unless role is PLANNER"""
        if role is not Role.PLANNER:
            raise PermissionDeniedError(f"Only planners may {action}")

    # Employee Management
    def get_employees(self) -> List[Employee]:
        """Get roster in canonical (insertion) order"""
        return [Employee.from_dict(e) for e in self.data.get("employees", [])]

    def get_employee_by_id(self, emp_id: str) -> Optional[Employee]:
        """Get employee by ID"""
        for emp_data in self.data.get("employees", []):
            if emp_data["id"] == emp_id:
                return Employee.from_dict(emp_data)
        return None

    def get_employee_by_name(self, name: str) -> Optional[Employee]:
        """Get employee by name"""
        for emp_data in self.data.get("employees", []):
            if emp_data["name"] == name:
                return Employee.from_dict(emp_data)
        return None

    def add_employee(self, name: str, role: Role = Role.PLANNER) -> Employee:
        """Add new employee with the next free numeric id"""
        self.require_planner(role, "add employees")
        if not name or not name.strip():
            raise DataValidationError("Employee name must not be empty")

        numeric_ids = [int(e["id"]) for e in self.data.get("employees", []) if e["id"].isdigit()]
        employee = Employee(id=str(max(numeric_ids, default=0) + 1), name=name.strip())
        self.data.setdefault("employees", []).append(employee.to_dict())
        return employee

    def rename_employee(self, emp_id: str, name: str, role: Role = Role.PLANNER) -> bool:
        """Change an employee's display name; the id never changes"""
        self.require_planner(role, "rename employees")
        for emp_data in self.data.get("employees", []):
            if emp_data["id"] == emp_id:
                emp_data["name"] = name
                return True
        return False

    def delete_employee(self, emp_id: str, role: Role = Role.PLANNER) -> bool:
        """
        Delete employee from the roster.

        Their absences and shifts are kept; the rule engine treats them as
        belonging to an unknown employee.
        """
        self.require_planner(role, "delete employees")
        employees = self.data.get("employees", [])
        for emp in employees:
            if emp["id"] == emp_id:
                employees.remove(emp)
                return True
        return False

    def seed_default_roster(self, count: int = DEFAULT_ROSTER_SIZE) -> List[Employee]:
        """Populate an empty roster with "Employee 1".."Employee N" """
        if self.data.get("employees"):
            return self.get_employees()
        for number in range(1, count + 1):
            self.add_employee(f"Employee {number}")
        logging.info(f"Seeded default roster with {count} employees")
        return self.get_employees()

    # Absence Management
    def get_absences(self, emp_id: Optional[str] = None) -> List[Absence]:
        """Get absences sorted by start date, optionally for one employee"""
        absences = [Absence.from_dict(a) for a in self.data.get("absences", [])]
        if emp_id is not None:
            absences = [a for a in absences if a.emp_id == emp_id]
        return sorted(absences, key=lambda a: (a.start, a.id))

    def add_absence(self, emp_id: str, absence_type: Union[str, AbsenceType],
                    start: Union[str, date, None], end: Union[str, date, None],
                    role: Role = Role.PLANNER, actor_emp_id: Optional[str] = None) -> Absence:
        """
        Record a vacation or shift-free wish.

        Employees can only file wishes for themselves: for the EMPLOYEE role
        the target is always actor_emp_id.
        """
        if role is Role.EMPLOYEE:
            if actor_emp_id is None:
                raise PermissionDeniedError("Employees must identify themselves to add absences")
            emp_id = actor_emp_id

        if not start or not end:
            raise DataValidationError("Both start and end date are required")
        try:
            absence_type = AbsenceType.parse(absence_type)
        except ValueError:
            raise DataValidationError(f"Unknown absence type: {absence_type}")

        absence = Absence(
            id=_new_id(),
            emp_id=str(emp_id),
            type=absence_type,
            start=parse_date(start),
            end=parse_date(end),
        )
        if not absence.is_valid:
            raise DataValidationError("Start date must be before end date")

        with _write_lock:
            self.data.setdefault("absences", []).append(absence.to_dict())
        return absence

    def delete_absence(self, absence_id: str, role: Role = Role.PLANNER,
                       actor_emp_id: Optional[str] = None) -> bool:
        """Delete an absence; employees may only delete their own"""
        absences = self.data.get("absences", [])
        for abs_data in absences:
            if abs_data["id"] != absence_id:
                continue
            if role is Role.EMPLOYEE and abs_data["empId"] != actor_emp_id:
                raise PermissionDeniedError("Employees may only delete their own absences")
            with _write_lock:
                absences.remove(abs_data)
            return True
        return False

    # Shift Management
    def get_shifts(self) -> List[Shift]:
        """Get shifts sorted by date"""
        shifts = [Shift.from_dict(s) for s in self.data.get("shifts", [])]
        return sorted(shifts, key=lambda s: (s.date, s.id))

    def get_shift_by_id(self, shift_id: str) -> Optional[Shift]:
        for shift_data in self.data.get("shifts", []):
            if shift_data["id"] == shift_id:
                return Shift.from_dict(shift_data)
        return None

    def add_shift(self, shift_date: Union[str, date], emp_id: Optional[str] = None,
                  shift_type: Optional[str] = None, allow_weekday: bool = False,
                  role: Role = Role.PLANNER) -> Shift:
        """Create a shift, assigned or open; weekdays need allow_weekday"""
        self.require_planner(role, "add shifts")
        if not shift_date:
            raise DataValidationError("A shift date is required")

        shift = Shift(
            id=_new_id(),
            date=parse_date(shift_date),
            emp_id=str(emp_id) if emp_id is not None else None,
            type=shift_type or self.get_default_shift_type(),
        )
        if not is_weekend(shift.date) and not allow_weekday:
            raise DataValidationError(f"{format_date(shift.date)} is not a Saturday or Sunday")

        with _write_lock:
            self.data.setdefault("shifts", []).append(shift.to_dict())
        return shift

    def assign_shift(self, shift_id: str, emp_id: Optional[str], role: Role = Role.PLANNER) -> Shift:
        """Change who holds an existing shift without recreating it"""
        self.require_planner(role, "assign shifts")
        emp_id = str(emp_id) if emp_id is not None else None
        with _write_lock:
            shifts = self.data.get("shifts", [])
            for shift_data in shifts:
                if shift_data["id"] != shift_id:
                    continue
                if emp_id is not None and any(
                    s["id"] != shift_id and s["date"] == shift_data["date"] and s["empId"] == emp_id
                    for s in shifts
                ):
                    raise DataValidationError(f"Employee {emp_id} already works on {shift_data['date']}")
                shift_data["empId"] = emp_id
                return Shift.from_dict(shift_data)
        raise RecordNotFoundError(f"Shift {shift_id} does not exist")

    def delete_shift(self, shift_id: str, role: Role = Role.PLANNER) -> bool:
        """Delete shift"""
        self.require_planner(role, "delete shifts")
        shifts = self.data.get("shifts", [])
        for shift_data in shifts:
            if shift_data["id"] == shift_id:
                with _write_lock:
                    shifts.remove(shift_data)
                return True
        return False

    def snapshot(self) -> Snapshot:
        """Current records as immutable lists"""
        return Snapshot(
            employees=self.get_employees(),
            absences=self.get_absences(),
            shifts=self.get_shifts(),
        )

    def commit_assignments(self, proposals: List[ProposedAssignment], save: bool = True) -> List[Shift]:
        """
        Write planner proposals one at a time.

        Each proposal is re-checked against the current data right before it
        is written. A proposal is skipped when its slot has been filled, when
        its date already got a shift, or when the employee already works that
        day. Returns the shifts actually written.
        """
        committed = []
        with _write_lock:
            for proposal in proposals:
                shift = self._commit_one(proposal)
                if shift is not None:
                    committed.append(shift)
            if save and committed:
                self.save_data()

        logging.info(f"Committed {len(committed)} of {len(proposals)} proposed assignments")
        return committed

    def _commit_one(self, proposal: ProposedAssignment) -> Optional[Shift]:
        day = format_date(proposal.date)
        shifts = self.data.setdefault("shifts", [])

        if any(s["date"] == day and s["empId"] == proposal.emp_id for s in shifts):
            logging.warning(f"Skipping proposal: employee {proposal.emp_id} already works on {day}")
            return None

        if proposal.shift_id is not None:
            for shift_data in shifts:
                if shift_data["id"] == proposal.shift_id:
                    if shift_data["empId"] is not None:
                        logging.warning(f"Skipping proposal: shift {proposal.shift_id} was assigned meanwhile")
                        return None
                    shift_data["empId"] = proposal.emp_id
                    return Shift.from_dict(shift_data)
            logging.warning(f"Skipping proposal: shift {proposal.shift_id} no longer exists")
            return None

        if any(s["date"] == day for s in shifts):
            logging.warning(f"Skipping proposal: {day} already has a shift")
            return None

        shift = Shift(id=_new_id(), date=proposal.date, emp_id=proposal.emp_id, type=proposal.type)
        shifts.append(shift.to_dict())
        return shift
