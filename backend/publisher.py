"""
Admin-side session: owns the canonical roster and attendance log.

Every mutation updates local state first and then re-emits the whole
affected collection through ``emit``.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from protocol import CollectionKind, Role, StateUpdate, parse_message, snapshot_request, state_update
from schemas import AttendanceRecord, Employee, WorkingHours

logger = logging.getLogger("relay_logger")


class EnrollmentError(Exception):
    """Raised when enrollment is committed out of order or without face data."""


class EmployeeNotFound(KeyError):
    """Raised when an edit or delete targets an unknown employee id."""


@dataclass
class PendingEnrollment:
    """Form details waiting for a successful face capture."""
    name: str
    email: str = ""
    department: str = ""
    position: str = ""
    working_hours: Optional[WorkingHours] = None


class PublisherSession:
    """One admin panel. Construct once per session and call ``start``."""

    def __init__(self, emit: Callable[[dict], None], today: Callable[[], date] = date.today):
        self.emit = emit
        self.today = today
        self.employees: List[Employee] = []
        self.attendance_records: List[AttendanceRecord] = []
        self.pending: Optional[PendingEnrollment] = None

    def start(self) -> None:
        """Announce the role, then push current (initially empty) collections."""
        self.emit(snapshot_request(Role.PUBLISHER))
        self.publish_roster()
        self.publish_attendance()

    def publish_roster(self) -> None:
        self.emit(state_update(CollectionKind.ROSTER, self.employees))

    def publish_attendance(self) -> None:
        self.emit(state_update(CollectionKind.ATTENDANCE_LOG, self.attendance_records))

    # Roster mutations

    def next_employee_id(self) -> str:
        """EMP + zero-padded (roster size + 1), bumped past ids still in use."""
        taken = {e.id for e in self.employees}
        n = len(self.employees) + 1
        while f"EMP{n:03d}" in taken:
            n += 1
        return f"EMP{n:03d}"

    def begin_enrollment(self, details: PendingEnrollment) -> PendingEnrollment:
        """Phase one: hold the form data until face capture finishes."""
        if not details.name.strip():
            raise EnrollmentError("Employee name is required")
        self.pending = details
        return details

    def complete_enrollment(self, face_data: str) -> Employee:
        """Phase two: commit the pending employee with its face template."""
        if self.pending is None:
            raise EnrollmentError("No enrollment in progress")
        if not face_data:
            raise EnrollmentError("Face capture returned no template")

        details = self.pending
        employee = Employee(
            id=self.next_employee_id(),
            name=details.name,
            email=details.email,
            department=details.department,
            position=details.position,
            join_date=self.today().isoformat(),
            status="active",
            face_data=face_data,
            working_hours=details.working_hours or WorkingHours(),
        )
        self.employees = [*self.employees, employee]
        self.pending = None
        logger.info(f"Enrolled {employee.id} ({employee.name})")
        self.publish_roster()
        return employee

    def cancel_enrollment(self) -> None:
        self.pending = None

    def edit_employee(self, employee: Employee) -> Employee:
        if not any(e.id == employee.id for e in self.employees):
            raise EmployeeNotFound(employee.id)
        self.employees = [employee if e.id == employee.id else e for e in self.employees]
        self.publish_roster()
        return employee

    def delete_employee(self, employee_id: str) -> None:
        """Remove the employee and every attendance entry referencing it."""
        if not any(e.id == employee_id for e in self.employees):
            raise EmployeeNotFound(employee_id)
        self.employees = [e for e in self.employees if e.id != employee_id]
        self.attendance_records = [r for r in self.attendance_records if r.employee_id != employee_id]
        logger.info(f"Deleted {employee_id} and its attendance entries")
        self.publish_roster()
        self.publish_attendance()

    # Attendance

    def append_attendance(self, record: AttendanceRecord) -> None:
        self.attendance_records = [*self.attendance_records, record]
        self.publish_attendance()

    # Inbound

    def apply_update(self, message) -> bool:
        """
        Adopt an update relayed from another party by wholesale replacement.

        Not re-emitted. Returns False when the update was dropped.
        """
        update = message if isinstance(message, StateUpdate) else parse_message(message)
        if not isinstance(update, StateUpdate):
            return False
        try:
            if update.type == CollectionKind.ROSTER:
                self.employees = [Employee.model_validate(e) for e in update.payload]
            else:
                self.attendance_records = [AttendanceRecord.model_validate(r) for r in update.payload]
        except ValidationError as e:
            logger.warning(f"Dropped invalid {update.type.value} update: {e.error_count()} errors")
            return False
        return True

    # Dashboard views

    def todays_attendance(self, today: Optional[date] = None) -> List[AttendanceRecord]:
        day = (today or self.today()).isoformat()
        return [r for r in self.attendance_records if r.date == day]

    def dashboard_stats(self, today: Optional[date] = None) -> Dict:
        todays = self.todays_attendance(today)
        present = sum(1 for r in todays if r.status == "present")
        late = sum(1 for r in todays if r.status == "late")
        total = len(self.employees)
        return {
            "total_employees": total,
            "present_today": present,
            "late_today": late,
            "attendance_rate": round(present / total * 100) if total else 0,
        }

    def search_employees(self, term: str = "", department: str = "all") -> List[Employee]:
        term = term.lower()
        return [
            e for e in self.employees
            if (term in e.name.lower() or term in e.email.lower())
            and (department == "all" or e.department == department)
        ]

    def departments(self) -> List[str]:
        return list(dict.fromkeys(e.department for e in self.employees))
