"""
Kiosk scan flow: frame -> detect -> recognize -> attendance record.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from attendance import attendance_status, format_duration, to_minutes
from face_capture import decode_image
from recognition import FaceRecognizer
from schemas import AttendanceRecord, Employee, WorkSettings
from subscriber import SubscriberMirror

logger = logging.getLogger("relay_logger")

NOTIFY_STATUSES = ("late", "early", "overtime")


class NoEmployeesEnrolled(Exception):
    """Raised when a scan is attempted before anyone is enrolled."""


@dataclass
class ScanResult:
    success: bool
    employee: Optional[Employee] = None
    action: Optional[str] = None  # "check-in" | "check-out"
    time: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None
    record: Optional[AttendanceRecord] = None
    notification: Optional[dict] = None


class KioskScanner:
    def __init__(self, mirror: SubscriberMirror, recognizer: FaceRecognizer,
                 settings: Optional[WorkSettings] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.mirror = mirror
        self.recognizer = recognizer
        self.settings = settings or WorkSettings()
        self.clock = clock

    def scan(self, image_data: str) -> ScanResult:
        """
        Run one scan against the current mirror.

        Raises:
            FaceCaptureError: if the frame cannot be decoded
            NoEmployeesEnrolled: if the mirrored roster is empty
        """
        image = decode_image(image_data)

        employees = self.mirror.employees
        if not employees:
            raise NoEmployeesEnrolled("No employees enrolled. Please add employees through the admin panel first.")

        if not self.recognizer.detect(image):
            return ScanResult(success=False, message="No face detected")

        employee = self.recognizer.recognize(image, employees)
        if employee is None:
            return ScanResult(success=False, message="Face not recognized")

        now = self.clock()
        status, message = attendance_status(employee, self.settings, now)
        record = self._build_record(employee, status, now)
        self.mirror.record_attendance(record)

        action = "check-in" if record.check_out == "-" else "check-out"
        result = ScanResult(
            success=True,
            employee=employee,
            action=action,
            time=now.strftime("%H:%M:%S"),
            status=status,
            message=message,
            record=record,
        )
        if status in NOTIFY_STATUSES:
            result.notification = {
                "id": f"NOTIF{int(now.timestamp() * 1000)}",
                "type": status,
                "title": f"{status.capitalize()} Alert",
                "message": f"{employee.name} - {message}",
                "employeeId": employee.id,
                "employeeName": employee.name,
                "timestamp": now.isoformat(),
                "read": False,
                "actionRequired": status == "overtime",
            }
            logger.info(f"Admin notification: {result.notification['message']}")

        logger.info(f"Scan {action} for {employee.id} at {result.time} ({status})")
        return result

    def _open_check_in(self, employee_id: str, day: str) -> Optional[AttendanceRecord]:
        """Today's latest check-in for the employee, unless a check-out followed it."""
        open_record = None
        for record in self.mirror.attendance_records:
            if record.employee_id != employee_id or record.date != day:
                continue
            if record.check_in != "-":
                open_record = record
            elif record.check_out != "-":
                open_record = None
        return open_record

    def _record_id(self, now: datetime) -> str:
        """ATT + epoch ms, suffixed when a scan in the same millisecond already took it."""
        base = f"ATT{int(now.timestamp() * 1000)}"
        taken = {r.id for r in self.mirror.attendance_records}
        record_id, n = base, 1
        while record_id in taken:
            n += 1
            record_id = f"{base}-{n}"
        return record_id

    def _build_record(self, employee: Employee, status: str, now: datetime) -> AttendanceRecord:
        day = now.date().isoformat()
        clock_time = now.strftime("%H:%M:%S")
        open_record = self._open_check_in(employee.id, day)

        check_in, check_out, total_hours = clock_time, "-", "-"
        if open_record is not None:
            worked = now.hour * 60 + now.minute - to_minutes(open_record.check_in)
            check_in, check_out, total_hours = "-", clock_time, format_duration(worked)

        return AttendanceRecord(
            id=self._record_id(now),
            employee_id=employee.id,
            employee_name=employee.name,
            date=day,
            check_in=check_in,
            check_out=check_out,
            status="late" if status == "late" else "present",
            total_hours=total_hours,
        )
