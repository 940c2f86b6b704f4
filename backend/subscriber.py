"""
Kiosk-side mirror of the shared collections.

The mirror is disposable: every state update replaces it wholesale and is
written through to local storage so a restarted kiosk boots with the last
thing it saw.
"""
import logging
from typing import Callable, List

from pydantic import ValidationError

from local_store import LocalStore
from protocol import CollectionKind, Role, StateUpdate, parse_message, snapshot_request, state_update
from schemas import AttendanceRecord, Employee

logger = logging.getLogger("relay_logger")

STORAGE_KEYS = {
    CollectionKind.ROSTER: "employees",
    CollectionKind.ATTENDANCE_LOG: "attendanceRecords",
}


class SubscriberMirror:
    """
    Read-only mirror held by one kiosk.

    With ``share_attendance`` the kiosk also pushes its attendance log back
    through the relay after each scan; without it scans stay local.
    """

    def __init__(self, emit: Callable[[dict], None], store: LocalStore, share_attendance: bool = True):
        self.emit = emit
        self.store = store
        self.share_attendance = share_attendance
        self.employees: List[Employee] = []
        self.attendance_records: List[AttendanceRecord] = []

    def boot(self) -> None:
        """Rehydrate from local storage, then ask the relay for a snapshot."""
        self.employees = self._load(CollectionKind.ROSTER, Employee)
        self.attendance_records = self._load(CollectionKind.ATTENDANCE_LOG, AttendanceRecord)
        logger.info(
            f"Kiosk rehydrated {len(self.employees)} employees, "
            f"{len(self.attendance_records)} attendance records from local storage"
        )
        self.emit(snapshot_request(Role.SUBSCRIBER))

    def _load(self, kind: CollectionKind, model) -> List:
        stored = self.store.get(STORAGE_KEYS[kind], [])
        try:
            return [model.model_validate(item) for item in stored]
        except (ValidationError, TypeError) as e:
            logger.warning(f"Discarding stale {kind.value} in local storage: {e}")
            return []

    def apply_update(self, message) -> bool:
        """Replace the mirror for the update's kind. Returns False if dropped."""
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
        self._persist(update.type)
        return True

    def record_attendance(self, record: AttendanceRecord) -> None:
        self.attendance_records = [*self.attendance_records, record]
        self._persist(CollectionKind.ATTENDANCE_LOG)
        if self.share_attendance:
            self.emit(state_update(CollectionKind.ATTENDANCE_LOG, self.attendance_records))

    def _persist(self, kind: CollectionKind) -> None:
        entries = self.employees if kind == CollectionKind.ROSTER else self.attendance_records
        self.store.set(STORAGE_KEYS[kind], [e.to_wire() for e in entries])
