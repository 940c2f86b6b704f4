"""
Pydantic models for the replicated collections.

Entries serialize with camelCase aliases (the shape browser clients send
and expect) and accept snake_case names when built from Python.
"""
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
DEFAULT_WORK_DAYS = WEEKDAYS[:5]


class CamelModel(BaseModel):
    # Unknown fields from browser clients are kept so entries pass back
    # through the relay unchanged
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class WorkingHours(CamelModel):
    """Per-employee schedule."""
    start_time: str = "09:00"
    end_time: str = "18:00"
    break_duration: int = 60  # minutes
    work_days: List[str] = Field(default_factory=lambda: list(DEFAULT_WORK_DAYS))


class Employee(CamelModel):
    """Roster entry."""
    id: str
    name: str
    email: str = ""
    department: str = ""
    position: str = ""
    join_date: str
    status: Literal["active", "inactive"] = "active"
    face_data: str = ""  # opaque template blob
    working_hours: WorkingHours = Field(default_factory=WorkingHours)


class AttendanceRecord(CamelModel):
    """Attendance log entry. Name is a denormalized copy, not a live reference."""
    id: str
    employee_id: str
    employee_name: str
    date: str
    check_in: str = "-"
    check_out: str = "-"
    status: Literal["present", "absent", "late"] = "present"
    total_hours: str = "-"


class WorkSettings(CamelModel):
    """Global thresholds read at startup. Not replicated."""
    start_time: str = "09:00"
    end_time: str = "18:00"
    break_duration: int = 60
    overtime_threshold: int = 30  # minutes after end time
    late_threshold: int = 15  # minutes after start time
    early_threshold: int = 30  # minutes before start time
