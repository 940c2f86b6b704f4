"""
Attendance rules: arrival status against working hours and duration formatting.
"""
from datetime import datetime
from typing import Tuple

from schemas import Employee, WorkSettings, WorkingHours


def to_minutes(hhmm: str) -> int:
    """'09:30' -> 570. Seconds, if present, are ignored."""
    parts = hhmm.split(":")
    return int(parts[0]) * 60 + int(parts[1])


def format_duration(minutes: int) -> str:
    """Format minutes as e.g. '8h 05m'."""
    minutes = max(0, int(minutes))
    return f"{minutes // 60}h {minutes % 60:02d}m"


def scheduled_hours(working_hours: WorkingHours) -> float:
    """Hours between scheduled start and end, break not deducted."""
    return (to_minutes(working_hours.end_time) - to_minutes(working_hours.start_time)) / 60


def attendance_status(employee: Employee, settings: WorkSettings, now: datetime) -> Tuple[str, str]:
    """
    Classify a scan at ``now`` for ``employee``.

    Returns (status, message) where status is one of
    'non-working-day', 'early', 'late', 'overtime', 'on-time'.
    The employee's own schedule decides start/end; the thresholds come from
    the global work settings.
    """
    hours = employee.working_hours
    weekday = now.strftime("%A").lower()

    if weekday not in hours.work_days:
        return "non-working-day", "Today is not a working day for this employee"

    current = now.hour * 60 + now.minute
    start = to_minutes(hours.start_time)
    end = to_minutes(hours.end_time)

    if current < start - settings.early_threshold:
        return "early", f"Early arrival - work starts at {hours.start_time}"
    if current > start + settings.late_threshold:
        return "late", f"Late arrival - work started at {hours.start_time}"
    # Only reached when end + threshold < start + late threshold
    if current > end + settings.overtime_threshold:
        return "overtime", f"Working overtime - work ends at {hours.end_time}"
    return "on-time", "On time"
