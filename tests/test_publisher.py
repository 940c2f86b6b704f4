from datetime import date

import pytest

from publisher import EmployeeNotFound, EnrollmentError, PendingEnrollment, PublisherSession
from schemas import AttendanceRecord, WorkingHours


@pytest.fixture
def emitted():
    return []


@pytest.fixture
def session(emitted, today):
    return PublisherSession(emitted.append, today=lambda: today)


def record(record_id, employee_id, status="present", day="2024-01-29"):
    return AttendanceRecord(
        id=record_id, employee_id=employee_id, employee_name=employee_id,
        date=day, check_in="09:00:00", status=status,
    )


def test_start_announces_then_publishes_empty_collections(session, emitted):
    session.start()
    assert emitted == [
        {"role": "publisher"},
        {"type": "roster", "payload": []},
        {"type": "attendance-log", "payload": []},
    ]


def test_enrollment_requires_face_capture_before_commit(session, emitted):
    session.begin_enrollment(PendingEnrollment(name="John Doe", department="Engineering"))
    assert session.employees == []
    assert emitted == []

    employee = session.complete_enrollment('{"images": ["a", "b", "c"]}')

    assert employee.id == "EMP001"
    assert employee.join_date == "2024-01-29"
    assert employee.status == "active"
    assert employee.working_hours == WorkingHours()
    assert session.pending is None
    assert len(emitted) == 1
    assert emitted[0]["type"] == "roster"
    assert emitted[0]["payload"][0]["id"] == "EMP001"
    assert emitted[0]["payload"][0]["faceData"] == '{"images": ["a", "b", "c"]}'


def test_complete_without_pending_enrollment_fails(session):
    with pytest.raises(EnrollmentError):
        session.complete_enrollment("template")


def test_empty_template_keeps_enrollment_pending(session, emitted):
    session.begin_enrollment(PendingEnrollment(name="Jane"))
    with pytest.raises(EnrollmentError):
        session.complete_enrollment("")
    assert session.pending is not None
    assert emitted == []


def test_blank_name_is_rejected(session):
    with pytest.raises(EnrollmentError):
        session.begin_enrollment(PendingEnrollment(name="   "))


def test_cancel_enrollment_commits_nothing(session, emitted):
    session.begin_enrollment(PendingEnrollment(name="Jane"))
    session.cancel_enrollment()
    with pytest.raises(EnrollmentError):
        session.complete_enrollment("template")
    assert session.employees == []
    assert emitted == []


def test_ids_follow_roster_size_and_skip_ids_in_use(session, enroll):
    for name in ("A", "B", "C"):
        enroll(session, name)
    assert [e.id for e in session.employees] == ["EMP001", "EMP002", "EMP003"]

    session.delete_employee("EMP001")
    assert enroll(session, "D").id == "EMP004"


def test_edit_replaces_entry_by_id(session, enroll, emitted):
    original = enroll(session, "John Doe")
    emitted.clear()

    updated = original.model_copy(update={"department": "Sales", "status": "inactive"})
    session.edit_employee(updated)

    assert session.employees == [updated]
    assert emitted[0]["payload"][0]["department"] == "Sales"
    assert emitted[0]["payload"][0]["status"] == "inactive"


def test_edit_unknown_employee_raises(session, enroll):
    employee = enroll(session, "John Doe")
    with pytest.raises(EmployeeNotFound):
        session.edit_employee(employee.model_copy(update={"id": "EMP999"}))


def test_delete_cascades_to_matching_attendance_only(session, enroll, emitted):
    enroll(session, "A")
    enroll(session, "B")
    session.append_attendance(record("ATT1", "EMP001"))
    session.append_attendance(record("ATT2", "EMP002"))
    session.append_attendance(record("ATT3", "EMP001"))
    emitted.clear()

    session.delete_employee("EMP001")

    assert [e.id for e in session.employees] == ["EMP002"]
    assert [r.id for r in session.attendance_records] == ["ATT2"]
    assert [m["type"] for m in emitted] == ["roster", "attendance-log"]
    assert [r["id"] for r in emitted[1]["payload"]] == ["ATT2"]


def test_delete_unknown_employee_raises(session):
    with pytest.raises(EmployeeNotFound):
        session.delete_employee("EMP001")


def test_append_attendance_republishes_whole_log(session, emitted):
    session.append_attendance(record("ATT1", "EMP001"))
    session.append_attendance(record("ATT2", "EMP001"))
    assert [len(m["payload"]) for m in emitted] == [1, 2]


def test_apply_update_adopts_relayed_collection_without_echo(session, emitted):
    adopted = session.apply_update({
        "type": "attendance-log",
        "payload": [record("ATT7", "EMP001").to_wire()],
    })
    assert adopted
    assert [r.id for r in session.attendance_records] == ["ATT7"]
    assert emitted == []


def test_apply_update_drops_invalid_entries(session, enroll):
    enroll(session, "A")
    adopted = session.apply_update({"type": "roster", "payload": [{"name": "missing id"}]})
    assert not adopted
    assert [e.id for e in session.employees] == ["EMP001"]


def test_dashboard_views(session, enroll):
    enroll(session, "Alice Smith", department="Engineering", email="alice@example.com")
    enroll(session, "Bob Stone", department="Sales", email="bob@example.com")
    session.append_attendance(record("ATT1", "EMP001"))
    session.append_attendance(record("ATT2", "EMP002", status="late"))
    session.append_attendance(record("ATT3", "EMP002", day="2024-01-28"))

    assert session.dashboard_stats() == {
        "total_employees": 2,
        "present_today": 1,
        "late_today": 1,
        "attendance_rate": 50,
    }
    assert [e.name for e in session.search_employees("BOB")] == ["Bob Stone"]
    assert [e.name for e in session.search_employees("example", "Engineering")] == ["Alice Smith"]
    assert session.departments() == ["Engineering", "Sales"]
    assert len(session.todays_attendance(date(2024, 1, 28))) == 1
