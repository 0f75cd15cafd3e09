from datetime import date, timedelta

import pytest
from sqlalchemy import select

from thesisguide.core.exceptions import ConflictError, NotFoundError, ValidationError
from thesisguide.models.academic_period import AcademicPeriod
from thesisguide.models.user import UserRole
from thesisguide.schemas.scheduling import Caller, CommitmentKind
from thesisguide.services import calendar as calendar_service
from thesisguide.services.availability import AvailabilityResolver
from thesisguide.services.conflict_service import ConflictService

MONDAY = date(2026, 3, 9)
TODAY = date(2026, 3, 2)


def advisor_of(pairing):
    return Caller(user_id=pairing["advisor"], role=UserRole.advisor)


def student_of(pairing):
    return Caller(user_id=pairing["student"], role=UserRole.student)


def next_weekday(start: date, weekday: int) -> date:
    candidate = start
    while candidate.weekday() != weekday:
        candidate += timedelta(days=1)
    return candidate


def test_teaching_schedule_feeds_the_conflict_checker(session_factory, store, settings, pairing):
    with session_factory() as db:
        calendar_service.add_weekly_schedule(
            db,
            advisor_of(pairing),
            {"day_of_week": 0, "start_time": "10:00", "end_time": "12:00", "course_name": "Compilers", "room": "B-2"},
        )
        db.commit()

    report = ConflictService(store, settings).detect_conflicts(
        pairing["advisor"], UserRole.advisor, MONDAY, "11:00", "11:30"
    )

    assert [(item.kind, item.label) for item in report.conflicts] == [(CommitmentKind.teaching, "Compilers")]


def test_overlapping_weekly_entries_are_rejected(session_factory, pairing):
    student = student_of(pairing)
    with session_factory() as db:
        first = calendar_service.add_weekly_schedule(
            db, student, {"day_of_week": 1, "start_time": "08:00", "end_time": "10:00", "course_name": "Statistics"}
        )
        calendar_service.add_weekly_schedule(
            db, student, {"day_of_week": 1, "start_time": "10:00", "end_time": "11:00", "course_name": "Ethics"}
        )
        db.commit()

        with pytest.raises(ConflictError) as exc_info:
            calendar_service.add_weekly_schedule(
                db, student, {"day_of_week": 1, "start_time": "09:30", "end_time": "10:30", "course_name": "Networks"}
            )
        assert {item.label for item in exc_info.value.conflicts} == {"Statistics", "Ethics"}
        assert exc_info.value.conflicts[0].kind == CommitmentKind.course

        moved = calendar_service.update_weekly_schedule(db, student, first.id, {"start_time": "07:30"})
        assert (moved.start_time, moved.end_time) == ("07:30", "10:00")

        with pytest.raises(ValidationError) as exc_info:
            calendar_service.update_weekly_schedule(db, student, first.id, {"end_time": "07:00"})
        assert exc_info.value.errors[0]["field"] == "end_time"


def test_weekly_entries_belong_to_their_owner(session_factory, seed, pairing):
    other = Caller(user_id=seed.user(UserRole.student), role=UserRole.student)
    with session_factory() as db:
        row = calendar_service.add_weekly_schedule(
            db,
            student_of(pairing),
            {"day_of_week": 2, "start_time": "08:00", "end_time": "09:00", "course_name": "Statistics"},
        )
        db.commit()

        with pytest.raises(NotFoundError):
            calendar_service.delete_weekly_schedule(db, other, row.id)
        calendar_service.delete_weekly_schedule(db, student_of(pairing), row.id)
        db.commit()

        assert calendar_service.list_weekly_schedules(db, pairing["student"]) == []


def test_availability_window_rules_and_toggle(session_factory, store, settings, pairing):
    advisor = advisor_of(pairing)
    with session_factory() as db:
        with pytest.raises(ValidationError) as exc_info:
            calendar_service.add_availability_window(
                db, advisor, {"start_time": "13:00", "end_time": "15:00", "is_recurring": True}
            )
        assert exc_info.value.errors == [
            {"field": "day_of_week", "message": "Recurring windows need a day of week"}
        ]
        with pytest.raises(ValidationError):
            calendar_service.add_availability_window(db, advisor, {"start_time": "13:00", "end_time": "15:00"})

        window = calendar_service.add_availability_window(
            db,
            advisor,
            {
                "start_time": "13:00",
                "end_time": "15:00",
                "is_recurring": True,
                "day_of_week": 0,
                "specific_date": date(2026, 3, 10),
            },
        )
        db.commit()
        assert window.specific_date is None
        assert window.is_active is True

    resolver = AvailabilityResolver(store, settings)
    assert [(slot.start_time, slot.available) for slot in resolver.resolve(pairing["advisor"], MONDAY)] == [
        ("13:00", True)
    ]

    with session_factory() as db:
        calendar_service.set_availability_window_active(db, advisor, window.id, False)
        db.commit()
    assert resolver.resolve(pairing["advisor"], MONDAY) == []

    with session_factory() as db:
        one_off = calendar_service.update_availability_window(
            db, advisor, window.id, {"is_recurring": False, "specific_date": MONDAY + timedelta(days=1)}
        )
        assert (one_off.is_recurring, one_off.day_of_week) == (False, None)


def test_unavailability_block_is_a_commitment(session_factory, store, settings, pairing):
    advisor = advisor_of(pairing)
    with session_factory() as db:
        with pytest.raises(ValidationError) as exc_info:
            calendar_service.add_unavailability_block(
                db,
                advisor,
                {"block_date": date(2026, 3, 1), "start_time": "09:00", "end_time": "08:00"},
                today=TODAY,
            )
        assert [item["field"] for item in exc_info.value.errors] == ["block_date", "end_time"]

        block = calendar_service.add_unavailability_block(
            db,
            advisor,
            {"block_date": MONDAY, "start_time": "08:00", "end_time": "12:00", "reason": "  Conference  "},
            today=TODAY,
        )
        db.commit()
        assert block.reason == "Conference"

    report = ConflictService(store, settings).detect_conflicts(
        pairing["advisor"], UserRole.advisor, MONDAY, "09:00", "10:00"
    )
    assert [item.kind for item in report.conflicts] == [CommitmentKind.unavailable]

    with session_factory() as db:
        assert [item.id for item in calendar_service.list_unavailability_blocks(db, pairing["advisor"])] == [block.id]
        later = calendar_service.list_unavailability_blocks(db, pairing["advisor"], start_date=MONDAY + timedelta(days=1))
        assert later == []


def test_activating_a_period_deactivates_the_others(session_factory, store, seed, pairing):
    admin = Caller(user_id=seed.user(UserRole.admin), role=UserRole.admin)
    with session_factory() as db:
        period = calendar_service.create_academic_period(
            db,
            admin,
            {
                "name": "2026/2027 Odd",
                "start_date": date(2026, 8, 1),
                "end_date": date(2027, 1, 31),
                "checkpoint1_date": date(2026, 10, 15),
                "checkpoint2_date": date(2027, 1, 10),
                "is_active": True,
            },
        )
        db.commit()

    assert store.get_active_period().id == period.id
    assert store.get_period(pairing["period"]).is_active is False

    with session_factory() as db:
        calendar_service.activate_academic_period(db, admin, pairing["period"])
        db.commit()
        active = list(db.execute(select(AcademicPeriod.id).where(AcademicPeriod.is_active.is_(True))).scalars())

    assert active == [pairing["period"]]


def test_period_dates_and_deletion_rules(session_factory, seed, pairing):
    admin = Caller(user_id=seed.user(UserRole.admin), role=UserRole.admin)
    with session_factory() as db:
        with pytest.raises(ValidationError) as exc_info:
            calendar_service.create_academic_period(
                db,
                admin,
                {
                    "name": "Broken",
                    "start_date": date(2026, 8, 1),
                    "end_date": date(2027, 1, 31),
                    "checkpoint1_date": date(2026, 12, 1),
                    "checkpoint2_date": date(2026, 11, 1),
                },
            )
        assert [item["field"] for item in exc_info.value.errors] == ["checkpoint2_date"]

        with pytest.raises(ValidationError):
            calendar_service.delete_academic_period(db, admin, pairing["period"])
        with pytest.raises(NotFoundError):
            calendar_service.activate_academic_period(db, admin, "missing")


def test_calendar_endpoints_drive_booking(client, seed, pairing, auth_headers):
    advisor = auth_headers(pairing["advisor"])
    student = auth_headers(pairing["student"])
    when = next_weekday(date.today() + timedelta(days=1), 3)

    window = client.post(
        "/api/availabilities",
        json={"start_time": "09:00", "end_time": "12:00", "is_recurring": True, "day_of_week": 3},
        headers=advisor,
    )
    assert window.status_code == 201
    blocked = client.post(
        "/api/unavailability",
        json={"block_date": when.isoformat(), "start_time": "09:00", "end_time": "10:00", "reason": "Faculty meeting"},
        headers=advisor,
    )
    assert blocked.status_code == 201

    ranges = client.get(
        "/api/guidance/free-ranges",
        params={"advisor_id": pairing["advisor"], "date": when.isoformat()},
        headers=student,
    )
    assert [(item["start_time"], item["end_time"]) for item in ranges.json()] == [("10:00", "12:00")]

    clash = client.post(
        "/api/guidance/sessions/request",
        json={"scheduled_date": when.isoformat(), "start_time": "09:30", "end_time": "10:30"},
        headers=student,
    )
    assert clash.status_code == 409
    assert clash.json()["details"]["conflicts"][0]["kind"] == "unavailable"

    toggled = client.patch(
        f"/api/availabilities/{window.json()['id']}/toggle", json={"is_active": False}, headers=advisor
    )
    assert toggled.json()["is_active"] is False
    forbidden = client.post(
        "/api/availabilities",
        json={"start_time": "13:00", "end_time": "14:00", "is_recurring": True, "day_of_week": 3},
        headers=student,
    )
    assert forbidden.status_code == 403

    course = client.post(
        "/api/schedules",
        json={"day_of_week": 3, "start_time": "13:00", "end_time": "15:00", "course_name": "Databases"},
        headers=student,
    )
    assert course.status_code == 201
    overlap = client.post(
        "/api/schedules",
        json={"day_of_week": 3, "start_time": "14:00", "end_time": "16:00", "course_name": "Networks"},
        headers=student,
    )
    assert overlap.status_code == 409
    assert [item["course_name"] for item in client.get("/api/schedules", headers=student).json()] == ["Databases"]


def test_period_endpoints_are_admin_only(client, seed, pairing, auth_headers):
    admin = auth_headers(seed.user(UserRole.admin))
    advisor = auth_headers(pairing["advisor"])
    body = {
        "name": "2026/2027 Odd",
        "start_date": "2026-08-01",
        "end_date": "2027-01-31",
        "checkpoint1_date": "2026-10-15",
        "checkpoint2_date": "2027-01-10",
    }

    assert client.post("/api/academic-periods", json=body, headers=advisor).status_code == 403
    created = client.post("/api/academic-periods", json=body, headers=admin)
    assert created.status_code == 201
    assert created.json()["is_active"] is False

    activated = client.post(f"/api/academic-periods/{created.json()['id']}/activate", headers=admin)
    assert activated.json()["is_active"] is True
    assert client.get("/api/academic-periods/active", headers=advisor).json()["id"] == created.json()["id"]
    listed = client.get("/api/academic-periods", headers=advisor).json()
    assert {item["id"]: item["is_active"] for item in listed} == {
        created.json()["id"]: True,
        pairing["period"]: False,
    }
