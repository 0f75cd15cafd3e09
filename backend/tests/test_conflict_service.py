from datetime import date

import pytest

from thesisguide.core.config import Settings
from thesisguide.core.exceptions import ConflictError, FormatError, ValidationError
from thesisguide.models.guidance_session import SessionStatus, SessionType
from thesisguide.models.user import UserRole
from thesisguide.schemas.scheduling import Caller, CommitmentKind
from thesisguide.services.conflict_service import ConflictService

MONDAY = date(2026, 3, 9)


def test_teaching_block_conflicts_with_student_request(workflow, store, seed, pairing, notifier):
    seed.weekly(pairing["advisor"], 0, "10:00", "12:00", course_name="Operating Systems")

    with pytest.raises(ConflictError) as exc_info:
        workflow.request_session(
            Caller(user_id=pairing["student"], role=UserRole.student),
            scheduled_date=MONDAY,
            start_time="11:00",
            end_time="11:30",
        )

    conflicts = exc_info.value.conflicts
    assert [item.kind for item in conflicts] == [CommitmentKind.teaching]
    assert conflicts[0].role == UserRole.advisor
    assert conflicts[0].label == "Operating Systems"
    assert exc_info.value.details["conflicts"][0]["kind"] == "teaching"
    assert store.list_sessions(start_date=MONDAY, end_date=MONDAY) == []
    assert notifier.sent == []


def test_all_conflicts_are_reported_with_their_source(store, seed, pairing, settings):
    advisor = pairing["advisor"]
    seed.weekly(advisor, 0, "08:00", "10:00")
    seed.block(advisor, MONDAY, "09:00", "12:00", reason="Faculty meeting")
    seed.session(pairing["project"], MONDAY, "09:30", "10:30", status=SessionStatus.approved)

    report = ConflictService(store, settings).detect_conflicts(advisor, UserRole.advisor, MONDAY, "09:00", "11:00")

    assert report.has_conflict
    assert sorted(item.kind.value for item in report.conflicts) == ["guidance", "teaching", "unavailable"]
    guidance = next(item for item in report.conflicts if item.kind == CommitmentKind.guidance)
    assert guidance.session_status == SessionStatus.approved
    assert guidance.location == "Room 301"


def test_student_course_schedule_blocks_booking(store, seed, pairing, settings):
    seed.weekly(pairing["student"], 0, "13:00", "15:00", course_name="Compilers")

    report = ConflictService(store, settings).detect_conflicts(
        pairing["student"], UserRole.student, MONDAY, "14:00", "14:30"
    )

    assert report.kinds == [CommitmentKind.course]
    assert report.conflicts[0].role == UserRole.student


def test_touching_commitments_do_not_conflict(store, seed, pairing, settings):
    seed.weekly(pairing["advisor"], 0, "10:00", "12:00")

    report = ConflictService(store, settings).detect_conflicts(
        pairing["advisor"], UserRole.advisor, MONDAY, "12:00", "12:30"
    )

    assert not report.has_conflict


def test_other_weekday_schedule_is_ignored(store, seed, pairing, settings):
    seed.weekly(pairing["advisor"], 1, "10:00", "12:00")

    report = ConflictService(store, settings).detect_conflicts(
        pairing["advisor"], UserRole.advisor, MONDAY, "10:00", "11:00"
    )

    assert not report.has_conflict


def test_excluded_session_does_not_conflict_with_itself(store, seed, pairing, settings):
    session_id = seed.session(pairing["project"], MONDAY, "09:00", "10:00", status=SessionStatus.pending)
    service = ConflictService(store, settings)

    assert service.detect_conflicts(pairing["advisor"], UserRole.advisor, MONDAY, "09:00", "10:00").has_conflict
    assert not service.detect_conflicts(
        pairing["advisor"],
        UserRole.advisor,
        MONDAY,
        "09:00",
        "10:00",
        exclude_session_id=session_id,
    ).has_conflict


@pytest.mark.parametrize(
    "status",
    [SessionStatus.rejected, SessionStatus.declined, SessionStatus.completed, SessionStatus.cancelled],
)
def test_closed_sessions_free_their_slot(store, seed, pairing, settings, status):
    seed.session(pairing["project"], MONDAY, "09:00", "10:00", status=status)

    report = ConflictService(store, settings).detect_conflicts(
        pairing["advisor"], UserRole.advisor, MONDAY, "09:00", "10:00"
    )

    assert not report.has_conflict


def test_offered_sessions_block_unless_disabled(store, seed, pairing):
    seed.session(pairing["project"], MONDAY, "09:00", "10:00", status=SessionStatus.offered)

    blocking = ConflictService(store, Settings(database_url="sqlite+pysqlite://"))
    lenient = ConflictService(
        store,
        Settings(database_url="sqlite+pysqlite://", offered_sessions_block_bookings=False),
    )

    assert blocking.detect_conflicts(pairing["advisor"], UserRole.advisor, MONDAY, "09:30", "10:00").has_conflict
    assert not lenient.detect_conflicts(pairing["advisor"], UserRole.advisor, MONDAY, "09:30", "10:00").has_conflict


def test_student_sees_group_sessions_they_join(workflow, store, seed, pairing, settings):
    other_student = seed.user(UserRole.student)
    workflow.schedule_session(
        Caller(user_id=pairing["advisor"], role=UserRole.advisor),
        thesis_project_id=pairing["project"],
        scheduled_date=MONDAY,
        start_time="15:00",
        end_time="16:00",
        location="Lab 2",
        session_type=SessionType.group,
        additional_student_ids=[other_student],
    )

    report = ConflictService(store, settings).detect_conflicts(
        other_student, UserRole.student, MONDAY, "15:30", "16:30"
    )

    assert report.kinds == [CommitmentKind.guidance]


def test_check_booking_collects_every_party(store, seed, pairing, settings):
    co_advisor = seed.user(UserRole.advisor)
    seed.weekly(co_advisor, 0, "09:00", "10:00")
    seed.weekly(pairing["student"], 0, "09:00", "10:00")

    report = ConflictService(store, settings).check_booking(
        advisor_ids=[pairing["advisor"], co_advisor],
        student_ids=[pairing["student"]],
        on_date=MONDAY,
        start_time="09:00",
        end_time="09:30",
    )

    assert {(item.actor_id, item.kind) for item in report.conflicts} == {
        (co_advisor, CommitmentKind.teaching),
        (pairing["student"], CommitmentKind.course),
    }


def test_invalid_inputs_are_rejected(store, settings, pairing):
    service = ConflictService(store, settings)

    with pytest.raises(ValidationError):
        service.detect_conflicts(pairing["advisor"], UserRole.admin, MONDAY, "09:00", "10:00")
    with pytest.raises(FormatError) as exc_info:
        service.detect_conflicts(pairing["advisor"], UserRole.advisor, MONDAY, "9:00", "10:00")
    assert exc_info.value.errors[0]["field"] == "start_time"
    with pytest.raises(FormatError) as exc_info:
        service.detect_conflicts(pairing["advisor"], UserRole.advisor, MONDAY, "09:00", "25:00")
    assert exc_info.value.errors[0]["field"] == "end_time"
