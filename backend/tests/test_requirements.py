from datetime import date

import pytest

from thesisguide.core.exceptions import NotFoundError
from thesisguide.models.guidance_session import SessionStatus
from thesisguide.models.notification import NotificationType
from thesisguide.models.thesis import ThesisType
from thesisguide.models.user import UserRole
from thesisguide.schemas.scheduling import PeriodRecord
from thesisguide.services.requirements import RequirementEvaluator, count_guidance, send_guidance_reminders


def seed_history(seed, project_id, before_cp1, between, after_cp2=0, status=SessionStatus.completed):
    for day in range(before_cp1):
        seed.session(project_id, date(2026, 3, 2 + day), status=status)
    for day in range(between):
        seed.session(project_id, date(2026, 5, 4 + day), status=status)
    for day in range(after_cp2):
        seed.session(project_id, date(2026, 7, 1 + day), status=status)


def test_checkpoint_one_shortfall_fails_despite_total(store, seed, pairing, settings):
    seed_history(seed, pairing["project"], before_cp1=1, between=3)

    report = RequirementEvaluator(store, settings).evaluate(pairing["student"])

    assert report.counts.before_checkpoint1 == 1
    assert report.counts.before_checkpoint2 == 3
    assert report.counts.cumulative_before_checkpoint2 == 4
    assert report.counts.total == 4
    assert (report.required.before_checkpoint1, report.required.before_checkpoint2, report.required.total) == (2, 2, 4)
    assert report.breakdown.checkpoint1_met is False
    assert report.breakdown.checkpoint2_met is True
    assert report.breakdown.total_met is True
    assert report.meets_requirement is False


def test_requirement_met_and_only_completed_sessions_count(store, seed, pairing, settings):
    seed_history(seed, pairing["project"], before_cp1=2, between=2, after_cp2=1)
    seed_history(seed, pairing["project"], before_cp1=3, between=0, status=SessionStatus.approved)
    seed_history(seed, pairing["project"], before_cp1=2, between=2, status=SessionStatus.cancelled)

    report = RequirementEvaluator(store, settings).evaluate(pairing["student"])

    assert report.counts.model_dump() == {
        "before_checkpoint1": 2,
        "before_checkpoint2": 2,
        "cumulative_before_checkpoint2": 4,
        "total": 5,
    }
    assert report.meets_requirement is True


def test_checkpoint_dates_are_exclusive_upper_bounds():
    sessions_on = [date(2026, 4, 15), date(2026, 6, 15), date(2026, 4, 14)]

    class Completed:
        status = SessionStatus.completed

        def __init__(self, scheduled_date):
            self.scheduled_date = scheduled_date

    period = PeriodRecord(
        id="period-1",
        name="2025/2026 Even",
        start_date=date(2026, 1, 1),
        end_date=date(2026, 12, 31),
        checkpoint1_date=date(2026, 4, 15),
        checkpoint2_date=date(2026, 6, 15),
    )
    counts = count_guidance([Completed(value) for value in sessions_on], period)

    assert counts.before_checkpoint1 == 1
    assert counts.before_checkpoint2 == 1
    assert counts.total == 3


def test_sessions_outside_the_period_do_not_count(store, seed, pairing, settings):
    seed.session(pairing["project"], date(2025, 3, 1))
    seed.session(pairing["project"], date(2025, 3, 8))
    seed.session(pairing["project"], date(2027, 2, 1))
    seed_history(seed, pairing["project"], before_cp1=1, between=0)

    report = RequirementEvaluator(store, settings).evaluate(pairing["student"])

    assert report.counts.before_checkpoint1 == 1
    assert report.counts.total == 1
    assert report.breakdown.checkpoint1_met is False


def test_evaluation_is_repeatable(store, seed, pairing, settings):
    seed_history(seed, pairing["project"], before_cp1=1, between=1)
    evaluator = RequirementEvaluator(store, settings)

    assert evaluator.evaluate(pairing["student"]) == evaluator.evaluate(pairing["student"])


def test_ta2_uses_its_own_minimums(store, seed, settings):
    advisor = seed.user(UserRole.advisor)
    student = seed.user(UserRole.student)
    period = seed.period(checkpoint1=date(2026, 4, 15), checkpoint2=date(2026, 6, 15))
    project = seed.project(student, [advisor], thesis_type=ThesisType.ta2, period_id=period)
    seed_history(seed, project, before_cp1=2, between=3)

    report = RequirementEvaluator(store, settings).evaluate(student)

    assert report.thesis_type == ThesisType.ta2
    assert report.required.before_checkpoint1 == 3
    assert report.meets_requirement is False


def test_thesis_type_override(store, seed, pairing, settings):
    seed_history(seed, pairing["project"], before_cp1=2, between=2)

    report = RequirementEvaluator(store, settings).evaluate(pairing["student"], thesis_type=ThesisType.ta2)

    assert report.required.total == 6
    assert report.meets_requirement is False


def test_missing_project_or_period_is_not_found(store, seed, settings):
    evaluator = RequirementEvaluator(store, settings)
    student = seed.user(UserRole.student)

    with pytest.raises(NotFoundError):
        evaluator.evaluate(student)

    seed.project(student, [seed.user(UserRole.advisor)])
    with pytest.raises(NotFoundError):
        evaluator.evaluate(student)


def test_insufficient_students_lists_only_shortfalls(store, seed, pairing, settings):
    seed_history(seed, pairing["project"], before_cp1=2, between=2)
    behind = seed.user(UserRole.student, "Sari")
    behind_project = seed.project(behind, [pairing["advisor"]], period_id=pairing["period"], title="Graph mining")
    seed_history(seed, behind_project, before_cp1=1, between=0)
    other_period = seed.period(
        checkpoint1=date(2026, 4, 15), checkpoint2=date(2026, 6, 15), is_active=False, name="Other"
    )
    seed.project(seed.user(UserRole.student), [pairing["advisor"]], period_id=other_period)

    entries = RequirementEvaluator(store, settings).insufficient_students()

    assert [entry.student.id for entry in entries] == [behind]
    assert entries[0].thesis_title == "Graph mining"
    assert [user.id for user in entries[0].supervisors] == [pairing["advisor"]]
    assert entries[0].report.counts.before_checkpoint1 == 1


def test_reminders_go_to_each_listed_student(store, seed, pairing, settings, notifier):
    entries = RequirementEvaluator(store, settings).insufficient_students()

    sent = send_guidance_reminders(entries, notifier)

    assert sent == 1
    assert notifier.types_for(pairing["student"]) == [NotificationType.guidance_insufficient]
    assert "0/2" in notifier.sent[0]["message"]


def test_projects_without_a_period_are_listed_for_the_active_one(store, seed, pairing, settings, notifier):
    seed_history(seed, pairing["project"], before_cp1=2, between=2)
    unassigned = seed.user(UserRole.student, "Dewi")
    seed.project(unassigned, [pairing["advisor"]], period_id=None, title="Unassigned thesis")
    evaluator = RequirementEvaluator(store, settings)

    assert evaluator.evaluate(unassigned).meets_requirement is False
    entries = evaluator.insufficient_students()

    assert [entry.student.id for entry in entries] == [unassigned]
    assert entries[0].report.period_id == pairing["period"]
    assert send_guidance_reminders(entries, notifier) == 1
    assert notifier.types_for(unassigned) == [NotificationType.guidance_insufficient]
