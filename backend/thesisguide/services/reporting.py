from __future__ import annotations

from collections import Counter
from datetime import date

from thesisguide.core.exceptions import ValidationError
from thesisguide.models.guidance_session import SessionStatus
from thesisguide.schemas.report import ScheduleReport, ScheduleStatistics
from thesisguide.services.storage import SchedulingStore
from thesisguide.services.time_utils import duration


def schedule_report(
    store: SchedulingStore,
    start_date: date,
    end_date: date,
    *,
    advisor_id: str | None = None,
    student_id: str | None = None,
    status: SessionStatus | None = None,
) -> ScheduleReport:
    """Sessions in [start_date, end_date] ordered by date and time, with summary counts."""
    if end_date < start_date:
        raise ValidationError.for_field("end_date", "End date must not be before start date")

    sessions = store.list_sessions(
        start_date=start_date,
        end_date=end_date,
        advisor_id=advisor_id,
        student_id=student_id,
        status=status,
    )

    primary_advisors: dict[str, str | None] = {}
    for session in sessions:
        if session.thesis_project_id not in primary_advisors:
            project = store.get_project(session.thesis_project_id)
            primary_advisors[session.thesis_project_id] = project.primary_advisor_id if project else None

    by_status = Counter(session.status.value for session in sessions)
    by_advisor = Counter(
        primary_advisors[session.thesis_project_id]
        for session in sessions
        if primary_advisors[session.thesis_project_id] is not None
    )
    by_month = Counter(session.scheduled_date.strftime("%Y-%m") for session in sessions)
    durations = [duration(session.start_time, session.end_time) for session in sessions]

    return ScheduleReport(
        start_date=start_date,
        end_date=end_date,
        sessions=sessions,
        statistics=ScheduleStatistics(
            total=len(sessions),
            by_status=dict(by_status),
            by_advisor=dict(by_advisor),
            by_month=dict(sorted(by_month.items())),
            average_duration_minutes=round(sum(durations) / len(durations), 1) if durations else 0.0,
        ),
    )
