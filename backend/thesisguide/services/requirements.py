"""Minimum-guidance evaluation against the two checkpoints of an academic period.

The canonical counts are non-overlapping: ``before_checkpoint1`` covers sessions
strictly before checkpoint 1 and ``before_checkpoint2`` covers sessions from
checkpoint 1 up to (not including) checkpoint 2. The cumulative figure is only
reported alongside for dashboards. Only sessions dated within the period's
start and end dates are counted.
"""

from __future__ import annotations

from collections.abc import Iterable
import logging

from thesisguide.core.config import Settings, get_settings
from thesisguide.core.exceptions import NotFoundError, ValidationError
from thesisguide.models.guidance_session import SessionStatus
from thesisguide.models.notification import NotificationType
from thesisguide.models.thesis import ThesisType
from thesisguide.schemas.requirement import (
    GuidanceCounts,
    InsufficientGuidanceEntry,
    RequiredCounts,
    RequirementBreakdown,
    RequirementReport,
)
from thesisguide.schemas.scheduling import PeriodRecord, ProjectRecord, SessionRecord
from thesisguide.services.notifications import Notifier
from thesisguide.services.storage import SchedulingStore

logger = logging.getLogger(__name__)


def count_guidance(sessions: Iterable[SessionRecord], period: PeriodRecord) -> GuidanceCounts:
    """Count completed sessions held within the period, split at its checkpoints."""
    checkpoint1, checkpoint2 = period.checkpoint1_date, period.checkpoint2_date
    dates = [
        item.scheduled_date
        for item in sessions
        if item.status == SessionStatus.completed and period.start_date <= item.scheduled_date <= period.end_date
    ]
    return GuidanceCounts(
        before_checkpoint1=sum(1 for value in dates if value < checkpoint1),
        before_checkpoint2=sum(1 for value in dates if checkpoint1 <= value < checkpoint2),
        cumulative_before_checkpoint2=sum(1 for value in dates if value < checkpoint2),
        total=len(dates),
    )


class RequirementEvaluator:
    """Read-only; repeated calls without intervening writes return equal reports."""

    def __init__(self, store: SchedulingStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()

    def evaluate(
        self,
        student_id: str,
        thesis_type: ThesisType | None = None,
        period: PeriodRecord | None = None,
    ) -> RequirementReport:
        project = self.store.get_active_project_for_student(student_id)
        if project is None:
            raise NotFoundError("ThesisProject", f"student:{student_id}")
        return self.evaluate_project(project, thesis_type=thesis_type, period=period or self._active_period())

    def evaluate_project(
        self,
        project: ProjectRecord,
        *,
        thesis_type: ThesisType | None = None,
        period: PeriodRecord,
    ) -> RequirementReport:
        kind = thesis_type or project.thesis_type
        try:
            policy = self.settings.requirement_for(kind.value)
        except KeyError as exc:
            raise ValidationError.for_field(
                "thesis_type", f"No guidance requirement configured for {kind.value}"
            ) from exc

        counts = count_guidance(self.store.list_completed_sessions(project.id), period)
        breakdown = RequirementBreakdown(
            checkpoint1_met=counts.before_checkpoint1 >= policy.before_checkpoint1,
            checkpoint2_met=counts.before_checkpoint2 >= policy.before_checkpoint2,
            total_met=counts.total >= policy.total,
        )
        return RequirementReport(
            student_id=project.student_id,
            thesis_project_id=project.id,
            thesis_type=kind,
            period_id=period.id,
            checkpoint1_date=period.checkpoint1_date,
            checkpoint2_date=period.checkpoint2_date,
            counts=counts,
            required=RequiredCounts(
                before_checkpoint1=policy.before_checkpoint1,
                before_checkpoint2=policy.before_checkpoint2,
                total=policy.total,
            ),
            breakdown=breakdown,
            meets_requirement=breakdown.checkpoint1_met and breakdown.checkpoint2_met,
        )

    def insufficient_students(
        self,
        period: PeriodRecord | None = None,
        thesis_type: ThesisType | None = None,
    ) -> list[InsufficientGuidanceEntry]:
        """Active projects of the period whose student has not met the minimum."""
        period = period or self._active_period()
        entries: list[InsufficientGuidanceEntry] = []
        for project in self.store.list_active_projects(thesis_type=thesis_type, period_id=period.id):
            report = self.evaluate_project(project, period=period)
            if report.meets_requirement:
                continue
            student = self.store.get_user(project.student_id)
            if student is None:
                logger.warning("Thesis project %s references missing student %s", project.id, project.student_id)
                continue
            supervisors = [user for user in map(self.store.get_user, project.supervisor_ids) if user is not None]
            entries.append(
                InsufficientGuidanceEntry(
                    student=student,
                    thesis_project_id=project.id,
                    thesis_title=project.title,
                    thesis_type=project.thesis_type,
                    supervisors=supervisors,
                    report=report,
                )
            )
        logger.info("%d student(s) below the guidance minimum in period %s", len(entries), period.id)
        return entries

    def _active_period(self) -> PeriodRecord:
        period = self.store.get_active_period()
        if period is None:
            raise NotFoundError("AcademicPeriod", "active")
        return period


def send_guidance_reminders(entries: Iterable[InsufficientGuidanceEntry], notifier: Notifier) -> int:
    """Notify each listed student of the sessions still missing; returns how many were notified."""
    sent = 0
    for entry in entries:
        counts, required = entry.report.counts, entry.report.required
        message = (
            f"You have {counts.before_checkpoint1}/{required.before_checkpoint1} guidance sessions before "
            f"{entry.report.checkpoint1_date.isoformat()} and {counts.before_checkpoint2}/"
            f"{required.before_checkpoint2} before {entry.report.checkpoint2_date.isoformat()}"
        )
        try:
            notifier.notify(
                entry.student.id,
                NotificationType.guidance_insufficient,
                "Guidance below the required minimum",
                message,
                "/student/progress",
            )
        except Exception:
            logger.warning("Failed to send guidance reminder to student %s", entry.student.id, exc_info=True)
            continue
        sent += 1
    return sent
