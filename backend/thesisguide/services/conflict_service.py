from __future__ import annotations

from collections.abc import Iterable
from datetime import date
import logging

from thesisguide.core.config import Settings, get_settings
from thesisguide.core.exceptions import ValidationError
from thesisguide.models.guidance_session import SessionStatus
from thesisguide.models.user import UserRole
from thesisguide.schemas.conflict import ConflictDetail, ConflictReport
from thesisguide.schemas.scheduling import CommitmentKind, CommittedInterval
from thesisguide.services.storage import SchedulingStore
from thesisguide.services.time_utils import overlaps, to_minutes

logger = logging.getLogger(__name__)

_DESCRIPTIONS = {
    CommitmentKind.teaching: "Overlaps teaching schedule",
    CommitmentKind.course: "Overlaps course schedule",
    CommitmentKind.guidance: "Overlaps another guidance session",
    CommitmentKind.unavailable: "Overlaps a declared unavailable block",
}


class ConflictService:
    def __init__(self, store: SchedulingStore, settings: Settings | None = None):
        self.store = store
        self.settings = settings or get_settings()

    @property
    def blocking_statuses(self) -> frozenset[SessionStatus]:
        statuses = {SessionStatus.pending, SessionStatus.approved}
        if self.settings.offered_sessions_block_bookings:
            statuses.add(SessionStatus.offered)
        return frozenset(statuses)

    def detect_conflicts(
        self,
        actor_id: str,
        role: UserRole,
        on_date: date,
        start_time: str,
        end_time: str,
        exclude_session_id: str | None = None,
    ) -> ConflictReport:
        if role not in (UserRole.advisor, UserRole.student):
            raise ValidationError.for_field("role", "Conflicts can only be checked for advisors or students")
        to_minutes(start_time, field="start_time")
        to_minutes(end_time, field="end_time")

        conflicts: list[ConflictDetail] = []
        for interval in self.store.get_committed_intervals(actor_id, role, on_date):
            if not self._is_blocking(interval, exclude_session_id):
                continue
            if overlaps(start_time, end_time, interval.start_time, interval.end_time):
                conflicts.append(self._to_detail(interval, actor_id=actor_id, role=role))

        if conflicts:
            logger.debug(
                "%d conflict(s) for %s %s on %s %s-%s",
                len(conflicts),
                role.value,
                actor_id,
                on_date.isoformat(),
                start_time,
                end_time,
            )
        return ConflictReport(conflicts=conflicts)

    def check_booking(
        self,
        *,
        advisor_ids: Iterable[str],
        student_ids: Iterable[str],
        on_date: date,
        start_time: str,
        end_time: str,
        exclude_session_id: str | None = None,
    ) -> ConflictReport:
        """Collect conflicts of every advisor and student taking part in a session."""
        conflicts: list[ConflictDetail] = []
        parties = [(item, UserRole.advisor) for item in dict.fromkeys(advisor_ids)]
        parties += [(item, UserRole.student) for item in dict.fromkeys(student_ids)]
        for actor_id, role in parties:
            report = self.detect_conflicts(
                actor_id,
                role,
                on_date,
                start_time,
                end_time,
                exclude_session_id=exclude_session_id,
            )
            conflicts.extend(report.conflicts)
        return ConflictReport(conflicts=conflicts)

    def _is_blocking(self, interval: CommittedInterval, exclude_session_id: str | None) -> bool:
        if interval.kind != CommitmentKind.guidance:
            return True
        if exclude_session_id is not None and interval.reference_id == exclude_session_id:
            return False
        return interval.session_status in self.blocking_statuses

    @staticmethod
    def _to_detail(interval: CommittedInterval, *, actor_id: str, role: UserRole) -> ConflictDetail:
        description = f"{_DESCRIPTIONS[interval.kind]} {interval.start_time}-{interval.end_time}"
        if interval.label:
            description = f"{description} ({interval.label})"
        return ConflictDetail(
            kind=interval.kind,
            role=role,
            actor_id=actor_id,
            start_time=interval.start_time,
            end_time=interval.end_time,
            description=description,
            label=interval.label,
            session_id=interval.reference_id if interval.kind == CommitmentKind.guidance else None,
            session_status=interval.session_status,
            location=interval.location,
        )
