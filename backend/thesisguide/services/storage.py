"""Storage collaborator for the scheduling core.

``SchedulingStore`` is the narrow contract the services depend on.
``SqlAlchemyStore`` is the production implementation; tests may substitute any
object with the same methods.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date
import logging
from typing import Protocol

from sqlalchemy import or_, select, update
from sqlalchemy.exc import DisconnectionError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from thesisguide.core.exceptions import NotFoundError, StaleStateError, StorageUnavailable
from thesisguide.models.academic_period import AcademicPeriod
from thesisguide.models.guidance_session import (
    GuidanceNote,
    GuidanceSession,
    GuidanceSessionParticipant,
    SessionStatus,
)
from thesisguide.models.schedule import AvailabilityWindow, UnavailabilityBlock, WeeklySchedule
from thesisguide.models.thesis import ThesisProject, ThesisStatus, ThesisSupervisor, ThesisType
from thesisguide.models.user import User, UserRole
from thesisguide.schemas.scheduling import (
    AvailabilityWindowRecord,
    CommitmentKind,
    CommittedInterval,
    NoteDraft,
    NoteRecord,
    PeriodRecord,
    ProjectRecord,
    SessionDraft,
    SessionPatch,
    SessionRecord,
    UserRecord,
)
from thesisguide.services.audit import log_activity
from thesisguide.services.time_utils import day_of_week

logger = logging.getLogger(__name__)

# Sessions in these states occupy their time slot.
ACTIVE_SESSION_STATUSES = (SessionStatus.pending, SessionStatus.approved, SessionStatus.offered)


class SchedulingStore(Protocol):
    def get_committed_intervals(self, actor_id: str, role: UserRole, on_date: date) -> list[CommittedInterval]: ...

    def get_availability_windows(self, advisor_id: str, on_date: date) -> list[AvailabilityWindowRecord]: ...

    def get_session(self, session_id: str) -> SessionRecord | None: ...

    def create_session(self, draft: SessionDraft) -> SessionRecord: ...

    def transition_session(
        self,
        session_id: str,
        from_status: SessionStatus,
        to_status: SessionStatus,
        patch: SessionPatch | None = None,
        *,
        note: NoteDraft | None = None,
        actor_id: str | None = None,
    ) -> SessionRecord: ...

    def list_completed_sessions(self, thesis_project_id: str) -> list[SessionRecord]: ...

    def get_active_period(self) -> PeriodRecord | None: ...

    def get_period(self, period_id: str) -> PeriodRecord | None: ...

    def get_user(self, user_id: str) -> UserRecord | None: ...

    def get_project(self, project_id: str) -> ProjectRecord | None: ...

    def get_active_project_for_student(self, student_id: str) -> ProjectRecord | None: ...

    def list_active_projects(
        self,
        *,
        thesis_type: ThesisType | None = None,
        period_id: str | None = None,
    ) -> list[ProjectRecord]: ...

    def list_session_notes(self, session_id: str) -> list[NoteRecord]: ...

    def list_sessions(
        self,
        *,
        start_date: date,
        end_date: date,
        advisor_id: str | None = None,
        student_id: str | None = None,
        status: SessionStatus | None = None,
    ) -> list[SessionRecord]: ...


class SqlAlchemyStore:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except (OperationalError, DisconnectionError, PoolTimeoutError) as exc:
            db.rollback()
            logger.warning("Storage operation failed: %s", exc.__class__.__name__, exc_info=True)
            raise StorageUnavailable() from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # -- reads ---------------------------------------------------------------

    def get_committed_intervals(self, actor_id: str, role: UserRole, on_date: date) -> list[CommittedInterval]:
        weekly_kind = CommitmentKind.teaching if role == UserRole.advisor else CommitmentKind.course
        with self._session() as db:
            intervals: list[CommittedInterval] = []
            weekly_rows = db.execute(
                select(WeeklySchedule)
                .where(
                    WeeklySchedule.owner_id == actor_id,
                    WeeklySchedule.day_of_week == day_of_week(on_date),
                )
                .order_by(WeeklySchedule.start_time)
            ).scalars()
            for row in weekly_rows:
                intervals.append(
                    CommittedInterval(
                        kind=weekly_kind,
                        start_time=row.start_time,
                        end_time=row.end_time,
                        label=row.course_name,
                        reference_id=row.id,
                        location=row.room,
                    )
                )

            session_rows = db.execute(
                select(GuidanceSession, ThesisProject.title)
                .join(ThesisProject, ThesisProject.id == GuidanceSession.thesis_project_id)
                .where(
                    self._session_ownership(actor_id, role),
                    GuidanceSession.scheduled_date == on_date,
                    GuidanceSession.status.in_(ACTIVE_SESSION_STATUSES),
                )
                .order_by(GuidanceSession.start_time)
            ).all()
            for session, title in session_rows:
                intervals.append(
                    CommittedInterval(
                        kind=CommitmentKind.guidance,
                        start_time=session.start_time,
                        end_time=session.end_time,
                        label=title,
                        reference_id=session.id,
                        session_status=session.status,
                        location=session.location,
                    )
                )

            block_rows = db.execute(
                select(UnavailabilityBlock)
                .where(UnavailabilityBlock.user_id == actor_id, UnavailabilityBlock.block_date == on_date)
                .order_by(UnavailabilityBlock.start_time)
            ).scalars()
            for block in block_rows:
                intervals.append(
                    CommittedInterval(
                        kind=CommitmentKind.unavailable,
                        start_time=block.start_time,
                        end_time=block.end_time,
                        label=block.reason,
                        reference_id=block.id,
                    )
                )
            return intervals

    def get_availability_windows(self, advisor_id: str, on_date: date) -> list[AvailabilityWindowRecord]:
        with self._session() as db:
            rows = db.execute(
                select(AvailabilityWindow)
                .where(
                    AvailabilityWindow.advisor_id == advisor_id,
                    or_(
                        (AvailabilityWindow.is_recurring.is_(True))
                        & (AvailabilityWindow.day_of_week == day_of_week(on_date)),
                        AvailabilityWindow.specific_date == on_date,
                    ),
                )
                .order_by(AvailabilityWindow.start_time)
            ).scalars()
            return [AvailabilityWindowRecord.model_validate(row) for row in rows]

    def get_session(self, session_id: str) -> SessionRecord | None:
        with self._session() as db:
            row = db.get(GuidanceSession, session_id)
            if row is None:
                return None
            return self._to_session_record(db, row)

    def list_completed_sessions(self, thesis_project_id: str) -> list[SessionRecord]:
        with self._session() as db:
            rows = list(
                db.execute(
                    select(GuidanceSession)
                    .where(
                        GuidanceSession.thesis_project_id == thesis_project_id,
                        GuidanceSession.status == SessionStatus.completed,
                    )
                    .order_by(GuidanceSession.scheduled_date, GuidanceSession.start_time)
                ).scalars()
            )
            return self._to_session_records(db, rows)

    def list_sessions(
        self,
        *,
        start_date: date,
        end_date: date,
        advisor_id: str | None = None,
        student_id: str | None = None,
        status: SessionStatus | None = None,
    ) -> list[SessionRecord]:
        with self._session() as db:
            query = select(GuidanceSession).where(
                GuidanceSession.scheduled_date >= start_date,
                GuidanceSession.scheduled_date <= end_date,
            )
            if advisor_id is not None:
                query = query.where(self._session_ownership(advisor_id, UserRole.advisor))
            if student_id is not None:
                query = query.where(self._session_ownership(student_id, UserRole.student))
            if status is not None:
                query = query.where(GuidanceSession.status == status)
            query = query.order_by(GuidanceSession.scheduled_date, GuidanceSession.start_time)
            return self._to_session_records(db, list(db.execute(query).scalars()))

    def list_session_notes(self, session_id: str) -> list[NoteRecord]:
        with self._session() as db:
            rows = db.execute(
                select(GuidanceNote)
                .where(GuidanceNote.session_id == session_id)
                .order_by(GuidanceNote.created_at, GuidanceNote.id)
            ).scalars()
            return [NoteRecord.model_validate(row) for row in rows]

    def get_active_period(self) -> PeriodRecord | None:
        with self._session() as db:
            row = db.execute(
                select(AcademicPeriod)
                .where(AcademicPeriod.is_active.is_(True))
                .order_by(AcademicPeriod.start_date.desc())
                .limit(1)
            ).scalar_one_or_none()
            return PeriodRecord.model_validate(row) if row is not None else None

    def get_period(self, period_id: str) -> PeriodRecord | None:
        with self._session() as db:
            row = db.get(AcademicPeriod, period_id)
            return PeriodRecord.model_validate(row) if row is not None else None

    def get_user(self, user_id: str) -> UserRecord | None:
        with self._session() as db:
            row = db.get(User, user_id)
            return UserRecord.model_validate(row) if row is not None else None

    def get_project(self, project_id: str) -> ProjectRecord | None:
        with self._session() as db:
            row = db.get(ThesisProject, project_id)
            if row is None:
                return None
            return self._to_project_record(db, row)

    def get_active_project_for_student(self, student_id: str) -> ProjectRecord | None:
        with self._session() as db:
            row = db.execute(
                select(ThesisProject)
                .where(ThesisProject.student_id == student_id, ThesisProject.status == ThesisStatus.active)
                .order_by(ThesisProject.created_at.desc())
                .limit(1)
            ).scalar_one_or_none()
            if row is None:
                return None
            return self._to_project_record(db, row)

    def list_active_projects(
        self,
        *,
        thesis_type: ThesisType | None = None,
        period_id: str | None = None,
    ) -> list[ProjectRecord]:
        with self._session() as db:
            query = select(ThesisProject).where(ThesisProject.status == ThesisStatus.active)
            if thesis_type is not None:
                query = query.where(ThesisProject.thesis_type == thesis_type)
            if period_id is not None:
                # Projects not yet assigned to a period are evaluated against the requested one.
                query = query.where(
                    or_(ThesisProject.academic_period_id == period_id, ThesisProject.academic_period_id.is_(None))
                )
            rows = db.execute(query.order_by(ThesisProject.created_at, ThesisProject.id)).scalars()
            return [self._to_project_record(db, row) for row in rows]

    # -- writes --------------------------------------------------------------

    def create_session(self, draft: SessionDraft) -> SessionRecord:
        with self._session() as db:
            row = GuidanceSession(**draft.model_dump(exclude={"participant_ids"}))
            db.add(row)
            db.flush()
            for student_id in dict.fromkeys(draft.participant_ids):
                db.add(GuidanceSessionParticipant(session_id=row.id, student_id=student_id))
            log_activity(
                db,
                actor_id=draft.created_by,
                action="guidance_session.created",
                entity_id=row.id,
                details={
                    "status": draft.status.value,
                    "scheduled_date": draft.scheduled_date.isoformat(),
                    "start_time": draft.start_time,
                    "end_time": draft.end_time,
                },
            )
            db.flush()
            return self._to_session_record(db, row)

    def transition_session(
        self,
        session_id: str,
        from_status: SessionStatus,
        to_status: SessionStatus,
        patch: SessionPatch | None = None,
        *,
        note: NoteDraft | None = None,
        actor_id: str | None = None,
    ) -> SessionRecord:
        changes = patch.changes() if patch is not None else {}
        with self._session() as db:
            result = db.execute(
                update(GuidanceSession)
                .where(GuidanceSession.id == session_id, GuidanceSession.status == from_status)
                .values(status=to_status, **changes)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                current = db.get(GuidanceSession, session_id)
                if current is None:
                    raise NotFoundError("GuidanceSession", session_id)
                raise StaleStateError(session_id, from_status.value, current.status.value)

            if note is not None:
                db.add(GuidanceNote(session_id=session_id, **note.model_dump()))
            log_activity(
                db,
                actor_id=actor_id,
                action="guidance_session.transition",
                entity_id=session_id,
                details={
                    "from_status": from_status.value,
                    "to_status": to_status.value,
                    "changes": sorted(changes),
                },
            )
            db.flush()
            row = db.get(GuidanceSession, session_id, populate_existing=True)
            return self._to_session_record(db, row)

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _session_ownership(actor_id: str, role: UserRole):
        if role == UserRole.advisor:
            supervised = select(ThesisSupervisor.thesis_project_id).where(ThesisSupervisor.advisor_id == actor_id)
            return GuidanceSession.thesis_project_id.in_(supervised)
        owned = select(ThesisProject.id).where(ThesisProject.student_id == actor_id)
        joined = select(GuidanceSessionParticipant.session_id).where(GuidanceSessionParticipant.student_id == actor_id)
        return or_(GuidanceSession.thesis_project_id.in_(owned), GuidanceSession.id.in_(joined))

    @staticmethod
    def _to_project_record(db: Session, row: ThesisProject) -> ProjectRecord:
        supervisor_ids = list(
            db.execute(
                select(ThesisSupervisor.advisor_id)
                .where(ThesisSupervisor.thesis_project_id == row.id)
                .order_by(ThesisSupervisor.supervisor_order)
            ).scalars()
        )
        return ProjectRecord(
            id=row.id,
            student_id=row.student_id,
            title=row.title,
            thesis_type=row.thesis_type,
            status=row.status,
            academic_period_id=row.academic_period_id,
            supervisor_ids=supervisor_ids,
        )

    def _to_session_record(self, db: Session, row: GuidanceSession) -> SessionRecord:
        return self._to_session_records(db, [row])[0]

    @staticmethod
    def _to_session_records(db: Session, rows: list[GuidanceSession]) -> list[SessionRecord]:
        participants: dict[str, list[str]] = {row.id: [] for row in rows}
        if rows:
            pairs = db.execute(
                select(GuidanceSessionParticipant.session_id, GuidanceSessionParticipant.student_id)
                .where(GuidanceSessionParticipant.session_id.in_(list(participants)))
                .order_by(GuidanceSessionParticipant.id)
            ).all()
            for session_id, student_id in pairs:
                participants[session_id].append(student_id)
        return [
            SessionRecord(
                id=row.id,
                thesis_project_id=row.thesis_project_id,
                scheduled_date=row.scheduled_date,
                start_time=row.start_time,
                end_time=row.end_time,
                location=row.location,
                session_type=row.session_type,
                status=row.status,
                created_by=row.created_by,
                notes=row.notes,
                status_reason=row.status_reason,
                participant_ids=participants[row.id],
                created_at=row.created_at,
                updated_at=row.updated_at,
            )
            for row in rows
        ]
