"""Lifecycle of guidance sessions.

Every mutation of a session goes through ``GuidanceWorkflow``. Operations that
fix a date and time run the conflict check and the write while holding the
per-(actor, date) booking locks of every advisor and student involved; the
store's compare-and-set on the current status guards the write itself.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from datetime import date
from enum import Enum
import logging

from thesisguide.core.config import Settings, get_settings
from thesisguide.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from thesisguide.models.guidance_session import SessionStatus, SessionType
from thesisguide.models.notification import NotificationType
from thesisguide.models.thesis import ThesisStatus
from thesisguide.models.user import UserRole
from thesisguide.schemas.scheduling import (
    Caller,
    NoteDraft,
    NoteRecord,
    ProjectRecord,
    SessionDraft,
    SessionPatch,
    SessionRecord,
)
from thesisguide.services.availability import AvailabilityResolver
from thesisguide.services.booking_locks import BookingLocks, booking_key
from thesisguide.services.conflict_service import ConflictService
from thesisguide.services.notifications import Notifier
from thesisguide.services.storage import SchedulingStore
from thesisguide.services.time_utils import duration, is_valid_time

logger = logging.getLogger(__name__)


class SessionAction(str, Enum):
    approve = "approve"
    reject = "reject"
    edit = "edit"
    cancel = "cancel"
    accept = "accept"
    decline = "decline"
    complete = "complete"


# (current status, action) -> (acting role, resulting status)
TRANSITIONS: dict[tuple[SessionStatus, SessionAction], tuple[UserRole, SessionStatus]] = {
    (SessionStatus.pending, SessionAction.approve): (UserRole.advisor, SessionStatus.approved),
    (SessionStatus.pending, SessionAction.reject): (UserRole.advisor, SessionStatus.rejected),
    (SessionStatus.pending, SessionAction.edit): (UserRole.student, SessionStatus.pending),
    (SessionStatus.pending, SessionAction.cancel): (UserRole.student, SessionStatus.cancelled),
    (SessionStatus.approved, SessionAction.cancel): (UserRole.student, SessionStatus.cancelled),
    (SessionStatus.offered, SessionAction.accept): (UserRole.student, SessionStatus.approved),
    (SessionStatus.offered, SessionAction.decline): (UserRole.student, SessionStatus.declined),
    (SessionStatus.approved, SessionAction.complete): (UserRole.advisor, SessionStatus.completed),
}

ACTION_TARGETS: dict[SessionAction, SessionStatus] = {
    SessionAction.approve: SessionStatus.approved,
    SessionAction.reject: SessionStatus.rejected,
    SessionAction.edit: SessionStatus.pending,
    SessionAction.cancel: SessionStatus.cancelled,
    SessionAction.accept: SessionStatus.approved,
    SessionAction.decline: SessionStatus.declined,
    SessionAction.complete: SessionStatus.completed,
}

TERMINAL_STATUSES = frozenset(
    {SessionStatus.rejected, SessionStatus.declined, SessionStatus.completed, SessionStatus.cancelled}
)


def resolve_transition(status: SessionStatus, action: SessionAction, role: UserRole) -> SessionStatus:
    rule = TRANSITIONS.get((status, action))
    if rule is None or rule[0] != role:
        raise InvalidTransitionError(status.value, ACTION_TARGETS[action].value, role.value)
    return rule[1]


class GuidanceWorkflow:
    def __init__(
        self,
        store: SchedulingStore,
        notifier: Notifier,
        settings: Settings | None = None,
        *,
        locks: BookingLocks | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.settings = settings or get_settings()
        self.locks = locks if locks is not None else BookingLocks()
        self.conflicts = ConflictService(store, self.settings)
        self.availability = AvailabilityResolver(store, self.settings)
        self._today = today or date.today

    # -- creation ------------------------------------------------------------

    def request_session(
        self,
        caller: Caller,
        *,
        scheduled_date: date,
        start_time: str,
        end_time: str,
        thesis_project_id: str | None = None,
        location: str | None = None,
        notes: str | None = None,
    ) -> SessionRecord:
        """Student asks for a session; it waits in PENDING for an advisor decision."""
        self._require_creator(caller, UserRole.student, SessionStatus.pending)
        project = self._student_project(caller, thesis_project_id)
        self._validate_schedule(scheduled_date, start_time, end_time)
        if self.settings.require_open_window and not any(
            self.availability.covers_open_window(advisor_id, scheduled_date, start_time, end_time)
            for advisor_id in project.supervisor_ids
        ):
            raise ValidationError.for_field("start_time", "Requested time is outside the advisor's open windows")

        session = self._book(
            SessionDraft(
                thesis_project_id=project.id,
                scheduled_date=scheduled_date,
                start_time=start_time,
                end_time=end_time,
                location=_clean(location) or self.settings.default_location,
                status=SessionStatus.pending,
                created_by=caller.user_id,
                notes=_clean(notes),
            ),
            advisor_ids=project.supervisor_ids,
            student_ids=[project.student_id],
        )
        self._notify(
            project.supervisor_ids,
            NotificationType.session_requested,
            "New guidance request",
            f"A student requested guidance on {_when(session)}",
            session,
            audience=UserRole.advisor,
        )
        return session

    def offer_session(
        self,
        caller: Caller,
        *,
        student_id: str,
        scheduled_date: date,
        start_time: str,
        end_time: str,
        location: str,
        notes: str | None = None,
    ) -> SessionRecord:
        """Advisor proposes a slot; the student accepts or declines it."""
        self._require_creator(caller, UserRole.advisor, SessionStatus.offered)
        project = self.store.get_active_project_for_student(student_id)
        if project is None or caller.user_id not in project.supervisor_ids:
            raise NotFoundError("Student", student_id)
        if not _clean(location):
            raise ValidationError.for_field("location", "Location is required for an offer")
        self._validate_schedule(scheduled_date, start_time, end_time)

        session = self._book(
            SessionDraft(
                thesis_project_id=project.id,
                scheduled_date=scheduled_date,
                start_time=start_time,
                end_time=end_time,
                location=_clean(location),
                status=SessionStatus.offered,
                created_by=caller.user_id,
                notes=_clean(notes),
            ),
            advisor_ids=project.supervisor_ids,
            student_ids=[project.student_id],
        )
        self._notify(
            [project.student_id],
            NotificationType.session_offered,
            "New guidance offer",
            f"Your advisor offered a guidance session on {_when(session)} at {session.location}",
            session,
            audience=UserRole.student,
        )
        return session

    def schedule_session(
        self,
        caller: Caller,
        *,
        thesis_project_id: str,
        scheduled_date: date,
        start_time: str,
        end_time: str,
        location: str,
        session_type: SessionType = SessionType.individual,
        additional_student_ids: Sequence[str] = (),
        notes: str | None = None,
    ) -> SessionRecord:
        """Advisor books a session directly; advisor authority makes it APPROVED at once."""
        self._require_creator(caller, UserRole.advisor, SessionStatus.approved)
        project = self._supervised_project(caller, thesis_project_id)
        participants = [item for item in dict.fromkeys(additional_student_ids) if item != project.student_id]
        if session_type == SessionType.individual and participants:
            raise ValidationError.for_field("additional_student_ids", "Individual sessions cannot have additional students")
        if session_type == SessionType.group and not participants:
            raise ValidationError.for_field("additional_student_ids", "Group sessions need at least one additional student")
        for student_id in participants:
            user = self.store.get_user(student_id)
            if user is None or user.role != UserRole.student:
                raise NotFoundError("Student", student_id)
        if not _clean(location):
            raise ValidationError.for_field("location", "Location is required")
        self._validate_schedule(scheduled_date, start_time, end_time)

        students = [project.student_id, *participants]
        session = self._book(
            SessionDraft(
                thesis_project_id=project.id,
                scheduled_date=scheduled_date,
                start_time=start_time,
                end_time=end_time,
                location=_clean(location),
                session_type=session_type,
                status=SessionStatus.approved,
                created_by=caller.user_id,
                notes=_clean(notes),
                participant_ids=participants,
            ),
            advisor_ids=project.supervisor_ids,
            student_ids=students,
        )
        self._notify(
            students,
            NotificationType.session_approved,
            "Guidance session scheduled",
            f"Your advisor scheduled guidance on {_when(session)} at {session.location}",
            session,
            audience=UserRole.student,
        )
        return session

    # -- advisor transitions -------------------------------------------------

    def approve_session(self, caller: Caller, session_id: str, *, location: str | None = None) -> SessionRecord:
        session, project, target = self._load_for_action(caller, session_id, SessionAction.approve)
        patch = SessionPatch(location=_clean(location) or session.location or self.settings.default_location)
        updated = self._transition_fixing_time(
            session,
            project,
            target,
            patch,
            caller,
            on_date=session.scheduled_date,
            start_time=session.start_time,
            end_time=session.end_time,
        )
        self._notify(
            self._students_of(updated, project),
            NotificationType.session_approved,
            "Guidance request approved",
            f"Your guidance on {_when(updated)} was approved. Location: {updated.location}",
            updated,
            audience=UserRole.student,
        )
        return updated

    def reject_session(self, caller: Caller, session_id: str, *, reason: str | None = None) -> SessionRecord:
        session, project, target = self._load_for_action(caller, session_id, SessionAction.reject)
        updated = self._transition(session, target, SessionPatch(status_reason=_clean(reason)), caller)
        self._notify(
            self._students_of(updated, project),
            NotificationType.session_rejected,
            "Guidance request rejected",
            _clean(reason) or f"Your guidance request for {_when(updated)} was rejected",
            updated,
            audience=UserRole.student,
        )
        return updated

    def complete_session(
        self,
        caller: Caller,
        session_id: str,
        *,
        content: str,
        tasks: Iterable[str] = (),
    ) -> tuple[SessionRecord, NoteRecord]:
        """Record the guidance note; the note and the COMPLETED status are written together."""
        session, project, target = self._load_for_action(caller, session_id, SessionAction.complete)
        if not _clean(content):
            raise ValidationError.for_field("content", "Guidance note content is required")
        note = NoteDraft(
            advisor_id=caller.user_id,
            content=content.strip(),
            tasks=[item.strip() for item in tasks if item and item.strip()],
        )
        updated = self._transition(session, target, None, caller, note=note)
        recorded = self.store.list_session_notes(updated.id)[-1]
        self._notify(
            self._students_of(updated, project),
            NotificationType.note_added,
            "Guidance notes added",
            f"Your advisor added notes for the guidance on {_when(updated)}",
            updated,
            audience=UserRole.student,
        )
        return updated, recorded

    # -- student transitions -------------------------------------------------

    def update_request(
        self,
        caller: Caller,
        session_id: str,
        *,
        scheduled_date: date | None = None,
        start_time: str | None = None,
        end_time: str | None = None,
        location: str | None = None,
        notes: str | None = None,
    ) -> SessionRecord:
        session, project, target = self._load_for_action(caller, session_id, SessionAction.edit)

        changes: dict = {}
        if scheduled_date is not None and scheduled_date != session.scheduled_date:
            changes["scheduled_date"] = scheduled_date
        if start_time is not None and start_time != session.start_time:
            changes["start_time"] = start_time
        if end_time is not None and end_time != session.end_time:
            changes["end_time"] = end_time
        if _clean(location) and location.strip() != session.location:
            changes["location"] = location.strip()
        if notes is not None and _clean(notes) != session.notes:
            changes["notes"] = _clean(notes)
        if not changes:
            raise ValidationError("No changes supplied", errors=[{"field": "session", "message": "Nothing to update"}])

        patch = SessionPatch(**changes)
        if {"scheduled_date", "start_time", "end_time"} & changes.keys():
            new_date = changes.get("scheduled_date", session.scheduled_date)
            new_start = changes.get("start_time", session.start_time)
            new_end = changes.get("end_time", session.end_time)
            self._validate_schedule(new_date, new_start, new_end)
            updated = self._transition_fixing_time(
                session,
                project,
                target,
                patch,
                caller,
                on_date=new_date,
                start_time=new_start,
                end_time=new_end,
            )
        else:
            updated = self._transition(session, target, patch, caller)

        self._notify(
            project.supervisor_ids,
            NotificationType.session_updated,
            "Guidance request updated",
            f"A student changed their guidance request, now {_when(updated)}",
            updated,
            audience=UserRole.advisor,
        )
        return updated

    def cancel_session(self, caller: Caller, session_id: str, *, reason: str | None = None) -> SessionRecord:
        session, project, target = self._load_for_action(caller, session_id, SessionAction.cancel)
        updated = self._transition(session, target, SessionPatch(status_reason=_clean(reason)), caller)
        self._notify(
            project.supervisor_ids,
            NotificationType.session_cancelled,
            "Guidance session cancelled",
            _clean(reason) or f"A student cancelled the guidance on {_when(updated)}",
            updated,
            audience=UserRole.advisor,
        )
        return updated

    def accept_offer(self, caller: Caller, session_id: str) -> SessionRecord:
        session, project, target = self._load_for_action(caller, session_id, SessionAction.accept)
        updated = self._transition_fixing_time(
            session,
            project,
            target,
            None,
            caller,
            on_date=session.scheduled_date,
            start_time=session.start_time,
            end_time=session.end_time,
        )
        self._notify(
            project.supervisor_ids,
            NotificationType.session_accepted,
            "Guidance offer accepted",
            f"The student accepted the guidance offer for {_when(updated)}",
            updated,
            audience=UserRole.advisor,
        )
        return updated

    def decline_offer(self, caller: Caller, session_id: str, *, reason: str | None = None) -> SessionRecord:
        session, project, target = self._load_for_action(caller, session_id, SessionAction.decline)
        updated = self._transition(session, target, SessionPatch(status_reason=_clean(reason)), caller)
        self._notify(
            project.supervisor_ids,
            NotificationType.session_declined,
            "Guidance offer declined",
            _clean(reason) or f"The student declined the guidance offer for {_when(updated)}",
            updated,
            audience=UserRole.advisor,
        )
        return updated

    # -- reads ---------------------------------------------------------------

    def get_session(self, caller: Caller, session_id: str) -> SessionRecord:
        session, _ = self._load_visible(caller, session_id)
        return session

    # -- internals -----------------------------------------------------------

    def _validate_schedule(self, on_date: date, start_time: str, end_time: str) -> None:
        errors: list[dict] = []
        if on_date < self._today():
            errors.append({"field": "scheduled_date", "message": "Guidance cannot be scheduled in the past"})
        well_formed = True
        for field, value in (("start_time", start_time), ("end_time", end_time)):
            if not is_valid_time(value):
                well_formed = False
                errors.append({"field": field, "message": "Time must be in HH:MM 24-hour format"})
        if well_formed:
            length = duration(start_time, end_time)
            minimum = self.settings.min_session_minutes
            if length <= 0:
                errors.append({"field": "end_time", "message": "End time must be after start time"})
            elif length < minimum:
                errors.append({"field": "end_time", "message": f"Guidance must last at least {minimum} minutes"})
        if errors:
            raise ValidationError("Invalid guidance schedule", errors=errors)

    def _book(self, draft: SessionDraft, *, advisor_ids: Sequence[str], student_ids: Sequence[str]) -> SessionRecord:
        keys = [booking_key(actor_id, draft.scheduled_date) for actor_id in [*advisor_ids, *student_ids]]
        with self.locks.hold(keys):
            report = self.conflicts.check_booking(
                advisor_ids=advisor_ids,
                student_ids=student_ids,
                on_date=draft.scheduled_date,
                start_time=draft.start_time,
                end_time=draft.end_time,
            )
            if report.has_conflict:
                raise ConflictError(report.conflicts)
            session = self.store.create_session(draft)
        logger.info(
            "Guidance session %s created as %s for project %s on %s %s-%s",
            session.id,
            session.status.value,
            session.thesis_project_id,
            session.scheduled_date.isoformat(),
            session.start_time,
            session.end_time,
        )
        return session

    def _transition_fixing_time(
        self,
        session: SessionRecord,
        project: ProjectRecord,
        target: SessionStatus,
        patch: SessionPatch | None,
        caller: Caller,
        *,
        on_date: date,
        start_time: str,
        end_time: str,
    ) -> SessionRecord:
        students = self._students_of(session, project)
        keys = [booking_key(actor_id, on_date) for actor_id in [*project.supervisor_ids, *students]]
        with self.locks.hold(keys):
            report = self.conflicts.check_booking(
                advisor_ids=project.supervisor_ids,
                student_ids=students,
                on_date=on_date,
                start_time=start_time,
                end_time=end_time,
                exclude_session_id=session.id,
            )
            if report.has_conflict:
                raise ConflictError(report.conflicts)
            return self._transition(session, target, patch, caller)

    def _transition(
        self,
        session: SessionRecord,
        target: SessionStatus,
        patch: SessionPatch | None,
        caller: Caller,
        *,
        note: NoteDraft | None = None,
    ) -> SessionRecord:
        updated = self.store.transition_session(
            session.id,
            session.status,
            target,
            patch,
            note=note,
            actor_id=caller.user_id,
        )
        logger.info(
            "Guidance session %s moved %s -> %s by %s %s",
            session.id,
            session.status.value,
            target.value,
            caller.role.value,
            caller.user_id,
        )
        return updated

    def _notify(
        self,
        user_ids: Iterable[str],
        notification_type: NotificationType,
        title: str,
        message: str,
        session: SessionRecord,
        *,
        audience: UserRole,
    ) -> None:
        link = f"/{audience.value}/sessions/{session.id}"
        for user_id in dict.fromkeys(user_ids):
            try:
                self.notifier.notify(user_id, notification_type, title, message, link)
            except Exception:
                logger.warning(
                    "Failed to deliver %s notification for session %s to user %s",
                    notification_type.value,
                    session.id,
                    user_id,
                    exc_info=True,
                )

    @staticmethod
    def _require_creator(caller: Caller, role: UserRole, target: SessionStatus) -> None:
        if caller.role != role:
            raise InvalidTransitionError("NEW", target.value, caller.role.value)

    def _student_project(self, caller: Caller, thesis_project_id: str | None) -> ProjectRecord:
        if thesis_project_id is None:
            project = self.store.get_active_project_for_student(caller.user_id)
            if project is None:
                raise NotFoundError("ThesisProject", f"student:{caller.user_id}")
        else:
            project = self.store.get_project(thesis_project_id)
            if project is None or project.student_id != caller.user_id:
                raise NotFoundError("ThesisProject", thesis_project_id)
        if project.status != ThesisStatus.active:
            raise ValidationError.for_field("thesis_project_id", "Thesis project is not active")
        return project

    def _supervised_project(self, caller: Caller, thesis_project_id: str) -> ProjectRecord:
        project = self.store.get_project(thesis_project_id)
        if project is None or caller.user_id not in project.supervisor_ids:
            raise NotFoundError("ThesisProject", thesis_project_id)
        if project.status != ThesisStatus.active:
            raise ValidationError.for_field("thesis_project_id", "Thesis project is not active")
        return project

    def _load(self, session_id: str) -> tuple[SessionRecord, ProjectRecord]:
        session = self.store.get_session(session_id)
        if session is None:
            raise NotFoundError("GuidanceSession", session_id)
        project = self.store.get_project(session.thesis_project_id)
        if project is None:
            raise NotFoundError("GuidanceSession", session_id)
        return session, project

    def _load_visible(self, caller: Caller, session_id: str) -> tuple[SessionRecord, ProjectRecord]:
        """Admins, supervising advisors, the owning student and group participants can see a session."""
        session, project = self._load(session_id)
        if caller.role == UserRole.admin:
            return session, project
        if caller.role == UserRole.advisor and caller.user_id in project.supervisor_ids:
            return session, project
        if caller.role == UserRole.student and caller.user_id in self._students_of(session, project):
            return session, project
        raise NotFoundError("GuidanceSession", session_id)

    def _load_for_action(
        self, caller: Caller, session_id: str, action: SessionAction
    ) -> tuple[SessionRecord, ProjectRecord, SessionStatus]:
        session, project = self._load_visible(caller, session_id)
        target = resolve_transition(session.status, action, caller.role)
        # Group participants can see a session but only its owner acts on it.
        if caller.role == UserRole.student and caller.user_id != project.student_id:
            raise InvalidTransitionError(session.status.value, target.value, caller.role.value)
        return session, project, target

    @staticmethod
    def _students_of(session: SessionRecord, project: ProjectRecord) -> list[str]:
        return list(dict.fromkeys([project.student_id, *session.participant_ids]))


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def _when(session: SessionRecord) -> str:
    return f"{session.scheduled_date.isoformat()} {session.start_time}-{session.end_time}"
