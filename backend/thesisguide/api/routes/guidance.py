from datetime import date
import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from thesisguide.api.deps import get_caller, get_db, get_notifier, get_store, get_workflow, require_roles
from thesisguide.core.config import Settings, get_settings
from thesisguide.core.exceptions import NotFoundError
from thesisguide.models.guidance_session import SessionStatus
from thesisguide.models.thesis import ThesisType
from thesisguide.models.user import UserRole
from thesisguide.schemas.availability import AvailableSlot, FreeRange
from thesisguide.schemas.conflict import ConflictCheckRequest, ConflictReport
from thesisguide.schemas.guidance import (
    ActivityOut,
    SessionApprove,
    SessionComplete,
    SessionCompletionOut,
    SessionOfferCreate,
    SessionReason,
    SessionRequestCreate,
    SessionScheduleCreate,
    SessionUpdate,
)
from thesisguide.schemas.report import ScheduleReport
from thesisguide.schemas.requirement import InsufficientGuidanceEntry, RequirementReport
from thesisguide.schemas.scheduling import Caller, NoteRecord, PeriodRecord, SessionRecord
from thesisguide.services.audit import list_activity
from thesisguide.services.availability import AvailabilityResolver
from thesisguide.services.conflict_service import ConflictService
from thesisguide.services.guidance_workflow import GuidanceWorkflow
from thesisguide.services.notifications import Notifier
from thesisguide.services.reporting import schedule_report
from thesisguide.services.requirements import RequirementEvaluator, send_guidance_reminders
from thesisguide.services.storage import SchedulingStore

router = APIRouter()
logger = logging.getLogger(__name__)


def _resolve_period(store: SchedulingStore, period_id: str | None) -> PeriodRecord | None:
    if period_id is None:
        return None
    period = store.get_period(period_id)
    if period is None:
        raise NotFoundError("AcademicPeriod", period_id)
    return period


# -- availability and conflicts ---------------------------------------------


@router.get("/availability", response_model=list[AvailableSlot])
def get_availability(
    advisor_id: str = Query(min_length=1),
    on_date: date = Query(alias="date"),
    student_id: str | None = Query(default=None),
    caller: Caller = Depends(get_caller),
    store: SchedulingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> list[AvailableSlot]:
    if caller.role == UserRole.student:
        student_id = caller.user_id
    return AvailabilityResolver(store, settings).resolve(advisor_id, on_date, student_id=student_id)


@router.get("/free-ranges", response_model=list[FreeRange])
def get_free_ranges(
    advisor_id: str = Query(min_length=1),
    on_date: date = Query(alias="date"),
    student_id: str | None = Query(default=None),
    caller: Caller = Depends(get_caller),
    store: SchedulingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> list[FreeRange]:
    if caller.role == UserRole.student:
        student_id = caller.user_id
    return AvailabilityResolver(store, settings).free_ranges(advisor_id, on_date, student_id=student_id)


@router.post("/conflicts/check", response_model=ConflictReport)
def check_conflicts(
    payload: ConflictCheckRequest,
    caller: Caller = Depends(get_caller),
    store: SchedulingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ConflictReport:
    report = ConflictService(store, settings).detect_conflicts(
        payload.actor_id,
        payload.role,
        payload.on_date,
        payload.start_time,
        payload.end_time,
        exclude_session_id=payload.exclude_session_id,
    )
    if report.has_conflict and payload.role == UserRole.advisor:
        report.suggested_slots = AvailabilityResolver(store, settings).free_ranges(payload.actor_id, payload.on_date)
    return report


# -- session lifecycle -------------------------------------------------------


@router.post("/sessions/request", response_model=SessionRecord, status_code=status.HTTP_201_CREATED)
def request_session(
    payload: SessionRequestCreate,
    caller: Caller = Depends(require_roles(UserRole.student)),
    workflow: GuidanceWorkflow = Depends(get_workflow),
) -> SessionRecord:
    return workflow.request_session(caller, **payload.model_dump())


@router.post("/sessions/offer", response_model=SessionRecord, status_code=status.HTTP_201_CREATED)
def offer_session(
    payload: SessionOfferCreate,
    caller: Caller = Depends(require_roles(UserRole.advisor)),
    workflow: GuidanceWorkflow = Depends(get_workflow),
) -> SessionRecord:
    return workflow.offer_session(caller, **payload.model_dump())


@router.post("/sessions", response_model=SessionRecord, status_code=status.HTTP_201_CREATED)
def schedule_session(
    payload: SessionScheduleCreate,
    caller: Caller = Depends(require_roles(UserRole.advisor)),
    workflow: GuidanceWorkflow = Depends(get_workflow),
) -> SessionRecord:
    return workflow.schedule_session(caller, **payload.model_dump())


@router.get("/sessions", response_model=list[SessionRecord])
def list_sessions(
    start_date: date = Query(),
    end_date: date = Query(),
    status_filter: SessionStatus | None = Query(default=None, alias="status"),
    advisor_id: str | None = Query(default=None),
    student_id: str | None = Query(default=None),
    caller: Caller = Depends(get_caller),
    store: SchedulingStore = Depends(get_store),
) -> list[SessionRecord]:
    if caller.role == UserRole.advisor:
        advisor_id = caller.user_id
    elif caller.role == UserRole.student:
        student_id = caller.user_id
    return store.list_sessions(
        start_date=start_date,
        end_date=end_date,
        advisor_id=advisor_id,
        student_id=student_id,
        status=status_filter,
    )


@router.get("/sessions/{session_id}", response_model=SessionRecord)
def get_session(
    session_id: str,
    caller: Caller = Depends(get_caller),
    workflow: GuidanceWorkflow = Depends(get_workflow),
) -> SessionRecord:
    return workflow.get_session(caller, session_id)


@router.get("/sessions/{session_id}/notes", response_model=list[NoteRecord])
def list_session_notes(
    session_id: str,
    caller: Caller = Depends(get_caller),
    workflow: GuidanceWorkflow = Depends(get_workflow),
    store: SchedulingStore = Depends(get_store),
) -> list[NoteRecord]:
    workflow.get_session(caller, session_id)
    return store.list_session_notes(session_id)


@router.get("/sessions/{session_id}/activity", response_model=list[ActivityOut])
def list_session_activity(
    session_id: str,
    caller: Caller = Depends(get_caller),
    workflow: GuidanceWorkflow = Depends(get_workflow),
    db: Session = Depends(get_db),
) -> list[ActivityOut]:
    workflow.get_session(caller, session_id)
    return list_activity(db, entity_id=session_id)


@router.put("/sessions/{session_id}", response_model=SessionRecord)
def update_session(
    session_id: str,
    payload: SessionUpdate,
    caller: Caller = Depends(require_roles(UserRole.student)),
    workflow: GuidanceWorkflow = Depends(get_workflow),
) -> SessionRecord:
    return workflow.update_request(caller, session_id, **payload.model_dump(exclude_unset=True))


@router.post("/sessions/{session_id}/approve", response_model=SessionRecord)
def approve_session(
    session_id: str,
    payload: SessionApprove | None = None,
    caller: Caller = Depends(require_roles(UserRole.advisor)),
    workflow: GuidanceWorkflow = Depends(get_workflow),
) -> SessionRecord:
    return workflow.approve_session(caller, session_id, location=payload.location if payload else None)


@router.post("/sessions/{session_id}/reject", response_model=SessionRecord)
def reject_session(
    session_id: str,
    payload: SessionReason | None = None,
    caller: Caller = Depends(require_roles(UserRole.advisor)),
    workflow: GuidanceWorkflow = Depends(get_workflow),
) -> SessionRecord:
    return workflow.reject_session(caller, session_id, reason=payload.reason if payload else None)


@router.post("/sessions/{session_id}/cancel", response_model=SessionRecord)
def cancel_session(
    session_id: str,
    payload: SessionReason | None = None,
    caller: Caller = Depends(require_roles(UserRole.student)),
    workflow: GuidanceWorkflow = Depends(get_workflow),
) -> SessionRecord:
    return workflow.cancel_session(caller, session_id, reason=payload.reason if payload else None)


@router.post("/sessions/{session_id}/accept", response_model=SessionRecord)
def accept_offer(
    session_id: str,
    caller: Caller = Depends(require_roles(UserRole.student)),
    workflow: GuidanceWorkflow = Depends(get_workflow),
) -> SessionRecord:
    return workflow.accept_offer(caller, session_id)


@router.post("/sessions/{session_id}/decline", response_model=SessionRecord)
def decline_offer(
    session_id: str,
    payload: SessionReason | None = None,
    caller: Caller = Depends(require_roles(UserRole.student)),
    workflow: GuidanceWorkflow = Depends(get_workflow),
) -> SessionRecord:
    return workflow.decline_offer(caller, session_id, reason=payload.reason if payload else None)


@router.post("/sessions/{session_id}/complete", response_model=SessionCompletionOut)
def complete_session(
    session_id: str,
    payload: SessionComplete,
    caller: Caller = Depends(require_roles(UserRole.advisor)),
    workflow: GuidanceWorkflow = Depends(get_workflow),
) -> SessionCompletionOut:
    session, note = workflow.complete_session(caller, session_id, content=payload.content, tasks=payload.tasks)
    return SessionCompletionOut(session=session, note=note)


# -- progress and reports ----------------------------------------------------


@router.get("/progress", response_model=RequirementReport)
def my_progress(
    period_id: str | None = Query(default=None),
    caller: Caller = Depends(require_roles(UserRole.student)),
    store: SchedulingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> RequirementReport:
    period = _resolve_period(store, period_id)
    return RequirementEvaluator(store, settings).evaluate(caller.user_id, period=period)


@router.get("/progress/{student_id}", response_model=RequirementReport)
def student_progress(
    student_id: str,
    period_id: str | None = Query(default=None),
    caller: Caller = Depends(require_roles(UserRole.advisor, UserRole.admin)),
    store: SchedulingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> RequirementReport:
    if caller.role == UserRole.advisor:
        project = store.get_active_project_for_student(student_id)
        if project is None or caller.user_id not in project.supervisor_ids:
            raise NotFoundError("Student", student_id)
    period = _resolve_period(store, period_id)
    return RequirementEvaluator(store, settings).evaluate(student_id, period=period)


@router.get("/reports/insufficient", response_model=list[InsufficientGuidanceEntry])
def insufficient_guidance_report(
    period_id: str | None = Query(default=None),
    thesis_type: ThesisType | None = Query(default=None),
    caller: Caller = Depends(require_roles(UserRole.advisor, UserRole.admin)),
    store: SchedulingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> list[InsufficientGuidanceEntry]:
    period = _resolve_period(store, period_id)
    entries = RequirementEvaluator(store, settings).insufficient_students(period=period, thesis_type=thesis_type)
    if caller.role == UserRole.advisor:
        entries = [item for item in entries if any(user.id == caller.user_id for user in item.supervisors)]
    return entries


@router.get("/reports/schedule", response_model=ScheduleReport)
def schedule_report_endpoint(
    start_date: date = Query(),
    end_date: date = Query(),
    status_filter: SessionStatus | None = Query(default=None, alias="status"),
    advisor_id: str | None = Query(default=None),
    student_id: str | None = Query(default=None),
    caller: Caller = Depends(require_roles(UserRole.advisor, UserRole.admin)),
    store: SchedulingStore = Depends(get_store),
) -> ScheduleReport:
    if caller.role == UserRole.advisor:
        advisor_id = caller.user_id
    return schedule_report(
        store,
        start_date,
        end_date,
        advisor_id=advisor_id,
        student_id=student_id,
        status=status_filter,
    )


@router.post("/reports/insufficient/remind")
def remind_insufficient_guidance(
    period_id: str | None = Query(default=None),
    thesis_type: ThesisType | None = Query(default=None),
    caller: Caller = Depends(require_roles(UserRole.admin)),
    store: SchedulingStore = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> dict[str, int]:
    period = _resolve_period(store, period_id)
    entries = RequirementEvaluator(store, settings).insufficient_students(period=period, thesis_type=thesis_type)
    sent = send_guidance_reminders(entries, notifier)
    logger.info("Admin %s sent %d guidance reminder(s)", caller.user_id, sent)
    return {"students": len(entries), "notified": sent}
