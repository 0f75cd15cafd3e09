"""Maintenance of the calendar inputs read by the availability resolver and conflict checker.

Functions stage changes on the given session and write an activity entry; the
caller commits.
"""

from __future__ import annotations

from datetime import date
import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from thesisguide.core.exceptions import ConflictError, NotFoundError, ValidationError
from thesisguide.models.academic_period import AcademicPeriod
from thesisguide.models.schedule import AvailabilityWindow, UnavailabilityBlock, WeeklySchedule
from thesisguide.models.thesis import ThesisProject
from thesisguide.models.user import UserRole
from thesisguide.schemas.conflict import ConflictDetail
from thesisguide.schemas.scheduling import Caller, CommitmentKind
from thesisguide.services.audit import log_activity
from thesisguide.services.time_utils import is_valid_time, overlaps, to_minutes

logger = logging.getLogger(__name__)


def interval_errors(start_time: str | None, end_time: str | None) -> list[dict]:
    errors: list[dict] = []
    for field, value in (("start_time", start_time), ("end_time", end_time)):
        if not is_valid_time(value):
            errors.append({"field": field, "message": "Time must be in HH:MM 24-hour format"})
    if not errors and to_minutes(end_time) <= to_minutes(start_time):
        errors.append({"field": "end_time", "message": "End time must be after start time"})
    return errors


def _apply(row, changes: dict) -> None:
    for key, value in changes.items():
        setattr(row, key, value)


# -- weekly teaching and course schedules ------------------------------------


def list_weekly_schedules(db: Session, owner_id: str) -> list[WeeklySchedule]:
    query = (
        select(WeeklySchedule)
        .where(WeeklySchedule.owner_id == owner_id)
        .order_by(WeeklySchedule.day_of_week, WeeklySchedule.start_time)
    )
    return list(db.execute(query).scalars())


def add_weekly_schedule(db: Session, caller: Caller, data: dict) -> WeeklySchedule:
    _check_weekly(db, caller, data["day_of_week"], data["start_time"], data["end_time"])
    row = WeeklySchedule(owner_id=caller.user_id, **data)
    db.add(row)
    db.flush()
    log_activity(
        db,
        actor_id=caller.user_id,
        action="weekly_schedule.created",
        entity_type="weekly_schedule",
        entity_id=row.id,
        details={"day_of_week": row.day_of_week, "start_time": row.start_time, "end_time": row.end_time},
    )
    return row


def update_weekly_schedule(db: Session, caller: Caller, schedule_id: str, changes: dict) -> WeeklySchedule:
    row = _owned_weekly(db, caller, schedule_id)
    if not changes:
        return row
    _check_weekly(
        db,
        caller,
        changes.get("day_of_week", row.day_of_week),
        changes.get("start_time", row.start_time),
        changes.get("end_time", row.end_time),
        exclude_id=row.id,
    )
    _apply(row, changes)
    log_activity(
        db,
        actor_id=caller.user_id,
        action="weekly_schedule.updated",
        entity_type="weekly_schedule",
        entity_id=row.id,
        details={"fields": sorted(changes)},
    )
    return row


def delete_weekly_schedule(db: Session, caller: Caller, schedule_id: str) -> None:
    row = _owned_weekly(db, caller, schedule_id)
    db.delete(row)
    log_activity(
        db,
        actor_id=caller.user_id,
        action="weekly_schedule.deleted",
        entity_type="weekly_schedule",
        entity_id=schedule_id,
    )


def _owned_weekly(db: Session, caller: Caller, schedule_id: str) -> WeeklySchedule:
    row = db.get(WeeklySchedule, schedule_id)
    if row is None or row.owner_id != caller.user_id:
        raise NotFoundError("WeeklySchedule", schedule_id)
    return row


def _check_weekly(
    db: Session,
    caller: Caller,
    day_of_week: int,
    start_time: str,
    end_time: str,
    *,
    exclude_id: str | None = None,
) -> None:
    if caller.role not in (UserRole.advisor, UserRole.student):
        raise ValidationError.for_field("role", "Only advisors and students keep a weekly schedule")
    errors = interval_errors(start_time, end_time)
    if errors:
        raise ValidationError("Invalid weekly schedule", errors=errors)

    kind = CommitmentKind.teaching if caller.role == UserRole.advisor else CommitmentKind.course
    clashes = [
        ConflictDetail(
            kind=kind,
            role=caller.role,
            actor_id=caller.user_id,
            start_time=item.start_time,
            end_time=item.end_time,
            description=f"Overlaps {item.course_name} {item.start_time}-{item.end_time}",
            label=item.course_name,
            location=item.room,
        )
        for item in list_weekly_schedules(db, caller.user_id)
        if item.id != exclude_id
        and item.day_of_week == day_of_week
        and overlaps(start_time, end_time, item.start_time, item.end_time)
    ]
    if clashes:
        raise ConflictError(clashes, message="Weekly schedule overlaps an existing entry")


# -- advisor availability windows --------------------------------------------


def list_availability_windows(db: Session, advisor_id: str) -> list[AvailabilityWindow]:
    query = (
        select(AvailabilityWindow)
        .where(AvailabilityWindow.advisor_id == advisor_id)
        .order_by(AvailabilityWindow.is_recurring.desc(), AvailabilityWindow.day_of_week, AvailabilityWindow.specific_date)
    )
    return list(db.execute(query).scalars())


def add_availability_window(db: Session, caller: Caller, data: dict) -> AvailabilityWindow:
    values = _normalize_window(data)
    row = AvailabilityWindow(advisor_id=caller.user_id, is_active=True, **values)
    db.add(row)
    db.flush()
    log_activity(
        db,
        actor_id=caller.user_id,
        action="availability_window.created",
        entity_type="availability_window",
        entity_id=row.id,
    )
    return row


def update_availability_window(db: Session, caller: Caller, window_id: str, changes: dict) -> AvailabilityWindow:
    row = _owned_window(db, caller, window_id)
    if not changes:
        return row
    current = {
        "start_time": row.start_time,
        "end_time": row.end_time,
        "is_recurring": row.is_recurring,
        "day_of_week": row.day_of_week,
        "specific_date": row.specific_date,
    }
    _apply(row, _normalize_window({**current, **changes}))
    log_activity(
        db,
        actor_id=caller.user_id,
        action="availability_window.updated",
        entity_type="availability_window",
        entity_id=row.id,
        details={"fields": sorted(changes)},
    )
    return row


def set_availability_window_active(db: Session, caller: Caller, window_id: str, is_active: bool) -> AvailabilityWindow:
    row = _owned_window(db, caller, window_id)
    row.is_active = is_active
    log_activity(
        db,
        actor_id=caller.user_id,
        action="availability_window.activated" if is_active else "availability_window.deactivated",
        entity_type="availability_window",
        entity_id=row.id,
    )
    return row


def delete_availability_window(db: Session, caller: Caller, window_id: str) -> None:
    row = _owned_window(db, caller, window_id)
    db.delete(row)
    log_activity(
        db,
        actor_id=caller.user_id,
        action="availability_window.deleted",
        entity_type="availability_window",
        entity_id=window_id,
    )


def _owned_window(db: Session, caller: Caller, window_id: str) -> AvailabilityWindow:
    row = db.get(AvailabilityWindow, window_id)
    if row is None or row.advisor_id != caller.user_id:
        raise NotFoundError("AvailabilityWindow", window_id)
    return row


def _normalize_window(values: dict) -> dict:
    """A recurring window names a weekday, a one-off window names a date; never both."""
    errors = interval_errors(values.get("start_time"), values.get("end_time"))
    recurring = bool(values.get("is_recurring"))
    if recurring and values.get("day_of_week") is None:
        errors.append({"field": "day_of_week", "message": "Recurring windows need a day of week"})
    if not recurring and values.get("specific_date") is None:
        errors.append({"field": "specific_date", "message": "One-off windows need a specific date"})
    if errors:
        raise ValidationError("Invalid availability window", errors=errors)
    return {
        "start_time": values["start_time"],
        "end_time": values["end_time"],
        "is_recurring": recurring,
        "day_of_week": values.get("day_of_week") if recurring else None,
        "specific_date": None if recurring else values.get("specific_date"),
    }


# -- unavailability blocks ---------------------------------------------------


def list_unavailability_blocks(
    db: Session,
    user_id: str,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[UnavailabilityBlock]:
    query = select(UnavailabilityBlock).where(UnavailabilityBlock.user_id == user_id)
    if start_date is not None:
        query = query.where(UnavailabilityBlock.block_date >= start_date)
    if end_date is not None:
        query = query.where(UnavailabilityBlock.block_date <= end_date)
    query = query.order_by(UnavailabilityBlock.block_date, UnavailabilityBlock.start_time)
    return list(db.execute(query).scalars())


def add_unavailability_block(db: Session, caller: Caller, data: dict, *, today: date) -> UnavailabilityBlock:
    errors = interval_errors(data["start_time"], data["end_time"])
    if data["block_date"] < today:
        errors.insert(0, {"field": "block_date", "message": "Unavailability cannot be declared in the past"})
    if errors:
        raise ValidationError("Invalid unavailability block", errors=errors)
    reason = (data.get("reason") or "").strip() or None
    row = UnavailabilityBlock(
        user_id=caller.user_id,
        block_date=data["block_date"],
        start_time=data["start_time"],
        end_time=data["end_time"],
        reason=reason,
    )
    db.add(row)
    db.flush()
    log_activity(
        db,
        actor_id=caller.user_id,
        action="unavailability_block.created",
        entity_type="unavailability_block",
        entity_id=row.id,
        details={"block_date": row.block_date.isoformat(), "start_time": row.start_time, "end_time": row.end_time},
    )
    return row


def delete_unavailability_block(db: Session, caller: Caller, block_id: str) -> None:
    row = db.get(UnavailabilityBlock, block_id)
    if row is None or row.user_id != caller.user_id:
        raise NotFoundError("UnavailabilityBlock", block_id)
    db.delete(row)
    log_activity(
        db,
        actor_id=caller.user_id,
        action="unavailability_block.deleted",
        entity_type="unavailability_block",
        entity_id=block_id,
    )


# -- academic periods --------------------------------------------------------


def list_academic_periods(db: Session) -> list[AcademicPeriod]:
    return list(db.execute(select(AcademicPeriod).order_by(AcademicPeriod.start_date.desc())).scalars())


def create_academic_period(db: Session, caller: Caller, data: dict) -> AcademicPeriod:
    _check_period_dates(data["start_date"], data["end_date"], data["checkpoint1_date"], data["checkpoint2_date"])
    is_active = data.get("is_active", False)
    row = AcademicPeriod(**{**data, "is_active": False})
    db.add(row)
    db.flush()
    log_activity(
        db,
        actor_id=caller.user_id,
        action="academic_period.created",
        entity_type="academic_period",
        entity_id=row.id,
    )
    if is_active:
        activate_academic_period(db, caller, row.id)
    return row


def update_academic_period(db: Session, caller: Caller, period_id: str, changes: dict) -> AcademicPeriod:
    row = _period(db, period_id)
    if not changes:
        return row
    _check_period_dates(
        changes.get("start_date", row.start_date),
        changes.get("end_date", row.end_date),
        changes.get("checkpoint1_date", row.checkpoint1_date),
        changes.get("checkpoint2_date", row.checkpoint2_date),
    )
    _apply(row, changes)
    log_activity(
        db,
        actor_id=caller.user_id,
        action="academic_period.updated",
        entity_type="academic_period",
        entity_id=row.id,
        details={"fields": sorted(changes)},
    )
    return row


def activate_academic_period(db: Session, caller: Caller, period_id: str) -> AcademicPeriod:
    """Make one period active and every other period inactive."""
    row = _period(db, period_id)
    db.execute(
        update(AcademicPeriod)
        .where(AcademicPeriod.id != row.id, AcademicPeriod.is_active.is_(True))
        .values(is_active=False)
    )
    row.is_active = True
    db.flush()
    log_activity(
        db,
        actor_id=caller.user_id,
        action="academic_period.activated",
        entity_type="academic_period",
        entity_id=row.id,
    )
    logger.info("Academic period %s (%s) activated by %s", row.id, row.name, caller.user_id)
    return row


def delete_academic_period(db: Session, caller: Caller, period_id: str) -> None:
    row = _period(db, period_id)
    in_use = db.execute(
        select(ThesisProject.id).where(ThesisProject.academic_period_id == period_id).limit(1)
    ).scalar_one_or_none()
    if in_use is not None:
        raise ValidationError.for_field("period_id", "Academic period still has thesis projects")
    db.delete(row)
    log_activity(
        db,
        actor_id=caller.user_id,
        action="academic_period.deleted",
        entity_type="academic_period",
        entity_id=period_id,
    )


def _period(db: Session, period_id: str) -> AcademicPeriod:
    row = db.get(AcademicPeriod, period_id)
    if row is None:
        raise NotFoundError("AcademicPeriod", period_id)
    return row


def _check_period_dates(start_date: date, end_date: date, checkpoint1: date, checkpoint2: date) -> None:
    errors: list[dict] = []
    if end_date < start_date:
        errors.append({"field": "end_date", "message": "End date must not be before start date"})
    if not start_date <= checkpoint1 <= end_date:
        errors.append({"field": "checkpoint1_date", "message": "Checkpoint 1 must fall within the period"})
    if not checkpoint1 < checkpoint2 <= end_date:
        errors.append({"field": "checkpoint2_date", "message": "Checkpoint 2 must follow checkpoint 1 within the period"})
    if errors:
        raise ValidationError("Invalid academic period", errors=errors)
