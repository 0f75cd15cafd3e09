from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from thesisguide.api.deps import get_db, require_roles
from thesisguide.models.user import UserRole
from thesisguide.schemas.calendar import (
    AvailabilityToggle,
    AvailabilityWindowCreate,
    AvailabilityWindowUpdate,
    UnavailabilityBlockCreate,
    UnavailabilityBlockOut,
    WeeklyScheduleCreate,
    WeeklyScheduleOut,
    WeeklyScheduleUpdate,
)
from thesisguide.schemas.scheduling import AvailabilityWindowRecord, Caller
from thesisguide.services import calendar as calendar_service

router = APIRouter()

schedule_keepers = require_roles(UserRole.advisor, UserRole.student)


# -- weekly schedules --------------------------------------------------------


@router.get("/schedules", response_model=list[WeeklyScheduleOut])
def list_schedules(
    caller: Caller = Depends(schedule_keepers),
    db: Session = Depends(get_db),
) -> list[WeeklyScheduleOut]:
    return calendar_service.list_weekly_schedules(db, caller.user_id)


@router.post("/schedules", response_model=WeeklyScheduleOut, status_code=status.HTTP_201_CREATED)
def create_schedule(
    payload: WeeklyScheduleCreate,
    caller: Caller = Depends(schedule_keepers),
    db: Session = Depends(get_db),
) -> WeeklyScheduleOut:
    row = calendar_service.add_weekly_schedule(db, caller, payload.model_dump())
    db.commit()
    db.refresh(row)
    return row


@router.put("/schedules/{schedule_id}", response_model=WeeklyScheduleOut)
def update_schedule(
    schedule_id: str,
    payload: WeeklyScheduleUpdate,
    caller: Caller = Depends(schedule_keepers),
    db: Session = Depends(get_db),
) -> WeeklyScheduleOut:
    row = calendar_service.update_weekly_schedule(db, caller, schedule_id, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(row)
    return row


@router.delete("/schedules/{schedule_id}")
def delete_schedule(
    schedule_id: str,
    caller: Caller = Depends(schedule_keepers),
    db: Session = Depends(get_db),
) -> dict:
    calendar_service.delete_weekly_schedule(db, caller, schedule_id)
    db.commit()
    return {"success": True}


# -- availability windows ----------------------------------------------------


@router.get("/availabilities", response_model=list[AvailabilityWindowRecord])
def list_availabilities(
    caller: Caller = Depends(require_roles(UserRole.advisor)),
    db: Session = Depends(get_db),
) -> list[AvailabilityWindowRecord]:
    return calendar_service.list_availability_windows(db, caller.user_id)


@router.post("/availabilities", response_model=AvailabilityWindowRecord, status_code=status.HTTP_201_CREATED)
def create_availability(
    payload: AvailabilityWindowCreate,
    caller: Caller = Depends(require_roles(UserRole.advisor)),
    db: Session = Depends(get_db),
) -> AvailabilityWindowRecord:
    row = calendar_service.add_availability_window(db, caller, payload.model_dump())
    db.commit()
    db.refresh(row)
    return row


@router.put("/availabilities/{window_id}", response_model=AvailabilityWindowRecord)
def update_availability(
    window_id: str,
    payload: AvailabilityWindowUpdate,
    caller: Caller = Depends(require_roles(UserRole.advisor)),
    db: Session = Depends(get_db),
) -> AvailabilityWindowRecord:
    row = calendar_service.update_availability_window(db, caller, window_id, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(row)
    return row


@router.patch("/availabilities/{window_id}/toggle", response_model=AvailabilityWindowRecord)
def toggle_availability(
    window_id: str,
    payload: AvailabilityToggle,
    caller: Caller = Depends(require_roles(UserRole.advisor)),
    db: Session = Depends(get_db),
) -> AvailabilityWindowRecord:
    row = calendar_service.set_availability_window_active(db, caller, window_id, payload.is_active)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/availabilities/{window_id}")
def delete_availability(
    window_id: str,
    caller: Caller = Depends(require_roles(UserRole.advisor)),
    db: Session = Depends(get_db),
) -> dict:
    calendar_service.delete_availability_window(db, caller, window_id)
    db.commit()
    return {"success": True}


# -- unavailability ----------------------------------------------------------


@router.get("/unavailability", response_model=list[UnavailabilityBlockOut])
def list_unavailability(
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    caller: Caller = Depends(schedule_keepers),
    db: Session = Depends(get_db),
) -> list[UnavailabilityBlockOut]:
    return calendar_service.list_unavailability_blocks(db, caller.user_id, start_date=start_date, end_date=end_date)


@router.post("/unavailability", response_model=UnavailabilityBlockOut, status_code=status.HTTP_201_CREATED)
def declare_unavailability(
    payload: UnavailabilityBlockCreate,
    caller: Caller = Depends(schedule_keepers),
    db: Session = Depends(get_db),
) -> UnavailabilityBlockOut:
    row = calendar_service.add_unavailability_block(db, caller, payload.model_dump(), today=date.today())
    db.commit()
    db.refresh(row)
    return row


@router.delete("/unavailability/{block_id}")
def delete_unavailability(
    block_id: str,
    caller: Caller = Depends(schedule_keepers),
    db: Session = Depends(get_db),
) -> dict:
    calendar_service.delete_unavailability_block(db, caller, block_id)
    db.commit()
    return {"success": True}
