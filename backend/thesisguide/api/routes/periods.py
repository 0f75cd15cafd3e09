from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from thesisguide.api.deps import get_caller, get_db, get_store, require_roles
from thesisguide.core.exceptions import NotFoundError
from thesisguide.models.user import UserRole
from thesisguide.schemas.calendar import AcademicPeriodCreate, AcademicPeriodUpdate
from thesisguide.schemas.scheduling import Caller, PeriodRecord
from thesisguide.services import calendar as calendar_service
from thesisguide.services.storage import SchedulingStore

router = APIRouter()


@router.get("/academic-periods", response_model=list[PeriodRecord])
def list_periods(
    caller: Caller = Depends(get_caller),
    db: Session = Depends(get_db),
) -> list[PeriodRecord]:
    return calendar_service.list_academic_periods(db)


@router.get("/academic-periods/active", response_model=PeriodRecord)
def get_active_period(
    caller: Caller = Depends(get_caller),
    store: SchedulingStore = Depends(get_store),
) -> PeriodRecord:
    period = store.get_active_period()
    if period is None:
        raise NotFoundError("AcademicPeriod", "active")
    return period


@router.post("/academic-periods", response_model=PeriodRecord, status_code=status.HTTP_201_CREATED)
def create_period(
    payload: AcademicPeriodCreate,
    caller: Caller = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> PeriodRecord:
    row = calendar_service.create_academic_period(db, caller, payload.model_dump())
    db.commit()
    db.refresh(row)
    return row


@router.put("/academic-periods/{period_id}", response_model=PeriodRecord)
def update_period(
    period_id: str,
    payload: AcademicPeriodUpdate,
    caller: Caller = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> PeriodRecord:
    row = calendar_service.update_academic_period(db, caller, period_id, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(row)
    return row


@router.post("/academic-periods/{period_id}/activate", response_model=PeriodRecord)
def activate_period(
    period_id: str,
    caller: Caller = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> PeriodRecord:
    row = calendar_service.activate_academic_period(db, caller, period_id)
    db.commit()
    db.refresh(row)
    return row


@router.delete("/academic-periods/{period_id}")
def delete_period(
    period_id: str,
    caller: Caller = Depends(require_roles(UserRole.admin)),
    db: Session = Depends(get_db),
) -> dict:
    calendar_service.delete_academic_period(db, caller, period_id)
    db.commit()
    return {"success": True}
