from collections.abc import Callable, Generator, Iterable
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session, sessionmaker

from thesisguide.core.config import Settings, get_settings
from thesisguide.core.security import decode_token
from thesisguide.db.session import SessionLocal
from thesisguide.models.user import UserRole
from thesisguide.schemas.scheduling import Caller, UserRecord
from thesisguide.services.booking_locks import BookingLocks
from thesisguide.services.guidance_workflow import GuidanceWorkflow
from thesisguide.services.notifications import DatabaseNotifier, Notifier
from thesisguide.services.storage import SchedulingStore, SqlAlchemyStore

security = HTTPBearer()


def get_session_factory() -> sessionmaker:
    return SessionLocal


def get_db(session_factory: sessionmaker = Depends(get_session_factory)) -> Generator[Session, None, None]:
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def get_store(session_factory: sessionmaker = Depends(get_session_factory)) -> SchedulingStore:
    return SqlAlchemyStore(session_factory)


def get_notifier(session_factory: sessionmaker = Depends(get_session_factory)) -> Notifier:
    return DatabaseNotifier(session_factory)


@lru_cache
def get_booking_locks() -> BookingLocks:
    # One lock table per process; every request must share it.
    return BookingLocks()


def get_workflow(
    store: SchedulingStore = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
    locks: BookingLocks = Depends(get_booking_locks),
    settings: Settings = Depends(get_settings),
) -> GuidanceWorkflow:
    return GuidanceWorkflow(store, notifier, settings, locks=locks)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: SchedulingStore = Depends(get_store),
) -> UserRecord:
    token = credentials.credentials
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token)
        user_id = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError as exc:
        raise credentials_exception from exc

    user = store.get_user(user_id)
    if user is None:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is inactive")
    return user


def get_caller(current_user: UserRecord = Depends(get_current_user)) -> Caller:
    return Caller(user_id=current_user.id, role=current_user.role)


def require_roles(*roles: UserRole) -> Callable[[UserRecord], Caller]:
    allowed_roles: Iterable[UserRole] = set(roles)

    def role_checker(current_user: UserRecord = Depends(get_current_user)) -> Caller:
        if current_user.role not in allowed_roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return Caller(user_id=current_user.id, role=current_user.role)

    return role_checker
