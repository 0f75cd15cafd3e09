import os

# Must be set before thesisguide.db.session builds its engine.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import thesisguide.models  # noqa: F401
from thesisguide.api.deps import get_booking_locks, get_session_factory
from thesisguide.core.config import Settings
from thesisguide.core.security import create_access_token
from thesisguide.db.base import Base
from thesisguide.main import app
from thesisguide.models.academic_period import AcademicPeriod
from thesisguide.models.guidance_session import GuidanceSession, SessionStatus
from thesisguide.models.schedule import AvailabilityWindow, UnavailabilityBlock, WeeklySchedule
from thesisguide.models.thesis import ThesisProject, ThesisSupervisor, ThesisType
from thesisguide.models.user import User, UserRole
from thesisguide.services.booking_locks import BookingLocks
from thesisguide.services.guidance_workflow import GuidanceWorkflow
from thesisguide.services.storage import SqlAlchemyStore

# Monday; workflow tests treat this as "today".
TODAY = date(2026, 3, 2)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def notify(self, user_id, notification_type, title, message, link=None):
        self.sent.append(
            {
                "user_id": user_id,
                "type": notification_type,
                "title": title,
                "message": message,
                "link": link,
            }
        )

    def types_for(self, user_id):
        return [item["type"] for item in self.sent if item["user_id"] == user_id]


class Seeder:
    """Writes fixture rows straight through the ORM."""

    def __init__(self, session_factory):
        self._session_factory = session_factory
        self._counter = 0

    def _add(self, row):
        with self._session_factory() as db:
            db.add(row)
            db.commit()
            return row.id

    def user(self, role: UserRole, name: str | None = None) -> str:
        self._counter += 1
        name = name or f"{role.value.title()} {self._counter}"
        return self._add(
            User(
                name=name,
                email=f"{role.value}{self._counter}@example.com",
                role=role,
                identifier=f"ID{self._counter:04d}",
            )
        )

    def period(self, *, checkpoint1: date, checkpoint2: date, is_active: bool = True, name: str = "2025/2026 Even") -> str:
        return self._add(
            AcademicPeriod(
                name=name,
                start_date=date(checkpoint1.year, 1, 1),
                end_date=date(checkpoint2.year, 12, 31),
                checkpoint1_date=checkpoint1,
                checkpoint2_date=checkpoint2,
                is_active=is_active,
            )
        )

    def project(
        self,
        student_id: str,
        advisor_ids: list[str],
        *,
        thesis_type: ThesisType = ThesisType.ta1,
        period_id: str | None = None,
        title: str = "Scheduling under constraints",
    ) -> str:
        project_id = self._add(
            ThesisProject(
                student_id=student_id,
                title=title,
                thesis_type=thesis_type,
                academic_period_id=period_id,
            )
        )
        with self._session_factory() as db:
            for order, advisor_id in enumerate(advisor_ids, start=1):
                db.add(ThesisSupervisor(thesis_project_id=project_id, advisor_id=advisor_id, supervisor_order=order))
            db.commit()
        return project_id

    def weekly(self, owner_id: str, day_of_week: int, start_time: str, end_time: str, course_name: str = "Algorithms"):
        return self._add(
            WeeklySchedule(
                owner_id=owner_id,
                day_of_week=day_of_week,
                start_time=start_time,
                end_time=end_time,
                course_name=course_name,
                room="B-101",
            )
        )

    def window(
        self,
        advisor_id: str,
        start_time: str,
        end_time: str,
        *,
        day_of_week: int | None = None,
        specific_date: date | None = None,
        is_active: bool = True,
    ) -> str:
        return self._add(
            AvailabilityWindow(
                advisor_id=advisor_id,
                is_recurring=day_of_week is not None,
                day_of_week=day_of_week,
                specific_date=specific_date,
                start_time=start_time,
                end_time=end_time,
                is_active=is_active,
            )
        )

    def block(self, user_id: str, block_date: date, start_time: str, end_time: str, reason: str = "Conference") -> str:
        return self._add(
            UnavailabilityBlock(
                user_id=user_id,
                block_date=block_date,
                start_time=start_time,
                end_time=end_time,
                reason=reason,
            )
        )

    def session(
        self,
        project_id: str,
        scheduled_date: date,
        start_time: str = "09:00",
        end_time: str = "10:00",
        *,
        status: SessionStatus = SessionStatus.completed,
        created_by: str = "seed",
    ) -> str:
        return self._add(
            GuidanceSession(
                thesis_project_id=project_id,
                scheduled_date=scheduled_date,
                start_time=start_time,
                end_time=end_time,
                location="Room 301",
                status=status,
                created_by=created_by,
            )
        )


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture()
def settings():
    return Settings(database_url="sqlite+pysqlite://")


@pytest.fixture()
def store(session_factory):
    return SqlAlchemyStore(session_factory)


@pytest.fixture()
def seed(session_factory):
    return Seeder(session_factory)


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def workflow(store, notifier, settings):
    return GuidanceWorkflow(store, notifier, settings, locks=BookingLocks(), today=lambda: TODAY)


@pytest.fixture()
def pairing(seed):
    """One advisor supervising one student's active TA1 project."""
    advisor_id = seed.user(UserRole.advisor, "Dr. Rahma")
    student_id = seed.user(UserRole.student, "Budi")
    period_id = seed.period(checkpoint1=date(2026, 4, 15), checkpoint2=date(2026, 6, 15))
    project_id = seed.project(student_id, [advisor_id], period_id=period_id)
    return {"advisor": advisor_id, "student": student_id, "project": project_id, "period": period_id}


@pytest.fixture()
def client(session_factory):
    locks = BookingLocks()
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_booking_locks] = lambda: locks

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    def build(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return build
