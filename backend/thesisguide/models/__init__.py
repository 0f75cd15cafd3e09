from thesisguide.models.academic_period import AcademicPeriod  # noqa: F401
from thesisguide.models.activity_log import ActivityLog  # noqa: F401
from thesisguide.models.guidance_session import (  # noqa: F401
    GuidanceNote,
    GuidanceSession,
    GuidanceSessionParticipant,
    SessionStatus,
    SessionType,
)
from thesisguide.models.notification import Notification, NotificationType  # noqa: F401
from thesisguide.models.schedule import AvailabilityWindow, UnavailabilityBlock, WeeklySchedule  # noqa: F401
from thesisguide.models.thesis import ThesisProject, ThesisStatus, ThesisSupervisor, ThesisType  # noqa: F401
from thesisguide.models.user import User, UserRole  # noqa: F401
