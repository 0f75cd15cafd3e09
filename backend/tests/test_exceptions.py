from thesisguide.core.exceptions import (
    AppError,
    ConflictError,
    FormatError,
    InvalidTransitionError,
    NotFoundError,
    StaleStateError,
    StorageUnavailable,
    ValidationError,
)
from thesisguide.models.user import UserRole
from thesisguide.schemas.conflict import ConflictDetail
from thesisguide.schemas.scheduling import CommitmentKind


def test_app_error_defaults():
    exc = AppError("Boom")
    assert exc.status_code == 500
    assert exc.details == {}
    assert str(exc) == "Boom"


def test_validation_error_for_field():
    exc = ValidationError.for_field("end_time", "End time must be after start time")
    assert exc.status_code == 422
    assert exc.details == {"errors": [{"field": "end_time", "message": "End time must be after start time"}]}


def test_format_error_is_a_validation_error():
    exc = FormatError("25:00", field="start_time")
    assert isinstance(exc, ValidationError)
    assert exc.value == "25:00"
    assert exc.errors[0]["field"] == "start_time"
    assert "HH:MM" in exc.message


def test_conflict_error_serialises_details():
    detail = ConflictDetail(
        kind=CommitmentKind.teaching,
        role=UserRole.advisor,
        actor_id="advisor-1",
        start_time="10:00",
        end_time="12:00",
        description="Teaching Algorithms",
        label="Algorithms",
    )
    exc = ConflictError([detail])
    assert exc.status_code == 409
    assert exc.conflicts == [detail]
    assert exc.details["conflicts"][0]["kind"] == "teaching"
    assert exc.details["conflicts"][0]["role"] == "advisor"


def test_invalid_transition_error():
    exc = InvalidTransitionError("COMPLETED", "CANCELLED", "student")
    assert exc.status_code == 409
    assert exc.details == {"from_status": "COMPLETED", "to_status": "CANCELLED", "role": "student"}
    assert "COMPLETED" in exc.message


def test_stale_state_error():
    exc = StaleStateError("session-1", "PENDING", "APPROVED")
    assert exc.status_code == 409
    assert exc.details["expected_status"] == "PENDING"
    assert exc.details["actual_status"] == "APPROVED"


def test_not_found_error():
    exc = NotFoundError("GuidanceSession", "abc")
    assert exc.status_code == 404
    assert exc.message == "GuidanceSession with id abc not found"


def test_storage_unavailable_is_retryable():
    exc = StorageUnavailable()
    assert exc.status_code == 503
    assert exc.details == {"retryable": True}
