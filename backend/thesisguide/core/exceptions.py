class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(AppError):
    """Raised when input is malformed; carries one entry per offending field."""
    def __init__(self, message: str, errors: list[dict] | None = None):
        self.errors = errors or []
        super().__init__(message, status_code=422, details={"errors": self.errors})

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])


class FormatError(ValidationError):
    """Raised when a time value is not in HH:MM 24-hour format."""
    def __init__(self, value: str, field: str = "time"):
        self.value = value
        message = f"Time {value!r} must be in HH:MM 24-hour format"
        super().__init__(message, errors=[{"field": field, "message": message}])


class ConflictError(AppError):
    """Raised when a booking overlaps committed intervals of one of the involved actors."""
    def __init__(self, conflicts: list, message: str = "Schedule conflict detected"):
        self.conflicts = list(conflicts)
        super().__init__(
            message,
            status_code=409,
            details={"conflicts": [_dump(item) for item in self.conflicts]},
        )


class InvalidTransitionError(AppError):
    """Raised when a session action is not allowed from its current status."""
    def __init__(self, from_status: str, to_status: str | None, role: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.role = role
        super().__init__(
            f"Cannot move session from {from_status} to {to_status or 'unknown'}",
            status_code=409,
            details={"from_status": from_status, "to_status": to_status, "role": role},
        )


class StaleStateError(AppError):
    """Raised when the stored status changed between read and compare-and-set write."""
    def __init__(self, session_id: str, expected_status: str, actual_status: str | None = None):
        self.session_id = session_id
        self.expected_status = expected_status
        self.actual_status = actual_status
        super().__init__(
            "Session was modified concurrently; reload and try again",
            status_code=409,
            details={
                "session_id": session_id,
                "expected_status": expected_status,
                "actual_status": actual_status,
            },
        )


class NotFoundError(AppError):
    """Raised when a resource does not exist or the caller has no domain access to it."""
    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class StorageUnavailable(AppError):
    """Raised on transient storage failures. Safe to retry."""
    def __init__(self, message: str = "Storage is temporarily unavailable"):
        super().__init__(message, status_code=503, details={"retryable": True})


def _dump(item) -> dict:
    if hasattr(item, "model_dump"):
        return item.model_dump(mode="json")
    return dict(item)
