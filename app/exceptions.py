"""Domain errors raised by the scheduling services.

Each kind maps to one HTTP status in ``app.main``. None of them is retried.
"""


class ClinicError(Exception):
    """Base class for errors reported back to the caller verbatim."""

    status_code = 400
    code = "error"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        body = {"detail": self.message, "code": self.code}
        if self.field:
            body["field"] = self.field
        return body


class ValidationError(ClinicError):
    """Structurally wrong input: bad time format, start >= end, past date."""

    status_code = 400
    code = "validation_error"


class ConflictError(ClinicError):
    """The requested slot is already taken."""

    status_code = 409
    code = "conflict"


class TooLateError(ClinicError):
    """A time-window business rule rejected the change."""

    status_code = 400
    code = "too_late"


class NotFoundError(ClinicError):
    """Missing, or not owned by the requesting actor."""

    status_code = 404
    code = "not_found"
