# payroll_api/common/errors.py
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from payroll_api.common.http import fail


class APIError(Exception):
    """Custom API Error class."""
    def __init__(self, code, message, status_code=400, payload=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.payload = payload


class PayrollError(APIError):
    """Base for payroll domain errors; subclasses pin code + HTTP status."""
    code = "PAYROLL_ERROR"
    status_code = 400
    default_message = "Payroll error"

    def __init__(self, message=None, payload=None):
        super().__init__(type(self).code, message or self.default_message,
                         status_code=type(self).status_code, payload=payload)


class ValidationError(PayrollError):
    code = "VALIDATION_ERROR"
    status_code = 422
    default_message = "Invalid request"


class ProfileMissing(PayrollError):
    code = "PROFILE_MISSING"
    status_code = 422
    default_message = "No salary profile effective for the requested month"


class AttendanceMissing(PayrollError):
    code = "ATTENDANCE_MISSING"
    status_code = 422
    default_message = "No attendance recorded for the requested month"


class AlreadyExists(PayrollError):
    code = "ALREADY_EXISTS"
    status_code = 409
    default_message = "Payroll slip already exists for this employee and month"


class SlipNotFound(PayrollError):
    code = "SLIP_NOT_FOUND"
    status_code = 404
    default_message = "Payroll slip not found"


class ImmutableSlipField(PayrollError):
    code = "IMMUTABLE_FIELD"
    status_code = 422
    default_message = "Calculated payroll fields cannot be modified"


class InvalidStatusTransition(PayrollError):
    code = "INVALID_TRANSITION"
    status_code = 409
    default_message = "Payment status transition not allowed"


class ScheduleOverlap(PayrollError):
    code = "SCHEDULE_OVERLAP"
    status_code = 409
    default_message = "Salary slab overlaps an existing schedule row"


def register_error_handlers(app):
    @app.errorhandler(APIError)
    def _api_error(e: APIError):
        return fail(e.message, status=e.status_code, code=e.code, detail=e.payload)

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return fail(e.description or e.name, status=e.code or 500)

    @app.errorhandler(IntegrityError)
    def _dup(e: IntegrityError):
        return fail("Duplicate or FK constraint failed", status=409, code="CONSTRAINT_ERROR")

    @app.errorhandler(Exception)
    def _500(e: Exception):
        app.logger.exception(e)
        return fail("Internal server error", status=500)
