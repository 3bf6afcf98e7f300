"""
errors.py — Application error hierarchy
Each error carries the API error code and HTTP status it maps to, so the
exception handlers in main.py can build the response envelope directly.
"""


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    code = "INTERNAL_ERROR"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        error = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class NotFound(AppError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class HabitNotFound(NotFound):
    code = "HABIT_NOT_FOUND"

    def __init__(self, habit_id: str):
        self.habit_id = habit_id
        super().__init__(f"Habit with id '{habit_id}' not found")


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Validation failed"


class StoreUnavailable(AppError):
    """A persistence operation failed; never retried by the core."""

    default_message = "Storage backend unavailable"


class VersionConflict(AppError):
    code = "HABIT_CONFLICT"
    status_code = 409

    def __init__(self, habit_id: str):
        self.habit_id = habit_id
        super().__init__(f"Habit with id '{habit_id}' was modified concurrently")


class UserAlreadyExists(AppError):
    code = "USER_ALREADY_EXISTS"
    status_code = 409
    default_message = "An account with this email already exists"


class InvalidCredentials(AppError):
    code = "INVALID_CREDENTIALS"
    status_code = 401
    default_message = "Invalid email or password"
