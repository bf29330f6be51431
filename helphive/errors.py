"""
Error taxonomy raised by the stores and the lifecycle engine.

The API layer maps each type to an HTTP status; nothing in the core retries.
"""


class HelpHiveError(Exception):
    status_code = 500
    error_type = "internal_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(HelpHiveError):
    status_code = 404
    error_type = "not_found"


class InvalidState(HelpHiveError):
    status_code = 409
    error_type = "invalid_state"


class Forbidden(HelpHiveError):
    status_code = 403
    error_type = "forbidden"


class ValidationError(HelpHiveError):
    status_code = 422
    error_type = "validation_error"


class Conflict(HelpHiveError):
    """A store constraint was violated (e.g. a duplicate primary key)."""

    status_code = 409
    error_type = "conflict"


class Unauthenticated(HelpHiveError):
    """No caller identity, or one that matches no account."""

    status_code = 401
    error_type = "unauthenticated"
