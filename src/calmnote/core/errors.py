"""Error taxonomy for the notebook engine."""

from enum import Enum


class ErrorCode(Enum):
    """Machine-readable error codes."""

    # Validation
    EMPTY_NAME = "EMPTY_NAME"
    NAME_TOO_LONG = "NAME_TOO_LONG"
    DUPLICATE_NAME = "DUPLICATE_NAME"

    # Storage
    DB_CONSTRAINT_VIOLATION = "DB_CONSTRAINT_VIOLATION"
    DB_FOREIGN_KEY_VIOLATION = "DB_FOREIGN_KEY_VIOLATION"
    DB_NOT_NULL_VIOLATION = "DB_NOT_NULL_VIOLATION"
    DB_UNIQUE_VIOLATION = "DB_UNIQUE_VIOLATION"
    DB_TRANSACTION_ERROR = "DB_TRANSACTION_ERROR"
    NOT_FOUND = "NOT_FOUND"

    # Connectivity
    NETWORK_ERROR = "NETWORK_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"

    UNKNOWN_ERROR = "UNKNOWN_ERROR"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.EMPTY_NAME: "Name cannot be empty",
    ErrorCode.NAME_TOO_LONG: "Name is too long",
    ErrorCode.DUPLICATE_NAME: "A collection with this name already exists",
    ErrorCode.DB_CONSTRAINT_VIOLATION: "This operation violates data integrity rules",
    ErrorCode.DB_FOREIGN_KEY_VIOLATION: "This operation cannot be completed due to related data",
    ErrorCode.DB_NOT_NULL_VIOLATION: "Required information is missing",
    ErrorCode.DB_UNIQUE_VIOLATION: "This item already exists",
    ErrorCode.DB_TRANSACTION_ERROR: "This operation is temporarily unavailable. Please try again.",
    ErrorCode.NOT_FOUND: "This item no longer exists",
    ErrorCode.NETWORK_ERROR: "Network error occurred",
    ErrorCode.CONNECTION_ERROR: "Unable to connect. Please check your connection and try again.",
    ErrorCode.UNKNOWN_ERROR: "Something went wrong. Please try again.",
}

# Checked in order against lowercased messages of foreign exceptions.
_KEYWORD_CODES: list[tuple[str, ErrorCode]] = [
    ("unique", ErrorCode.DB_UNIQUE_VIOLATION),
    ("duplicate", ErrorCode.DB_UNIQUE_VIOLATION),
    ("foreign key", ErrorCode.DB_FOREIGN_KEY_VIOLATION),
    ("constraint", ErrorCode.DB_CONSTRAINT_VIOLATION),
    ("not null", ErrorCode.DB_NOT_NULL_VIOLATION),
    ("transaction", ErrorCode.DB_TRANSACTION_ERROR),
    ("network", ErrorCode.NETWORK_ERROR),
    ("connection", ErrorCode.CONNECTION_ERROR),
]


class CalmnoteError(Exception):
    """Base class for engine errors."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(self, message: str | None = None):
        self.message = message or ERROR_MESSAGES[self.code]
        super().__init__(self.message)


class ValidationError(CalmnoteError):
    """User input was rejected. Always recoverable; `field` names the offending input."""

    def __init__(self, message: str | None = None, field: str = "name"):
        super().__init__(message)
        self.field = field

    def format(self) -> str:
        """Message prefixed with the field, for inline display next to an editor."""
        return f"{self.field}: {self.message}"


class EmptyName(ValidationError):
    code = ErrorCode.EMPTY_NAME


class NameTooLong(ValidationError):
    code = ErrorCode.NAME_TOO_LONG

    def __init__(self, max_length: int, field: str = "name"):
        super().__init__(f"Name cannot exceed {max_length} characters", field)
        self.max_length = max_length


class DuplicateName(ValidationError):
    code = ErrorCode.DUPLICATE_NAME


class PersistenceError(CalmnoteError):
    """A repository write or read failed. Callers roll back optimistic state."""

    def __init__(self, message: str | None = None, code: ErrorCode = ErrorCode.DB_TRANSACTION_ERROR):
        self.code = code
        super().__init__(message)


class NotFoundError(PersistenceError):
    """Raised by repositories when an id does not resolve to a live row."""

    def __init__(self, kind: str, item_id: str):
        super().__init__(f"{kind} {item_id} not found", ErrorCode.NOT_FOUND)
        self.kind = kind
        self.item_id = item_id


def error_code_for(error: BaseException) -> ErrorCode:
    """Best-effort error code for any exception."""
    if isinstance(error, CalmnoteError):
        return error.code
    message = str(error).lower()
    for keyword, code in _KEYWORD_CODES:
        if keyword in message:
            return code
    return ErrorCode.UNKNOWN_ERROR


def user_message(error: BaseException) -> str:
    """User-facing text for an error.

    Validation errors keep their specific message. Everything else maps to the
    generic table so storage details never reach the user.
    """
    if isinstance(error, ValidationError):
        return error.message
    return ERROR_MESSAGES[error_code_for(error)]
