"""Error taxonomy for the calendar scheduling engine."""


class CalendarError(Exception):
    """Base class for every calendar engine error."""


class InvalidDateFormat(CalendarError, ValueError):
    """Raised when a date input is not three in-range integer groups."""

    def __init__(self, message: str, value: object = None):
        super().__init__(message)
        self.value = value


class InvalidTimeFormat(InvalidDateFormat):
    """Raised when a time input cannot be read as a wall-clock time."""


class FieldError(CalendarError):
    """One violated validation rule, tied to the form field it belongs to."""

    code = "invalid"

    def __init__(self, field: str, message: str, code: str | None = None):
        super().__init__(message)
        self.field = field
        self.message = message
        if code is not None:
            self.code = code

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FieldError):
            return NotImplemented
        return (type(self), self.field, self.message, self.code) == (
            type(other),
            other.field,
            other.message,
            other.code,
        )

    def __hash__(self) -> int:
        return hash((type(self), self.field, self.message, self.code))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(field={self.field!r}, message={self.message!r})"


class PastDateRejected(FieldError):
    """The candidate is scheduled before the current day or instant."""

    code = "past"


class ValidationFailed(CalendarError):
    """Raised by the service when a draft has one or more field errors."""

    def __init__(self, errors: list[FieldError]):
        self.errors = list(errors)
        joined = "\n• ".join(error.message for error in self.errors)
        super().__init__(f"Please correct the following issues:\n\n• {joined}")


class InvalidStatusTransition(CalendarError):
    """Raised when a status change would leave a terminal state."""

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(f"Cannot move {entity} from '{current}' to '{target}'")
        self.entity = entity
        self.current = current
        self.target = target


class GatewayError(CalendarError):
    """Failure reported by the persistence gateway."""

    def __init__(
        self, message: str, operation: str | None = None, retryable: bool = True
    ):
        super().__init__(message)
        self.operation = operation
        self.retryable = retryable


class DataUnavailable(GatewayError):
    """A subscription stream failed; the last good snapshot is still served."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        retryable: bool = True,
        stream: str | None = None,
    ):
        super().__init__(message, operation=operation, retryable=retryable)
        self.stream = stream


class WriteFailed(GatewayError):
    """A create, update or delete was rejected by the gateway."""


class EntityNotFound(WriteFailed):
    """The targeted document does not exist."""

    def __init__(self, kind: str, entity_id: str, operation: str | None = None):
        super().__init__(
            f"{kind} '{entity_id}' not found", operation=operation, retryable=False
        )
        self.kind = kind
        self.entity_id = entity_id
