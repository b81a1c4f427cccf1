"""Error taxonomy for the reservation state machine.

Every error carries an ErrorKind tag. The HTTP layer maps kinds to status
codes in one place, so adding a subclass never needs a new handler.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RACE_LOST = "race_lost"
    STORE = "store"


class ParkingError(Exception):
    """Base class for all reservation errors.

    Args:
        message: Human readable description.
        **context: Identifiers involved (logged, never returned in production).
    """

    kind: ClassVar[ErrorKind] = ErrorKind.STORE

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    @property
    def internal(self) -> bool:
        """True when the caller cannot fix the request."""
        return self.kind in (ErrorKind.RACE_LOST, ErrorKind.STORE)


class ValidationError(ParkingError):
    """Request is well-formed but not acceptable in the current state."""

    kind = ErrorKind.VALIDATION


class NotFoundError(ParkingError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(ParkingError):
    kind = ErrorKind.CONFLICT


class RaceLostError(ParkingError):
    """A guarded write affected zero rows after its precondition passed."""

    kind = ErrorKind.RACE_LOST


class StoreError(ParkingError):
    """Driver, connectivity or pool failure.

    Attributes:
        code: SQLSTATE of the underlying driver error, if any.
    """

    kind = ErrorKind.STORE

    def __init__(self, message: str, *, code: str | None = None, **context: Any) -> None:
        super().__init__(message, **context)
        self.code = code


class ShiftNotFoundError(NotFoundError):
    pass


class ReservationNotFoundError(NotFoundError):
    pass


class ShiftUnavailableError(ConflictError):
    """Shift is occupied or already holds an open reservation."""


class ReservationNotOpenError(ValidationError):
    """Reservation was already closed or cancelled."""
