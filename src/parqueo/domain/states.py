"""State identifiers stored in ejor_estado_id / eres_estado_id."""

from enum import IntEnum


class ShiftState(IntEnum):
    AVAILABLE = 1
    OCCUPIED = 2


class ReservationState(IntEnum):
    OPEN = 1
    CANCELLED = 2
    CLOSED = 3
