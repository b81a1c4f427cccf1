"""Reservation state machine - transactional shift claim and release.

Every transition runs on a cursor inside a single transaction opened by the
caller (see parqueo.infra.db.txn). Each one follows the same pattern:

1. Read (and lock, where the row already exists) to produce a precise,
   user-facing precondition error.
2. Write through a compare-and-swap UPDATE guarded on the expected state.
   Zero affected rows means a concurrent transaction won the race between
   the read and the write: RaceLostError aborts and the caller's
   transaction rolls back.

Shift:       AVAILABLE <-> OCCUPIED
Reservation: OPEN -> CLOSED | CANCELLED (both terminal)
"""

from __future__ import annotations

import logging
from datetime import datetime

from psycopg2.extensions import cursor as PgCursor

from parqueo.domain.errors import (
    RaceLostError,
    ReservationNotFoundError,
    ReservationNotOpenError,
    ShiftNotFoundError,
    ShiftUnavailableError,
)
from parqueo.domain.periods import elapsed, period_end, utc_now
from parqueo.domain.states import ReservationState, ShiftState
from parqueo.infra.repositories.reservations_repository import (
    get_reservation,
    has_open_reservation,
    insert_open_reservation,
    swap_reservation_state,
)
from parqueo.infra.repositories.shifts_repository import get_shift, swap_shift_state
from parqueo.observability.redaction import safe_log_context

logger = logging.getLogger(__name__)


def _open_reservation(
    cur: PgCursor,
    *,
    user_id: str,
    shift_id: int,
    end: datetime | None,
    now: datetime,
) -> dict:
    shift = get_shift(cur, shift_id)
    if shift is None:
        raise ShiftNotFoundError(
            f"Shift {shift_id} not found", shift_id=shift_id
        )

    if shift["state"] != ShiftState.AVAILABLE or has_open_reservation(cur, shift_id):
        logger.warning(
            "shift unavailable",
            extra={
                "extra_fields": safe_log_context(
                    shift_id=shift_id, shift_state=shift["state"].name, user_id=user_id
                )
            },
        )
        raise ShiftUnavailableError(
            f"Shift {shift_id} is not available or is already reserved",
            shift_id=shift_id,
        )

    reservation_id = insert_open_reservation(
        cur,
        user_id=user_id,
        shift_id=shift_id,
        start=now,
        end=end,
        created_at=now,
    )
    if reservation_id is None:
        raise RaceLostError(
            f"Shift {shift_id} received an open reservation concurrently",
            shift_id=shift_id,
        )

    if not swap_shift_state(
        cur, shift_id, expected=ShiftState.AVAILABLE, new=ShiftState.OCCUPIED
    ):
        raise RaceLostError(
            f"Shift {shift_id} changed state concurrently; could not occupy it",
            shift_id=shift_id,
        )

    logger.info(
        "reservation opened",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation_id,
                shift_id=shift_id,
                user_id=user_id,
                open_ended=end is None,
            )
        },
    )
    return {"id": reservation_id, "timestamp": now}


def reserve(
    cur: PgCursor,
    *,
    user_id: str,
    shift_id: int,
    now: datetime | None = None,
) -> dict:
    """Reserve a shift for a student or staff member until the period end.

    Args:
        cur: Cursor of the caller's open transaction.
        user_id: Opaque user identifier.
        shift_id: Shift to claim.
        now: Current time (defaults to UTC now).

    Returns:
        {"id": int, "timestamp": datetime}

    Raises:
        ShiftNotFoundError: Shift does not exist.
        ShiftUnavailableError: Shift is occupied or has an open reservation.
        RaceLostError: A concurrent transaction claimed the shift first.
    """
    now = now or utc_now()
    return _open_reservation(
        cur, user_id=user_id, shift_id=shift_id, end=period_end(now), now=now
    )


def check_in_visitor(
    cur: PgCursor,
    *,
    user_id: str,
    shift_id: int,
    now: datetime | None = None,
) -> dict:
    """Record a visitor entering: same as reserve() but open-ended (no end)."""
    now = now or utc_now()
    return _open_reservation(cur, user_id=user_id, shift_id=shift_id, end=None, now=now)


def _lock_open_reservation(cur: PgCursor, reservation_id: int) -> dict:
    reservation = get_reservation(cur, reservation_id, lock=True)
    if reservation is None:
        raise ReservationNotFoundError(
            f"Reservation {reservation_id} not found", reservation_id=reservation_id
        )

    if reservation["state"] != ReservationState.OPEN:
        raise ReservationNotOpenError(
            f"Reservation {reservation_id} is not open "
            f"(state: {reservation['state'].name.lower()})",
            reservation_id=reservation_id,
        )
    return reservation


def _release_shift(cur: PgCursor, shift_id: int) -> None:
    if not swap_shift_state(
        cur, shift_id, expected=ShiftState.OCCUPIED, new=ShiftState.AVAILABLE
    ):
        raise RaceLostError(
            f"Shift {shift_id} changed state concurrently; could not release it",
            shift_id=shift_id,
        )


def check_out_visitor(
    cur: PgCursor,
    *,
    reservation_id: int,
    now: datetime | None = None,
) -> dict:
    """Record a visitor leaving: close the reservation and free its shift.

    This function:
    1. Locks the reservation with FOR UPDATE
    2. Validates it is OPEN
    3. Locks its shift with FOR UPDATE
    4. CAS reservation OPEN -> CLOSED, setting end = now
    5. CAS shift OCCUPIED -> AVAILABLE
    6. Computes the stay duration from the persisted start/end

    Returns:
        {"reservation_id": int, "user_id": str, "duration": Duration}

    Raises:
        ReservationNotFoundError: Reservation does not exist.
        ReservationNotOpenError: Reservation is CLOSED or CANCELLED.
        ShiftNotFoundError: The reservation's shift does not exist.
        RaceLostError: A guarded update affected zero rows.
    """
    now = now or utc_now()
    reservation = _lock_open_reservation(cur, reservation_id)
    shift_id = reservation["shift_id"]

    if get_shift(cur, shift_id, lock=True) is None:
        raise ShiftNotFoundError(
            f"Shift {shift_id} for reservation {reservation_id} not found",
            shift_id=shift_id,
            reservation_id=reservation_id,
        )

    closed = swap_reservation_state(
        cur,
        reservation_id,
        expected=ReservationState.OPEN,
        new=ReservationState.CLOSED,
        end=now,
    )
    if closed is None:
        raise RaceLostError(
            f"Reservation {reservation_id} was closed concurrently",
            reservation_id=reservation_id,
        )

    _release_shift(cur, shift_id)

    duration = elapsed(closed["start"], closed["end"])
    logger.info(
        "visitor checked out",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation_id,
                shift_id=shift_id,
                duration=str(duration),
            )
        },
    )
    return {
        "reservation_id": reservation_id,
        "user_id": closed["user_id"],
        "duration": duration,
    }


def cancel_reservation(cur: PgCursor, *, reservation_id: int) -> dict:
    """Cancel an open reservation and free its shift.

    Returns:
        {"reservation_id": int, "shift_id": int}

    Raises:
        ReservationNotFoundError: Reservation does not exist.
        ReservationNotOpenError: Reservation was already cancelled or closed.
        RaceLostError: A guarded update affected zero rows.
    """
    reservation = _lock_open_reservation(cur, reservation_id)
    shift_id = reservation["shift_id"]

    if swap_reservation_state(
        cur,
        reservation_id,
        expected=ReservationState.OPEN,
        new=ReservationState.CANCELLED,
    ) is None:
        raise RaceLostError(
            f"Reservation {reservation_id} was cancelled concurrently",
            reservation_id=reservation_id,
        )

    _release_shift(cur, shift_id)

    logger.info(
        "reservation cancelled",
        extra={
            "extra_fields": safe_log_context(
                reservation_id=reservation_id, shift_id=shift_id
            )
        },
    )
    return {"reservation_id": reservation_id, "shift_id": shift_id}
