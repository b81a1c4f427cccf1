"""Reservations repository - persistence for par_reservacion.

Uses raw SQL with psycopg2 (no ORM).
"""

from datetime import datetime

from psycopg2.extensions import cursor as PgCursor

from parqueo.domain.states import ReservationState
from parqueo.infra.db import fetchone, for_update


def insert_open_reservation(
    cur: PgCursor,
    *,
    user_id: str,
    shift_id: int,
    start: datetime,
    end: datetime | None,
    created_at: datetime,
) -> int | None:
    """Insert an OPEN reservation for a shift.

    Uses ON CONFLICT DO NOTHING against the partial unique index on open
    reservations, so a concurrent transaction that already opened one for
    the same shift makes this a no-op instead of an error.

    Args:
        cur: Database cursor (within transaction).
        user_id: Opaque user identifier.
        shift_id: Shift being claimed.
        start: Reservation start.
        end: Reservation end, or None for open-ended visits.
        created_at: Creation timestamp.

    Returns:
        The generated reservation id, or None if an open reservation for the
        shift already exists.
    """
    cur.execute(
        """
        INSERT INTO par_reservacion (
            res_id_usuario, res_fecha_inicio, res_fecha_fin,
            eres_estado_id, res_fecha_creacion, jor_jornada_id
        )
        VALUES (%s, %s, %s, %s, %s, %s)
        ON CONFLICT DO NOTHING
        RETURNING res_reservacion_id
        """,
        (user_id, start, end, int(ReservationState.OPEN), created_at, shift_id),
    )
    row = cur.fetchone()
    return None if row is None else row[0]


def get_reservation(cur: PgCursor, reservation_id: int, *, lock: bool = False) -> dict | None:
    """Retrieve a reservation by ID, optionally locking it FOR UPDATE."""
    query = """
        SELECT res_reservacion_id, res_id_usuario, jor_jornada_id,
               res_fecha_inicio, res_fecha_fin, eres_estado_id
        FROM par_reservacion
        WHERE res_reservacion_id = %s
    """
    if lock:
        row = for_update(cur, query, (reservation_id,))
    else:
        row = fetchone(cur, query, (reservation_id,))
    if row is None:
        return None

    return {
        "id": row[0],
        "user_id": row[1],
        "shift_id": row[2],
        "start": row[3],
        "end": row[4],
        "state": ReservationState(row[5]),
    }


def has_open_reservation(cur: PgCursor, shift_id: int) -> bool:
    """Check whether the shift already has an OPEN reservation.

    CLOSED and CANCELLED history rows are ignored.
    """
    row = fetchone(
        cur,
        """
        SELECT 1 FROM par_reservacion
        WHERE jor_jornada_id = %s AND eres_estado_id = %s
        LIMIT 1
        """,
        (shift_id, int(ReservationState.OPEN)),
    )
    return row is not None


def swap_reservation_state(
    cur: PgCursor,
    reservation_id: int,
    *,
    expected: ReservationState,
    new: ReservationState,
    end: datetime | None = None,
) -> dict | None:
    """Move a reservation from expected to new state (compare-and-swap).

    When `end` is given it is written as res_fecha_fin in the same statement.

    Returns:
        Dict with user_id, start and end as persisted, or None if the
        reservation was not in `expected` state.
    """
    cur.execute(
        """
        UPDATE par_reservacion
        SET eres_estado_id = %s,
            res_fecha_fin = COALESCE(%s::timestamptz, res_fecha_fin)
        WHERE res_reservacion_id = %s
          AND eres_estado_id = %s
        RETURNING res_id_usuario, res_fecha_inicio, res_fecha_fin
        """,
        (int(new), end, reservation_id, int(expected)),
    )
    row = cur.fetchone()
    if row is None:
        return None

    return {"user_id": row[0], "start": row[1], "end": row[2]}
