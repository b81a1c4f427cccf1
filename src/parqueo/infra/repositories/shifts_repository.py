"""Shifts repository - reads and guarded state changes on par_jornada.

Uses raw SQL with psycopg2 (no ORM). Table names are unqualified; the pool
sets search_path to the configured schema.
"""

from psycopg2.extensions import cursor as PgCursor

from parqueo.domain.states import ReservationState, ShiftState
from parqueo.infra.db import fetchall, fetchone, for_update

_SHIFT_COLUMNS = """
    SELECT jor_jornada_id, par_parqueo_id, jor_tipo, ejor_estado_id
    FROM par_jornada
    WHERE jor_jornada_id = %s
"""


def get_shift(cur: PgCursor, shift_id: int, *, lock: bool = False) -> dict | None:
    """Retrieve a shift by ID.

    Args:
        cur: Database cursor (within transaction).
        shift_id: Shift identifier.
        lock: If True, lock the row with FOR UPDATE until commit/rollback.

    Returns:
        Dict with id, spot_id, type and state, or None if not found.
    """
    if lock:
        row = for_update(cur, _SHIFT_COLUMNS, (shift_id,))
    else:
        row = fetchone(cur, _SHIFT_COLUMNS, (shift_id,))
    if row is None:
        return None

    return {
        "id": row[0],
        "spot_id": row[1],
        "type": row[2],
        "state": ShiftState(row[3]),
    }


def swap_shift_state(
    cur: PgCursor,
    shift_id: int,
    *,
    expected: ShiftState,
    new: ShiftState,
) -> bool:
    """Move a shift from expected to new state (compare-and-swap).

    The WHERE guard on the current state is what prevents two concurrent
    transactions from both claiming or both releasing the same shift.

    Returns:
        True if the row changed, False if its state was not `expected`.
    """
    cur.execute(
        """
        UPDATE par_jornada
        SET ejor_estado_id = %s
        WHERE jor_jornada_id = %s
          AND ejor_estado_id = %s
        """,
        (int(new), shift_id, int(expected)),
    )
    return cur.rowcount == 1


def list_shifts_with_occupant(
    cur: PgCursor,
    *,
    shift_type: int,
    section: str,
) -> list[dict]:
    """List shifts of a type in a section with their open reservation, if any."""
    rows = fetchall(
        cur,
        """
        SELECT pj.jor_jornada_id,
               pp.par_numero_parqueo,
               pj.jor_tipo,
               pj.ejor_estado_id,
               pp.par_seccion,
               pr.res_id_usuario,
               pr.res_reservacion_id
        FROM par_jornada pj
        INNER JOIN par_parqueo pp ON pj.par_parqueo_id = pp.par_parqueo_id
        LEFT JOIN par_reservacion pr
               ON pr.jor_jornada_id = pj.jor_jornada_id
              AND pr.eres_estado_id = %s
        WHERE pj.jor_tipo = %s
          AND pp.par_seccion = %s
        ORDER BY pp.par_numero_parqueo, pj.jor_jornada_id
        """,
        (int(ReservationState.OPEN), shift_type, section),
    )

    return [
        {
            "shift_id": row[0],
            "spot_number": row[1],
            "shift_type": row[2],
            "state": ShiftState(row[3]),
            "section": row[4],
            "occupant_user_id": row[5],
            "reservation_id": row[6],
        }
        for row in rows
    ]
