"""Availability query - read-only listing of shifts and their occupants."""

from psycopg2.extensions import cursor as PgCursor

from parqueo.infra.repositories.shifts_repository import list_shifts_with_occupant


def query_availability(cur: PgCursor, *, shift_type: int, section: str) -> list[dict]:
    """List every shift of `shift_type` in `section` with its current state.

    Occupied shifts carry the occupant user id and open reservation id; free
    shifts carry None for both. No rows are locked.

    Returns:
        List of shift dicts, empty when nothing matches the filter. An empty
        list is a normal outcome, not an error.
    """
    return list_shifts_with_occupant(cur, shift_type=shift_type, section=section)
