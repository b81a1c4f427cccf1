"""Shift availability endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from parqueo.api.dependencies import get_pool
from parqueo.domain.availability import query_availability
from parqueo.infra.db import ConnectionPool, txn
from parqueo.observability.logging import get_logger

router = APIRouter(tags=["availability"])

logger = get_logger(__name__)


@router.get("/disponibilidad_parqueo")
def get_availability(
    shift_type: int = Query(..., alias="JOR_TIPO", description="Shift type"),
    section: str = Query(..., alias="SECCION", min_length=1, description="Spot section"),
    pool: ConnectionPool = Depends(get_pool),
):
    """List shifts of a type in a section with their occupant, if any.

    Returns 404 with a message (not an error) when no shift matches.
    """
    with txn(pool) as cur:
        shifts = query_availability(cur, shift_type=shift_type, section=section)

    if not shifts:
        return JSONResponse(
            status_code=404,
            content={"message": "No parking shifts found for this type and section"},
        )

    return [
        {
            "JOR_JORNADA_ID": s["shift_id"],
            "PAR_NUMERO_PARQUEO": s["spot_number"],
            "JOR_TIPO": s["shift_type"],
            "EJOR_ESTADO_ID": int(s["state"]),
            "PAR_SECCION": s["section"],
            "RES_ID_USUARIO": s["occupant_user_id"],
            "RES_RESERVACION_ID": s["reservation_id"],
        }
        for s in shifts
    ]
