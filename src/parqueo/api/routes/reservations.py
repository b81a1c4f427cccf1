"""Reservation endpoints: reserve, visitor entry/exit and cancellation.

Each handler opens one transaction on the injected pool and delegates to the
state machine in parqueo.domain.reservations. Domain errors escape the
transaction (rolling it back) and are turned into responses by
parqueo.api.errors.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, field_validator

from parqueo.api.dependencies import get_pool
from parqueo.domain.reservations import (
    cancel_reservation,
    check_in_visitor,
    check_out_visitor,
    reserve,
)
from parqueo.infra.db import ConnectionPool, txn
from parqueo.observability.correlation import get_correlation_id
from parqueo.observability.logging import get_logger
from parqueo.observability.redaction import safe_log_context


class ShiftClaimRequest(BaseModel):
    """Body for reserving a shift or checking a visitor in."""

    RES_ID_USUARIO: str = Field(..., min_length=1, max_length=64)
    JOR_JORNADA_ID: int = Field(..., gt=0)

    @field_validator("RES_ID_USUARIO", mode="before")
    @classmethod
    def _user_id_as_text(cls, value: Any) -> Any:
        # User ids arrive as numbers from some clients
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            return value.strip()
        return value


class ReservationRequest(BaseModel):
    """Body for checking a visitor out or cancelling."""

    RES_RESERVACION_ID: int = Field(..., gt=0)


router = APIRouter(tags=["reservations"])

logger = get_logger(__name__)


def _created(result: dict) -> dict:
    return {
        "success": True,
        "message": "Reservation created",
        "data": {
            "id": result["id"],
            "timestamp": result["timestamp"].isoformat(),
        },
    }


@router.post("/insertar_parqueo", status_code=201)
def create_reservation(
    body: ShiftClaimRequest,
    pool: ConnectionPool = Depends(get_pool),
) -> dict:
    """Reserve a shift for a student or staff member.

    Responses: 201 created, 404 unknown shift, 409 shift unavailable.
    """
    with txn(pool) as cur:
        result = reserve(cur, user_id=body.RES_ID_USUARIO, shift_id=body.JOR_JORNADA_ID)

    logger.info(
        "reserve completed",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(), reservation_id=result["id"]
            )
        },
    )
    return _created(result)


@router.post("/insertar_entrada_visitas", status_code=201)
def visitor_entry(
    body: ShiftClaimRequest,
    pool: ConnectionPool = Depends(get_pool),
) -> dict:
    """Register a visitor entering: an open-ended reservation of the shift."""
    with txn(pool) as cur:
        result = check_in_visitor(
            cur, user_id=body.RES_ID_USUARIO, shift_id=body.JOR_JORNADA_ID
        )

    logger.info(
        "visitor entry completed",
        extra={
            "extra_fields": safe_log_context(
                correlationId=get_correlation_id(), reservation_id=result["id"]
            )
        },
    )
    return _created(result)


@router.patch("/insertar_salida_visitas")
def visitor_exit(
    body: ReservationRequest,
    pool: ConnectionPool = Depends(get_pool),
) -> dict:
    """Register a visitor leaving; frees the shift and reports the stay.

    Responses: 200 with the occupant and total time, 400 reservation not
    open, 404 unknown reservation or shift.
    """
    with txn(pool) as cur:
        result = check_out_visitor(cur, reservation_id=body.RES_RESERVACION_ID)

    return {
        "success": True,
        "message": "Exit registered and parking released",
        "RES_ID_USUARIO": result["user_id"],
        "TIEMPO_TOTAL": str(result["duration"]),
    }


@router.patch("/cancelacion_parqueo")
def cancel(
    body: ReservationRequest,
    pool: ConnectionPool = Depends(get_pool),
) -> dict:
    """Cancel an open reservation and free its shift.

    Responses: 200 cancelled, 400 already cancelled or closed, 404 unknown.
    """
    with txn(pool) as cur:
        cancel_reservation(cur, reservation_id=body.RES_RESERVACION_ID)

    return {"success": True, "message": "Reservation cancelled and parking released"}
