"""Public routes: liveness plus the parking API under /api."""

from fastapi import APIRouter

from parqueo.api.routes import availability, reservations

router = APIRouter()

api_router = APIRouter(prefix="/api")
api_router.include_router(availability.router)
api_router.include_router(reservations.router)


@router.get("/")
def root() -> dict:
    return {"message": "Server running"}


@router.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


router.include_router(api_router)
