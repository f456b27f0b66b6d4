from __future__ import annotations

from fastapi import Depends, HTTPException, status

from planner.core.errors import NotFoundError, PlannerError, StoreError, ValidationError
from planner.db.session import session_maker
from planner.services.backend import PlannerBackend
from planner.services.changes import ChangeBus, change_bus


def get_change_bus() -> ChangeBus:
    return change_bus


def get_backend(bus: ChangeBus = Depends(get_change_bus)) -> PlannerBackend:
    return PlannerBackend(session_maker, bus)


def http_error(exc: PlannerError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, StoreError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
