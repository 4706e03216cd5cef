from __future__ import annotations

from fastapi import HTTPException, Request

from .. import errors
from .container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    container = getattr(request.app.state, "container", None)
    if not isinstance(container, ServiceContainer):
        raise RuntimeError("ServiceContainer not configured on the app.")
    return container


def http_error(exc: errors.CrewboardError) -> HTTPException:
    if isinstance(exc, errors.NotFoundError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, errors.ConflictError):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, (errors.ValidationError, errors.UsageError)):
        return HTTPException(status_code=400, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))
