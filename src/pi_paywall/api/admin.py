"""Admin API endpoints behind HTTP Basic auth."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from pi_paywall.domain.models import ListFilter
from pi_paywall.services.admin import parse_list_params, to_csv

if TYPE_CHECKING:
    from pi_paywall.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])

_basic = HTTPBasic(auto_error=False, realm="admin")


def require_admin(
    request: Request,
    credentials: Annotated[HTTPBasicCredentials | None, Depends(_basic)],
) -> None:
    """Ensure requests carry the configured admin credentials."""
    container: AppContainer = request.app.state.container
    settings = container.settings
    if not settings.admin_configured:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin auth not configured",
        )
    if credentials is None or not (
        secrets.compare_digest(
            credentials.username.encode("utf-8"), settings.admin_user.encode("utf-8")
        )
        & secrets.compare_digest(
            credentials.password.encode("utf-8"), settings.admin_pass.encode("utf-8")
        )
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            headers={"WWW-Authenticate": 'Basic realm="admin"'},
        )


def list_params(
    q: Annotated[str | None, Query()] = None,
    status: Annotated[str | None, Query()] = None,
    start: Annotated[str | None, Query()] = None,
    end: Annotated[str | None, Query()] = None,
    limit: Annotated[str | None, Query()] = None,
) -> tuple[ListFilter, int]:
    """Parse the shared listing query parameters."""
    return parse_list_params(q=q, status=status, start=start, end=end, limit=limit)


ListParams = Annotated[tuple[ListFilter, int], Depends(list_params)]


@router.get("/sessions", dependencies=[Depends(require_admin)])
async def list_sessions(
    request: Request, params: ListParams
) -> list[dict[str, object]]:
    """Return sessions matching the filters, newest first."""
    container: AppContainer = request.app.state.container
    filters, limit = params
    return container.admin_service.list_sessions(filters, limit)


@router.get("/receipts", dependencies=[Depends(require_admin)])
async def list_receipts(
    request: Request, params: ListParams
) -> list[dict[str, object]]:
    """Return receipts matching the filters, newest first."""
    container: AppContainer = request.app.state.container
    filters, limit = params
    return container.admin_service.list_receipts(filters, limit)


@router.get("/sessions.csv", dependencies=[Depends(require_admin)])
async def export_sessions(request: Request, params: ListParams) -> Response:
    """Export sessions as a CSV attachment."""
    container: AppContainer = request.app.state.container
    filters, limit = params
    rows = container.admin_service.list_sessions(filters, limit)
    return _csv_response(to_csv(rows), "sessions.csv")


@router.get("/receipts.csv", dependencies=[Depends(require_admin)])
async def export_receipts(request: Request, params: ListParams) -> Response:
    """Export receipts as a CSV attachment."""
    container: AppContainer = request.app.state.container
    filters, limit = params
    rows = container.admin_service.list_receipts(filters, limit)
    return _csv_response(to_csv(rows), "receipts.csv")


def _csv_response(body: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
