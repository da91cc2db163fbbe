# src/pa_admin/api/router.py
"""Admin REST API: manual distribution trigger, progress, summaries, audits."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pa_admin.api.dependencies import require_admin_key
from src.pa_admin.application.service import AdminService
from src.pa_common.database import get_db_session
from src.pa_common.enums import PositionKind
from src.pa_common.errors import InvalidPositionKindError
from src.pa_common.response import ApiResponse, success_response
from src.pa_distribution.application.service import DistributionQueryService

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_key)]
)
_service = AdminService()
_queries = DistributionQueryService()


def _parse_kind(kind: str) -> PositionKind:
    try:
        return PositionKind.parse(kind)
    except ValueError as exc:
        raise InvalidPositionKindError(str(exc)) from None


@router.post("/distributions/{kind}/run")
async def run_distribution(kind: str, request: Request) -> ApiResponse:
    data = await _service.run_distribution(_parse_kind(kind))
    return success_response(data, request)


@router.get("/distributions/{kind}/last-run")
async def get_last_run(kind: str, request: Request) -> ApiResponse:
    data = await _service.get_last_run(_parse_kind(kind))
    return success_response(data, request)


@router.get("/distributions/{kind}/summary")
async def get_summary(
    kind: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _queries.get_summary(db, _parse_kind(kind))
    return success_response(data.model_dump(), request)


@router.get("/positions/{position_id}/progress")
async def get_position_progress(
    position_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _queries.get_progress(db, position_id)
    return success_response(data.model_dump(mode="json"), request)


@router.get("/audit/balances")
async def audit_balances(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    user_id: str | None = Query(None, description="Limit the audit to one user"),
) -> ApiResponse:
    data = await _service.audit_balances(db, user_id)
    return success_response(data, request)


@router.get("/audit/positions")
async def audit_all_positions(
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.audit_position(db, None)
    return success_response(data, request)


@router.get("/audit/positions/{position_id}")
async def audit_position(
    position_id: str,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _service.audit_position(db, position_id)
    return success_response(data, request)
