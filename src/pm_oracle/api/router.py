"""pm_oracle REST endpoints.

POST /oracle/run                 — one lock / resolve / settle pass (operator)
GET  /oracle/status              — pipeline counters
GET  /oracle/resolve/{market_id} — resolution dry run, nothing persisted
POST /oracle/resolve/{market_id} — manual resolution of an OPEN/LOCKED market (operator)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.auth.dependencies import require_oracle_operator
from src.pm_oracle.application.engine import OracleEngine
from src.pm_oracle.application.schemas import (
    ManualResolveResponse,
    OracleRunResponse,
    OracleStatusResponse,
    ResolutionPreviewResponse,
)

router = APIRouter(prefix="/oracle", tags=["oracle"])

_engine: OracleEngine | None = None


def get_oracle_engine() -> OracleEngine:
    """Lazily build the process-wide engine (and its HTTP clients)."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = OracleEngine()
    return _engine


EngineDep = Annotated[OracleEngine, Depends(get_oracle_engine)]


@router.post("/run", dependencies=[Depends(require_oracle_operator)])
async def run_engine(request: Request, engine: EngineDep) -> ApiResponse:
    result = await engine.run()
    return success_response(OracleRunResponse.from_domain(result).model_dump(), request)


@router.get("/status")
async def oracle_status(request: Request, engine: EngineDep) -> ApiResponse:
    status = await engine.status()
    return success_response(OracleStatusResponse.from_domain(status).model_dump(), request)


@router.get("/resolve/{market_id}")
async def preview_resolution(
    market_id: str, request: Request, engine: EngineDep
) -> ApiResponse:
    preview = await engine.preview_resolution(market_id)
    return success_response(
        ResolutionPreviewResponse.from_domain(preview).model_dump(), request
    )


@router.post("/resolve/{market_id}", dependencies=[Depends(require_oracle_operator)])
async def resolve_market(
    market_id: str, request: Request, engine: EngineDep
) -> ApiResponse:
    resolution = await engine.resolve_market_manually(market_id)
    return success_response(
        ManualResolveResponse.from_domain(resolution).model_dump(), request
    )


async def close_oracle_engine() -> None:
    global _engine  # noqa: PLW0603
    if _engine is not None:
        await _engine.aclose()
        _engine = None
