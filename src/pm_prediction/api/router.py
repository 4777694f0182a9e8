"""pm_prediction REST endpoints.

POST /predictions                  — place a stake on YES or NO
GET  /predictions/{id}/sell        — sell preview (read-only)
POST /predictions/{id}/sell        — exit an open position early

Writes are rate limited per user_id.
"""

from typing import Annotated

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_common.database import get_db_session
from src.pm_common.redis_client import get_redis
from src.pm_common.response import ApiResponse, success_response
from src.pm_gateway.middleware.rate_limit import FixedWindowRateLimiter
from src.pm_prediction.application.schemas import (
    PlacePredictionRequest,
    SellPredictionRequest,
)
from src.pm_prediction.application.service import PredictionService

router = APIRouter(prefix="/predictions", tags=["predictions"])

_service = PredictionService()
_write_limiter = FixedWindowRateLimiter(
    "predictions", settings.RATE_LIMIT_PREDICTIONS_PER_MINUTE
)


@router.post("", status_code=201)
async def place_prediction(
    body: PlacePredictionRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    redis: Annotated[aioredis.Redis, Depends(get_redis)],
) -> ApiResponse:
    await _write_limiter.hit(redis, body.user_id)
    result = await _service.place_prediction(
        db, body.market_id, body.user_id, body.position, body.stake_amount
    )
    return success_response(result.model_dump(), request)


@router.get("/{prediction_id}/sell")
async def preview_sell(
    prediction_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.preview_sell(db, prediction_id)
    return success_response(result.model_dump(), request)


@router.post("/{prediction_id}/sell")
async def sell_prediction(
    prediction_id: str,
    body: SellPredictionRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    redis: Annotated[aioredis.Redis, Depends(get_redis)],
) -> ApiResponse:
    await _write_limiter.hit(redis, body.user_id)
    result = await _service.sell(db, prediction_id, body.user_id)
    return success_response(result.model_dump(), request)
