"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.pm_account.api.router import router as account_router
from src.pm_common.database import engine
from src.pm_common.errors import AppError, InternalError
from src.pm_common.redis_client import close_redis, get_redis
from src.pm_common.response import error_response
from src.pm_gateway.middleware.request_log import RequestLogMiddleware
from src.pm_market.api.router import router as market_router
from src.pm_oracle.api.router import close_oracle_engine
from src.pm_oracle.api.router import router as oracle_router
from src.pm_prediction.api.router import router as prediction_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()
    yield
    await close_oracle_engine()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Starlette re-raises after this response; the server logs the traceback.
    return await app_error_handler(request, InternalError())


app.include_router(account_router, prefix="/api/v1")
app.include_router(market_router, prefix="/api/v1")
app.include_router(prediction_router, prefix="/api/v1")
app.include_router(oracle_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
