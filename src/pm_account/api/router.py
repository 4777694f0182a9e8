"""pm_account REST API.

GET /users/{user_id}/reputation — RepScore, locked stake, tier and stats
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.service import AccountApplicationService
from src.pm_common.database import get_db_session
from src.pm_common.response import ApiResponse, success_response

router = APIRouter(prefix="/users", tags=["users"])

_service = AccountApplicationService()


@router.get("/{user_id}/reputation")
async def get_reputation(
    user_id: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    data = await _service.get_reputation(db, user_id)
    return success_response(data.model_dump(), request)
