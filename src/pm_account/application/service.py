"""AccountApplicationService — read-only view over a user's reputation."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_account.application.schemas import ReputationResponse
from src.pm_account.domain.repository import UserRepositoryProtocol
from src.pm_account.infrastructure.persistence import UserRepository
from src.pm_common.errors import UserNotFoundError


class AccountApplicationService:
    def __init__(self, repo: UserRepositoryProtocol | None = None) -> None:
        self._repo: UserRepositoryProtocol = repo or UserRepository()

    async def get_reputation(self, db: AsyncSession, user_id: str) -> ReputationResponse:
        user = await self._repo.get_user(db, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return ReputationResponse.from_domain(user)
