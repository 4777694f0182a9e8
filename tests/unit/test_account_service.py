"""Unit tests for AccountApplicationService using a mock repository."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_account.application.schemas import ReputationResponse
from src.pm_account.application.service import AccountApplicationService
from src.pm_account.domain.models import UserReputation
from src.pm_common.errors import UserNotFoundError


def _make_user(**kwargs) -> UserReputation:
    defaults = dict(
        id="user-1", rep_score=150.0, locked_rep_score=40.0,
        ethos_credibility=1450.0, tier=None,
        total_predictions=8, correct_predictions=6,
        total_staked=220.0, total_won=310.5,
    )
    defaults.update(kwargs)
    return UserReputation(**defaults)


class TestUserReputation:
    def test_available(self) -> None:
        assert _make_user().available_rep_score == 110.0

    def test_accuracy(self) -> None:
        assert _make_user().accuracy == 0.75

    def test_accuracy_without_predictions(self) -> None:
        assert _make_user(total_predictions=0, correct_predictions=0).accuracy is None


class TestGetReputation:
    async def test_returns_reputation_response(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.get_user.return_value = _make_user()
        svc = AccountApplicationService(repo=mock_repo)

        result = await svc.get_reputation(MagicMock(), "user-1")

        assert isinstance(result, ReputationResponse)
        assert result.user_id == "user-1"
        assert result.available_rep_score == 110.0
        assert result.tier == "KNOWN"
        assert result.max_stake_per_market == 70
        assert result.accuracy == 0.75

    async def test_stored_tier_overrides_credibility(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.get_user.return_value = _make_user(tier="EXEMPLARY")
        svc = AccountApplicationService(repo=mock_repo)

        result = await svc.get_reputation(MagicMock(), "user-1")

        assert result.tier == "EXEMPLARY"
        assert result.max_stake_per_market == 200

    async def test_unknown_user_raises(self) -> None:
        mock_repo = AsyncMock()
        mock_repo.get_user.return_value = None
        svc = AccountApplicationService(repo=mock_repo)

        with pytest.raises(UserNotFoundError) as exc:
            await svc.get_reputation(MagicMock(), "ghost")
        assert exc.value.code == 1001
