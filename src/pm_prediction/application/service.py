"""PredictionService — stake placement and position exit.

Both write paths run in one transaction and take the market row lock
(SELECT ... FOR UPDATE) before reading anything they later write back:
the per-user stake cap check and the aggregate delta are computed against
a snapshot no concurrent placement or sell on the same market can change.
"""

import logging
import math
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_account.domain.repository import UserRepositoryProtocol
from src.pm_account.domain.tiers import effective_tier, max_stake_for_tier
from src.pm_account.infrastructure.persistence import UserRepository
from src.pm_amm.domain.pricing import (
    Probabilities,
    SellValue,
    StakeAggregates,
    calculate_sell_rep_delta,
    calculate_sell_value,
    is_high_slippage,
    update_probabilities_after_sell,
    weighted_stake_for,
)
from src.pm_common.datetime_utils import utc_now
from src.pm_common.enums import ExitType, MarketStatus, Position
from src.pm_common.errors import (
    InsufficientRepScoreError,
    InvalidStakeError,
    MarketLockedError,
    MarketNotFoundError,
    MarketNotOpenError,
    PredictionAlreadySettledError,
    PredictionNotFoundError,
    PredictionNotOwnedError,
    StakeCapExceededError,
    UserNotFoundError,
)
from src.pm_market.domain.models import Market
from src.pm_market.domain.repository import MarketRepositoryProtocol
from src.pm_market.infrastructure.persistence import MarketRepository
from src.pm_prediction.application.schemas import (
    MarketProbabilityUpdate,
    PlacePredictionResponse,
    PredictionResponse,
    SellPreviewResponse,
    SellResponse,
    SellValueOut,
)
from src.pm_prediction.domain.repository import PredictionRepositoryProtocol
from src.pm_prediction.infrastructure.persistence import PredictionRepository

logger = logging.getLogger(__name__)


def _market_update(
    market_id: str, aggregates: StakeAggregates, probs: Probabilities
) -> MarketProbabilityUpdate:
    return MarketProbabilityUpdate(
        market_id=market_id,
        raw_probability_yes=probs.raw_prob_yes,
        weighted_probability_yes=probs.weighted_prob_yes,
        total_stake_yes=aggregates.stake_yes,
        total_stake_no=aggregates.stake_no,
        total_weighted_stake_yes=aggregates.weighted_yes,
        total_weighted_stake_no=aggregates.weighted_no,
    )


def _slippage_warning(percent: float) -> str:
    return (
        f"High slippage warning: This trade will incur {percent:.1f}% in fees "
        "and price impact due to low market liquidity."
    )


class PredictionService:
    def __init__(
        self,
        prediction_repo: PredictionRepositoryProtocol | None = None,
        market_repo: MarketRepositoryProtocol | None = None,
        user_repo: UserRepositoryProtocol | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._predictions: PredictionRepositoryProtocol = (
            prediction_repo or PredictionRepository()
        )
        self._markets: MarketRepositoryProtocol = market_repo or MarketRepository()
        self._users: UserRepositoryProtocol = user_repo or UserRepository()
        self._clock = clock

    def _ensure_tradeable(self, market: Market) -> None:
        if market.status != MarketStatus.OPEN:
            raise MarketNotOpenError(market.id, market.status)
        if market.is_past_lock(self._clock()):
            raise MarketLockedError(market.id)

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    async def place_prediction(
        self,
        db: AsyncSession,
        market_id: str,
        user_id: str,
        position: str,
        stake: float,
    ) -> PlacePredictionResponse:
        if not math.isfinite(stake) or stake <= 0:
            raise InvalidStakeError(stake)
        side = Position(position)

        try:
            user = await self._users.get_user(db, user_id)
            if user is None:
                raise UserNotFoundError(user_id)

            market = await self._markets.get_market_for_update(db, market_id)
            if market is None:
                raise MarketNotFoundError(market_id)
            self._ensure_tradeable(market)

            tier = effective_tier(user.tier, user.ethos_credibility)
            max_stake = max_stake_for_tier(tier)
            if stake > max_stake:
                raise StakeCapExceededError(tier.value, max_stake, 0.0, stake)

            # Re-read under the market lock so concurrent placements see each other.
            existing = await self._predictions.sum_user_stake(db, market_id, user_id)
            if existing + stake > max_stake:
                raise StakeCapExceededError(tier.value, max_stake, existing, stake)

            locked_user = await self._users.lock_stake(db, user_id, stake)
            if locked_user is None:
                raise InsufficientRepScoreError(stake, user.available_rep_score)

            weighted = weighted_stake_for(stake, user.ethos_credibility)
            prediction = await self._predictions.insert_prediction(
                db,
                market_id=market_id,
                user_id=user_id,
                position=side.value,
                stake_amount=stake,
                credibility=user.ethos_credibility,
                weighted_stake=weighted,
            )

            aggregates = market.aggregates().apply_delta(side, stake, weighted)
            probs = aggregates.probabilities()
            await self._markets.update_aggregates(db, market_id, aggregates, probs)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Prediction %s placed: market=%s user=%s %s stake=%g weighted=%g",
            prediction.id, market_id, user_id, side.value, stake, weighted,
        )
        return PlacePredictionResponse(
            prediction=PredictionResponse.from_domain(prediction),
            market=_market_update(market_id, aggregates, probs),
        )

    # ------------------------------------------------------------------
    # Exit
    # ------------------------------------------------------------------

    def _price_exit(self, market: Market, position: str, stake: float) -> SellValue:
        aggregates = market.aggregates()
        return calculate_sell_value(
            position=Position(position),
            stake=stake,
            current_prob_yes=market.raw_probability_yes,
            total_liquidity=aggregates.total_liquidity,
            virtual_liquidity=aggregates.virtual_liquidity,
            fee=settings.SELL_FEE_RATE,
        )

    async def preview_sell(self, db: AsyncSession, prediction_id: str) -> SellPreviewResponse:
        """Read-only: what selling now would pay, and whether it is allowed."""
        prediction = await self._predictions.get_prediction(db, prediction_id)
        if prediction is None:
            raise PredictionNotFoundError(prediction_id)
        if prediction.is_settled:
            raise PredictionAlreadySettledError(prediction_id)

        market = await self._markets.get_market(db, prediction.market_id)
        if market is None:
            raise MarketNotFoundError(prediction.market_id)

        value = self._price_exit(market, prediction.position, prediction.stake_amount)
        prob_yes = market.raw_probability_yes
        current_probability = prob_yes if prediction.position == Position.YES else 1 - prob_yes
        can_sell = market.status == MarketStatus.OPEN and not market.is_past_lock(self._clock())
        warning = None
        if is_high_slippage(value, settings.HIGH_SLIPPAGE_WARNING_PERCENT):
            warning = _slippage_warning(value.effective_slippage_percent)

        return SellPreviewResponse(
            prediction_id=prediction.id,
            market_id=market.id,
            position=prediction.position,
            original_stake=prediction.stake_amount,
            current_probability=current_probability,
            sell_value=SellValueOut.from_domain(value),
            can_sell=can_sell,
            market_status=market.status,
            warning=warning,
        )

    async def sell(self, db: AsyncSession, prediction_id: str, user_id: str) -> SellResponse:
        try:
            prediction = await self._predictions.get_prediction(db, prediction_id)
            if prediction is None:
                raise PredictionNotFoundError(prediction_id)
            if prediction.user_id != user_id:
                raise PredictionNotOwnedError(prediction_id)
            if prediction.is_settled:
                raise PredictionAlreadySettledError(prediction_id)

            market = await self._markets.get_market_for_update(db, prediction.market_id)
            if market is None:
                raise MarketNotFoundError(prediction.market_id)
            self._ensure_tradeable(market)

            value = self._price_exit(market, prediction.position, prediction.stake_amount)
            rep_delta = calculate_sell_rep_delta(prediction.stake_amount, value.net_value)

            exited = await self._predictions.mark_exited(
                db,
                prediction_id,
                exit_type=ExitType.SOLD.value,
                payout_amount=value.net_value,
                rep_score_delta=rep_delta,
            )
            if not exited:
                raise PredictionAlreadySettledError(prediction_id)

            await self._users.release_stake(
                db, user_id, stake=prediction.stake_amount, rep_delta=rep_delta
            )

            aggregates, probs = update_probabilities_after_sell(
                market.aggregates(),
                Position(prediction.position),
                prediction.stake_amount,
                prediction.weighted_stake,
            )
            await self._markets.update_aggregates(db, market.id, aggregates, probs)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Prediction %s sold: market=%s net=%.4f delta=%.4f",
            prediction_id, market.id, value.net_value, rep_delta,
        )
        return SellResponse(
            prediction_id=prediction_id,
            position=prediction.position,
            original_stake=prediction.stake_amount,
            sell_value=SellValueOut.from_domain(value),
            rep_score_delta=rep_delta,
            market=_market_update(market.id, aggregates, probs),
        )
