# src/pm_prediction/application/schemas.py
from typing import Literal

from pydantic import BaseModel, field_validator

from src.pm_amm.domain.pricing import SellValue
from src.pm_common.datetime_utils import to_iso
from src.pm_prediction.domain.models import Prediction


class PlacePredictionRequest(BaseModel):
    market_id: str
    user_id: str
    position: Literal["YES", "NO"]
    # Positivity is a business rule (InvalidStakeError), checked by the service.
    stake_amount: float

    @field_validator("market_id", "user_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be blank")
        return v


class SellPredictionRequest(BaseModel):
    user_id: str


class PredictionResponse(BaseModel):
    id: str
    market_id: str
    user_id: str
    position: str
    stake_amount: float
    weighted_stake: float
    credibility_at_prediction: float
    is_settled: bool
    exit_type: str | None = None
    payout_amount: float | None = None
    rep_score_delta: float | None = None
    created_at: str | None = None
    settled_at: str | None = None

    @classmethod
    def from_domain(cls, p: Prediction) -> "PredictionResponse":
        return cls(
            id=p.id,
            market_id=p.market_id,
            user_id=p.user_id,
            position=p.position,
            stake_amount=p.stake_amount,
            weighted_stake=p.weighted_stake,
            credibility_at_prediction=p.credibility_at_prediction,
            is_settled=p.is_settled,
            exit_type=p.exit_type,
            payout_amount=p.payout_amount,
            rep_score_delta=p.rep_score_delta,
            created_at=to_iso(p.created_at),
            settled_at=to_iso(p.settled_at),
        )


class MarketProbabilityUpdate(BaseModel):
    market_id: str
    raw_probability_yes: float
    weighted_probability_yes: float
    total_stake_yes: float
    total_stake_no: float
    total_weighted_stake_yes: float
    total_weighted_stake_no: float


class PlacePredictionResponse(BaseModel):
    prediction: PredictionResponse
    market: MarketProbabilityUpdate


class SellValueOut(BaseModel):
    base_value: float
    price_impact: float
    fee: float
    net_value: float
    profit_loss: float
    profit_loss_percent: float
    effective_slippage_percent: float

    @classmethod
    def from_domain(cls, v: SellValue) -> "SellValueOut":
        return cls(
            base_value=v.base_value,
            price_impact=v.price_impact,
            fee=v.fee,
            net_value=v.net_value,
            profit_loss=v.profit_loss,
            profit_loss_percent=v.profit_loss_percent,
            effective_slippage_percent=v.effective_slippage_percent,
        )


class SellPreviewResponse(BaseModel):
    prediction_id: str
    market_id: str
    position: str
    original_stake: float
    current_probability: float
    sell_value: SellValueOut
    can_sell: bool
    market_status: str
    warning: str | None = None


class SellResponse(BaseModel):
    prediction_id: str
    position: str
    original_stake: float
    sell_value: SellValueOut
    rep_score_delta: float
    market: MarketProbabilityUpdate
