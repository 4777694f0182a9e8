"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: User/Reputation
  3xxx: Market
  4xxx: Prediction
  6xxx: Oracle
  9xxx: System

Every business-rule rejection carries a stable code so callers can render a
specific message without parsing text.
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: User/Reputation ---

class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1001, f"User not found: {user_id}", 404)


class InsufficientRepScoreError(AppError):
    def __init__(self, required: float, available: float) -> None:
        super().__init__(
            1002,
            f"Insufficient RepScore: required {required:g}, available {available:g}",
            422,
        )


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3001, f"Market not found: {market_id}", 404)


class MarketNotOpenError(AppError):
    def __init__(self, market_id: str, status: str) -> None:
        super().__init__(3002, f"Market {market_id} is not open (status={status})", 422)


class MarketLockedError(AppError):
    def __init__(self, market_id: str) -> None:
        super().__init__(3003, f"Market {market_id} has passed its lock time", 422)


class MarketNotResolvableError(AppError):
    def __init__(self, market_id: str, status: str) -> None:
        super().__init__(
            3004, f"Market {market_id} cannot be resolved (status={status})", 422
        )


class InvalidStatusTransitionError(AppError):
    def __init__(self, market_id: str, current: str, target: str) -> None:
        super().__init__(
            3005, f"Market {market_id}: transition {current} -> {target} not allowed", 409
        )


# --- 4xxx: Prediction ---

class PredictionNotFoundError(AppError):
    def __init__(self, prediction_id: str) -> None:
        super().__init__(4001, f"Prediction not found: {prediction_id}", 404)


class StakeCapExceededError(AppError):
    def __init__(self, tier: str, max_stake: float, existing: float, requested: float) -> None:
        super().__init__(
            4002,
            f"Stake cap exceeded for tier {tier}: max {max_stake:g}, "
            f"existing {existing:g}, requested {requested:g}",
            422,
        )
        self.tier = tier
        self.max_stake = max_stake
        self.existing = existing
        self.requested = requested


class PredictionNotOwnedError(AppError):
    def __init__(self, prediction_id: str) -> None:
        super().__init__(4003, f"Prediction {prediction_id} is not owned by caller", 403)


class PredictionAlreadySettledError(AppError):
    def __init__(self, prediction_id: str) -> None:
        super().__init__(4004, f"Prediction {prediction_id} has already been settled", 422)


class InvalidStakeError(AppError):
    def __init__(self, stake: float) -> None:
        super().__init__(4005, f"Stake must be positive, got {stake:g}", 422)


# --- 6xxx: Oracle ---

class InvalidOracleConfigError(AppError):
    def __init__(self, oracle_type: str, detail: str = "") -> None:
        message = f"Invalid {oracle_type} config"
        super().__init__(6001, message, 422)
        self.detail = detail


class OracleUnauthorizedError(AppError):
    def __init__(self) -> None:
        super().__init__(6002, "Oracle operator secret required", 401)


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
