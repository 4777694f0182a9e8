"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class MarketStatus(str, Enum):
    OPEN = "OPEN"
    LOCKED = "LOCKED"
    RESOLVED = "RESOLVED"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"


class Position(str, Enum):
    YES = "YES"
    NO = "NO"


class ResolutionOutcome(str, Enum):
    YES = "YES"
    NO = "NO"
    INVALID = "INVALID"


class OracleType(str, Enum):
    PRICE_CLOSE = "price_close"
    METRIC_THRESHOLD = "metric_threshold"
    COUNT_THRESHOLD = "count_threshold"


class ExitType(str, Enum):
    """How a prediction reached is_settled = true."""
    SOLD = "SOLD"
    SETTLED = "SETTLED"
    REFUNDED = "REFUNDED"


class CredibilityTier(str, Enum):
    UNTRUSTED = "UNTRUSTED"
    QUESTIONABLE = "QUESTIONABLE"
    NEUTRAL = "NEUTRAL"
    KNOWN = "KNOWN"
    ESTABLISHED = "ESTABLISHED"
    REPUTABLE = "REPUTABLE"
    EXEMPLARY = "EXEMPLARY"
    DISTINGUISHED = "DISTINGUISHED"
    REVERED = "REVERED"
    RENOWNED = "RENOWNED"
