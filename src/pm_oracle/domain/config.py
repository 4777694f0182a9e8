"""Oracle configuration — one concrete payload shape per oracle type.

Markets store their config as camelCase JSON (targetPrice, targetValue, ...).
parse_oracle_config() injects the market's oracle_type as the discriminator,
so a config that does not match its declared type is rejected up front.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from src.pm_common.enums import OracleType
from src.pm_common.errors import InvalidOracleConfigError


class _OracleConfigBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    def to_evidence(self) -> dict[str, Any]:
        """The config as recorded alongside an evidence snapshot."""
        return self.model_dump(by_alias=True, exclude_none=True)


class PriceCloseConfig(_OracleConfigBase):
    type: Literal["price_close"] = "price_close"
    asset: str = Field(min_length=1)
    target_price: float = Field(alias="targetPrice")
    comparison: Literal["above", "below"]


class MetricThresholdConfig(_OracleConfigBase):
    """Always an "at least" threshold; there is no below mode."""

    type: Literal["metric_threshold"] = "metric_threshold"
    protocol: str | None = None
    chain: str | None = None
    target_value: float = Field(alias="targetValue")
    metric: Literal["tvl"] = "tvl"

    @model_validator(mode="after")
    def _protocol_or_chain(self) -> "MetricThresholdConfig":
        if not self.protocol and not self.chain:
            raise ValueError("protocol or chain is required")
        return self


class CountThresholdConfig(_OracleConfigBase):
    type: Literal["count_threshold"] = "count_threshold"
    source: Literal["ethos"] = "ethos"
    count_type: Literal["profiles"] = Field("profiles", alias="countType")
    target_count: float = Field(alias="targetCount")


OracleConfig = Annotated[
    PriceCloseConfig | MetricThresholdConfig | CountThresholdConfig,
    Field(discriminator="type"),
]

_ORACLE_CONFIG_ADAPTER: TypeAdapter[OracleConfig] = TypeAdapter(OracleConfig)

KNOWN_ORACLE_TYPES = frozenset(t.value for t in OracleType)


def parse_oracle_config(oracle_type: str, raw: dict[str, Any] | None) -> OracleConfig:
    """Validate a stored config against the market's declared oracle type.

    Raises InvalidOracleConfigError on any mismatch or missing field.
    """
    if oracle_type not in KNOWN_ORACLE_TYPES:
        raise InvalidOracleConfigError(oracle_type, "unknown oracle type")
    payload = {**(raw or {}), "type": oracle_type}
    try:
        return _ORACLE_CONFIG_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        raise InvalidOracleConfigError(oracle_type, str(exc)) from exc
