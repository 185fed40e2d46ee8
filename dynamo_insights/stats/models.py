"""Pydantic models for operation telemetry, aggregated statistics and recommendations.

Field names are snake_case in Python and camelCase on the wire, so telemetry
emitted by non-Python clients (``resourceName``, ``latencyMs``, ...) can be
ingested as-is and the diagnostics API speaks the same dialect back.
"""

from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Telemetry
# ---------------------------------------------------------------------------


class OperationType(StrEnum):
    GET = "get"
    PUT = "put"
    UPDATE = "update"
    DELETE = "delete"
    QUERY = "query"
    SCAN = "scan"
    BATCH_GET = "batchGet"
    BATCH_WRITE = "batchWrite"
    TRANSACT_WRITE = "transactWrite"
    TRANSACT_GET = "transactGet"


READ_OPERATIONS: tuple[OperationType, ...] = (
    OperationType.GET,
    OperationType.QUERY,
    OperationType.SCAN,
    OperationType.BATCH_GET,
)


def _freeze(value: Any) -> Any:
    """Read-only copy: mappings become MappingProxyType, lists and tuples become tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list | tuple):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


class OperationRecord(_CamelModel):
    """One completed store operation, as reported by the instrumented client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    operation: OperationType
    resource_name: str
    timestamp: int  # epoch milliseconds
    latency_ms: float = Field(ge=0)
    index_name: str | None = None
    access_pattern: str | None = None
    consumed_read_units: float | None = None
    consumed_write_units: float | None = None
    item_count: int = Field(default=0, ge=0)
    scanned_count: int | None = None  # query/scan only, before filtering
    used_projection: bool | None = None
    projected_attribute_count: int | None = None
    partition_key_value: str | None = None
    sort_key_value: str | None = None
    item_size_bytes: int | None = None
    metadata: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    @field_validator("metadata", mode="after")
    @classmethod
    def freeze_metadata(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return _freeze(value)

    @field_serializer("metadata")
    def serialize_metadata(self, value: Mapping[str, Any]) -> dict[str, Any]:
        return _thaw(value)


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


class OperationTypeStats(_CamelModel):
    count: int = 0
    total_latency_ms: float = 0.0
    avg_latency_ms: float = 0.0
    total_read_units: float = 0.0
    total_write_units: float = 0.0


class AccessPatternStats(_CamelModel):
    count: int = 0
    avg_latency_ms: float = 0.0
    avg_items_returned: float = 0.0


class TableStats(_CamelModel):
    operations: dict[str, OperationTypeStats] = Field(default_factory=dict)
    access_patterns: dict[str, AccessPatternStats] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------

Severity = Literal["info", "warning", "error"]
Category = Literal["performance", "cost", "best-practice", "hot-partition", "capacity"]

SEVERITY_RANK: dict[str, int] = {"error": 0, "warning": 1, "info": 2}


class EstimatedImpact(_CamelModel):
    cost_reduction: str | None = None
    performance_improvement: str | None = None


class Recommendation(_CamelModel):
    """An actionable finding. Value object: compared by content, not identity."""

    severity: Severity
    category: Category
    message: str
    details: str
    suggested_action: str | None = None
    affected_operations: list[str] | None = None
    estimated_impact: EstimatedImpact | None = None


class HotPartitionReport(_CamelModel):
    partition_key: str
    access_count: int
    percentage_of_total: float
    recommendation: str


class ScanReport(_CamelModel):
    operation: str
    scanned_count: int
    returned_count: int
    efficiency: float
    recommendation: str


class IndexReport(_CamelModel):
    index_name: str
    usage_count: int
    last_used: int | None = None
    recommendation: str


class MonthlyCostEstimate(_CamelModel):
    current: float = 0.0
    recommended: float = 0.0
    savings: float = 0.0


class TrafficProfile(_CamelModel):
    hours_observed: int = 0
    mean_ops_per_hour: float = 0.0
    min_ops_per_hour: int = 0
    max_ops_per_hour: int = 0
    coefficient_of_variation: float = 0.0


class CapacityRecommendation(_CamelModel):
    current_mode: Literal["provisioned", "on-demand", "unknown"] = "unknown"
    recommended_mode: Literal["provisioned", "on-demand"]
    reasoning: str
    estimated_monthly_cost: MonthlyCostEstimate = Field(default_factory=MonthlyCostEstimate)
    traffic: TrafficProfile = Field(default_factory=TrafficProfile)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class Thresholds(_CamelModel):
    slow_query_ms: float = 1000
    high_read_units: float = 100
    high_write_units: float = 100


class StatsConfig(_CamelModel):
    enabled: bool = True
    sample_rate: float = 1.0
    thresholds: Thresholds = Field(default_factory=Thresholds)


class PricingConfig(_CamelModel):
    """Illustrative on-demand and provisioned prices (USD). Not region-accurate."""

    provisioned_read_unit_hour: float = 0.00013
    provisioned_write_unit_hour: float = 0.00065
    on_demand_read_per_million: float = 0.25
    on_demand_write_per_million: float = 1.25
    hours_per_month: int = 730


class DetectionContext(_CamelModel):
    """Everything a detector may need besides the records themselves."""

    now_ms: int
    thresholds: Thresholds = Field(default_factory=Thresholds)
    pricing: PricingConfig = Field(default_factory=PricingConfig)
