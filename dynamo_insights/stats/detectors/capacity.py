"""Capacity detectors: billing mode advice from hourly traffic shape, and per-request capacity outliers.

The advisor cannot see the table's actual billing mode, so ``current_mode`` is
always ``"unknown"`` and no savings figure is claimed. Cost figures are rough
estimates driven by :class:`PricingConfig`, meant for comparing the two modes
rather than for forecasting a bill.
"""

import statistics
from collections import Counter
from collections.abc import Sequence

from dynamo_insights.stats.models import (
    CapacityRecommendation,
    EstimatedImpact,
    MonthlyCostEstimate,
    OperationRecord,
    PricingConfig,
    Recommendation,
    Thresholds,
    TrafficProfile,
)

MS_PER_HOUR = 60 * 60 * 1000

HIGH_VARIABILITY_CV = 0.5
STEADY_CV = 0.3
IDLE_FRACTION_OF_MEAN = 0.2
STEADY_MIN_OPS_PER_HOUR = 10


def _traffic_profile(records: Sequence[OperationRecord]) -> TrafficProfile:
    per_hour = Counter(r.timestamp // MS_PER_HOUR for r in records)
    counts = list(per_hour.values())
    mean = statistics.fmean(counts)
    stddev = statistics.pstdev(counts)
    return TrafficProfile(
        hours_observed=len(counts),
        mean_ops_per_hour=mean,
        min_ops_per_hour=min(counts),
        max_ops_per_hour=max(counts),
        coefficient_of_variation=stddev / mean if mean > 0 else 0.0,
    )


def _estimate_costs(
    records: Sequence[OperationRecord], traffic: TrafficProfile, pricing: PricingConfig
) -> tuple[float, float]:
    """Return (provisioned, on-demand) monthly cost estimates."""
    total_read = sum(r.consumed_read_units or 0 for r in records)
    total_write = sum(r.consumed_write_units or 0 for r in records)

    timestamps = [r.timestamp for r in records]
    span_seconds = max((max(timestamps) - min(timestamps)) / 1000, 1.0)
    peak_factor = traffic.max_ops_per_hour / traffic.mean_ops_per_hour

    # Provisioned capacity has to cover the busiest hour around the clock.
    peak_read = total_read / span_seconds * peak_factor
    peak_write = total_write / span_seconds * peak_factor
    provisioned = (
        peak_read * pricing.provisioned_read_unit_hour + peak_write * pricing.provisioned_write_unit_hour
    ) * pricing.hours_per_month

    on_demand = (
        total_read * pricing.on_demand_read_per_million + total_write * pricing.on_demand_write_per_million
    ) / 1_000_000
    return provisioned, on_demand


def suggest_capacity_mode(
    records: Sequence[OperationRecord], pricing: PricingConfig | None = None
) -> CapacityRecommendation:
    """Recommend on-demand or provisioned capacity from the hourly traffic shape.

    Rules, first match wins:
      1. no data                         -> on-demand
      2. CV > 0.5                        -> on-demand (spiky)
      3. quietest hour < 20% of the mean -> on-demand (idle periods)
      4. CV < 0.3 and mean > 10 ops/hour -> provisioned (steady)
      5. otherwise                       -> on-demand
    """
    if not records:
        return CapacityRecommendation(
            recommended_mode="on-demand",
            reasoning="No operations recorded. On-demand mode is recommended for unpredictable workloads.",
        )

    pricing = pricing or PricingConfig()
    traffic = _traffic_profile(records)
    cv = traffic.coefficient_of_variation

    if cv > HIGH_VARIABILITY_CV:
        mode = "on-demand"
        reasoning = (
            f"Traffic is highly variable (CV: {cv:.2f}). "
            "On-demand mode handles spiky workloads more cost-effectively."
        )
    elif traffic.min_ops_per_hour < traffic.mean_ops_per_hour * IDLE_FRACTION_OF_MEAN:
        mode = "on-demand"
        reasoning = (
            "Traffic has significant idle periods. On-demand mode avoids paying for unused provisioned capacity."
        )
    elif cv < STEADY_CV and traffic.mean_ops_per_hour > STEADY_MIN_OPS_PER_HOUR:
        mode = "provisioned"
        reasoning = (
            f"Traffic is steady and predictable (CV: {cv:.2f}). Provisioned mode offers better cost efficiency."
        )
    else:
        mode = "on-demand"
        reasoning = "Traffic patterns are moderate. On-demand mode provides flexibility without capacity planning."

    provisioned_cost, on_demand_cost = _estimate_costs(records, traffic, pricing)
    return CapacityRecommendation(
        recommended_mode=mode,
        reasoning=reasoning,
        estimated_monthly_cost=MonthlyCostEstimate(
            recommended=provisioned_cost if mode == "provisioned" else on_demand_cost,
        ),
        traffic=traffic,
    )


def detect_high_capacity_usage(records: Sequence[OperationRecord], thresholds: Thresholds) -> list[Recommendation]:
    """Individual requests that consumed more capacity than the configured thresholds."""
    recommendations: list[Recommendation] = []

    high_read = [r for r in records if (r.consumed_read_units or 0) > thresholds.high_read_units]
    if high_read:
        recommendations.append(
            Recommendation(
                severity="warning",
                category="cost",
                message=f"{len(high_read)} operations with high read capacity consumption",
                details=(
                    f"Found {len(high_read)} operations exceeding the "
                    f"{thresholds.high_read_units:g} read capacity unit threshold."
                ),
                suggested_action=(
                    "Use projection expressions to reduce data transfer, or cache frequently accessed items."
                ),
                affected_operations=sorted({r.operation.value for r in high_read}),
                estimated_impact=EstimatedImpact(cost_reduction="Lower read capacity costs"),
            )
        )

    high_write = [r for r in records if (r.consumed_write_units or 0) > thresholds.high_write_units]
    if high_write:
        recommendations.append(
            Recommendation(
                severity="warning",
                category="cost",
                message=f"{len(high_write)} operations with high write capacity consumption",
                details=(
                    f"Found {len(high_write)} operations exceeding the "
                    f"{thresholds.high_write_units:g} write capacity unit threshold."
                ),
                suggested_action=(
                    "Review item sizes and consider splitting large items, or group writes into batch operations."
                ),
                affected_operations=sorted({r.operation.value for r in high_write}),
                estimated_impact=EstimatedImpact(cost_reduction="Lower write capacity costs"),
            )
        )

    return recommendations
