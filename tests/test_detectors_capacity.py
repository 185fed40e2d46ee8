"""Tests for the capacity mode advisor and per-request capacity thresholds."""

from typing import Any

import pytest

from dynamo_insights.stats.detectors.capacity import (
    MS_PER_HOUR,
    detect_high_capacity_usage,
    suggest_capacity_mode,
)
from dynamo_insights.stats.models import OperationRecord, PricingConfig, Thresholds


def _rec(ts: int, **kwargs: Any) -> OperationRecord:
    kwargs.setdefault("operation", "get")
    return OperationRecord(resource_name="Orders", timestamp=ts, latency_ms=5, **kwargs)


def _hourly(counts: list[int], **kwargs: Any) -> list[OperationRecord]:
    """``counts[h]`` records spread one second apart inside hour ``h``."""
    return [_rec(h * MS_PER_HOUR + i * 1000, **kwargs) for h, n in enumerate(counts) for i in range(n)]


class TestSuggestCapacityMode:
    def test_no_data(self) -> None:
        advice = suggest_capacity_mode([])

        assert advice.recommended_mode == "on-demand"
        assert advice.current_mode == "unknown"
        assert advice.reasoning.startswith("No operations recorded")
        assert advice.estimated_monthly_cost.recommended == 0

    def test_spiky_traffic(self) -> None:
        advice = suggest_capacity_mode(_hourly([100, 10]))

        assert advice.recommended_mode == "on-demand"
        assert "highly variable (CV: 0.82)" in advice.reasoning
        assert advice.traffic.hours_observed == 2
        assert advice.traffic.min_ops_per_hour == 10
        assert advice.traffic.max_ops_per_hour == 100
        assert advice.traffic.mean_ops_per_hour == 55

    def test_idle_periods(self) -> None:
        advice = suggest_capacity_mode(_hourly([10] * 9 + [1]))

        assert advice.recommended_mode == "on-demand"
        assert "idle periods" in advice.reasoning
        assert advice.traffic.coefficient_of_variation < 0.5

    def test_steady_traffic(self) -> None:
        advice = suggest_capacity_mode(_hourly([20, 20, 20], consumed_read_units=1))

        assert advice.recommended_mode == "provisioned"
        assert "steady and predictable (CV: 0.00)" in advice.reasoning
        assert advice.estimated_monthly_cost.recommended > 0

    def test_low_volume_steady_traffic_is_moderate(self) -> None:
        advice = suggest_capacity_mode(_hourly([5, 5, 5], consumed_read_units=1))

        assert advice.recommended_mode == "on-demand"
        assert "moderate" in advice.reasoning
        assert advice.estimated_monthly_cost.recommended == pytest.approx(15 * 0.25 / 1_000_000)

    def test_savings_never_claimed(self) -> None:
        advice = suggest_capacity_mode(_hourly([20, 20, 20], consumed_read_units=5))

        assert advice.current_mode == "unknown"
        assert advice.estimated_monthly_cost.current == 0
        assert advice.estimated_monthly_cost.savings == 0

    def test_pricing_drives_estimate(self) -> None:
        records = _hourly([5, 5, 5], consumed_write_units=2)
        pricing = PricingConfig(on_demand_write_per_million=10.0)

        advice = suggest_capacity_mode(records, pricing)

        assert advice.estimated_monthly_cost.recommended == pytest.approx(30 * 10.0 / 1_000_000)

    def test_single_record(self) -> None:
        advice = suggest_capacity_mode([_rec(0, consumed_read_units=1)])

        assert advice.recommended_mode == "on-demand"
        assert advice.traffic.coefficient_of_variation == 0


class TestHighCapacityUsage:
    def test_read_and_write_outliers(self) -> None:
        records = [
            _rec(0, consumed_read_units=150),
            _rec(1, operation="put", consumed_write_units=101),
            _rec(2, consumed_read_units=100),
        ]

        recs = detect_high_capacity_usage(records, Thresholds())

        assert [r.message for r in recs] == [
            "1 operations with high read capacity consumption",
            "1 operations with high write capacity consumption",
        ]
        assert recs[0].affected_operations == ["get"]
        assert recs[1].affected_operations == ["put"]
        assert all(r.category == "cost" for r in recs)

    def test_custom_thresholds(self) -> None:
        records = [_rec(0, consumed_read_units=20)]
        assert detect_high_capacity_usage(records, Thresholds(high_read_units=10))[0].severity == "warning"

    def test_missing_units_ignored(self) -> None:
        assert detect_high_capacity_usage([_rec(0)], Thresholds()) == []
