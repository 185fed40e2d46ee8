"""Tests for projection, large item and slow operation detectors."""

from typing import Any

from dynamo_insights.stats.detectors.items import detect_large_items, detect_projection_opportunities
from dynamo_insights.stats.detectors.latency import detect_slow_operations
from dynamo_insights.stats.models import OperationRecord, Thresholds

KB = 1024


def _rec(operation: str = "get", ts: int = 0, **kwargs: Any) -> OperationRecord:
    kwargs.setdefault("latency_ms", 5)
    return OperationRecord(operation=operation, resource_name="Orders", timestamp=ts, **kwargs)


class TestProjectionOpportunities:
    def test_full_fetches_reported(self) -> None:
        recs = detect_projection_opportunities([_rec(used_projection=False)] * 12)

        assert len(recs) == 1
        assert recs[0].message == "Consider using projection expressions for get operations"
        assert recs[0].details.startswith("Only 0.0% of get operations use projection expressions. 12 operations")
        assert recs[0].affected_operations == ["get"]

    def test_unreported_projection_counts_as_full_fetch(self) -> None:
        assert len(detect_projection_opportunities([_rec()] * 11)) == 1

    def test_half_projected_not_reported(self) -> None:
        records = [_rec(used_projection=False)] * 11 + [_rec(used_projection=True)] * 11
        assert detect_projection_opportunities(records) == []

    def test_ten_full_fetches_not_enough(self) -> None:
        assert detect_projection_opportunities([_rec(used_projection=False)] * 10) == []

    def test_each_read_type_judged_separately(self) -> None:
        records = [_rec("query")] * 11 + [_rec("get", used_projection=True)] * 20

        recs = detect_projection_opportunities(records)

        assert [r.affected_operations for r in recs] == [["query"]]

    def test_writes_ignored(self) -> None:
        assert detect_projection_opportunities([_rec("put")] * 50) == []


class TestLargeItems:
    def test_size_bands(self) -> None:
        records = [
            _rec("put", item_size_bytes=150 * KB),
            _rec("update", item_size_bytes=350 * KB),
            _rec("put", item_size_bytes=300 * KB),
            _rec("put", item_size_bytes=99 * KB),
            _rec("get", item_size_bytes=500 * KB),
        ]

        recs = detect_large_items(records)

        assert [r.severity for r in recs] == ["info", "warning"]
        assert "Detected 1 write operations" in recs[0].details
        assert "avg: 150.0KB, max: 150.0KB" in recs[0].details
        assert "Detected 2 write operations" in recs[1].details
        assert "max: 350.0KB" in recs[1].details
        assert recs[1].suggested_action is not None
        assert recs[1].suggested_action.startswith("URGENT")

    def test_lower_bound_inclusive(self) -> None:
        recs = detect_large_items([_rec("put", item_size_bytes=100 * KB)])
        assert [r.severity for r in recs] == ["info"]

    def test_unsized_writes_ignored(self) -> None:
        assert detect_large_items([_rec("put")] * 5) == []


class TestSlowOperations:
    def test_summary(self) -> None:
        records = [_rec(latency_ms=1500), _rec("query", latency_ms=2500), _rec(latency_ms=500)]

        recs = detect_slow_operations(records, Thresholds())

        assert len(recs) == 1
        assert recs[0].message == "2 slow operations detected"
        assert "exceeding the 1000ms threshold (avg: 2000ms)" in recs[0].details
        assert recs[0].affected_operations == ["get", "query"]

    def test_threshold_is_exclusive(self) -> None:
        assert detect_slow_operations([_rec(latency_ms=1000)], Thresholds()) == []

    def test_custom_threshold(self) -> None:
        records = [_rec(latency_ms=150)] * 3
        assert detect_slow_operations(records, Thresholds(slow_query_ms=100))[0].message == "3 slow operations detected"
