"""Tests for partition key distribution detectors."""

from typing import Any

from dynamo_insights.stats.detectors.partitions import (
    detect_concatenated_key_patterns,
    detect_hot_partitions,
    detect_uniform_partition_keys,
)
from dynamo_insights.stats.models import OperationRecord


def _rec(operation: str = "query", ts: int = 0, **kwargs: Any) -> OperationRecord:
    kwargs.setdefault("resource_name", "Orders")
    kwargs.setdefault("latency_ms", 5)
    return OperationRecord(operation=operation, timestamp=ts, **kwargs)


def _puts(keys: list[str]) -> list[OperationRecord]:
    return [_rec("put", ts=i, partition_key_value=k) for i, k in enumerate(keys)]


class TestHotPartitions:
    def test_index_split(self) -> None:
        records = [_rec(index_name="GSI1")] * 60 + [_rec(index_name="GSI2")] * 40

        reports = detect_hot_partitions(records)

        assert [(r.partition_key, r.percentage_of_total) for r in reports] == [
            ("Orders:GSI1", 0.6),
            ("Orders:GSI2", 0.4),
        ]
        assert reports[0].access_count == 60
        assert "60.0%" in reports[0].recommendation

    def test_share_must_strictly_exceed_ten_percent(self) -> None:
        records = [_rec()] * 9 + [_rec(index_name="GSI1")]

        reports = detect_hot_partitions(records)

        assert [r.partition_key for r in reports] == ["Orders:primary"]

    def test_scans_count_toward_primary_bucket(self) -> None:
        records = [_rec("scan")] * 5 + [_rec(resource_name="Users")] * 5

        reports = detect_hot_partitions(records)

        assert {r.partition_key: r.percentage_of_total for r in reports} == {
            "Orders:primary": 0.5,
            "Users:primary": 0.5,
        }

    def test_empty(self) -> None:
        assert detect_hot_partitions([]) == []

    def test_evenly_spread_traffic_not_reported(self) -> None:
        records = [_rec(resource_name=f"T{i}") for i in range(20)]
        assert detect_hot_partitions(records) == []


class TestConcatenatedKeys:
    def test_busy_index_reported(self) -> None:
        records = [_rec(index_name="GSI1")] * 11 + [_rec(index_name="GSI2")] * 10

        recs = detect_concatenated_key_patterns(records)

        assert len(recs) == 1
        assert recs[0].message == "Consider multi-attribute keys for Orders:GSI1"
        assert recs[0].severity == "info"
        assert recs[0].category == "best-practice"
        assert "11 operations" in recs[0].details

    def test_base_table_access_ignored(self) -> None:
        assert detect_concatenated_key_patterns([_rec()] * 50) == []


class TestUniformPartitionKeys:
    def test_sequential_numeric_keys(self) -> None:
        recs = detect_uniform_partition_keys(_puts([f"user-{i}" for i in range(1, 21)]))

        assert [r.message for r in recs] == ["Sequential partition key pattern detected"]
        assert recs[0].severity == "warning"
        assert "100%" in recs[0].details
        assert recs[0].affected_operations == ["put", "update"]

    def test_iso_timestamp_keys(self) -> None:
        recs = detect_uniform_partition_keys(_puts([f"2024-01-01T00:00:{i:02d}" for i in range(20)]))

        assert [r.message for r in recs] == ["Timestamp-based partition keys detected"]
        assert "20 partition keys" in recs[0].details

    def test_epoch_keys_are_sequential_and_timestamps(self) -> None:
        recs = detect_uniform_partition_keys(_puts([str(1_700_000_000_000 + i) for i in range(20)]))

        assert [r.message for r in recs] == [
            "Sequential partition key pattern detected",
            "Timestamp-based partition keys detected",
        ]

    def test_spread_keys_not_reported(self) -> None:
        assert detect_uniform_partition_keys(_puts([f"customer-{i * 7}" for i in range(1, 21)])) == []

    def test_needs_twenty_keyed_writes(self) -> None:
        assert detect_uniform_partition_keys(_puts([f"user-{i}" for i in range(1, 20)])) == []

    def test_reads_are_ignored(self) -> None:
        records = [_rec("get", ts=i, partition_key_value=f"user-{i}") for i in range(50)]
        assert detect_uniform_partition_keys(records) == []

    def test_updates_count(self) -> None:
        records = [_rec("update", ts=i, partition_key_value=f"order-{i}") for i in range(25)]
        assert len(detect_uniform_partition_keys(records)) == 1
