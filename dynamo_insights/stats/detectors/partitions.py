"""Partition key distribution detectors: hot buckets, concatenated keys, uniform keys."""

import re
from collections import Counter
from collections.abc import Sequence

from dynamo_insights.stats.detectors.grouping import partition_bucket
from dynamo_insights.stats.models import (
    EstimatedImpact,
    HotPartitionReport,
    OperationRecord,
    OperationType,
    Recommendation,
)

HOT_PARTITION_SHARE = 0.10
CONCATENATED_KEY_MIN_USAGE = 10
UNIFORM_KEY_MIN_SAMPLES = 20
SEQUENTIAL_RATIO_THRESHOLD = 0.5
TIMESTAMP_SHARE_THRESHOLD = 0.5

_FIRST_DIGITS = re.compile(r"[0-9]+")
_ISO_DATE_PREFIX = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_EPOCH_DIGITS = re.compile(r"[0-9]{10,13}")

_KEY_WRITES = (OperationType.PUT, OperationType.UPDATE)


def detect_hot_partitions(records: Sequence[OperationRecord]) -> list[HotPartitionReport]:
    """Buckets (base table or index) receiving more than 10% of all traffic.

    Without per-item key visibility the bucket is the table/index pair, which
    still surfaces an index or table that dominates the workload.
    """
    counts = Counter(partition_bucket(r) for r in records)
    total = sum(counts.values())
    if total == 0:
        return []

    reports: list[HotPartitionReport] = []
    for bucket, count in counts.items():
        share = count / total
        if share > HOT_PARTITION_SHARE:
            reports.append(
                HotPartitionReport(
                    partition_key=bucket,
                    access_count=count,
                    percentage_of_total=share,
                    recommendation=(
                        f"Partition key '{bucket}' receives {share * 100:.1f}% of all requests. "
                        "Consider write sharding or better key distribution to prevent throttling."
                    ),
                )
            )

    reports.sort(key=lambda r: r.percentage_of_total, reverse=True)
    return reports


def detect_concatenated_key_patterns(records: Sequence[OperationRecord]) -> list[Recommendation]:
    """Heavily used indexes that may be keyed on concatenated strings.

    Low confidence: the key encoding itself is never observed, so this only
    points at indexes busy enough to be worth a look.
    """
    usage = Counter(f"{r.resource_name}:{r.index_name}" for r in records if r.index_name)

    return [
        Recommendation(
            severity="info",
            category="best-practice",
            message=f"Consider multi-attribute keys for {index_key}",
            details=(
                f"This index has {count} operations. If its keys are built by string concatenation "
                '(e.g., "TENANT#123#CUSTOMER#456"), consider migrating to multi-attribute composite keys. '
                "This is a heuristic: the actual key encoding is not visible to the collector."
            ),
            suggested_action=(
                "Use multi-attribute keys to preserve native data types, improve type safety, "
                "and enable more flexible querying patterns."
            ),
            estimated_impact=EstimatedImpact(performance_improvement="Better type safety and query flexibility"),
        )
        for index_key, count in usage.items()
        if count > CONCATENATED_KEY_MIN_USAGE
    ]


def _is_timestamp_like(key: str) -> bool:
    return bool(_ISO_DATE_PREFIX.match(key) or _EPOCH_DIGITS.fullmatch(key))


def detect_uniform_partition_keys(records: Sequence[OperationRecord]) -> list[Recommendation]:
    """Sequential-numeric or timestamp partition keys on writes."""
    keys = [r.partition_key_value for r in records if r.operation in _KEY_WRITES and r.partition_key_value]
    if len(keys) < UNIFORM_KEY_MIN_SAMPLES:
        return []

    recommendations: list[Recommendation] = []

    numbers = sorted(int(m.group()) for m in (_FIRST_DIGITS.search(k) for k in keys) if m)
    if len(numbers) >= UNIFORM_KEY_MIN_SAMPLES:
        steps = sum(1 for prev, cur in zip(numbers, numbers[1:]) if cur == prev + 1)
        ratio = steps / (len(numbers) - 1)
        if ratio > SEQUENTIAL_RATIO_THRESHOLD:
            recommendations.append(
                Recommendation(
                    severity="warning",
                    category="best-practice",
                    message="Sequential partition key pattern detected",
                    details=(
                        f"Detected {ratio * 100:.0f}% of partition keys follow a sequential numeric pattern. "
                        "Sequential keys can lead to hot partitions and uneven data distribution."
                    ),
                    suggested_action=(
                        "Use a hash-based or random component in partition keys to ensure even distribution "
                        "across partitions. Consider using UUIDs, hashing user IDs, or adding random prefixes."
                    ),
                    affected_operations=["put", "update"],
                    estimated_impact=EstimatedImpact(
                        performance_improvement="Better partition distribution reduces throttling",
                        cost_reduction="More efficient capacity utilization",
                    ),
                )
            )

    timestamp_keys = sum(1 for k in keys if _is_timestamp_like(k))
    if timestamp_keys / len(keys) > TIMESTAMP_SHARE_THRESHOLD:
        recommendations.append(
            Recommendation(
                severity="warning",
                category="best-practice",
                message="Timestamp-based partition keys detected",
                details=(
                    f"Detected {timestamp_keys} partition keys that appear to be timestamps. "
                    "Using timestamps as partition keys concentrates writes on the current time period."
                ),
                suggested_action=(
                    "Move timestamps into the sort key and use a distributed partition key "
                    "(e.g., user ID, category, or hash). For time-series data, consider a composite key "
                    "with a category or shard prefix."
                ),
                affected_operations=["put", "update"],
                estimated_impact=EstimatedImpact(
                    performance_improvement="Eliminate hot partition bottlenecks",
                    cost_reduction="Better capacity utilization and reduced throttling",
                ),
            )
        )

    return recommendations
