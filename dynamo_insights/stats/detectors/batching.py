"""Request-shape detectors: batchable bursts, sequential writes, read-modify-write."""

import bisect
import math
from collections.abc import Sequence

from dynamo_insights.stats.detectors.grouping import group_by, item_key
from dynamo_insights.stats.models import (
    EstimatedImpact,
    OperationRecord,
    OperationType,
    Recommendation,
)

BATCH_WINDOW_MS = 1000
BATCH_MIN_OPERATIONS = 5
SEQUENTIAL_MIN_OPERATIONS = 3
READ_BEFORE_WRITE_WINDOW_MS = 5000
READ_BEFORE_WRITE_MIN_OCCURRENCES = 3

# Store-side request size limits
BATCH_GET_MAX_ITEMS = 100
BATCH_WRITE_MAX_ITEMS = 25

_WRITES = (OperationType.PUT, OperationType.DELETE)


def _by_time(records: Sequence[OperationRecord]) -> list[OperationRecord]:
    return sorted(records, key=lambda r: r.timestamp)


def find_first_window(
    ordered: Sequence[OperationRecord], window_ms: int, min_size: int
) -> Sequence[OperationRecord] | None:
    """First run anchored at some record that holds ``min_size`` records within ``window_ms`` of it."""
    for start, anchor in enumerate(ordered):
        end = start
        while end < len(ordered) - 1 and ordered[end + 1].timestamp - anchor.timestamp <= window_ms:
            end += 1
        if end - start + 1 >= min_size:
            return ordered[start : end + 1]
    return None


def find_clusters(
    ordered: Sequence[OperationRecord], window_ms: int, min_size: int
) -> list[list[OperationRecord]]:
    """Split into contiguous clusters measured from each cluster's first record; keep those >= ``min_size``."""
    clusters: list[list[OperationRecord]] = []
    current: list[OperationRecord] = []
    for record in ordered:
        if current and record.timestamp - current[0].timestamp > window_ms:
            if len(current) >= min_size:
                clusters.append(current)
            current = []
        current.append(record)
    if len(current) >= min_size:
        clusters.append(current)
    return clusters


def _count_ops(records: Sequence[OperationRecord], operation: OperationType) -> int:
    return sum(1 for r in records if r.operation == operation)


def detect_batch_opportunities(records: Sequence[OperationRecord]) -> list[Recommendation]:
    """At most one batchGet and one batchWrite suggestion, from the first dense burst of each."""
    recommendations: list[Recommendation] = []

    gets = _by_time([r for r in records if r.operation == OperationType.GET])
    window = find_first_window(gets, BATCH_WINDOW_MS, BATCH_MIN_OPERATIONS)
    if window is not None:
        n = len(window)
        recommendations.append(
            Recommendation(
                severity="info",
                category="performance",
                message="Batch get opportunity detected",
                details=(
                    f"Detected {n} individual get operations within a {BATCH_WINDOW_MS}ms window. "
                    "These could be combined into a single batchGet operation."
                ),
                suggested_action=(
                    "Use batchGet to retrieve multiple items in a single request. "
                    "This reduces network overhead and can improve throughput."
                ),
                affected_operations=["get"],
                estimated_impact=EstimatedImpact(
                    performance_improvement=(
                        f"Reduce {n} requests to {math.ceil(n / BATCH_GET_MAX_ITEMS)} batch requests"
                    ),
                    cost_reduction="Lower network overhead and improved latency",
                ),
            )
        )

    writes = _by_time([r for r in records if r.operation in _WRITES])
    window = find_first_window(writes, BATCH_WINDOW_MS, BATCH_MIN_OPERATIONS)
    if window is not None:
        n = len(window)
        recommendations.append(
            Recommendation(
                severity="info",
                category="performance",
                message="Batch write opportunity detected",
                details=(
                    f"Detected {n} individual write operations ({_count_ops(window, OperationType.PUT)} puts, "
                    f"{_count_ops(window, OperationType.DELETE)} deletes) within a {BATCH_WINDOW_MS}ms window. "
                    "These could be combined into a single batchWrite operation."
                ),
                suggested_action=(
                    "Use batchWrite to write multiple items in a single request. "
                    "This reduces network overhead and can improve throughput."
                ),
                affected_operations=["put", "delete"],
                estimated_impact=EstimatedImpact(
                    performance_improvement=(
                        f"Reduce {n} requests to {math.ceil(n / BATCH_WRITE_MAX_ITEMS)} batch requests"
                    ),
                    cost_reduction="Lower network overhead and improved latency",
                ),
            )
        )

    return recommendations


def detect_sequential_writes(records: Sequence[OperationRecord]) -> list[Recommendation]:
    """One suggestion per cluster of three or more puts/deletes inside a one-second window."""
    writes = _by_time([r for r in records if r.operation in _WRITES])

    return [
        Recommendation(
            severity="info",
            category="performance",
            message="Sequential write operations detected",
            details=(
                f"Detected {len(cluster)} sequential write operations "
                f"({_count_ops(cluster, OperationType.PUT)} puts, {_count_ops(cluster, OperationType.DELETE)} deletes) "
                f"within a {BATCH_WINDOW_MS}ms window. These could be combined into batch operations."
            ),
            suggested_action=(
                "Use batchWrite to combine multiple put and delete operations into a single request."
            ),
            affected_operations=["put", "delete"],
            estimated_impact=EstimatedImpact(
                performance_improvement=(
                    f"Reduce {len(cluster)} requests to "
                    f"{math.ceil(len(cluster) / BATCH_WRITE_MAX_ITEMS)} batch requests"
                ),
                cost_reduction="Lower network overhead and improved latency",
            ),
        )
        for cluster in find_clusters(writes, BATCH_WINDOW_MS, SEQUENTIAL_MIN_OPERATIONS)
    ]


def _put_follows(put_times: Sequence[int], get_ts: int) -> bool:
    """Whether the first put strictly after ``get_ts`` lands within the read-before-write window."""
    i = bisect.bisect_right(put_times, get_ts)
    return i < len(put_times) and put_times[i] - get_ts <= READ_BEFORE_WRITE_WINDOW_MS


def detect_read_before_write(records: Sequence[OperationRecord]) -> list[Recommendation]:
    """Keys that are repeatedly read and then overwritten within five seconds."""
    gets = group_by((r for r in records if r.operation == OperationType.GET), item_key)
    puts = group_by((r for r in records if r.operation == OperationType.PUT), item_key)

    recommendations: list[Recommendation] = []
    for key, key_gets in gets.items():
        put_times = sorted(p.timestamp for p in puts.get(key, []))
        if not put_times:
            continue

        occurrences = sum(1 for g in key_gets if _put_follows(put_times, g.timestamp))
        if occurrences < READ_BEFORE_WRITE_MIN_OCCURRENCES:
            continue

        recommendations.append(
            Recommendation(
                severity="info",
                category="performance",
                message="Read-before-write pattern detected",
                details=(
                    f"Detected {occurrences} instances of get followed by put on key '{key}'. "
                    "This pattern suggests reading an item to modify it, then writing it back."
                ),
                suggested_action=(
                    "Use an update with an update expression instead of get + put. The update modifies the item "
                    "in place without a prior read, reducing latency and consumed capacity."
                ),
                affected_operations=["get", "put"],
                estimated_impact=EstimatedImpact(
                    performance_improvement="Reduced latency by eliminating the read",
                    cost_reduction="50% reduction in operations (eliminate get)",
                ),
            )
        )

    return recommendations
