"""Read efficiency detectors: wasteful scans, client-side filtering, scan-heavy tables."""

from collections import Counter
from collections.abc import Sequence

from dynamo_insights.stats.detectors.grouping import group_by, resource_label
from dynamo_insights.stats.models import (
    EstimatedImpact,
    OperationRecord,
    OperationType,
    Recommendation,
    ScanReport,
)

SCAN_EFFICIENCY_THRESHOLD = 0.2
FILTER_EFFICIENCY_THRESHOLD = 0.5
FILTER_WARNING_THRESHOLD = 0.2
FILTER_MIN_GROUP_SIZE = 3
FREQUENT_SCAN_MIN_TOTAL = 10
FREQUENT_SCAN_MIN_PER_TABLE = 5


def _efficiency(record: OperationRecord) -> float | None:
    if not record.scanned_count or record.scanned_count <= 0:
        return None
    return record.item_count / record.scanned_count


def detect_inefficient_scans(records: Sequence[OperationRecord]) -> list[ScanReport]:
    """Scans returning less than 20% of the items they examined, worst first."""
    reports: list[ScanReport] = []
    for record in records:
        scanned = record.scanned_count
        if record.operation != OperationType.SCAN or not scanned or scanned <= 0:
            continue
        efficiency = record.item_count / scanned
        if efficiency >= SCAN_EFFICIENCY_THRESHOLD:
            continue

        reports.append(
            ScanReport(
                operation=f"scan on {resource_label(record)}",
                scanned_count=scanned,
                returned_count=record.item_count,
                efficiency=efficiency,
                recommendation=(
                    f"Scan operation has {efficiency * 100:.1f}% efficiency "
                    f"({record.item_count} returned / {scanned} scanned). "
                    "Consider using a query with an appropriate index or adding a filter expression."
                ),
            )
        )

    reports.sort(key=lambda r: r.efficiency)
    return reports


def _filter_group_key(record: OperationRecord) -> str | None:
    if record.operation != OperationType.QUERY or _efficiency(record) is None:
        return None
    return record.access_pattern or resource_label(record)


def detect_fetching_to_filter(records: Sequence[OperationRecord]) -> list[Recommendation]:
    """Query groups that fetch far more than they return (client-side filtering)."""
    recommendations: list[Recommendation] = []

    for group_key, group in group_by(records, _filter_group_key).items():
        if len(group) < FILTER_MIN_GROUP_SIZE:
            continue

        efficiencies = [e for e in (_efficiency(r) for r in group) if e is not None]
        mean_efficiency = sum(efficiencies) / len(efficiencies)
        if mean_efficiency >= FILTER_EFFICIENCY_THRESHOLD:
            continue

        low_count = sum(1 for e in efficiencies if e < FILTER_EFFICIENCY_THRESHOLD)
        recommendations.append(
            Recommendation(
                severity="warning" if mean_efficiency < FILTER_WARNING_THRESHOLD else "info",
                category="performance",
                message=f"Potential client-side filtering detected in {group_key}",
                details=(
                    f"Query operations have {mean_efficiency * 100:.1f}% efficiency "
                    f"({len(group)} operations, {low_count} with low efficiency). "
                    "This suggests client-side filtering after fetching data."
                ),
                suggested_action=(
                    "Add a FilterExpression to the query, or refine the key condition, so items are "
                    "filtered on the server side. This reduces data transfer and consumed capacity."
                ),
                affected_operations=["query"],
                estimated_impact=EstimatedImpact(
                    performance_improvement="Reduced data transfer and faster response times",
                    cost_reduction=f"Up to {(1 - mean_efficiency) * 100:.0f}% reduction in read capacity consumption",
                ),
            )
        )

    return recommendations


def detect_frequent_scans(records: Sequence[OperationRecord]) -> list[Recommendation]:
    """Tables scanned often enough that a secondary index would likely pay off."""
    scans = Counter(r.resource_name for r in records if r.operation == OperationType.SCAN)
    if sum(scans.values()) <= FREQUENT_SCAN_MIN_TOTAL:
        return []

    return [
        Recommendation(
            severity="warning",
            category="performance",
            message=f"Frequent scans detected on {table}",
            details=(
                f"Found {count} scan operations on {table}. Scans read the whole table "
                "and become slow and expensive as it grows."
            ),
            suggested_action=(
                "Consider adding a GSI to support these access patterns, then replace the scans with queries."
            ),
            affected_operations=["scan"],
            estimated_impact=EstimatedImpact(
                performance_improvement="Significantly faster queries",
                cost_reduction="Lower capacity consumption",
            ),
        )
        for table, count in scans.items()
        if count > FREQUENT_SCAN_MIN_PER_TABLE
    ]
