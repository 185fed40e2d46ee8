"""Item payload detectors: missing projections and oversized items."""

from collections.abc import Sequence

from dynamo_insights.stats.models import (
    READ_OPERATIONS,
    EstimatedImpact,
    OperationRecord,
    OperationType,
    Recommendation,
)

PROJECTION_USAGE_THRESHOLD = 0.5
PROJECTION_MIN_FULL_FETCHES = 10

LARGE_ITEM_BYTES = 100 * 1024
VERY_LARGE_ITEM_BYTES = 300 * 1024  # the store rejects items over 400KB

_SIZED_WRITES = (OperationType.PUT, OperationType.UPDATE)


def detect_projection_opportunities(records: Sequence[OperationRecord]) -> list[Recommendation]:
    """Read operation types that mostly fetch whole items.

    A record that did not report ``used_projection`` counts as a full fetch.
    """
    recommendations: list[Recommendation] = []

    for op_type in READ_OPERATIONS:
        ops = [r for r in records if r.operation == op_type]
        if not ops:
            continue

        full_fetches = sum(1 for r in ops if not r.used_projection)
        usage_rate = 1 - full_fetches / len(ops)
        if usage_rate >= PROJECTION_USAGE_THRESHOLD or full_fetches <= PROJECTION_MIN_FULL_FETCHES:
            continue

        recommendations.append(
            Recommendation(
                severity="info",
                category="performance",
                message=f"Consider using projection expressions for {op_type} operations",
                details=(
                    f"Only {usage_rate * 100:.1f}% of {op_type} operations use projection expressions. "
                    f"{full_fetches} operations fetch full items when they might only need specific attributes."
                ),
                suggested_action=(
                    f"Add a ProjectionExpression to {op_type} operations to fetch only needed attributes. "
                    "This reduces data transfer and can lower read capacity consumption."
                ),
                affected_operations=[op_type.value],
                estimated_impact=EstimatedImpact(
                    performance_improvement="Reduced data transfer and read capacity consumption",
                    cost_reduction="Lower read capacity costs",
                ),
            )
        )

    return recommendations


def _kb(size: float) -> str:
    return f"{size / 1024:.1f}KB"


def detect_large_items(records: Sequence[OperationRecord]) -> list[Recommendation]:
    """Writes of items in the 100-300KB band (info) and at or above 300KB (warning)."""
    sizes = [
        r.item_size_bytes
        for r in records
        if r.operation in _SIZED_WRITES and r.item_size_bytes is not None and r.item_size_bytes >= LARGE_ITEM_BYTES
    ]
    large = [s for s in sizes if s < VERY_LARGE_ITEM_BYTES]
    very_large = [s for s in sizes if s >= VERY_LARGE_ITEM_BYTES]

    recommendations: list[Recommendation] = []

    if large:
        recommendations.append(
            Recommendation(
                severity="info",
                category="best-practice",
                message="Large items detected (100KB-300KB)",
                details=(
                    f"Detected {len(large)} write operations with items between 100KB and 300KB "
                    f"(avg: {_kb(sum(large) / len(large))}, max: {_kb(max(large))}). "
                    "Large items increase costs and can impact performance."
                ),
                suggested_action=(
                    "Consider offloading large attributes (documents, images, etc.) to blob storage such as S3 "
                    "and keeping only references in the table."
                ),
                affected_operations=["put", "update"],
                estimated_impact=EstimatedImpact(
                    cost_reduction="Significant reduction in storage and throughput costs",
                    performance_improvement="Faster read/write operations with smaller items",
                ),
            )
        )

    if very_large:
        recommendations.append(
            Recommendation(
                severity="warning",
                category="best-practice",
                message="Very large items detected (>300KB)",
                details=(
                    f"Detected {len(very_large)} write operations with items of 300KB or more "
                    f"(avg: {_kb(sum(very_large) / len(very_large))}, max: {_kb(max(very_large))}). "
                    "The store rejects items larger than 400KB."
                ),
                suggested_action=(
                    "URGENT: Move large attributes to blob storage. Items approaching the 400KB limit will cause "
                    "write failures. Keep only metadata and object references in the table."
                ),
                affected_operations=["put", "update"],
                estimated_impact=EstimatedImpact(
                    cost_reduction="Significant reduction in storage and throughput costs",
                    performance_improvement="Avoid write failures and improve operation speed",
                ),
            )
        )

    return recommendations
