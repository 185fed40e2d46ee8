from collections.abc import Sequence

from dynamo_insights.stats.models import EstimatedImpact, OperationRecord, Recommendation, Thresholds


def detect_slow_operations(records: Sequence[OperationRecord], thresholds: Thresholds) -> list[Recommendation]:
    """Single summary of operations slower than ``thresholds.slow_query_ms``."""
    slow = [r for r in records if r.latency_ms > thresholds.slow_query_ms]
    if not slow:
        return []

    avg_latency = sum(r.latency_ms for r in slow) / len(slow)
    return [
        Recommendation(
            severity="warning",
            category="performance",
            message=f"{len(slow)} slow operations detected",
            details=(
                f"Found {len(slow)} operations exceeding the {thresholds.slow_query_ms:g}ms threshold "
                f"(avg: {avg_latency:.0f}ms)."
            ),
            suggested_action=(
                "Review slow operations for optimization opportunities: add indexes, use projections, "
                "or tighten key conditions."
            ),
            affected_operations=sorted({r.operation.value for r in slow}),
            estimated_impact=EstimatedImpact(performance_improvement="Improved response times"),
        )
    ]
