"""Detector registry and recommendation aggregation.

Detectors register themselves in run order with :func:`register_detector`.
Each one is a pure function ``(records, context) -> list[Recommendation]``
over a buffer snapshot.  Every detector call is wrapped in try/except so one
failing detector never costs the caller the other detectors' findings.
"""

import logging
import time
from collections.abc import Callable, Sequence

from dynamo_insights.observability.metrics import (
    ANALYSIS_DURATION,
    DETECTOR_FAILURES_TOTAL,
    RECOMMENDATIONS_TOTAL,
)
from dynamo_insights.stats.detectors import batching, capacity, indexes, items, latency, partitions, scans
from dynamo_insights.stats.models import (
    SEVERITY_RANK,
    DetectionContext,
    EstimatedImpact,
    OperationRecord,
    Recommendation,
    Severity,
)

logger = logging.getLogger(__name__)

Detector = Callable[[Sequence[OperationRecord], DetectionContext], list[Recommendation]]

_REGISTRY: list[tuple[str, Detector]] = []


def register_detector(name: str) -> Callable[[Detector], Detector]:
    """Append a detector to the run order under ``name``."""

    def decorator(fn: Detector) -> Detector:
        if any(existing == name for existing, _ in _REGISTRY):
            msg = f"Detector already registered: {name}"
            raise ValueError(msg)
        _REGISTRY.append((name, fn))
        return fn

    return decorator


def registered_detectors() -> list[tuple[str, Detector]]:
    return list(_REGISTRY)


# ---------------------------------------------------------------------------
# Severity rules for report-style detectors
# ---------------------------------------------------------------------------


def hot_partition_severity(share: float) -> Severity:
    if share > 0.5:
        return "error"
    if share > 0.3:
        return "warning"
    return "info"


def scan_severity(efficiency: float) -> Severity:
    if efficiency < 0.05:
        return "error"
    if efficiency < 0.10:
        return "warning"
    return "info"


# ---------------------------------------------------------------------------
# Registered detectors, in run order
# ---------------------------------------------------------------------------


@register_detector("hot_partitions")
def _hot_partitions(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    recommendations: list[Recommendation] = []
    for report in partitions.detect_hot_partitions(records):
        action = "Consider implementing write sharding or redesigning your partition key for better distribution."
        if not report.partition_key.endswith(":primary"):
            action += (
                " For GSI partition keys, consider using multi-attribute composite keys to add more attributes "
                "for better distribution (e.g., add tenantId, region, or category as additional partition key "
                "attributes)."
            )
        recommendations.append(
            Recommendation(
                severity=hot_partition_severity(report.percentage_of_total),
                category="hot-partition",
                message=f"Hot partition detected: {report.partition_key}",
                details=(
                    f"This partition receives {report.percentage_of_total * 100:.1f}% of all traffic "
                    f"({report.access_count} operations)."
                ),
                suggested_action=action,
                estimated_impact=EstimatedImpact(performance_improvement="Reduced throttling and improved latency"),
            )
        )
    return recommendations


@register_detector("inefficient_scans")
def _inefficient_scans(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return [
        Recommendation(
            severity=scan_severity(report.efficiency),
            category="performance",
            message="Inefficient scan operation detected",
            details=(
                f"{report.operation} has {report.efficiency * 100:.1f}% efficiency "
                f"({report.returned_count} items returned out of {report.scanned_count} scanned)."
            ),
            suggested_action=(
                "Replace the scan with a query using an appropriate index, or add a more selective filter expression."
            ),
            affected_operations=["scan"],
            estimated_impact=EstimatedImpact(
                cost_reduction="Up to 95% reduction in consumed capacity",
                performance_improvement="Significantly faster query times",
            ),
        )
        for report in scans.detect_inefficient_scans(records)
    ]


@register_detector("unused_indexes")
def _unused_indexes(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return [
        Recommendation(
            severity="info",
            category="cost",
            message=f"Unused index detected: {report.index_name}",
            details=(
                "This index has not been used in the last 7 days. Last used: "
                f"{indexes.format_epoch_ms(report.last_used) if report.last_used is not None else 'never'}."
            ),
            suggested_action="Consider removing this index to reduce storage costs and write capacity consumption.",
            estimated_impact=EstimatedImpact(cost_reduction="Reduced storage and write capacity costs"),
        )
        for report in indexes.detect_unused_indexes(records, context.now_ms)
    ]


@register_detector("capacity_mode")
def _capacity_mode(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    if not records:
        return []
    advice = capacity.suggest_capacity_mode(records, context.pricing)
    return [
        Recommendation(
            severity="info",
            category="capacity",
            message=f"Consider {advice.recommended_mode} capacity mode",
            details=advice.reasoning,
            suggested_action=f"Switch to {advice.recommended_mode} mode for better cost efficiency.",
        )
    ]


@register_detector("batch_opportunities")
def _batch_opportunities(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return batching.detect_batch_opportunities(records)


@register_detector("concatenated_keys")
def _concatenated_keys(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return partitions.detect_concatenated_key_patterns(records)


@register_detector("projection_opportunities")
def _projection(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return items.detect_projection_opportunities(records)


@register_detector("fetching_to_filter")
def _fetching_to_filter(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return scans.detect_fetching_to_filter(records)


@register_detector("sequential_writes")
def _sequential_writes(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return batching.detect_sequential_writes(records)


@register_detector("read_before_write")
def _read_before_write(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return batching.detect_read_before_write(records)


@register_detector("large_items")
def _large_items(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return items.detect_large_items(records)


@register_detector("uniform_partition_keys")
def _uniform_partition_keys(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return partitions.detect_uniform_partition_keys(records)


@register_detector("slow_operations")
def _slow_operations(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return latency.detect_slow_operations(records, context.thresholds)


@register_detector("high_capacity_usage")
def _high_capacity_usage(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return capacity.detect_high_capacity_usage(records, context.thresholds)


@register_detector("frequent_scans")
def _frequent_scans(records: Sequence[OperationRecord], context: DetectionContext) -> list[Recommendation]:
    return scans.detect_frequent_scans(records)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def get_recommendations(
    records: Sequence[OperationRecord],
    context: DetectionContext,
    detectors: Sequence[tuple[str, Detector]] | None = None,
) -> list[Recommendation]:
    """Run every detector over ``records`` and return findings, most severe first.

    The sort is stable, so findings of equal severity keep detector run order.

    Args:
        records: Buffer snapshot. Never mutated.
        context: Reference time, thresholds and pricing.
        detectors: Override the registry (tests, partial runs).
    """
    start = time.monotonic()
    recommendations: list[Recommendation] = []

    for name, detector in detectors if detectors is not None else _REGISTRY:
        try:
            found = detector(records, context)
        except Exception:
            DETECTOR_FAILURES_TOTAL.labels(detector=name).inc()
            logger.exception("Detector %s failed, skipping", name)
            continue
        logger.debug("Detector %s produced %d recommendations", name, len(found))
        recommendations.extend(found)

    recommendations.sort(key=lambda r: SEVERITY_RANK[r.severity])

    for rec in recommendations:
        RECOMMENDATIONS_TOTAL.labels(severity=rec.severity).inc()
    ANALYSIS_DURATION.observe(time.monotonic() - start)
    return recommendations
