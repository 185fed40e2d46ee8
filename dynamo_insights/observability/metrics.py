"""Prometheus metric definitions for dynamo-insights self-instrumentation.

All metrics are module-level singletons registered with the default
prometheus_client registry.  Import them wherever instrumentation is needed.
"""

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# Histogram bucket definitions
# ---------------------------------------------------------------------------

ANALYSIS_DURATION_BUCKETS = (0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)

# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------

OPERATIONS_RECORDED_TOTAL = Counter(
    "dynamo_insights_operations_recorded_total",
    "Telemetry records offered to the collector, by outcome",
    labelnames=["operation", "outcome"],
)

BUFFERED_OPERATIONS = Gauge(
    "dynamo_insights_buffered_operations",
    "Number of telemetry records currently held in the collector buffer",
)

# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

ANALYSIS_DURATION = Histogram(
    "dynamo_insights_analysis_duration_seconds",
    "Time taken to produce recommendations from a buffer snapshot",
    buckets=ANALYSIS_DURATION_BUCKETS,
)

RECOMMENDATIONS_TOTAL = Counter(
    "dynamo_insights_recommendations_total",
    "Recommendations emitted, by severity",
    labelnames=["severity"],
)

DETECTOR_FAILURES_TOTAL = Counter(
    "dynamo_insights_detector_failures_total",
    "Detector invocations that raised and were skipped",
    labelnames=["detector"],
)
