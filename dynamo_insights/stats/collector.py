"""In-memory operation telemetry collector.

Instrumented clients call :meth:`StatsCollector.record` once per completed
store operation.  Consumers call :meth:`StatsCollector.get_stats` or
:meth:`StatsCollector.get_recommendations` on demand.  Nothing is persisted:
the buffer lives and dies with the collector instance.

The buffer is append-only between resets and is guarded by a single lock.
Readers take a snapshot under the lock and do all analysis outside it, so a
slow analysis never blocks recording threads.
"""

import logging
import random
import threading
import time
from collections.abc import Callable

from dynamo_insights.observability.metrics import BUFFERED_OPERATIONS, OPERATIONS_RECORDED_TOTAL
from dynamo_insights.stats import recommendations
from dynamo_insights.stats.detectors.capacity import suggest_capacity_mode
from dynamo_insights.stats.models import (
    AccessPatternStats,
    CapacityRecommendation,
    DetectionContext,
    OperationRecord,
    OperationType,
    OperationTypeStats,
    PricingConfig,
    Recommendation,
    StatsConfig,
    TableStats,
    Thresholds,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


class StatsConfigError(ValueError):
    """Raised when a collector is constructed with an invalid configuration."""


def wall_clock_ms() -> int:
    return time.time_ns() // 1_000_000


class StatsCollector:
    """Samples operation records into a buffer and analyses snapshots of it.

    Args:
        config: Enable flag, sample rate and thresholds. Defaults to enabled, 100% sampling.
        pricing: Prices for the capacity mode cost estimate.
        rng: Random source for sampling. Inject a seeded ``random.Random`` for tests.
        clock: Returns "now" in epoch milliseconds; used as the reference time for unused index detection.

    Raises:
        StatsConfigError: If ``config.sample_rate`` is outside ``[0, 1]``.
    """

    def __init__(
        self,
        config: StatsConfig | None = None,
        *,
        pricing: PricingConfig | None = None,
        rng: random.Random | None = None,
        clock: Clock = wall_clock_ms,
    ) -> None:
        config = config or StatsConfig()
        if not 0.0 <= config.sample_rate <= 1.0:
            msg = f"sample_rate must be between 0 and 1, got {config.sample_rate}"
            raise StatsConfigError(msg)

        self._config = config
        self._pricing = pricing or PricingConfig()
        self._rng = rng or random.Random()
        self._clock = clock
        self._lock = threading.Lock()
        self._operations: list[OperationRecord] = []

        logger.info(
            "Stats collector created (enabled=%s, sample_rate=%.2f)",
            config.enabled,
            config.sample_rate,
        )

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record(self, record: OperationRecord) -> bool:
        """Offer a record to the buffer. Returns True if it was retained.

        Never raises: a disabled collector or an unsampled draw just drops the record.
        """
        operation = str(record.operation)
        if not self._config.enabled:
            OPERATIONS_RECORDED_TOTAL.labels(operation=operation, outcome="disabled").inc()
            return False

        with self._lock:
            sample_rate = self._config.sample_rate
            keep = sample_rate > 0 and self._rng.random() <= sample_rate
            if keep:
                self._operations.append(record)
                BUFFERED_OPERATIONS.set(len(self._operations))

        if not keep:
            OPERATIONS_RECORDED_TOTAL.labels(operation=operation, outcome="sampled_out").inc()
            return False

        OPERATIONS_RECORDED_TOTAL.labels(operation=operation, outcome="recorded").inc()
        return True

    def export(self) -> list[OperationRecord]:
        """Independent copy of the buffer, in recording order.

        Records are shared with the buffer; they are frozen and their metadata is read-only.
        """
        with self._lock:
            return list(self._operations)

    def reset(self) -> None:
        with self._lock:
            dropped = len(self._operations)
            self._operations.clear()
            BUFFERED_OPERATIONS.set(0)
        logger.info("Stats collector reset (%d operations dropped)", dropped)

    def is_enabled(self) -> bool:
        return self._config.enabled

    def get_thresholds(self) -> Thresholds:
        return self._config.thresholds.model_copy()

    @property
    def config(self) -> StatsConfig:
        return self._config

    # ------------------------------------------------------------------
    # Buffer queries
    # ------------------------------------------------------------------

    def get_operation_count(self) -> int:
        with self._lock:
            return len(self._operations)

    def get_operations_in_range(self, start_ms: int, end_ms: int) -> list[OperationRecord]:
        """Records with ``start_ms <= timestamp <= end_ms``."""
        return [r for r in self.export() if start_ms <= r.timestamp <= end_ms]

    def get_operations_by_type(self, operation: OperationType | str) -> list[OperationRecord]:
        return [r for r in self.export() if r.operation == operation]

    def get_operations_by_pattern(self, pattern_name: str) -> list[OperationRecord]:
        return [r for r in self.export() if r.access_pattern == pattern_name]

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def get_stats(self) -> TableStats:
        """Roll the buffer up by operation type and by access pattern.

        Access pattern averages are running means taken in buffer order.
        """
        operations: dict[str, OperationTypeStats] = {}
        patterns: dict[str, AccessPatternStats] = {}

        for op in self.export():
            stats = operations.setdefault(op.operation.value, OperationTypeStats())
            stats.count += 1
            stats.total_latency_ms += op.latency_ms
            stats.total_read_units += op.consumed_read_units or 0
            stats.total_write_units += op.consumed_write_units or 0
            stats.avg_latency_ms = stats.total_latency_ms / stats.count

            if op.access_pattern:
                pattern = patterns.setdefault(op.access_pattern, AccessPatternStats())
                prev = pattern.count
                pattern.count += 1
                pattern.avg_latency_ms = (pattern.avg_latency_ms * prev + op.latency_ms) / pattern.count
                pattern.avg_items_returned = (pattern.avg_items_returned * prev + op.item_count) / pattern.count

        return TableStats(operations=operations, access_patterns=patterns)

    def detection_context(self) -> DetectionContext:
        return DetectionContext(
            now_ms=self._clock(),
            thresholds=self._config.thresholds,
            pricing=self._pricing,
        )

    def get_recommendations(self) -> list[Recommendation]:
        """Every detector's findings over the current buffer, most severe first."""
        return recommendations.get_recommendations(self.export(), self.detection_context())

    def suggest_capacity_mode(self) -> CapacityRecommendation:
        return suggest_capacity_mode(self.export(), self._pricing)
