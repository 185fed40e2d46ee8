"""Secondary index usage detector."""

from collections.abc import Sequence
from datetime import UTC, datetime

from dynamo_insights.stats.models import IndexReport, OperationRecord

UNUSED_INDEX_AGE_MS = 7 * 24 * 60 * 60 * 1000


def format_epoch_ms(epoch_ms: int) -> str:
    """ISO 8601 UTC rendering with millisecond precision."""
    return datetime.fromtimestamp(epoch_ms / 1000, tz=UTC).isoformat(timespec="milliseconds")


def detect_unused_indexes(records: Sequence[OperationRecord], now_ms: int) -> list[IndexReport]:
    """Indexes whose most recent use is strictly older than seven days before ``now_ms``.

    Only indexes that appear in the buffer at all can be reported; an index the
    collector never saw is invisible here.
    """
    usage: dict[str, tuple[int, int]] = {}  # index key -> (count, last used)
    for record in records:
        if not record.index_name:
            continue
        key = f"{record.resource_name}:{record.index_name}"
        count, last_used = usage.get(key, (0, record.timestamp))
        usage[key] = (count + 1, max(last_used, record.timestamp))

    cutoff = now_ms - UNUSED_INDEX_AGE_MS
    reports = [
        IndexReport(
            index_name=key,
            usage_count=count,
            last_used=last_used,
            recommendation=(
                f"Index '{key}' has not been used in the last 7 days "
                f"(last used: {format_epoch_ms(last_used)}). "
                "Consider removing this index to reduce storage costs."
            ),
        )
        for key, (count, last_used) in usage.items()
        if last_used < cutoff
    ]

    reports.sort(key=lambda r: r.last_used or 0)
    return reports
