"""Key builders shared by the detectors."""

from collections import defaultdict
from collections.abc import Callable, Hashable, Iterable
from typing import TypeVar

from dynamo_insights.stats.models import OperationRecord

K = TypeVar("K", bound=Hashable)


def resource_label(record: OperationRecord) -> str:
    """``table`` or ``table:index``."""
    if record.index_name:
        return f"{record.resource_name}:{record.index_name}"
    return record.resource_name


def partition_bucket(record: OperationRecord) -> str:
    """``table:primary`` for base-table access, ``table:index`` otherwise."""
    return f"{record.resource_name}:{record.index_name or 'primary'}"


def item_key(record: OperationRecord) -> str | None:
    """``pk`` or ``pk#sk``; None when the partition key was not reported."""
    if not record.partition_key_value:
        return None
    if record.sort_key_value:
        return f"{record.partition_key_value}#{record.sort_key_value}"
    return record.partition_key_value


def group_by(
    records: Iterable[OperationRecord],
    key: Callable[[OperationRecord], K | None],
) -> dict[K, list[OperationRecord]]:
    """Group records by ``key``, dropping records for which it returns None.

    Groups keep first-seen order, and records keep buffer order within a group.
    """
    groups: dict[K, list[OperationRecord]] = defaultdict(list)
    for record in records:
        k = key(record)
        if k is not None:
            groups[k].append(record)
    return dict(groups)
