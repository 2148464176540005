"""Read-side roll-ups over an audit's count lines."""

from __future__ import annotations

import math
from typing import Any, Iterable

from ..enums import CountStatus
from .audit_rules import normalize_count_status


def has_discrepancy(count: Any) -> bool:
    return count.discrepancy is not None and count.discrepancy != 0


def progress_percent(*, total: int, pending: int) -> int:
    if total <= 0:
        return 0
    # Half-up rounding, not Python's bankers' rounding.
    percent = int(math.floor((total - pending) / total * 100 + 0.5))
    # 100 only when nothing is pending, 0 only when nothing is done.
    if pending > 0:
        percent = min(percent, 99)
    if pending < total:
        percent = max(percent, 1)
    return percent


def completion_counters(counts: Iterable[Any]) -> dict[str, int]:
    """Counters cached on the audit when it is completed. Skipped lines are excluded."""
    resolved = [c for c in counts if normalize_count_status(c.status) != CountStatus.SKIPPED]
    return {
        "counted_items": len(resolved),
        "items_with_discrepancy": sum(1 for c in resolved if has_discrepancy(c)),
        "total_counted_quantity": sum(int(c.counted_quantity or 0) for c in resolved),
    }


def summarize_counts(counts: Iterable[Any]) -> dict[str, Any]:
    """Live summary of an audit; always recomputed, never read from cached counters."""
    rows = list(counts)
    by_status = {status.value: 0 for status in CountStatus}
    for count in rows:
        by_status[normalize_count_status(count.status).value] += 1

    # Skipped lines never take part in discrepancy statistics.
    with_discrepancy = [
        c for c in rows
        if has_discrepancy(c) and normalize_count_status(c.status) != CountStatus.SKIPPED
    ]
    pending_adjustment = [
        c for c in with_discrepancy
        if not c.adjustment_approved and normalize_count_status(c.status) != CountStatus.ADJUSTED
    ]

    expected = sum(int(c.expected_quantity or 0) for c in rows)
    counted = sum(int(c.counted_quantity or 0) for c in rows)

    return {
        "total_items": len(rows),
        "by_status": by_status,
        "discrepancies": {
            "total": len(with_discrepancy),
            "positive": sum(1 for c in with_discrepancy if c.discrepancy > 0),
            "negative": sum(1 for c in with_discrepancy if c.discrepancy < 0),
            "pending_adjustment": len(pending_adjustment),
        },
        "quantities": {
            "expected": expected,
            "counted": counted,
            "difference": counted - expected,
        },
        "progress": progress_percent(total=len(rows), pending=by_status[CountStatus.PENDING.value]),
    }
