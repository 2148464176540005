"""Audit and count-line state machines.

Every status change in the equipment audit workflow goes through one of the
two guards below; handlers name an action instead of comparing statuses.
"""

from __future__ import annotations

from datetime import datetime, timezone

from ..enums import AuditStatus, CountStatus


class TransitionError(ValueError):
    """Illegal action for the current status, with a stable error code."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


# action -> next status, per current status
_AUDIT_TRANSITIONS: dict[AuditStatus, dict[str, AuditStatus]] = {
    AuditStatus.SCHEDULED: {
        "update": AuditStatus.SCHEDULED,
        "delete": AuditStatus.SCHEDULED,
        "start": AuditStatus.IN_PROGRESS,
        "cancel": AuditStatus.CANCELLED,
    },
    AuditStatus.IN_PROGRESS: {
        # Count-line mutations keep the audit where it is.
        "count": AuditStatus.IN_PROGRESS,
        "complete": AuditStatus.COMPLETED,
        "cancel": AuditStatus.CANCELLED,
    },
    AuditStatus.COMPLETED: {},
    AuditStatus.CANCELLED: {},
}

_AUDIT_REJECTIONS: dict[str, tuple[str, str]] = {
    "update": ("EQUIPMENT_AUDIT_NOT_EDITABLE", "Only scheduled audits can be edited"),
    "delete": ("EQUIPMENT_AUDIT_NOT_DELETABLE", "Only scheduled audits can be deleted"),
    "start": ("EQUIPMENT_AUDIT_NOT_STARTABLE", "Only scheduled audits can be started"),
    "complete": ("EQUIPMENT_AUDIT_NOT_IN_PROGRESS", "Only in-progress audits can be completed"),
    "cancel": ("EQUIPMENT_AUDIT_NOT_CANCELLABLE", "Only scheduled or in-progress audits can be cancelled"),
    "count": ("EQUIPMENT_AUDIT_NOT_IN_PROGRESS", "The audit is not in progress"),
}

_COUNT_TRANSITIONS: dict[CountStatus, dict[str, CountStatus]] = {
    CountStatus.PENDING: {
        "record": CountStatus.COUNTED,
        "skip": CountStatus.SKIPPED,
    },
    CountStatus.COUNTED: {
        "record": CountStatus.COUNTED,
        "skip": CountStatus.SKIPPED,
        "verify": CountStatus.VERIFIED,
        "approve": CountStatus.ADJUSTED,
        "reject": CountStatus.VERIFIED,
    },
    CountStatus.VERIFIED: {
        "record": CountStatus.COUNTED,
        "skip": CountStatus.SKIPPED,
        "approve": CountStatus.ADJUSTED,
        "reject": CountStatus.VERIFIED,
    },
    # Skip is not terminal while the audit is open: the line can still be counted.
    CountStatus.SKIPPED: {
        "record": CountStatus.COUNTED,
        "skip": CountStatus.SKIPPED,
    },
    # Re-counting keeps adjustment_approved set, so the line cannot be approved again.
    CountStatus.ADJUSTED: {
        "record": CountStatus.COUNTED,
        "skip": CountStatus.SKIPPED,
    },
}

AUDIT_ACTIONS: frozenset[str] = frozenset(_AUDIT_REJECTIONS)
COUNT_ACTIONS: frozenset[str] = frozenset({"record", "skip", "verify", "approve", "reject"})


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_audit_status(status: str | AuditStatus | None) -> AuditStatus:
    if not status:
        return AuditStatus.SCHEDULED
    return AuditStatus(str(getattr(status, "value", status)).strip().lower())


def normalize_count_status(status: str | CountStatus | None) -> CountStatus:
    if not status:
        return CountStatus.PENDING
    return CountStatus(str(getattr(status, "value", status)).strip().lower())


def ensure_audit_transition(*, current_status: str | AuditStatus | None, action: str) -> AuditStatus:
    """Return the audit status that results from ``action`` or raise TransitionError."""
    if action not in AUDIT_ACTIONS:
        raise KeyError(f"Unknown audit action: {action}")

    current = normalize_audit_status(current_status)
    nxt = _AUDIT_TRANSITIONS[current].get(action)
    if nxt is None:
        code, message = _AUDIT_REJECTIONS[action]
        raise TransitionError(code, message)
    return nxt


def _count_rejection(current: CountStatus, action: str) -> TransitionError:
    if action == "verify" and current != CountStatus.ADJUSTED:
        return TransitionError("EQUIPMENT_COUNT_NOT_VERIFIABLE", "Only counted items can be verified")
    if current == CountStatus.ADJUSTED:
        return TransitionError("EQUIPMENT_COUNT_ALREADY_ADJUSTED", "The adjustment was already approved")
    if current == CountStatus.SKIPPED:
        return TransitionError("EQUIPMENT_COUNT_SKIPPED", "Skipped items are excluded from adjustments")
    return TransitionError("EQUIPMENT_COUNT_NOT_COUNTED", "The item has not been counted")


def ensure_count_transition(*, current_status: str | CountStatus | None, action: str) -> CountStatus:
    """Return the count-line status that results from ``action`` or raise TransitionError."""
    if action not in COUNT_ACTIONS:
        raise KeyError(f"Unknown count action: {action}")

    current = normalize_count_status(current_status)
    nxt = _COUNT_TRANSITIONS[current].get(action)
    if nxt is None:
        raise _count_rejection(current, action)
    return nxt


def append_note(existing: str | None, label: str, text: str | None, *, separator: str = "\n") -> str | None:
    """Append a labelled note, never overwriting what is already there."""
    if not text:
        return existing
    return f"{existing or ''}{separator}{label}: {text}".strip()
