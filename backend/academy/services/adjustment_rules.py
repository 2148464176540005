"""Discrepancy adjustment: the one place the catalog write-back formula lives."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from ..enums import CountStatus
from .audit_rules import TransitionError, ensure_count_transition, normalize_count_status, now_utc


@dataclass(frozen=True)
class AdjustmentPlan:
    delta: int
    total_before: int
    total_after: int
    available_before: int
    available_after: int
    condition_before: str | None
    condition_after: str | None

    @property
    def condition_changed(self) -> bool:
        return self.condition_after != self.condition_before

    def as_details(self) -> dict[str, Any]:
        return {
            "delta": self.delta,
            "totalBefore": self.total_before,
            "totalAfter": self.total_after,
            "availableBefore": self.available_before,
            "availableAfter": self.available_after,
            "conditionBefore": self.condition_before,
            "conditionAfter": self.condition_after,
        }


def ensure_adjustable(count: Any) -> None:
    """Preconditions shared by single and bulk approval."""
    status = normalize_count_status(count.status)
    if status == CountStatus.SKIPPED:
        raise TransitionError("EQUIPMENT_COUNT_SKIPPED", "Skipped items are excluded from adjustments")
    if count.counted_quantity is None:
        raise TransitionError("EQUIPMENT_COUNT_NOT_COUNTED", "The item has not been counted")
    if not count.discrepancy:
        raise TransitionError("EQUIPMENT_COUNT_NO_DISCREPANCY", "There is no discrepancy to adjust")
    if count.adjustment_approved or status == CountStatus.ADJUSTED:
        raise TransitionError("EQUIPMENT_COUNT_ALREADY_ADJUSTED", "The adjustment was already approved")
    ensure_count_transition(current_status=status, action="approve")


def ensure_rejectable(count: Any) -> CountStatus:
    """Status a rejected line moves to; an approved or zero-discrepancy line has nothing to reject."""
    next_status = ensure_count_transition(current_status=count.status, action="reject")
    if count.adjustment_approved:
        raise TransitionError("EQUIPMENT_COUNT_ALREADY_ADJUSTED", "The adjustment was already approved")
    if not count.discrepancy:
        raise TransitionError("EQUIPMENT_COUNT_NO_DISCREPANCY", "There is no discrepancy to adjust")
    return next_status


def plan_adjustment(
    *,
    counted_quantity: int,
    observed_condition: str | None,
    total_quantity: int,
    available_quantity: int,
    condition: str | None,
) -> AdjustmentPlan:
    """Relative delta that brings the catalog total to the counted quantity.

    ``available_quantity`` moves by the same delta, so the number of units in
    use (total - available) is preserved.
    """
    delta = int(counted_quantity) - int(total_quantity)
    condition_after = condition
    if observed_condition and observed_condition != condition:
        condition_after = observed_condition
    return AdjustmentPlan(
        delta=delta,
        total_before=int(total_quantity),
        total_after=int(total_quantity) + delta,
        available_before=int(available_quantity),
        available_after=int(available_quantity) + delta,
        condition_before=condition,
        condition_after=condition_after,
    )


def apply_adjustment(
    *,
    count: Any,
    equipment: Any,
    reason: str,
    actor_id: UUID,
    at: datetime | None = None,
) -> AdjustmentPlan:
    """Validate, then write the count back to ``equipment`` and close the line.

    Operates on loaded objects only; the caller owns locking and the commit.
    """
    ensure_adjustable(count)
    plan = plan_adjustment(
        counted_quantity=count.counted_quantity,
        observed_condition=count.observed_condition,
        total_quantity=equipment.total_quantity,
        available_quantity=equipment.available_quantity,
        condition=equipment.condition,
    )

    equipment.total_quantity = plan.total_after
    equipment.available_quantity = plan.available_after
    if plan.condition_changed:
        equipment.condition = plan.condition_after

    count.status = CountStatus.ADJUSTED.value
    count.adjustment_approved = True
    count.adjustment_reason = reason
    count.adjusted_by = actor_id
    count.adjusted_at = at or now_utc()
    return plan
