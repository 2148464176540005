from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from academy.enums import CountStatus
from academy.services.adjustment_rules import apply_adjustment, ensure_adjustable, ensure_rejectable, plan_adjustment
from academy.services.audit_rules import TransitionError


def _count(**overrides):
    values = {
        "id": uuid4(),
        "status": "counted",
        "expected_quantity": 10,
        "counted_quantity": 7,
        "discrepancy": -3,
        "observed_condition": None,
        "adjustment_approved": False,
        "adjustment_reason": None,
        "adjusted_by": None,
        "adjusted_at": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _equipment(**overrides):
    values = {"id": uuid4(), "name": "Cones", "total_quantity": 10, "available_quantity": 6, "condition": "good"}
    values.update(overrides)
    return SimpleNamespace(**values)


def test_plan_moves_total_and_available_by_the_same_delta() -> None:
    plan = plan_adjustment(
        counted_quantity=7,
        observed_condition=None,
        total_quantity=10,
        available_quantity=6,
        condition="good",
    )

    assert plan.delta == -3
    assert (plan.total_after, plan.available_after) == (7, 3)
    assert plan.condition_changed is False


def test_plan_uses_current_catalog_total_not_the_snapshot() -> None:
    # Catalog moved from 10 to 12 after the snapshot; the count of 7 still wins.
    plan = plan_adjustment(
        counted_quantity=7,
        observed_condition=None,
        total_quantity=12,
        available_quantity=12,
        condition="good",
    )

    assert plan.delta == -5
    assert plan.total_after == 7
    assert plan.available_after == 7


def test_plan_allows_available_to_go_negative() -> None:
    plan = plan_adjustment(
        counted_quantity=2,
        observed_condition=None,
        total_quantity=10,
        available_quantity=3,
        condition="good",
    )
    assert plan.available_after == -5


def test_plan_copies_observed_condition_only_when_different() -> None:
    changed = plan_adjustment(
        counted_quantity=5, observed_condition="poor", total_quantity=4, available_quantity=4, condition="good"
    )
    same = plan_adjustment(
        counted_quantity=5, observed_condition="good", total_quantity=4, available_quantity=4, condition="good"
    )

    assert changed.condition_after == "poor"
    assert changed.condition_changed is True
    assert same.condition_changed is False


def test_apply_adjustment_writes_catalog_and_closes_line() -> None:
    count = _count(observed_condition="fair")
    equipment = _equipment()
    actor_id = uuid4()
    at = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    plan = apply_adjustment(count=count, equipment=equipment, reason="Lost at away game", actor_id=actor_id, at=at)

    assert equipment.total_quantity == 7
    assert equipment.available_quantity == 3
    assert equipment.condition == "fair"
    assert count.status == "adjusted"
    assert count.adjustment_approved is True
    assert count.adjustment_reason == "Lost at away game"
    assert count.adjusted_by == actor_id
    assert count.adjusted_at == at
    assert plan.as_details()["totalBefore"] == 10
    assert plan.as_details()["conditionAfter"] == "fair"


def test_second_approval_fails_without_touching_catalog() -> None:
    count = _count()
    equipment = _equipment()
    apply_adjustment(count=count, equipment=equipment, reason="first", actor_id=uuid4())

    with pytest.raises(TransitionError) as exc:
        apply_adjustment(count=count, equipment=equipment, reason="second", actor_id=uuid4())

    assert exc.value.code == "EQUIPMENT_COUNT_ALREADY_ADJUSTED"
    assert equipment.total_quantity == 7


@pytest.mark.parametrize(
    ("overrides", "code"),
    [
        ({"status": "skipped", "counted_quantity": None, "discrepancy": None}, "EQUIPMENT_COUNT_SKIPPED"),
        ({"status": "pending", "counted_quantity": None, "discrepancy": None}, "EQUIPMENT_COUNT_NOT_COUNTED"),
        ({"counted_quantity": 10, "discrepancy": 0}, "EQUIPMENT_COUNT_NO_DISCREPANCY"),
        ({"status": "verified", "adjustment_approved": True}, "EQUIPMENT_COUNT_ALREADY_ADJUSTED"),
        ({"status": "adjusted", "adjustment_approved": True}, "EQUIPMENT_COUNT_ALREADY_ADJUSTED"),
    ],
)
def test_ensure_adjustable_rejections(overrides: dict, code: str) -> None:
    with pytest.raises(TransitionError) as exc:
        ensure_adjustable(_count(**overrides))
    assert exc.value.code == code


def test_verified_line_with_discrepancy_is_adjustable() -> None:
    ensure_adjustable(_count(status="verified", counted_quantity=12, discrepancy=2))


@pytest.mark.parametrize(
    ("overrides", "code"),
    [
        ({"counted_quantity": 10, "discrepancy": 0}, "EQUIPMENT_COUNT_NO_DISCREPANCY"),
        ({"adjustment_approved": True}, "EQUIPMENT_COUNT_ALREADY_ADJUSTED"),
        ({"status": "adjusted", "adjustment_approved": True}, "EQUIPMENT_COUNT_ALREADY_ADJUSTED"),
        ({"status": "pending", "counted_quantity": None, "discrepancy": None}, "EQUIPMENT_COUNT_NOT_COUNTED"),
    ],
)
def test_ensure_rejectable_rejections(overrides: dict, code: str) -> None:
    with pytest.raises(TransitionError) as exc:
        ensure_rejectable(_count(**overrides))
    assert exc.value.code == code


def test_line_with_open_discrepancy_is_rejectable() -> None:
    assert ensure_rejectable(_count(status="verified")) == CountStatus.VERIFIED
