from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from academy.domain_errors import DomainError
from academy.models import AuditEvent, EquipmentAudit, EquipmentCount
from academy.schemas import EquipmentAuditCreate, EquipmentAuditUpdate
from academy.use_cases import equipment_audits as use_case


class _QueryStub:
    def __init__(self, rows: list[object]) -> None:
        self._rows = rows
        self.calls: list[str] = []

    def _chain(self, name: str):
        self.calls.append(name)
        return self

    def options(self, *_args, **_kwargs):
        return self._chain("options")

    def filter(self, *_args, **_kwargs):
        return self._chain("filter")

    def order_by(self, *_args, **_kwargs):
        return self._chain("order_by")

    def offset(self, *_args, **_kwargs):
        return self._chain("offset")

    def limit(self, *_args, **_kwargs):
        return self._chain("limit")

    def first(self):
        return self._rows[0] if self._rows else None

    def all(self):
        return list(self._rows)


class _SessionStub:
    def __init__(self, rows: dict[type, list[object]] | None = None) -> None:
        self._rows = rows or {}
        self.queries: dict[type, _QueryStub] = {}
        self.added: list[object] = []
        self.deleted: list[object] = []
        self.commits = 0

    def query(self, model):
        query = _QueryStub(self._rows.get(model, []))
        self.queries[model] = query
        return query

    def add(self, obj) -> None:
        self.added.append(obj)

    def add_all(self, objs) -> None:
        self.added.extend(objs)

    def flush(self) -> None:
        for obj in self.added:
            if getattr(obj, "id", None) is None:
                obj.id = uuid4()

    def delete(self, obj) -> None:
        self.deleted.append(obj)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        pass

    def refresh(self, _obj) -> None:
        pass


def _user(*, org_id=None):
    return SimpleNamespace(id=uuid4(), org_id=org_id or uuid4(), initials="C.C.", role="coach")


def _audit(*, org_id, status: str = "scheduled", **overrides):
    values = {
        "id": uuid4(),
        "org_id": org_id,
        "title": "Spring count",
        "scheduled_date": datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc),
        "status": status,
        "audit_type": "full",
        "category_filter": None,
        "location_id": None,
        "notes": None,
        "started_at": None,
        "completed_at": None,
        "performed_by": None,
        "total_items": 0,
        "total_expected_quantity": 0,
        "counted_items": 0,
        "items_with_discrepancy": 0,
        "total_counted_quantity": 0,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _equipment(*, total: int, name: str = "Cones"):
    return SimpleNamespace(id=uuid4(), name=name, total_quantity=total)


def _line(status: str, expected: int, counted=None):
    return SimpleNamespace(
        status=status,
        expected_quantity=expected,
        counted_quantity=counted,
        discrepancy=None if counted is None else counted - expected,
        adjustment_approved=False,
    )


def _events(db: _SessionStub) -> list[AuditEvent]:
    return [obj for obj in db.added if isinstance(obj, AuditEvent)]


def test_create_audit_starts_scheduled_and_logs_activity() -> None:
    user = _user()
    db = _SessionStub()
    payload = EquipmentAuditCreate(
        title="Pre-season",
        scheduled_date=datetime(2026, 8, 1, tzinfo=timezone.utc),
        category_filter="balls",
    )

    audit = use_case.create_audit_use_case(db=db, current_user=user, payload=payload)

    assert isinstance(audit, EquipmentAudit)
    assert audit.status == "scheduled"
    assert audit.audit_type == "full"
    assert audit.category_filter == "balls"
    assert audit.org_id == user.org_id
    assert audit.created_by == user.id
    assert [event.action for event in _events(db)] == ["equipment_audit_created"]
    assert db.commits == 1


def test_create_audit_rejects_location_of_another_org(monkeypatch: pytest.MonkeyPatch) -> None:
    def _missing(*_args, **kwargs):
        raise DomainError(code=kwargs["code"], http_status=404, message=kwargs["not_found"])

    monkeypatch.setattr(use_case, "require_org_entity", _missing)
    payload = EquipmentAuditCreate(scheduled_date=datetime(2026, 8, 1, tzinfo=timezone.utc), location_id=uuid4())
    db = _SessionStub()

    with pytest.raises(DomainError) as exc:
        use_case.create_audit_use_case(db=db, current_user=_user(), payload=payload)

    assert exc.value.code == "LOCATION_NOT_FOUND"
    assert exc.value.http_status == 404
    assert db.added == []


def test_update_scheduled_audit_applies_partial_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    user = _user()
    audit = _audit(org_id=user.org_id, category_filter="balls", title="Old")
    monkeypatch.setattr(use_case, "get_audit_or_404", lambda **_kwargs: audit)
    db = _SessionStub()

    payload = EquipmentAuditUpdate.model_validate({"title": "New", "category_filter": None})
    result = use_case.update_audit_use_case(db=db, current_user=user, audit_id=audit.id, payload=payload)

    assert result.title == "New"
    assert result.category_filter is None
    assert result.audit_type == "full"
    event = _events(db)[0]
    assert event.action == "equipment_audit_updated"
    assert event.details["changes"] == {"title": "New", "category_filter": None}


def test_update_null_only_clears_scope_filters(monkeypatch: pytest.MonkeyPatch) -> None:
    user = _user()
    location_id = uuid4()
    audit = _audit(org_id=user.org_id, title="Keep", notes="Keep notes", location_id=location_id)
    monkeypatch.setattr(use_case, "get_audit_or_404", lambda **_kwargs: audit)
    db = _SessionStub()

    payload = EquipmentAuditUpdate.model_validate({"title": None, "notes": None, "location_id": None})
    use_case.update_audit_use_case(db=db, current_user=user, audit_id=audit.id, payload=payload)

    assert audit.title == "Keep"
    assert audit.notes == "Keep notes"
    assert audit.location_id is None
    assert _events(db)[0].details["changes"] == {"location_id": None}


@pytest.mark.parametrize("status", ["in_progress", "completed", "cancelled"])
def test_update_is_rejected_once_audit_left_scheduled(monkeypatch: pytest.MonkeyPatch, status: str) -> None:
    user = _user()
    audit = _audit(org_id=user.org_id, status=status)
    monkeypatch.setattr(use_case, "get_audit_or_404", lambda **_kwargs: audit)

    with pytest.raises(DomainError) as exc:
        use_case.update_audit_use_case(
            db=_SessionStub(),
            current_user=user,
            audit_id=audit.id,
            payload=EquipmentAuditUpdate(title="x"),
        )

    assert exc.value.code == "EQUIPMENT_AUDIT_NOT_EDITABLE"
    assert exc.value.http_status == 409


def test_delete_only_scheduled_audits(monkeypatch: pytest.MonkeyPatch) -> None:
    user = _user()
    scheduled = _audit(org_id=user.org_id)
    started = _audit(org_id=user.org_id, status="in_progress")
    db = _SessionStub()

    monkeypatch.setattr(use_case, "get_audit_or_404", lambda **_kwargs: scheduled)
    assert use_case.delete_audit_use_case(db=db, current_user=user, audit_id=scheduled.id) == {"success": True}
    assert db.deleted == [scheduled]

    monkeypatch.setattr(use_case, "get_audit_or_404", lambda **_kwargs: started)
    with pytest.raises(DomainError) as exc:
        use_case.delete_audit_use_case(db=db, current_user=user, audit_id=started.id)
    assert exc.value.code == "EQUIPMENT_AUDIT_NOT_DELETABLE"


def test_start_snapshots_one_pending_line_per_equipment(monkeypatch: pytest.MonkeyPatch) -> None:
    user = _user()
    audit = _audit(org_id=user.org_id)
    balls = _equipment(total=12, name="Balls")
    cones = _equipment(total=30)
    monkeypatch.setattr(use_case, "get_audit_or_404", lambda **_kwargs: audit)
    monkeypatch.setattr(use_case, "load_snapshot_equipment", lambda **_kwargs: [balls, cones, balls])
    db = _SessionStub()

    result = use_case.start_audit_use_case(db=db, current_user=user, audit_id=audit.id)

    lines = [obj for obj in db.added if isinstance(obj, EquipmentCount)]
    assert len(lines) == 2
    assert {line.equipment_id: line.expected_quantity for line in lines} == {balls.id: 12, cones.id: 30}
    assert all(line.status == "pending" and line.counted_quantity is None for line in lines)
    assert result.status == "in_progress"
    assert result.performed_by == user.id
    assert result.started_at is not None
    assert (result.total_items, result.total_expected_quantity) == (2, 42)
    assert db.commits == 1


def test_start_with_no_matching_equipment_leaves_audit_scheduled(monkeypatch: pytest.MonkeyPatch) -> None:
    user = _user()
    audit = _audit(org_id=user.org_id, category_filter="mats")
    monkeypatch.setattr(use_case, "get_audit_or_404", lambda **_kwargs: audit)
    monkeypatch.setattr(use_case, "load_snapshot_equipment", lambda **_kwargs: [])
    db = _SessionStub()

    with pytest.raises(DomainError) as exc:
        use_case.start_audit_use_case(db=db, current_user=user, audit_id=audit.id)

    assert exc.value.code == "EQUIPMENT_AUDIT_NOTHING_TO_COUNT"
    assert exc.value.http_status == 400
    assert audit.status == "scheduled"
    assert db.added == []
    assert db.commits == 0


def test_start_twice_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    user = _user()
    audit = _audit(org_id=user.org_id, status="in_progress")
    monkeypatch.setattr(use_case, "get_audit_or_404", lambda **_kwargs: audit)

    with pytest.raises(DomainError) as exc:
        use_case.start_audit_use_case(db=_SessionStub(), current_user=user, audit_id=audit.id)

    assert exc.value.code == "EQUIPMENT_AUDIT_NOT_STARTABLE"


def test_load_snapshot_equipment_filters_by_scope() -> None:
    audit = _audit(org_id=uuid4(), category_filter="balls", location_id=uuid4())
    item = _equipment(total=3)
    db = _SessionStub({use_case.Equipment: [item]})

    assert use_case.load_snapshot_equipment(db=db, audit=audit) == [item]
    # org + active, category, location
    assert db.queries[use_case.Equipment].calls.count("filter") == 3


def test_complete_blocks_on_pending_lines(monkeypatch: pytest.MonkeyPatch) -> None:
    user = _user()
    audit = _audit(org_id=user.org_id, status="in_progress")
    monkeypatch.setattr(use_case, "get_audit_or_404", lambda **_kwargs: audit)
    monkeypatch.setattr(
        use_case,
        "load_audit_counts",
        lambda **_kwargs: [_line("counted", 5, 5), _line("pending", 3), _line("pending", 1)],
    )

    with pytest.raises(DomainError) as exc:
        use_case.complete_audit_use_case(db=_SessionStub(), current_user=user, audit_id=audit.id)

    assert exc.value.code == "EQUIPMENT_AUDIT_HAS_PENDING_COUNTS"
    assert exc.value.details == {"pending": 2}
    assert audit.status == "in_progress"


def test_complete_caches_counters_and_appends_notes(monkeypatch: pytest.MonkeyPatch) -> None:
    user = _user()
    audit = _audit(org_id=user.org_id, status="in_progress", notes="Bring the clipboard", total_items=3)
    monkeypatch.setattr(use_case, "get_audit_or_404", lambda **_kwargs: audit)
    monkeypatch.setattr(
        use_case,
        "load_audit_counts",
        lambda **_kwargs: [_line("counted", 5, 4), _line("verified", 3, 3), _line("skipped", 2)],
    )
    db = _SessionStub()

    result = use_case.complete_audit_use_case(db=db, current_user=user, audit_id=audit.id, notes="All done")

    assert result.status == "completed"
    assert result.completed_at is not None
    assert result.counted_items == 2
    assert result.items_with_discrepancy == 1
    assert result.total_counted_quantity == 7
    assert result.total_items == 3
    assert result.notes == "Bring the clipboard\n\nCompletion notes: All done"

    # A second completion is refused.
    with pytest.raises(DomainError) as exc:
        use_case.complete_audit_use_case(db=db, current_user=user, audit_id=audit.id)
    assert exc.value.code == "EQUIPMENT_AUDIT_NOT_IN_PROGRESS"


def test_cancel_appends_reason_and_is_not_repeatable(monkeypatch: pytest.MonkeyPatch) -> None:
    user = _user()
    audit = _audit(org_id=user.org_id, status="in_progress")
    monkeypatch.setattr(use_case, "get_audit_or_404", lambda **_kwargs: audit)
    db = _SessionStub()

    result = use_case.cancel_audit_use_case(db=db, current_user=user, audit_id=audit.id, reason="Pitch flooded")

    assert result.status == "cancelled"
    assert result.notes == "Cancellation reason: Pitch flooded"
    assert _events(db)[0].details["oldStatus"] == "in_progress"

    with pytest.raises(DomainError) as exc:
        use_case.cancel_audit_use_case(db=db, current_user=user, audit_id=audit.id)
    assert exc.value.code == "EQUIPMENT_AUDIT_NOT_CANCELLABLE"


def test_get_audit_of_another_org_is_not_found() -> None:
    with pytest.raises(DomainError) as exc:
        use_case.get_audit_use_case(db=_SessionStub(), current_user=_user(), audit_id=uuid4())

    assert exc.value.code == "EQUIPMENT_AUDIT_NOT_FOUND"
    assert exc.value.http_status == 404


def test_list_audits_applies_filters_and_pagination() -> None:
    user = _user()
    audit = _audit(org_id=user.org_id)
    db = _SessionStub({EquipmentAudit: [audit]})

    result = use_case.list_audits_use_case(
        db=db,
        current_user=user,
        status="scheduled",
        from_date=datetime(2026, 1, 1, tzinfo=timezone.utc),
        limit=5,
        offset=10,
    )

    assert result == [audit]
    calls = db.queries[EquipmentAudit].calls
    assert calls.count("filter") == 3
    assert calls[-3:] == ["order_by", "offset", "limit"]


def test_summary_is_recomputed_from_lines_not_cached_counters(monkeypatch: pytest.MonkeyPatch) -> None:
    user = _user()
    audit = _audit(org_id=user.org_id, status="completed", counted_items=99, items_with_discrepancy=99)
    monkeypatch.setattr(use_case, "get_audit_or_404", lambda **_kwargs: audit)
    monkeypatch.setattr(
        use_case,
        "load_audit_counts",
        lambda **_kwargs: [_line("counted", 5, 4), _line("pending", 3)],
    )

    summary = use_case.get_audit_summary_use_case(db=_SessionStub(), current_user=user, audit_id=audit.id)

    assert summary["total_items"] == 2
    assert summary["discrepancies"]["total"] == 1
    assert summary["progress"] == 50
