"""
Context window selection: kind priority, recency, entity_id tie-break, truncation.
"""
from datetime import datetime, timezone

from app.config import DEFAULT_MAX_CONTEXT_ITEMS
from app.services.context_ranker import select_context_items
from app.services.knowledge_items import ContactDetails, ContactItem, DynamicItem, ScheduleItem


def _at(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


def make_item(kind: str, entity_id: int, created_at: str):
    ts = _at(created_at)
    if kind == "CONTACT":
        return ContactItem(entity_id=entity_id, created_at=ts, contact=ContactDetails(org_name=f"Org-{entity_id}"))
    if kind == "SCHEDULE":
        return ScheduleItem(entity_id=entity_id, created_at=ts)
    return DynamicItem(entity_id=entity_id, created_at=ts, type_id=900 + entity_id, type_name="PROGRAM")


def kinds(rows) -> list:
    return [r.kind for r in rows]


def test_default_window_is_five() -> None:
    assert DEFAULT_MAX_CONTEXT_ITEMS == 5


def test_priority_contact_schedule_dynamic_then_trim() -> None:
    items = [
        make_item("DYNAMIC", 50, "2026-01-10T08:00:00"),
        make_item("CONTACT", 11, "2026-01-01T08:00:00"),
        make_item("SCHEDULE", 21, "2026-01-03T08:00:00"),
        make_item("CONTACT", 10, "2026-01-02T08:00:00"),
        make_item("SCHEDULE", 20, "2026-01-04T08:00:00"),
        make_item("DYNAMIC", 51, "2026-01-09T08:00:00"),
    ]
    selected = select_context_items(items, 5)
    assert [i.entity_id for i in selected] == [10, 11, 20, 21, 50]
    assert kinds(selected) == ["CONTACT", "CONTACT", "SCHEDULE", "SCHEDULE", "DYNAMIC"]


def test_dynamic_dropped_when_contact_and_schedule_fill_window() -> None:
    """CONTACT 1,2,3 (newest->oldest), SCHEDULE 4,5, DYNAMIC 100 (newest of all) -> [1,2,3,4,5]."""
    items = [
        make_item("DYNAMIC", 100, "2026-01-11T10:00:00"),
        make_item("SCHEDULE", 5, "2026-01-06T10:00:00"),
        make_item("CONTACT", 3, "2026-01-08T10:00:00"),
        make_item("CONTACT", 1, "2026-01-10T10:00:00"),
        make_item("SCHEDULE", 4, "2026-01-07T10:00:00"),
        make_item("CONTACT", 2, "2026-01-09T10:00:00"),
    ]
    selected = select_context_items(items, 5)
    assert [i.entity_id for i in selected] == [1, 2, 3, 4, 5]
    assert "DYNAMIC" not in kinds(selected)


def test_equal_created_at_breaks_ties_by_entity_id() -> None:
    ts = "2026-01-01T00:00:00"
    items = [make_item("DYNAMIC", 30, ts), make_item("DYNAMIC", 10, ts), make_item("DYNAMIC", 20, ts)]
    assert [i.entity_id for i in select_context_items(items, 5)] == [10, 20, 30]


def test_never_exceeds_window_and_keeps_kind_order() -> None:
    items = [make_item(k, n, f"2026-02-{(n % 27) + 1:02d}T00:00:00")
             for n, k in enumerate(["DYNAMIC", "SCHEDULE", "CONTACT"] * 6, start=1)]
    for window in (1, 3, 5, 7, 50):
        selected = select_context_items(items, window)
        assert len(selected) == min(window, len(items))
        order = [{"CONTACT": 0, "SCHEDULE": 1, "DYNAMIC": 2}[k] for k in kinds(selected)]
        assert order == sorted(order)


def test_repeated_calls_are_identical() -> None:
    items = [make_item("SCHEDULE", 2, "2026-01-01T00:00:00"), make_item("SCHEDULE", 1, "2026-01-01T00:00:00")]
    first = select_context_items(items, 5)
    assert select_context_items(list(reversed(items)), 5) == first


def test_naive_and_aware_datetimes_compare() -> None:
    naive = ContactItem(entity_id=1, created_at=datetime(2026, 1, 1), contact=ContactDetails(org_name="A"))
    aware = make_item("CONTACT", 2, "2026-01-02T00:00:00")
    assert [i.entity_id for i in select_context_items([naive, aware], 5)] == [2, 1]


def test_empty_input_and_zero_window() -> None:
    assert select_context_items([], 5) == []
    assert select_context_items([make_item("CONTACT", 1, "2026-01-01T00:00:00")], 0) == []
