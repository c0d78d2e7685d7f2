"""Deterministic text rendering of selected knowledge items for the LLM prompt."""
import json
from datetime import time
from typing import Any, Iterable, List, Optional, assert_never

from app.services.knowledge_items import ContactItem, DynamicItem, KnowledgeItem, ScheduleItem

CONTEXT_HEADER = "Chatbot knowledge context:"

_CONTACT_FIELDS = ("org_name", "phone", "email", "address_text", "city", "country", "hours_text")


def _format_value(value: Any) -> str:
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, (bool, dict, list)):
        return json.dumps(value, sort_keys=True, ensure_ascii=False, default=str)
    return str(value)


def _is_blank(value: Optional[Any]) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _join_pairs(head: str, pairs: List[str]) -> str:
    return f"{head} {', '.join(pairs)}" if pairs else head


def _render_contact(item: ContactItem) -> List[str]:
    pairs = [
        f"{name}: {_format_value(getattr(item.contact, name))}"
        for name in _CONTACT_FIELDS
        if not _is_blank(getattr(item.contact, name))
    ]
    return [_join_pairs(f"CONTACT (entityId={item.entity_id}):", pairs)]


def _render_schedule(item: ScheduleItem) -> List[str]:
    head = f"SCHEDULE (entityId={item.entity_id}):"
    if not item.rows:
        return [head + " no schedule rows"]
    lines = [head]
    for row in item.rows:
        line = (
            f"  - day: {row.day_of_week}, open: {_format_value(row.open_time)}, "
            f"close: {_format_value(row.close_time)}"
        )
        if not _is_blank(row.notes):
            line += f", notes: {row.notes}"
        lines.append(line)
    return lines


def _render_dynamic(item: DynamicItem) -> List[str]:
    # dict key order from JSON columns is not guaranteed; sort for byte-stable output
    pairs = [
        f"{key}: {_format_value(item.data[key])}"
        for key in sorted(item.data, key=str)
        if not _is_blank(item.data[key])
    ]
    return [_join_pairs(f"DYNAMIC (entityId={item.entity_id}, type={item.type_name}):", pairs)]


def build_context_text(selected: Iterable[KnowledgeItem]) -> str:
    """Header + one block per item, in the given (ranked) order. Empty selection -> header only."""
    lines = [CONTEXT_HEADER]
    for item in selected:
        if isinstance(item, ContactItem):
            lines.extend(_render_contact(item))
        elif isinstance(item, ScheduleItem):
            lines.extend(_render_schedule(item))
        elif isinstance(item, DynamicItem):
            lines.extend(_render_dynamic(item))
        else:
            assert_never(item)
    return "\n".join(lines)
