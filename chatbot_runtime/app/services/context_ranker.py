"""
Context window selection: CONTACT > SCHEDULE > DYNAMIC, newest first, entity_id tie-break, then truncate.
Lower-priority kinds are never blended in: if CONTACT + SCHEDULE fill the window, DYNAMIC is dropped.
"""
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Tuple

from app.config import DEFAULT_MAX_CONTEXT_ITEMS
from app.services.knowledge_items import KIND_CONTACT, KIND_DYNAMIC, KIND_SCHEDULE, KnowledgeItem

KIND_PRIORITY: Dict[str, int] = {
    KIND_CONTACT: 0,
    KIND_SCHEDULE: 1,
    KIND_DYNAMIC: 2,
}


def _timestamp(value: datetime) -> float:
    # naive datetimes are treated as UTC so mixed rows still compare
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _sort_key(item: KnowledgeItem) -> Tuple[int, float, int]:
    return (KIND_PRIORITY[item.kind], -_timestamp(item.created_at), item.entity_id)


def select_context_items(
    items: Iterable[KnowledgeItem],
    max_items: int = DEFAULT_MAX_CONTEXT_ITEMS,
) -> List[KnowledgeItem]:
    """Rank by kind bucket, then created_at desc, then entity_id asc; keep the first max_items."""
    if max_items <= 0:
        return []
    return sorted(items, key=_sort_key)[:max_items]
