"""
Tenant-scoped batched retrieval of knowledge items (no N+1).

1. tag links (scoped by chatbot_id + tag codes) -> ordered unique entity ids; empty -> return [] with no more queries
2. one bulk load of entities
3. partition ids by kind
4. one bulk query per non-empty partition (contacts, schedule rows, block type names)
5. assemble in first-seen order; entities without kind data are dropped

Output is unsorted on purpose: ordering belongs to context_ranker.
"""
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.logging_config import get_logger
from app.models import (
    ENTITY_TYPE_CONTACT,
    ENTITY_TYPE_SCHEDULE,
    BbContact,
    BbEntity,
    BbSchedule,
    BlockType,
    ChatbotItem,
    ChatbotItemTag,
    Tag,
)
from app.services.knowledge_items import (
    UNKNOWN_TYPE_NAME,
    ContactDetails,
    ContactItem,
    DynamicItem,
    KnowledgeItem,
    ScheduleItem,
    ScheduleRow,
)

logger = get_logger(__name__)


class KnowledgeStore(Protocol):
    """Bulk read queries used by KnowledgeRetriever. Every method is one round trip."""

    async def linked_entity_ids(self, chatbot_id: int, tag_codes: Sequence[str]) -> List[int]: ...

    async def entities(self, chatbot_id: int, entity_ids: Sequence[int]) -> List[Any]: ...

    async def contacts(self, entity_ids: Sequence[int]) -> List[Any]: ...

    async def schedule_rows(self, entity_ids: Sequence[int]) -> List[Any]: ...

    async def block_type_names(self, type_ids: Sequence[int]) -> Dict[int, str]: ...


class SqlKnowledgeStore:
    """KnowledgeStore over the async SQLAlchemy session of the current request."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def linked_entity_ids(self, chatbot_id: int, tag_codes: Sequence[str]) -> List[int]:
        """Entity ids of this chatbot's items linked to any of tag_codes, in link order (may repeat)."""
        q = (
            select(ChatbotItem.entity_id)
            .join(ChatbotItemTag, ChatbotItemTag.item_id == ChatbotItem.item_id)
            .join(Tag, Tag.tag_id == ChatbotItemTag.tag_id)
            .where(ChatbotItem.chatbot_id == chatbot_id)
            .where(Tag.tag_code.in_(list(tag_codes)))
            .order_by(ChatbotItem.item_id, Tag.tag_id)
        )
        r = await self.db.execute(q)
        return [int(v) for v in r.scalars().all()]

    async def entities(self, chatbot_id: int, entity_ids: Sequence[int]) -> List[BbEntity]:
        """bb_entities by id, re-scoped to the chatbot so a bad id list cannot leak across tenants."""
        owned = select(ChatbotItem.entity_id).where(ChatbotItem.chatbot_id == chatbot_id)
        q = (
            select(BbEntity)
            .where(BbEntity.entity_id.in_(list(entity_ids)))
            .where(BbEntity.entity_id.in_(owned))
        )
        r = await self.db.execute(q)
        return list(r.scalars().all())

    async def contacts(self, entity_ids: Sequence[int]) -> List[BbContact]:
        r = await self.db.execute(select(BbContact).where(BbContact.entity_id.in_(list(entity_ids))))
        return list(r.scalars().all())

    async def schedule_rows(self, entity_ids: Sequence[int]) -> List[BbSchedule]:
        q = (
            select(BbSchedule)
            .where(BbSchedule.entity_id.in_(list(entity_ids)))
            .order_by(BbSchedule.entity_id, BbSchedule.schedule_id)
        )
        r = await self.db.execute(q)
        return list(r.scalars().all())

    async def block_type_names(self, type_ids: Sequence[int]) -> Dict[int, str]:
        q = select(BlockType.type_id, BlockType.type_name).where(BlockType.type_id.in_(list(type_ids)))
        r = await self.db.execute(q)
        return {int(row[0]): row[1] for row in r.all()}


def _unique_in_order(values: Iterable[int]) -> List[int]:
    return list(dict.fromkeys(values))


def _normalize_dynamic_data(data: Any) -> Dict[str, Any]:
    """DYNAMIC payload is always a dict (JSON arrays / scalars / NULL -> {})."""
    return dict(data) if isinstance(data, dict) else {}


def _contact_details(row: Any) -> ContactDetails:
    return ContactDetails(
        org_name=row.org_name,
        phone=row.phone,
        email=row.email,
        address_text=row.address_text,
        city=row.city,
        country=row.country,
        hours_text=row.hours_text,
    )


def _schedule_row(row: Any) -> ScheduleRow:
    return ScheduleRow(
        day_of_week=row.day_of_week,
        open_time=row.open_time,
        close_time=row.close_time,
        notes=row.notes,
    )


class KnowledgeRetriever:
    """Turns (chatbot_id, tag codes) into KnowledgeItem list through a KnowledgeStore."""

    def __init__(self, store: KnowledgeStore) -> None:
        self.store = store

    async def fetch(self, chatbot_id: int, tag_codes: Iterable[str]) -> List[KnowledgeItem]:
        codes = sorted(set(tag_codes))
        if not codes:
            return []

        entity_ids = _unique_in_order(await self.store.linked_entity_ids(chatbot_id, codes))
        if not entity_ids:
            logger.info("knowledge.no_tag_links", chatbot_id=chatbot_id, tags=codes)
            return []

        entity_by_id = {int(e.entity_id): e for e in await self.store.entities(chatbot_id, entity_ids)}

        contact_ids: List[int] = []
        schedule_ids: List[int] = []
        dynamic_type_ids: List[int] = []
        for entity_id in entity_ids:
            entity = entity_by_id.get(entity_id)
            if entity is None:
                continue
            if entity.entity_type == ENTITY_TYPE_CONTACT:
                contact_ids.append(entity_id)
            elif entity.entity_type == ENTITY_TYPE_SCHEDULE:
                schedule_ids.append(entity_id)
            elif entity.type_id is not None:
                dynamic_type_ids.append(int(entity.type_id))
        dynamic_type_ids = _unique_in_order(dynamic_type_ids)

        # One AsyncSession cannot run statements concurrently, so the bulk loads run back to back.
        contacts = await self.store.contacts(contact_ids) if contact_ids else []
        schedules = await self.store.schedule_rows(schedule_ids) if schedule_ids else []
        type_names = await self.store.block_type_names(dynamic_type_ids) if dynamic_type_ids else {}

        contact_by_entity = {int(c.entity_id): c for c in contacts}
        rows_by_entity: Dict[int, List[Any]] = defaultdict(list)
        for row in schedules:
            rows_by_entity[int(row.entity_id)].append(row)

        items: List[KnowledgeItem] = []
        dropped = 0
        for entity_id in entity_ids:
            entity = entity_by_id.get(entity_id)
            if entity is None:
                dropped += 1
                continue
            if entity.entity_type == ENTITY_TYPE_CONTACT:
                contact = contact_by_entity.get(entity_id)
                if contact is None:
                    dropped += 1
                    continue
                items.append(
                    ContactItem(entity_id=entity_id, created_at=entity.created_at, contact=_contact_details(contact))
                )
            elif entity.entity_type == ENTITY_TYPE_SCHEDULE:
                items.append(
                    ScheduleItem(
                        entity_id=entity_id,
                        created_at=entity.created_at,
                        rows=tuple(_schedule_row(r) for r in rows_by_entity.get(entity_id, [])),
                    )
                )
            elif entity.type_id is not None:
                type_id = int(entity.type_id)
                items.append(
                    DynamicItem(
                        entity_id=entity_id,
                        created_at=entity.created_at,
                        type_id=type_id,
                        type_name=type_names.get(type_id, UNKNOWN_TYPE_NAME),
                        data=_normalize_dynamic_data(entity.data),
                    )
                )
            else:
                dropped += 1

        logger.info(
            "knowledge.fetched",
            chatbot_id=chatbot_id,
            tags=codes,
            linked=len(entity_ids),
            items=len(items),
            dropped=dropped,
        )
        return items
