"""
Tag catalog: immutable {tag_code -> synonyms} snapshot injected into the intent classifier.
Also owns the baseline system taxonomy and its idempotent seeding.
"""
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.logging_config import get_logger
from app.models import Tag

logger = get_logger(__name__)


@dataclass(frozen=True)
class SystemTag:
    tag_code: str
    description: str
    category: str
    synonyms: Tuple[str, ...]


SYSTEM_TAGS: Tuple[SystemTag, ...] = (
    SystemTag("CONTACT", "Generic contact details provided by a business", "CONTACT",
              ("contact", "contact info", "coordonnées")),
    SystemTag("ADDRESS", "Business address and location information", "CONTACT",
              ("adresse", "address", "location", "où êtes-vous")),
    SystemTag("PHONE", "Phone numbers and call-related information", "CONTACT",
              ("phone", "téléphone", "numéro")),
    SystemTag("HOURS", "Opening and closing hours for normal business days", "SCHEDULE",
              ("opening hours", "horaire", "heures d'ouverture", "open", "close")),
    SystemTag("SCHEDULE", "Appointments, schedules, and planning details", "SCHEDULE",
              ("planning", "agenda", "schedule", "rendez-vous")),
    SystemTag("PERSONAL_INFO", "Personal profile details needed by business workflows", "SYSTEM",
              ("personal info", "profil", "identity")),
)


def normalize_synonyms(raw: Any, tag_code: str) -> Tuple[str, ...]:
    """
    Lowercased, trimmed, ordered-unique synonyms with the tag code appended as fallback term.
    Non-list / non-string values (legacy rows) are ignored.
    """
    values: List[str] = []
    if isinstance(raw, (list, tuple)):
        values = [v.strip().lower() for v in raw if isinstance(v, str)]
    values.append(tag_code.strip().lower())
    return tuple(dict.fromkeys(v for v in values if v))


@dataclass(frozen=True)
class TagEntry:
    code: str
    synonyms: Tuple[str, ...]


@dataclass(frozen=True)
class TagCatalog:
    """Read-only snapshot of all tags. Construct once, share freely."""

    entries: Tuple[TagEntry, ...] = ()

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[str, Any]]) -> "TagCatalog":
        """Build from (tag_code, raw_synonyms) pairs."""
        entries = []
        for code, raw in pairs:
            code = (code or "").strip().upper()
            if code:
                entries.append(TagEntry(code=code, synonyms=normalize_synonyms(raw, code)))
        return cls(entries=tuple(entries))

    @property
    def codes(self) -> Tuple[str, ...]:
        return tuple(e.code for e in self.entries)

    def __len__(self) -> int:
        return len(self.entries)


async def load_tag_catalog(db: AsyncSession) -> TagCatalog:
    """Read all tags (tag_code, synonyms_json) ordered by code."""
    r = await db.execute(select(Tag.tag_code, Tag.synonyms_json).order_by(Tag.tag_code))
    catalog = TagCatalog.from_pairs((row[0], row[1]) for row in r.all())
    logger.debug("tag_catalog.loaded", tags=len(catalog))
    return catalog


async def seed_system_tags(db: AsyncSession, tags: Optional[Iterable[SystemTag]] = None) -> int:
    """
    Insert system tags whose code is missing. Existing rows, system or admin-edited, are never modified.
    Idempotent. Returns number of inserted tags. Caller commits.
    """
    tags = tuple(tags) if tags is not None else SYSTEM_TAGS
    codes = [t.tag_code.strip().upper() for t in tags]
    r = await db.execute(select(Tag).where(Tag.tag_code.in_(codes)))
    existing = {t.tag_code for t in r.scalars().all()}

    created = 0
    for seed, code in zip(tags, codes):
        if code in existing:
            continue
        db.add(
            Tag(
                tag_code=code,
                description=seed.description,
                category=seed.category,
                is_system=True,
                synonyms_json=list(seed.synonyms),
            )
        )
        created += 1
    await db.flush()
    logger.info("tag_catalog.seeded", created=created, kept=len(existing))
    return created
