"""
TagCatalog normalization + idempotent system tag seeding.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.models import Tag
from app.services.tag_catalog import (
    SYSTEM_TAGS,
    TagCatalog,
    TagEntry,
    load_tag_catalog,
    normalize_synonyms,
    seed_system_tags,
)


def test_normalize_synonyms_lowercases_dedupes_and_appends_code() -> None:
    assert normalize_synonyms([" Address ", "LOCATION", "address", "", 42], "ADDRESS") == (
        "address",
        "location",
    )
    assert normalize_synonyms(["where"], "ADDRESS") == ("where", "address")


def test_normalize_synonyms_ignores_non_list_payloads() -> None:
    assert normalize_synonyms(None, "HOURS") == ("hours",)
    assert normalize_synonyms("hours,open", "HOURS") == ("hours",)
    assert normalize_synonyms({"a": 1}, "HOURS") == ("hours",)


def test_from_pairs_uppercases_codes_and_skips_blank() -> None:
    catalog = TagCatalog.from_pairs([("phone", ["tel"]), ("  ", ["x"]), (None, None)])
    assert catalog.entries == (TagEntry(code="PHONE", synonyms=("tel", "phone")),)
    assert catalog.codes == ("PHONE",)
    assert len(catalog) == 1


def test_catalog_is_immutable() -> None:
    catalog = TagCatalog.from_pairs([("PHONE", ["tel"])])
    with pytest.raises(AttributeError):
        catalog.entries = ()  # type: ignore[misc]


@pytest.mark.asyncio
async def test_load_tag_catalog_reads_code_and_synonyms() -> None:
    result = MagicMock()
    result.all.return_value = [("ADDRESS", ["address", "location"]), ("HOURS", None)]
    db = AsyncMock()
    db.execute.return_value = result

    catalog = await load_tag_catalog(db)

    assert catalog.codes == ("ADDRESS", "HOURS")
    assert catalog.entries[0].synonyms == ("address", "location")
    assert catalog.entries[1].synonyms == ("hours",)
    db.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_seed_system_tags_inserts_missing_and_keeps_existing_rows() -> None:
    """An admin-edited tag with a system code keeps its synonyms and is_system flag."""
    existing = Tag(
        tag_code="HOURS",
        description="Our hours",
        category="CUSTOM",
        is_system=False,
        synonyms_json=["opening times", "when do you open"],
    )
    result = MagicMock()
    result.scalars.return_value.all.return_value = [existing]
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    db.flush = AsyncMock()

    created = await seed_system_tags(db)

    assert created == len(SYSTEM_TAGS) - 1
    added_codes = {call.args[0].tag_code for call in db.add.call_args_list}
    assert "HOURS" not in added_codes
    assert {"CONTACT", "ADDRESS", "PHONE", "SCHEDULE", "PERSONAL_INFO"} == added_codes
    assert existing.is_system is False
    assert existing.synonyms_json == ["opening times", "when do you open"]
    assert (existing.description, existing.category) == ("Our hours", "CUSTOM")
    db.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_seed_system_tags_is_idempotent_when_all_exist() -> None:
    rows = [Tag(tag_code=t.tag_code, is_system=True, synonyms_json=list(t.synonyms)) for t in SYSTEM_TAGS]
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    db = MagicMock()
    db.execute = AsyncMock(return_value=result)
    db.flush = AsyncMock()

    assert await seed_system_tags(db) == 0
    db.add.assert_not_called()


def test_system_tags_cover_runtime_taxonomy() -> None:
    codes = [t.tag_code for t in SYSTEM_TAGS]
    assert codes == ["CONTACT", "ADDRESS", "PHONE", "HOURS", "SCHEDULE", "PERSONAL_INFO"]
