"""chatbot runtime: chatbots, tags, building-block entities, item tag links

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "chatbots",
        sa.Column("chatbot_id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("display_name", sa.String(120), nullable=False),
        sa.Column("domain", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("chatbot_id"),
        sa.UniqueConstraint("domain", name="uq_chatbots_domain"),
    )
    op.create_table(
        "tags",
        sa.Column("tag_id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("tag_code", sa.String(64), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(64), nullable=True),
        sa.Column("is_system", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("synonyms_json", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("tag_id"),
        sa.UniqueConstraint("tag_code", name="uq_tags_tag_code"),
    )
    op.create_table(
        "block_types",
        sa.Column("type_id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("type_name", sa.String(120), nullable=False),
        sa.Column("schema_json", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("type_id"),
        sa.UniqueConstraint("type_name", name="uq_block_types_type_name"),
    )
    op.create_table(
        "bb_entities",
        sa.Column("entity_id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=True),
        sa.Column("type_id", sa.BigInteger(), nullable=True),
        sa.Column("data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["type_id"], ["block_types.type_id"]),
        sa.PrimaryKeyConstraint("entity_id"),
    )
    op.create_table(
        "bb_contacts",
        sa.Column("entity_id", sa.BigInteger(), nullable=False),
        sa.Column("org_name", sa.String(120), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("email", sa.String(190), nullable=True),
        sa.Column("address_text", sa.String(255), nullable=True),
        sa.Column("city", sa.String(120), nullable=True),
        sa.Column("country", sa.String(120), nullable=True),
        sa.Column("hours_text", sa.String(255), nullable=True),
        sa.ForeignKeyConstraint(["entity_id"], ["bb_entities.entity_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("entity_id"),
    )
    op.create_table(
        "bb_schedules",
        sa.Column("schedule_id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("entity_id", sa.BigInteger(), nullable=False),
        sa.Column("day_of_week", sa.String(20), nullable=False),
        sa.Column("open_time", sa.Time(), nullable=False),
        sa.Column("close_time", sa.Time(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["entity_id"], ["bb_entities.entity_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("schedule_id"),
    )
    op.create_index("ix_bb_schedules_entity_id", "bb_schedules", ["entity_id"])
    op.create_table(
        "chatbot_items",
        sa.Column("item_id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("chatbot_id", sa.BigInteger(), nullable=False),
        sa.Column("entity_id", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["chatbot_id"], ["chatbots.chatbot_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["entity_id"], ["bb_entities.entity_id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("item_id"),
    )
    op.create_index("ix_chatbot_items_chatbot_id", "chatbot_items", ["chatbot_id"])
    op.create_table(
        "chatbot_item_tags",
        sa.Column("item_id", sa.BigInteger(), nullable=False),
        sa.Column("tag_id", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["item_id"], ["chatbot_items.item_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tag_id"], ["tags.tag_id"]),
        sa.PrimaryKeyConstraint("item_id", "tag_id"),
    )
    # retrieval filters links by tag
    op.create_index("ix_chatbot_item_tags_tag_id", "chatbot_item_tags", ["tag_id"])


def downgrade() -> None:
    op.drop_index("ix_chatbot_item_tags_tag_id", table_name="chatbot_item_tags")
    op.drop_table("chatbot_item_tags")
    op.drop_index("ix_chatbot_items_chatbot_id", table_name="chatbot_items")
    op.drop_table("chatbot_items")
    op.drop_index("ix_bb_schedules_entity_id", table_name="bb_schedules")
    op.drop_table("bb_schedules")
    op.drop_table("bb_contacts")
    op.drop_table("bb_entities")
    op.drop_table("block_types")
    op.drop_table("tags")
    op.drop_table("chatbots")
