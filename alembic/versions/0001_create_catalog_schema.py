from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy import inspect

revision = "0001_create_catalog_schema"
down_revision = None
branch_labels = None
depends_on = None


def _has_table(inspector, table_name: str) -> bool:
    return table_name in inspector.get_table_names()


def _id_column() -> sa.Column:
    return sa.Column("id", sa.String(length=64), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(), nullable=False)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if not _has_table(inspector, "properties"):
        op.create_table(
            "properties",
            _id_column(),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("address", sa.String(), nullable=True),
            sa.Column("tenant_id", sa.String(length=64), nullable=True, index=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )

    if not _has_table(inspector, "restaurants"):
        op.create_table(
            "restaurants",
            _id_column(),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("property_id", sa.String(length=64), sa.ForeignKey("properties.id"), nullable=True, index=True),
            _created_at(),
        )

    if not _has_table(inspector, "menu_categories"):
        op.create_table(
            "menu_categories",
            _id_column(),
            sa.Column(
                "restaurant_id", sa.String(length=64), sa.ForeignKey("restaurants.id"), nullable=False, index=True
            ),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
            _created_at(),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_menu_categories_restaurant_name", "menu_categories", ["restaurant_id", "name"])

    if not _has_table(inspector, "subcategories"):
        op.create_table(
            "subcategories",
            _id_column(),
            sa.Column(
                "category_id", sa.String(length=64), sa.ForeignKey("menu_categories.id"), nullable=False, index=True
            ),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            _created_at(),
        )

    if not _has_table(inspector, "menu_items"):
        op.create_table(
            "menu_items",
            _id_column(),
            sa.Column("tenant_id", sa.String(length=64), nullable=True, index=True),
            sa.Column(
                "category_id", sa.String(length=64), sa.ForeignKey("menu_categories.id"), nullable=False, index=True
            ),
            sa.Column(
                "subcategory_id", sa.String(length=64), sa.ForeignKey("subcategories.id"), nullable=True, index=True
            ),
            sa.Column("item_code", sa.String(), nullable=True, index=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("display_name", sa.String(), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
            sa.Column("currency", sa.String(length=8), nullable=False, server_default="INR"),
            sa.Column("image_url", sa.String(), nullable=True),
            sa.Column("availability_flag", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("sold_out", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("bogo", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("prep_time", sa.Integer(), nullable=True),
            sa.Column("calories", sa.Integer(), nullable=True),
            sa.Column("portion", sa.String(), nullable=True),
            sa.Column("attributes_json", sa.Text(), nullable=True),
            _created_at(),
            sa.Column("updated_at", sa.DateTime(), nullable=False),
        )
        op.create_index("ix_menu_items_code_category", "menu_items", ["item_code", "category_id"])

    if not _has_table(inspector, "modifier_groups"):
        op.create_table(
            "modifier_groups",
            _id_column(),
            sa.Column(
                "restaurant_id", sa.String(length=64), sa.ForeignKey("restaurants.id"), nullable=False, index=True
            ),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("min_selection", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("max_selection", sa.Integer(), nullable=False, server_default="1"),
            _created_at(),
        )
        op.create_index("ix_modifier_groups_restaurant_name", "modifier_groups", ["restaurant_id", "name"])

    if not _has_table(inspector, "modifier_items"):
        op.create_table(
            "modifier_items",
            _id_column(),
            sa.Column(
                "modifier_group_id",
                sa.String(length=64),
                sa.ForeignKey("modifier_groups.id"),
                nullable=False,
                index=True,
            ),
            sa.Column("name", sa.String(length=255), nullable=False),
            sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
            _created_at(),
        )

    if not _has_table(inspector, "menu_item_modifier_groups"):
        op.create_table(
            "menu_item_modifier_groups",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("menu_item_id", sa.String(length=64), sa.ForeignKey("menu_items.id"), nullable=False),
            sa.Column(
                "modifier_group_id", sa.String(length=64), sa.ForeignKey("modifier_groups.id"), nullable=False
            ),
            sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        )
        op.create_index(
            "ix_menu_item_modifier_groups_item_group",
            "menu_item_modifier_groups",
            ["menu_item_id", "modifier_group_id"],
            unique=True,
        )

    if not _has_table(inspector, "allergens"):
        op.create_table(
            "allergens",
            _id_column(),
            sa.Column("name", sa.String(), nullable=False, index=True),
            _created_at(),
        )

    if not _has_table(inspector, "menu_item_allergens"):
        op.create_table(
            "menu_item_allergens",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("menu_item_id", sa.String(length=64), sa.ForeignKey("menu_items.id"), nullable=False),
            sa.Column("allergen_id", sa.String(length=64), sa.ForeignKey("allergens.id"), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        )
        op.create_index(
            "ix_menu_item_allergens_item_allergen",
            "menu_item_allergens",
            ["menu_item_id", "allergen_id"],
            unique=True,
        )

    if not _has_table(inspector, "attributes"):
        op.create_table(
            "attributes",
            _id_column(),
            sa.Column("name", sa.String(), nullable=False, index=True),
            sa.Column("type", sa.String(length=16), nullable=False, server_default="TEXT"),
            sa.Column("options_json", sa.Text(), nullable=True),
            _created_at(),
        )

    if not _has_table(inspector, "audit_log"):
        op.create_table(
            "audit_log",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("user_id", sa.String(length=64), nullable=False, index=True),
            sa.Column("user_name", sa.String(), nullable=True),
            sa.Column("action", sa.String(), nullable=False),
            sa.Column("entity_type", sa.String(), nullable=False),
            sa.Column("entity_name", sa.String(), nullable=True),
            sa.Column("details", sa.Text(), nullable=True),
            sa.Column("meta_json", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True, index=True),
        )


def downgrade() -> None:
    for table_name in (
        "audit_log",
        "attributes",
        "menu_item_allergens",
        "allergens",
        "menu_item_modifier_groups",
        "modifier_items",
        "modifier_groups",
        "menu_items",
        "subcategories",
        "menu_categories",
        "restaurants",
        "properties",
    ):
        op.drop_table(table_name)
