"""initial_catalog_schema

Revision ID: 3f8d2b6a1c04
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f8d2b6a1c04"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "manufacturers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_manufacturers_name"), "manufacturers", ["name"], unique=False)

    op.create_table(
        "vehicle_models",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("manufacturer_id", sa.Integer(), nullable=False),
        sa.Column("model_name", sa.String(length=200), nullable=False),
        sa.Column("variant", sa.String(length=200), nullable=True),
        sa.Column("year_from", sa.Integer(), nullable=True),
        sa.Column("year_to", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["manufacturer_id"], ["manufacturers.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_vehicle_models_manufacturer_id"), "vehicle_models", ["manufacturer_id"], unique=False
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=200), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["parent_id"], ["categories.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index(op.f("ix_categories_parent_id"), "categories", ["parent_id"], unique=False)

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("sku", sa.String(length=100), nullable=True),
        sa.Column("is_universal", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("price", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("discount", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("sale_price", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("cost_price", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("lead_time", sa.String(length=100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_items_name"), "items", ["name"], unique=False)
    op.create_index(op.f("ix_items_sku"), "items", ["sku"], unique=False)

    op.create_table(
        "item_images",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("src", sa.Text(), nullable=False),
        sa.Column("alt", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_item_images_item_id"), "item_images", ["item_id"], unique=False)

    op.create_table(
        "item_category",
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("item_id", "category_id"),
    )
    op.create_index(op.f("ix_item_category_category_id"), "item_category", ["category_id"], unique=False)

    op.create_table(
        "item_vehicle_models",
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("vehicle_model_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["vehicle_model_id"], ["vehicle_models.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("item_id", "vehicle_model_id"),
    )
    op.create_index(
        op.f("ix_item_vehicle_models_vehicle_model_id"),
        "item_vehicle_models",
        ["vehicle_model_id"],
        unique=False,
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_orders_status"), "orders", ["status"], unique=False)

    op.create_table(
        "order_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(length=100), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_order_items_order_id"), "order_items", ["order_id"], unique=False)
    op.create_index(op.f("ix_order_items_sku"), "order_items", ["sku"], unique=False)

    op.create_table(
        "search_synonyms",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("term", sa.String(length=100), nullable=False),
        sa.Column("synonym", sa.String(length=100), nullable=False),
        sa.Column("weight", sa.Numeric(precision=3, scale=2), nullable=False, server_default=sa.text("1.0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("term", "synonym", name="uq_search_synonyms_term_synonym"),
    )
    op.create_index(op.f("ix_search_synonyms_term"), "search_synonyms", ["term"], unique=False)
    op.create_index(op.f("ix_search_synonyms_synonym"), "search_synonyms", ["synonym"], unique=False)

    op.create_table(
        "search_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("search_query", sa.Text(), nullable=True),
        sa.Column("manufacturer_id", sa.Integer(), nullable=True),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("model_ids", sa.String(length=200), nullable=True),
        sa.Column("sort_option", sa.String(length=20), nullable=True),
        sa.Column("page", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("page_size", sa.Integer(), nullable=False, server_default=sa.text("10")),
        sa.Column("results_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "search_timestamp", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_search_logs_manufacturer_id"), "search_logs", ["manufacturer_id"], unique=False)
    op.create_index(op.f("ix_search_logs_category_id"), "search_logs", ["category_id"], unique=False)
    op.create_index(op.f("ix_search_logs_results_count"), "search_logs", ["results_count"], unique=False)
    op.create_index(
        op.f("ix_search_logs_search_timestamp"), "search_logs", ["search_timestamp"], unique=False
    )

    # Full-text indexes. Text search is refused (503) unless all three exist.
    op.execute(
        "CREATE INDEX ix_items_fulltext ON items USING gin "
        "(to_tsvector('simple', coalesce(name, '') || ' ' || coalesce(description, '')))"
    )
    op.execute(
        "CREATE INDEX ix_manufacturers_fulltext ON manufacturers USING gin "
        "(to_tsvector('simple', coalesce(name, '')))"
    )
    op.execute(
        "CREATE INDEX ix_vehicle_models_fulltext ON vehicle_models USING gin "
        "(to_tsvector('simple', coalesce(model_name, '') || ' ' || coalesce(variant, '')))"
    )


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_vehicle_models_fulltext")
    op.execute("DROP INDEX IF EXISTS ix_manufacturers_fulltext")
    op.execute("DROP INDEX IF EXISTS ix_items_fulltext")

    op.drop_table("search_logs")
    op.drop_table("search_synonyms")
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("item_vehicle_models")
    op.drop_table("item_category")
    op.drop_table("item_images")
    op.drop_table("items")
    op.drop_table("categories")
    op.drop_table("vehicle_models")
    op.drop_table("manufacturers")
