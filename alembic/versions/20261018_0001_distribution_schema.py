"""distribution schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "shops",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_shops_code"), "shops", ["code"], unique=True)
    op.create_index(op.f("ix_shops_id"), "shops", ["id"], unique=False)
    op.create_index(op.f("ix_shops_name"), "shops", ["name"], unique=False)

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("product_code", sa.String(length=64), nullable=False),
        sa.Column("color", sa.String(length=64), nullable=False),
        sa.Column("size", sa.String(length=32), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("sold_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sales_id"), "sales", ["id"], unique=False)
    op.create_index(op.f("ix_sales_product_code"), "sales", ["product_code"], unique=False)
    op.create_index(op.f("ix_sales_shop_id"), "sales", ["shop_id"], unique=False)
    op.create_index(op.f("ix_sales_sold_at"), "sales", ["sold_at"], unique=False)

    op.create_table(
        "sale_returns",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("shop_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("note", sa.String(length=255), nullable=True),
        sa.Column("returned_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["shop_id"], ["shops.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_sale_returns_id"), "sale_returns", ["id"], unique=False)
    op.create_index(op.f("ix_sale_returns_returned_at"), "sale_returns", ["returned_at"], unique=False)
    op.create_index(op.f("ix_sale_returns_sale_id"), "sale_returns", ["sale_id"], unique=False)
    op.create_index(op.f("ix_sale_returns_shop_id"), "sale_returns", ["shop_id"], unique=False)

    op.create_table(
        "factory_stocks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_code", sa.String(length=64), nullable=False),
        sa.Column("color", sa.String(length=64), nullable=False),
        sa.Column("size", sa.String(length=32), nullable=False),
        sa.Column("quantity_on_hand", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_code", "color", "size", name="uq_factory_stocks_variant"),
    )
    op.create_index(op.f("ix_factory_stocks_id"), "factory_stocks", ["id"], unique=False)
    op.create_index(op.f("ix_factory_stocks_product_code"), "factory_stocks", ["product_code"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_factory_stocks_product_code"), table_name="factory_stocks")
    op.drop_index(op.f("ix_factory_stocks_id"), table_name="factory_stocks")
    op.drop_table("factory_stocks")

    op.drop_index(op.f("ix_sale_returns_shop_id"), table_name="sale_returns")
    op.drop_index(op.f("ix_sale_returns_sale_id"), table_name="sale_returns")
    op.drop_index(op.f("ix_sale_returns_returned_at"), table_name="sale_returns")
    op.drop_index(op.f("ix_sale_returns_id"), table_name="sale_returns")
    op.drop_table("sale_returns")

    op.drop_index(op.f("ix_sales_sold_at"), table_name="sales")
    op.drop_index(op.f("ix_sales_shop_id"), table_name="sales")
    op.drop_index(op.f("ix_sales_product_code"), table_name="sales")
    op.drop_index(op.f("ix_sales_id"), table_name="sales")
    op.drop_table("sales")

    op.drop_index(op.f("ix_shops_name"), table_name="shops")
    op.drop_index(op.f("ix_shops_id"), table_name="shops")
    op.drop_index(op.f("ix_shops_code"), table_name="shops")
    op.drop_table("shops")
