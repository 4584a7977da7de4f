"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("username", sa.String(length=128), nullable=False, unique=True),
        sa.Column("password_hash", sa.String, nullable=False),
        sa.Column("role", sa.String, nullable=False),
    )

    op.create_table(
        "customer",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("code", sa.String(length=16), nullable=False, unique=True),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("phone", sa.String, nullable=True),
        sa.Column("address", sa.String, nullable=True),
        sa.Column("tariff_class", sa.String, nullable=False, server_default="R2"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "meterreading",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("customer.id"), nullable=False),
        sa.Column("period_year", sa.Integer, nullable=False),
        sa.Column("period_month", sa.Integer, nullable=False),
        sa.Column("start_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("end_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("usage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("charge", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "customer_id", "period_year", "period_month", name="uq_reading_customer_period"
        ),
    )
    op.create_index("ix_meterreading_customer_id", "meterreading", ["customer_id"])

    op.create_table(
        "bill",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column(
            "reading_id", sa.Integer, sa.ForeignKey("meterreading.id"), nullable=False, unique=True
        ),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("customer.id"), nullable=False),
        sa.Column("period_year", sa.Integer, nullable=False),
        sa.Column("period_month", sa.Integer, nullable=False),
        sa.Column("start_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("end_index", sa.Integer, nullable=False, server_default="0"),
        sa.Column("usage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("usage_charge", sa.Integer, nullable=False, server_default="0"),
        sa.Column("arrears", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.String, nullable=False, server_default="unpaid"),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_bill_customer_id", "bill", ["customer_id"])

    op.create_table(
        "cashtransaction",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("bill_id", sa.Integer, sa.ForeignKey("bill.id"), nullable=True),
        sa.Column("type", sa.String, nullable=False),
        sa.Column("name", sa.String, nullable=False),
        sa.Column("category", sa.String, nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("entry_date", sa.Date, nullable=False),
        sa.Column("memo", sa.Text, nullable=True),
        sa.Column("period_year", sa.Integer, nullable=False),
        sa.Column("period_month", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_cashtransaction_bill_id", "cashtransaction", ["bill_id"])
    op.create_index("ix_cashtransaction_period_year", "cashtransaction", ["period_year"])

    op.create_table(
        "complaint",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("reporter_name", sa.String, nullable=False),
        sa.Column("customer_code", sa.String, nullable=False),
        sa.Column("category", sa.String, nullable=False),
        sa.Column("detail", sa.Text, nullable=False),
        sa.Column("photo_path", sa.String, nullable=True),
        sa.Column("whatsapp", sa.String, nullable=False),
        sa.Column("status", sa.String, nullable=False, server_default="pending"),
        sa.Column("admin_note", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_complaint_customer_code", "complaint", ["customer_code"])

    op.create_table(
        "auditlog",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("actor_id", sa.Integer, sa.ForeignKey("user.id"), nullable=True),
        sa.Column("action", sa.String, nullable=False),
        sa.Column("table_name", sa.String, nullable=False, server_default=""),
        sa.Column("row_id", sa.Integer, nullable=True),
        sa.Column("before", sa.String, nullable=True),
        sa.Column("after", sa.String, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "importbatch",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("filename", sa.String, nullable=False),
        sa.Column("kind", sa.String, nullable=False),
        sa.Column("status", sa.String, nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("result", sa.Text, nullable=True),
        sa.Column("errors", sa.Text, nullable=True),
    )


def downgrade() -> None:
    op.drop_table("importbatch")
    op.drop_table("auditlog")
    op.drop_index("ix_complaint_customer_code", table_name="complaint")
    op.drop_table("complaint")
    op.drop_index("ix_cashtransaction_period_year", table_name="cashtransaction")
    op.drop_index("ix_cashtransaction_bill_id", table_name="cashtransaction")
    op.drop_table("cashtransaction")
    op.drop_index("ix_bill_customer_id", table_name="bill")
    op.drop_table("bill")
    op.drop_index("ix_meterreading_customer_id", table_name="meterreading")
    op.drop_table("meterreading")
    op.drop_table("customer")
    op.drop_table("user")
