"""create projects, itp and conformance tables

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "projects",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("project_number", sa.String(length=100), nullable=True),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_projects_organization_id", "projects", ["organization_id"], unique=False)
    op.create_index("ix_projects_status", "projects", ["status"], unique=False)

    op.create_table(
        "itp_templates",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("version", sa.String(length=20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_itp_templates_is_active", "itp_templates", ["is_active"], unique=False)

    op.create_table(
        "itp_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("itp_template_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("item_number", sa.String(length=50), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("item_type", sa.String(length=20), nullable=False),
        sa.Column("acceptance_criteria", sa.Text(), nullable=True),
        sa.Column("specification_reference", sa.String(length=255), nullable=True),
        sa.Column("is_mandatory", sa.Boolean(), nullable=False),
        sa.Column("order_index", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["itp_template_id"], ["itp_templates.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_itp_items_template_order",
        "itp_items",
        ["itp_template_id", "order_index"],
        unique=False,
    )

    op.create_table(
        "lots",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("lot_number", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location_description", sa.String(length=255), nullable=True),
        sa.Column("itp_template_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["itp_template_id"], ["itp_templates.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("project_id", "lot_number", name="uq_lots_project_lot_number"),
    )
    op.create_index("ix_lots_project_id", "lots", ["project_id"], unique=False)
    op.create_index("ix_lots_status", "lots", ["status"], unique=False)

    op.create_table(
        "conformance_records",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("lot_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("itp_item_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("pass_fail_value", sa.String(length=8), nullable=True),
        sa.Column("text_value", sa.Text(), nullable=True),
        sa.Column("numeric_value", sa.Float(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("corrective_action", sa.Text(), nullable=True),
        sa.Column("is_non_conformance", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("completed_by", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["lot_id"], ["lots.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["itp_item_id"], ["itp_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("lot_id", "itp_item_id", name="uq_conformance_records_lot_item"),
    )
    op.create_index("ix_conformance_records_lot_id", "conformance_records", ["lot_id"], unique=False)
    op.create_index("ix_conformance_records_itp_item_id", "conformance_records", ["itp_item_id"], unique=False)
    op.create_index(
        "ix_conformance_records_non_conformance",
        "conformance_records",
        ["is_non_conformance"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_conformance_records_non_conformance", table_name="conformance_records")
    op.drop_index("ix_conformance_records_itp_item_id", table_name="conformance_records")
    op.drop_index("ix_conformance_records_lot_id", table_name="conformance_records")
    op.drop_table("conformance_records")
    op.drop_index("ix_lots_status", table_name="lots")
    op.drop_index("ix_lots_project_id", table_name="lots")
    op.drop_table("lots")
    op.drop_index("ix_itp_items_template_order", table_name="itp_items")
    op.drop_table("itp_items")
    op.drop_index("ix_itp_templates_is_active", table_name="itp_templates")
    op.drop_table("itp_templates")
    op.drop_index("ix_projects_status", table_name="projects")
    op.drop_index("ix_projects_organization_id", table_name="projects")
    op.drop_table("projects")
