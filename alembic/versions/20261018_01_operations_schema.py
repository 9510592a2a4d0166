"""Operations and operation log schema

Revision ID: 20261018_01
Revises: None
Create Date: 2026-10-18
"""
# pylint: disable=no-member,invalid-name,wrong-import-order

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "20261018_01"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    op.create_table(
        "operations",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("project_id", sa.BigInteger(), nullable=False),
        sa.Column("scenario_id", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("status in ('running', 'completed', 'error')", name="ck_operations_status"),
    )
    op.create_index(
        "ix_operations_identity_created_at",
        "operations",
        ["name", "project_id", "scenario_id", "created_at"],
    )
    # At most one running operation per identity.
    op.create_index(
        "uq_operations_running_identity",
        "operations",
        ["name", "project_id", "scenario_id"],
        unique=True,
        postgresql_where=sa.text("status = 'running'"),
    )

    op.create_table(
        "operations_logs",
        sa.Column("id", sa.BigInteger(), sa.Identity(), primary_key=True),
        sa.Column(
            "operation_id",
            sa.BigInteger(),
            sa.ForeignKey("operations.id", name="fk_operations_logs_operation_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column(
            "data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_operations_logs_operation_id", "operations_logs", ["operation_id", "id"])


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index("ix_operations_logs_operation_id", table_name="operations_logs")
    op.drop_table("operations_logs")
    op.drop_index("uq_operations_running_identity", table_name="operations")
    op.drop_index("ix_operations_identity_created_at", table_name="operations")
    op.drop_table("operations")
