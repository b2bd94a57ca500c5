"""Initial schema: agent applications and their history ledger.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-19
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    op.create_table(
        "agent_applications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("application_id", sa.String(32), nullable=False),
        sa.Column("resume_token", sa.String(64), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("last_step", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("personal_info", sa.JSON(), nullable=True),
        sa.Column("background_check", sa.JSON(), nullable=True),
        sa.Column("business_info", sa.JSON(), nullable=True),
        sa.Column("location", sa.JSON(), nullable=True),
        sa.Column("package", sa.JSON(), nullable=True),
        sa.Column("documents", sa.JSON(), nullable=True),
        sa.Column("signature", sa.JSON(), nullable=True),
        sa.Column("submit_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_agent_applications_application_id", "agent_applications", ["application_id"], unique=True)
    op.create_index("ix_agent_applications_resume_token", "agent_applications", ["resume_token"], unique=True)
    op.create_index("ix_agent_applications_status", "agent_applications", ["status"])

    op.create_table(
        "application_history",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "application_pk", sa.String(36),
            sa.ForeignKey("agent_applications.id"), nullable=False,
        ),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("performed_by", sa.String(64), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_application_history_application_pk", "application_history", ["application_pk"])
    op.create_index("ix_application_history_timestamp", "application_history", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_application_history_timestamp", table_name="application_history")
    op.drop_index("ix_application_history_application_pk", table_name="application_history")
    op.drop_table("application_history")
    op.drop_index("ix_agent_applications_status", table_name="agent_applications")
    op.drop_index("ix_agent_applications_resume_token", table_name="agent_applications")
    op.drop_index("ix_agent_applications_application_id", table_name="agent_applications")
    op.drop_table("agent_applications")
