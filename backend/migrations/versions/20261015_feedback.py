"""Add pantry feedback

Revision ID: 20261015_feedback
Revises: 20261001_initial
Create Date: 2026-10-15
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261015_feedback"
down_revision = "20261001_initial"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "feedback",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=True),
        sa.Column("submitter_code", sa.String(32), nullable=False, server_default="GUEST"),
        sa.Column("category", sa.String(32), nullable=False, server_default="Other"),
        sa.Column("vendor_name", sa.String(160), nullable=True),
        sa.Column("order_number", sa.String(64), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("contact_info", sa.String(200), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="OPEN"),
        sa.Column("admin_note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    with op.batch_alter_table("feedback", schema=None) as batch_op:
        batch_op.create_index("ix_feedback_employee_id", ["employee_id"], unique=False)
        batch_op.create_index("ix_feedback_category", ["category"], unique=False)
        batch_op.create_index("ix_feedback_status_created", ["status", "created_at"], unique=False)


def downgrade():
    op.drop_table("feedback")
