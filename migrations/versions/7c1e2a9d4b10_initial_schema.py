"""initial_schema

Create users, custom_titles, categories, resolutions and workgroup_documents.

Revision ID: 7c1e2a9d4b10
Revises:
Create Date: 2026-10-19 09:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "7c1e2a9d4b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "users" not in existing_tables:
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("username", sa.String(length=100), nullable=False),
            sa.Column("password_hash", sa.String(length=256), nullable=True),
            sa.Column("full_name", sa.String(length=200), nullable=True),
            sa.Column("phone", sa.String(length=30), nullable=True),
            sa.Column("title", sa.String(length=150), nullable=True),
            sa.Column("role", sa.String(length=20), nullable=False, server_default="custom"),
            sa.Column("is_active", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("permissions", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_users_username", "users", ["username"], unique=True)
        op.create_index("ix_users_title", "users", ["title"])

    if "custom_titles" not in existing_tables:
        op.create_table(
            "custom_titles",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(length=150), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("title"),
        )

    if "categories" not in existing_tables:
        op.create_table(
            "categories",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("parent_id", sa.String(length=64), nullable=True),
            sa.Column("name", sa.String(length=300), nullable=False),
            sa.Column("type", sa.String(length=20), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("type", "parent_id", "name", name="uq_category_type_parent_name"),
        )
        op.create_index("ix_categories_parent_id", "categories", ["parent_id"])
        op.create_index("ix_categories_type", "categories", ["type"])

    if "resolutions" not in existing_tables:
        op.create_table(
            "resolutions",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("parent_id", sa.String(length=64), nullable=True),
            sa.Column("title", sa.String(length=500), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("workgroup", sa.String(length=300), nullable=True),
            sa.Column("grade", sa.String(length=50), nullable=True),
            sa.Column("lesson", sa.String(length=200), nullable=True),
            sa.Column("executor", sa.String(length=150), nullable=True),
            sa.Column("images", sa.JSON(), nullable=True),
            sa.Column("is_approved", sa.Boolean(), nullable=True, server_default=sa.true()),
            sa.Column("needs_date", sa.Boolean(), nullable=True, server_default=sa.false()),
            sa.Column("execution_date", sa.String(length=30), nullable=True),
            sa.Column("execution_term", sa.String(length=100), nullable=True),
            sa.Column("discussion_time", sa.String(length=200), nullable=True),
            sa.Column("progress", sa.Integer(), nullable=True, server_default="0"),
            sa.Column("progress_before_claim", sa.Integer(), nullable=True),
            sa.Column("executor_claim", sa.Boolean(), nullable=True, server_default=sa.false()),
            sa.Column("executor_claim_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("is_completed", sa.Boolean(), nullable=True, server_default=sa.false()),
            sa.Column("last_completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("reminder_type", sa.String(length=20), nullable=True, server_default="none"),
            sa.Column("reminder_start_date", sa.String(length=10), nullable=True, comment="MM/DD"),
            sa.Column("reminder_end_date", sa.String(length=10), nullable=True, comment="MM/DD"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_resolutions_parent_id", "resolutions", ["parent_id"])
        op.create_index("ix_resolutions_grade", "resolutions", ["grade"])
        op.create_index("ix_resolutions_executor", "resolutions", ["executor"])

    if "workgroup_documents" not in existing_tables:
        op.create_table(
            "workgroup_documents",
            sa.Column("id", sa.String(length=64), nullable=False),
            sa.Column("workgroup_id", sa.String(length=64), nullable=False),
            sa.Column("title", sa.String(length=500), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("file_url", sa.String(length=1000), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_workgroup_documents_workgroup_id", "workgroup_documents", ["workgroup_id"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "workgroup_documents" in existing_tables:
        op.drop_index("ix_workgroup_documents_workgroup_id", table_name="workgroup_documents")
        op.drop_table("workgroup_documents")
    if "resolutions" in existing_tables:
        op.drop_index("ix_resolutions_executor", table_name="resolutions")
        op.drop_index("ix_resolutions_grade", table_name="resolutions")
        op.drop_index("ix_resolutions_parent_id", table_name="resolutions")
        op.drop_table("resolutions")
    if "categories" in existing_tables:
        op.drop_index("ix_categories_type", table_name="categories")
        op.drop_index("ix_categories_parent_id", table_name="categories")
        op.drop_table("categories")
    if "custom_titles" in existing_tables:
        op.drop_table("custom_titles")
    if "users" in existing_tables:
        op.drop_index("ix_users_title", table_name="users")
        op.drop_index("ix_users_username", table_name="users")
        op.drop_table("users")
