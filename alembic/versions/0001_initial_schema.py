"""
Initial schema: accounts, users, community_classes, class_registrations

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "accounts",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "users",
        sa.Column(
            "id",
            sa.Uuid(),
            sa.ForeignKey("accounts.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("role", sa.Enum("admin", "member", name="user_role"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_table(
        "community_classes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "created_by",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("instructor_name", sa.Text(), nullable=False),
        sa.Column("location", sa.Text(), nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("capacity > 0", name="ck_community_classes_capacity_positive"),
    )
    op.create_index("community_classes_created_idx", "community_classes", ["created_at"])
    op.create_index("community_classes_starts_at_idx", "community_classes", ["starts_at"])
    op.create_table(
        "class_registrations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "class_id",
            sa.Uuid(),
            sa.ForeignKey("community_classes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "member_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("class_id", "member_id", name="uq_class_registrations_class_member"),
    )
    op.create_index(
        "class_registrations_member_idx", "class_registrations", ["member_id", "created_at"]
    )


def downgrade():
    op.drop_index("class_registrations_member_idx", table_name="class_registrations")
    op.drop_table("class_registrations")
    op.drop_index("community_classes_starts_at_idx", table_name="community_classes")
    op.drop_index("community_classes_created_idx", table_name="community_classes")
    op.drop_table("community_classes")
    op.drop_table("users")
    op.drop_table("accounts")
    sa.Enum(name="user_role").drop(op.get_bind(), checkfirst=True)
