"""add band governance tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261019_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(inspector: sa.Inspector, table_name: str) -> bool:
    return table_name in inspector.get_table_names()


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    # The user directory may already be provisioned by the profile service.
    if not _table_exists(inspector, "users"):
        op.create_table(
            "users",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("username", sa.String(length=50), nullable=False),
            sa.Column("full_name", sa.String(length=100), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("username"),
        )
        op.create_index("ix_users_username", "users", ["username"], unique=False)
        op.create_index("ux_users_username_lower", "users", [sa.text("lower(username)")], unique=True)

    op.create_table(
        "bands",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        sa.Column("genres", sa.JSON(), nullable=False),
        sa.Column("social_links", sa.JSON(), nullable=True),
        sa.Column("profile_image_url", sa.String(length=1024), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by_user_id", sa.String(length=36), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_bands_created_by_user_id", "bands", ["created_by_user_id"], unique=False)

    op.create_table(
        "band_members",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("band_id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="member"),
        sa.Column("instruments", sa.JSON(), nullable=False),
        sa.Column("permissions", sa.JSON(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("removed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("removed_by_user_id", sa.String(length=36), nullable=True),
        sa.ForeignKeyConstraint(["band_id"], ["bands.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["removed_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_band_members_band_id", "band_members", ["band_id"], unique=False)
    op.create_index("ix_band_members_user_id", "band_members", ["user_id"], unique=False)
    op.create_index("ix_band_members_user_active", "band_members", ["user_id", "is_active"], unique=False)
    op.create_index(
        "ux_band_members_band_user_active",
        "band_members",
        ["band_id", "user_id"],
        unique=True,
        sqlite_where=sa.text("is_active = 1"),
        postgresql_where=sa.text("is_active"),
    )

    op.create_table(
        "band_invitations",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("band_id", sa.String(length=36), nullable=False),
        sa.Column("band_name", sa.String(length=120), nullable=False),
        sa.Column("invited_user_id", sa.String(length=36), nullable=False),
        sa.Column("invited_user_name", sa.String(length=100), nullable=True),
        sa.Column("invited_by_user_id", sa.String(length=36), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="member"),
        sa.Column("instruments", sa.JSON(), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["band_id"], ["bands.id"]),
        sa.ForeignKeyConstraint(["invited_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["invited_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_band_invitations_band_id", "band_invitations", ["band_id"], unique=False)
    op.create_index("ix_band_invitations_invited_user_id", "band_invitations", ["invited_user_id"], unique=False)
    op.create_index(
        "ix_band_invitations_invited_by_user_id", "band_invitations", ["invited_by_user_id"], unique=False
    )
    op.create_index(
        "ix_band_invites_band_user_status",
        "band_invitations",
        ["band_id", "invited_user_id", "status"],
        unique=False,
    )
    op.create_index("ix_band_invites_user_status", "band_invitations", ["invited_user_id", "status"], unique=False)
    op.create_index("ix_band_invites_status_expires", "band_invitations", ["status", "expires_at"], unique=False)

    op.create_table(
        "band_applications",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("band_id", sa.String(length=36), nullable=False),
        sa.Column("band_name", sa.String(length=120), nullable=False),
        sa.Column("applicant_user_id", sa.String(length=36), nullable=False),
        sa.Column("applicant_name", sa.String(length=100), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="member"),
        sa.Column("instruments", sa.JSON(), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("response_message", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("responded_by_user_id", sa.String(length=36), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["band_id"], ["bands.id"]),
        sa.ForeignKeyConstraint(["applicant_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["responded_by_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_band_applications_band_id", "band_applications", ["band_id"], unique=False)
    op.create_index(
        "ix_band_applications_applicant_user_id", "band_applications", ["applicant_user_id"], unique=False
    )
    op.create_index(
        "ix_band_applications_band_user_status",
        "band_applications",
        ["band_id", "applicant_user_id", "status"],
        unique=False,
    )
    op.create_index(
        "ix_band_applications_band_status_created",
        "band_applications",
        ["band_id", "status", "created_at"],
        unique=False,
    )

    op.create_table(
        "user_band_index",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("kind", sa.String(length=30), nullable=False),
        sa.Column("ref_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_band_index_user_id", "user_band_index", ["user_id"], unique=False)
    op.create_index(
        "ux_user_band_index_user_kind_ref",
        "user_band_index",
        ["user_id", "kind", "ref_id"],
        unique=True,
    )
    op.create_index("ix_user_band_index_kind_ref", "user_band_index", ["kind", "ref_id"], unique=False)

    op.create_table(
        "band_audit_logs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("band_id", sa.String(length=36), nullable=False),
        sa.Column("actor_user_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("target_type", sa.String(length=100), nullable=False),
        sa.Column("target_id", sa.String(length=36), nullable=True),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["band_id"], ["bands.id"]),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_band_audit_logs_band_id", "band_audit_logs", ["band_id"], unique=False)
    op.create_index("ix_band_audit_logs_actor_user_id", "band_audit_logs", ["actor_user_id"], unique=False)
    op.create_index("ix_band_audit_logs_target_id", "band_audit_logs", ["target_id"], unique=False)
    op.create_index(
        "ix_band_audit_logs_band_created_at", "band_audit_logs", ["band_id", "created_at"], unique=False
    )
    op.create_index(
        "ix_band_audit_logs_band_action_created_at",
        "band_audit_logs",
        ["band_id", "action", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_table("band_audit_logs")
    op.drop_table("user_band_index")
    op.drop_table("band_applications")
    op.drop_table("band_invitations")
    op.drop_table("band_members")
    op.drop_table("bands")
    # users belongs to the user directory and is left in place.
