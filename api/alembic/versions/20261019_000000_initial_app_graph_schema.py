"""Initial app graph schema

Revision ID: initial_app_graph
Revises:
Create Date: 2026-10-19

Creates the tables of the versioned application graph:
- organizations, group_permissions
- apps, app_versions, app_environments, app_group_permissions
- data_sources, data_source_options, data_queries, credentials

apps.current_version_id and app_versions.app_id reference each other, so
the apps -> app_versions foreign key is added after both tables exist.
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "initial_app_graph"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    ]


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "group_permissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "organization_id",
            sa.Uuid(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("group", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index(
        "ix_group_permissions_org_group", "group_permissions", ["organization_id", "group"]
    )

    # Foreign key to app_versions is added below
    op.create_table(
        "apps",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=True, unique=True),
        sa.Column(
            "organization_id",
            sa.Uuid(),
            sa.ForeignKey("organizations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_by", sa.Uuid(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("current_version_id", sa.Uuid(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_apps_organization_id", "apps", ["organization_id"])

    op.create_table(
        "app_versions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("app_id", sa.Uuid(), sa.ForeignKey("apps.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("definition", postgresql.JSONB(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_app_versions_app_id", "app_versions", ["app_id"])

    op.create_foreign_key(
        "fk_apps_current_version_id",
        "apps",
        "app_versions",
        ["current_version_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "app_environments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "app_version_id",
            sa.Uuid(),
            sa.ForeignKey("app_versions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default="false"),
        *_timestamps(),
    )
    op.create_index("ix_app_environments_app_version_id", "app_environments", ["app_version_id"])

    op.create_table(
        "app_group_permissions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("app_id", sa.Uuid(), sa.ForeignKey("apps.id", ondelete="CASCADE"), nullable=False),
        sa.Column(
            "group_permission_id",
            sa.Uuid(),
            sa.ForeignKey("group_permissions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("read", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("update", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("delete", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_app_group_permissions_app_id", "app_group_permissions", ["app_id"])

    op.create_table(
        "data_sources",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "app_version_id",
            sa.Uuid(),
            sa.ForeignKey("app_versions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("kind", sa.String(255), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_data_sources_app_version_id", "data_sources", ["app_version_id"])

    op.create_table(
        "data_source_options",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "data_source_id",
            sa.Uuid(),
            sa.ForeignKey("data_sources.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "environment_id",
            sa.Uuid(),
            sa.ForeignKey("app_environments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("options", postgresql.JSONB(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_data_source_options_environment_id", "data_source_options", ["environment_id"]
    )
    op.create_index(
        "ix_data_source_options_source_environment",
        "data_source_options",
        ["data_source_id", "environment_id"],
    )

    op.create_table(
        "data_queries",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "data_source_id",
            sa.Uuid(),
            sa.ForeignKey("data_sources.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("kind", sa.String(255), nullable=False),
        sa.Column("options", postgresql.JSONB(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_data_queries_data_source_id", "data_queries", ["data_source_id"])

    op.create_table(
        "credentials",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("value_ciphertext", sa.Text(), nullable=False),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table("credentials")
    op.drop_index("ix_data_queries_data_source_id", table_name="data_queries")
    op.drop_table("data_queries")
    op.drop_index("ix_data_source_options_source_environment", table_name="data_source_options")
    op.drop_index("ix_data_source_options_environment_id", table_name="data_source_options")
    op.drop_table("data_source_options")
    op.drop_index("ix_data_sources_app_version_id", table_name="data_sources")
    op.drop_table("data_sources")
    op.drop_index("ix_app_group_permissions_app_id", table_name="app_group_permissions")
    op.drop_table("app_group_permissions")
    op.drop_index("ix_app_environments_app_version_id", table_name="app_environments")
    op.drop_table("app_environments")

    # Break the apps <-> app_versions cycle first
    op.drop_constraint("fk_apps_current_version_id", "apps", type_="foreignkey")
    op.drop_index("ix_app_versions_app_id", table_name="app_versions")
    op.drop_table("app_versions")
    op.drop_index("ix_apps_organization_id", table_name="apps")
    op.drop_table("apps")
    op.drop_index("ix_group_permissions_org_group", table_name="group_permissions")
    op.drop_table("group_permissions")
    op.drop_table("organizations")
