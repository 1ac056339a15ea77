"""create_subsites_schema

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-18 00:00:00.000000

Multi-tenancy schema:
  - `subsites` (with template variant) and `subsite_domains`
  - members, groups, permissions, roles and their association tables
  - `site_tree` (stage) and `site_tree_live` (published) pages
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic
revision: str = "a1b2c3d4e5f6"
down_revision: str | None = None
branch_labels: str | None = None
depends_on: str | None = None


def _site_tree_columns() -> list[sa.Column]:
    return [
        sa.Column("tenant_id", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("parent_id", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("url_segment", sa.String(255), nullable=True),
        sa.Column("page_type", sa.String(100), nullable=False, server_default="Page"),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("meta_title", sa.String(255), nullable=True),
        sa.Column("meta_description", sa.Text(), nullable=True),
        sa.Column("sort", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    # 1. Subsites and their domains
    op.create_table(
        "subsites",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False, server_default="subsite"),
        sa.Column("title", sa.String(255), nullable=False, server_default=""),
        sa.Column("redirect_url", sa.String(255), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("theme", sa.String(100), nullable=True),
        sa.Column("language", sa.String(6), nullable=True),
        sa.Column("page_type_denylist", sa.JSON(), nullable=False),
        sa.Column("template_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["template_id"], ["subsites.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_subsites_id"), "subsites", ["id"], unique=False)
    op.create_index("idx_subsite_title", "subsites", ["title"], unique=False)
    op.create_index("idx_subsite_default", "subsites", ["is_default"], unique=False)

    op.create_table(
        "subsite_domains",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("domain", sa.String(253), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(["tenant_id"], ["subsites.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_subsite_domains_id"), "subsite_domains", ["id"], unique=False)
    op.create_index(op.f("ix_subsite_domains_tenant_id"), "subsite_domains", ["tenant_id"], unique=False)
    op.create_index("idx_subsite_domain_domain", "subsite_domains", ["domain"], unique=False)

    # 2. Members, groups, permissions and roles
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(), nullable=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("surname", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_username"), "users", ["username"], unique=False)

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("access_all_subsites", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
    )
    op.create_index(op.f("ix_groups_id"), "groups", ["id"], unique=False)

    op.create_table(
        "permission_roles",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("title"),
    )
    op.create_index(op.f("ix_permission_roles_id"), "permission_roles", ["id"], unique=False)

    op.create_table(
        "permissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_permissions_id"), "permissions", ["id"], unique=False)
    op.create_index(op.f("ix_permissions_code"), "permissions", ["code"], unique=False)
    op.create_index(op.f("ix_permissions_group_id"), "permissions", ["group_id"], unique=False)

    op.create_table(
        "permission_role_codes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["role_id"], ["permission_roles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_permission_role_codes_id"), "permission_role_codes", ["id"], unique=False)
    op.create_index(op.f("ix_permission_role_codes_code"), "permission_role_codes", ["code"], unique=False)
    op.create_index(op.f("ix_permission_role_codes_role_id"), "permission_role_codes", ["role_id"], unique=False)

    op.create_table(
        "group_members",
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("group_id", "user_id"),
    )
    op.create_table(
        "group_subsites",
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tenant_id"], ["subsites.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("group_id", "tenant_id"),
    )
    op.create_table(
        "group_roles",
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["group_id"], ["groups.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["role_id"], ["permission_roles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("group_id", "role_id"),
    )

    # 3. Site tree, stage and live
    op.create_table(
        "site_tree",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        *_site_tree_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "site_tree_live",
        sa.Column("id", sa.Integer(), autoincrement=False, nullable=False),
        *_site_tree_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    for table in ("site_tree", "site_tree_live"):
        op.create_index(op.f(f"ix_{table}_id"), table, ["id"], unique=False)
        op.create_index(op.f(f"ix_{table}_tenant_id"), table, ["tenant_id"], unique=False)
        op.create_index(op.f(f"ix_{table}_parent_id"), table, ["parent_id"], unique=False)
        op.create_index(f"idx_{table}_tenant_parent", table, ["tenant_id", "parent_id"], unique=False)


def downgrade() -> None:
    # Reverse in order: dependent tables first
    for table in ("site_tree_live", "site_tree"):
        op.drop_index(f"idx_{table}_tenant_parent", table_name=table)
        op.drop_index(op.f(f"ix_{table}_parent_id"), table_name=table)
        op.drop_index(op.f(f"ix_{table}_tenant_id"), table_name=table)
        op.drop_index(op.f(f"ix_{table}_id"), table_name=table)
        op.drop_table(table)

    op.drop_table("group_roles")
    op.drop_table("group_subsites")
    op.drop_table("group_members")
    op.drop_table("permission_role_codes")
    op.drop_table("permissions")
    op.drop_table("permission_roles")
    op.drop_table("groups")
    op.drop_table("users")
    op.drop_table("subsite_domains")
    op.drop_table("subsites")
