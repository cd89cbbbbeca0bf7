"""Initial schema: users, products, system_prompts, projects.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:  # type: ignore[type-arg]
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(256), nullable=False),
        sa.Column(
            "permissions",
            postgresql.ARRAY(sa.Text),
            nullable=False,
            server_default=sa.text("'{}'::text[]"),
        ),
        *_timestamps(),
    )

    # --- products ---
    op.create_table(
        "products",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("brand", sa.String(255), nullable=False),
        sa.Column("model", sa.String(255), nullable=False),
        sa.Column("icon", sa.String(100), nullable=False, server_default="Package"),
        sa.Column("finished", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("custom_prompt", sa.Text, nullable=True),
        sa.Column("research_data", postgresql.JSONB, nullable=True),
        sa.Column("datasheet_content", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_products_created_at", "products", ["created_at"])

    # --- system_prompts ---
    op.create_table(
        "system_prompts",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("system_type", sa.String(20), unique=True, nullable=False),
        sa.Column("prompt", sa.Text, nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "system_type IN ('PRODUCTS', 'BLOG', 'MARKETING')",
            name="ck_system_prompts_system_type",
        ),
    )

    # --- projects ---
    op.create_table(
        "projects",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            server_default=sa.text("gen_random_uuid()"),
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column(
            "tags",
            postgresql.ARRAY(sa.Text),
            nullable=False,
            server_default=sa.text("'{}'::text[]"),
        ),
        sa.Column(
            "available_variables",
            postgresql.ARRAY(sa.Text),
            nullable=False,
            server_default=sa.text("'{}'::text[]"),
        ),
        sa.Column("response_mode", sa.String(20), nullable=False, server_default="PROMPT"),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default="false"),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *_timestamps(),
        sa.CheckConstraint(
            "response_mode IN ('PROMPT', 'AI_RESPONSE')",
            name="ck_projects_response_mode",
        ),
    )
    op.create_index("idx_projects_user_id", "projects", ["user_id"])
    op.create_index("idx_projects_updated_at", "projects", ["updated_at"])


def downgrade() -> None:
    op.drop_table("projects")
    op.drop_table("system_prompts")
    op.drop_table("products")
    op.drop_table("users")
