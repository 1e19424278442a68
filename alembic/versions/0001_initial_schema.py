"""Initial schema for the append-only action log."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

sqlite_bigint = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "action",
        sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True, nullable=False),
        sa.Column("time", sa.BigInteger(), nullable=False),
        sa.Column("type", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_action_type_id", "action", ["type", "id"], unique=False)
    op.create_index("ix_action_time", "action", ["time"], unique=False)

    op.create_table(
        "status_action",
        sa.Column(
            "id",
            sqlite_bigint,
            sa.ForeignKey("action.id"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column("user", sa.Text(), nullable=False),
        sa.Column("status", sa.Integer(), nullable=False),
        sa.Column("changed", sa.Integer(), nullable=False),
        sa.Column("public_changed", sa.Integer(), nullable=False),
    )
    op.create_index(
        "ix_status_action_changed",
        "status_action",
        ["changed", "id"],
        unique=False,
    )
    op.create_index(
        "ix_status_action_public_changed",
        "status_action",
        ["public_changed", "id"],
        unique=False,
    )

    op.create_table(
        "announcement_action",
        sa.Column(
            "id",
            sqlite_bigint,
            sa.ForeignKey("action.id"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column("method", sa.Integer(), nullable=False),
        sa.Column("aid", sqlite_bigint, nullable=False),
        sa.Column("user", sa.Text(), nullable=False),
        sa.Column("from", sa.BigInteger(), nullable=False),
        sa.Column("to", sa.BigInteger(), nullable=False),
        sa.Column("public", sa.Integer(), nullable=False),
    )
    op.create_index(
        "ix_announcement_action_aid_id",
        "announcement_action",
        ["aid", "id"],
        unique=False,
    )

    op.create_table(
        "presence_action",
        sa.Column("id", sqlite_bigint, sa.ForeignKey("action.id"), nullable=False),
        sa.Column("user", sa.Text(), nullable=False),
        sa.Column("since", sa.BigInteger(), nullable=False),
    )
    op.create_index("ix_presence_action_id", "presence_action", ["id"], unique=False)

    op.create_table(
        "presence_anon_action",
        sa.Column(
            "id",
            sqlite_bigint,
            sa.ForeignKey("action.id"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column("anonymous_users", sa.Float(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("presence_anon_action")

    op.drop_index("ix_presence_action_id", table_name="presence_action")
    op.drop_table("presence_action")

    op.drop_index("ix_announcement_action_aid_id", table_name="announcement_action")
    op.drop_table("announcement_action")

    op.drop_index("ix_status_action_public_changed", table_name="status_action")
    op.drop_index("ix_status_action_changed", table_name="status_action")
    op.drop_table("status_action")

    op.drop_index("ix_action_time", table_name="action")
    op.drop_index("ix_action_type_id", table_name="action")
    op.drop_table("action")
