"""SQLAlchemy metadata definitions for the action log tables."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()
sqlite_bigint = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

# type: 0=status, 1=announcement, 2=presence
action = sa.Table(
    "action",
    metadata,
    sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
    sa.Column("time", sa.BigInteger(), nullable=False),
    sa.Column("type", sa.Integer(), nullable=False),
    sa.Column("note", sa.Text(), nullable=False),
    sqlite_autoincrement=True,
)

sa.Index("ix_action_type_id", action.c.type, action.c.id)
sa.Index("ix_action_time", action.c.time)

# status: 0=closed, 1=private, 2=public
status_action = sa.Table(
    "status_action",
    metadata,
    sa.Column("id", sqlite_bigint, sa.ForeignKey("action.id"), primary_key=True),
    sa.Column("user", sa.Text(), nullable=False),
    sa.Column("status", sa.Integer(), nullable=False),
    sa.Column("changed", sa.Integer(), nullable=False),
    sa.Column("public_changed", sa.Integer(), nullable=False),
)

sa.Index("ix_status_action_changed", status_action.c.changed, status_action.c.id)
sa.Index("ix_status_action_public_changed", status_action.c.public_changed, status_action.c.id)

# method: 0=new, 1=mod, 2=del
announcement_action = sa.Table(
    "announcement_action",
    metadata,
    sa.Column("id", sqlite_bigint, sa.ForeignKey("action.id"), primary_key=True),
    sa.Column("method", sa.Integer(), nullable=False),
    sa.Column("aid", sqlite_bigint, nullable=False),
    sa.Column("user", sa.Text(), nullable=False),
    sa.Column("from", sa.BigInteger(), nullable=False),
    sa.Column("to", sa.BigInteger(), nullable=False),
    sa.Column("public", sa.Integer(), nullable=False),
)

sa.Index("ix_announcement_action_aid_id", announcement_action.c.aid, announcement_action.c.id)

presence_action = sa.Table(
    "presence_action",
    metadata,
    sa.Column("id", sqlite_bigint, sa.ForeignKey("action.id"), nullable=False),
    sa.Column("user", sa.Text(), nullable=False),
    sa.Column("since", sa.BigInteger(), nullable=False),
)

sa.Index("ix_presence_action_id", presence_action.c.id)

presence_anon_action = sa.Table(
    "presence_anon_action",
    metadata,
    sa.Column("id", sqlite_bigint, sa.ForeignKey("action.id"), primary_key=True),
    sa.Column("anonymous_users", sa.Float(), nullable=False),
)
