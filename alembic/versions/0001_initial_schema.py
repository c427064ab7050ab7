"""initial schema: groups, participants, draws, dispatch records

Revision ID: 0001
Revises:
Create Date: 2026-10-19 12:00:00

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "groups",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_groups")),
        sa.UniqueConstraint("name", name="uq_groups_name"),
    )
    op.create_table(
        "participants",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("group_id", ID_TYPE, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["groups.id"],
            name=op.f("fk_participants_group_id_groups"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_participants")),
    )
    op.create_index(
        op.f("ix_participants_group_id"), "participants", ["group_id"], unique=False
    )
    op.create_table(
        "draws",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("group_id", ID_TYPE, nullable=False),
        sa.Column("seed", sa.String(length=64), nullable=False),
        sa.Column("fingerprint", sa.String(length=64), nullable=False),
        sa.Column("participant_count", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["group_id"],
            ["groups.id"],
            name=op.f("fk_draws_group_id_groups"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_draws")),
    )
    op.create_index(op.f("ix_draws_group_id"), "draws", ["group_id"], unique=False)
    op.create_table(
        "dispatch_records",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("draw_id", ID_TYPE, nullable=False),
        sa.Column("giver_id", ID_TYPE, nullable=False),
        sa.Column("recipient_id", ID_TYPE, nullable=False),
        sa.Column(
            "succeeded", sa.Boolean(), server_default=sa.text("false"), nullable=False
        ),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("attempts", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["draw_id"],
            ["draws.id"],
            name=op.f("fk_dispatch_records_draw_id_draws"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["giver_id"],
            ["participants.id"],
            name=op.f("fk_dispatch_records_giver_id_participants"),
        ),
        sa.ForeignKeyConstraint(
            ["recipient_id"],
            ["participants.id"],
            name=op.f("fk_dispatch_records_recipient_id_participants"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_dispatch_records")),
    )
    op.create_index(
        op.f("ix_dispatch_records_draw_id"), "dispatch_records", ["draw_id"], unique=False
    )
    op.create_index(
        "ix_dispatch_records_draw_giver",
        "dispatch_records",
        ["draw_id", "giver_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_dispatch_records_draw_giver", table_name="dispatch_records")
    op.drop_index(op.f("ix_dispatch_records_draw_id"), table_name="dispatch_records")
    op.drop_table("dispatch_records")
    op.drop_index(op.f("ix_draws_group_id"), table_name="draws")
    op.drop_table("draws")
    op.drop_index(op.f("ix_participants_group_id"), table_name="participants")
    op.drop_table("participants")
    op.drop_table("groups")
