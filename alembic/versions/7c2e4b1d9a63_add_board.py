"""add board

Revision ID: 7c2e4b1d9a63
Revises: 3a1c5e7b9d20
Create Date: 2026-10-20

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7c2e4b1d9a63"
down_revision: Union[str, Sequence[str], None] = "3a1c5e7b9d20"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

POSITIONS = (
    "PRESIDENT",
    "IMMEDIATE_PAST_PRESIDENT",
    "VICE_PRESIDENT",
    "SECRETARY",
    "JOINT_SECRETARY",
    "TREASURER",
    "SERGEANT_AT_ARMS",
    "DIRECTOR_CLUB_SERVICE",
    "DIRECTOR_COMMUNITY_SERVICE",
    "DIRECTOR_PROFESSIONAL_DEVELOPMENT",
    "DIRECTOR_INTERNATIONAL_SERVICE",
    "DIRECTOR_PUBLIC_RELATIONS",
    "EDITOR",
    "WEBMASTER",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "board_board",
        sa.Column("fiscal_year", sa.String(length=9), nullable=False),
        sa.Column("theme", sa.String(length=200), nullable=True),
        sa.Column("theme_description", sa.Text(), nullable=True),
        sa.Column("installation_date", sa.Date(), nullable=True),
        sa.Column("installation_venue", sa.String(length=300), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_board_board_fiscal_year"), "board_board", ["fiscal_year"], unique=True
    )

    op.create_table(
        "board_seat",
        sa.Column("board_id", sa.Uuid(), nullable=False),
        sa.Column(
            "position",
            sa.Enum(*POSITIONS, name="boardposition", native_enum=False),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("member_id", sa.Uuid(), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("linkedin", sa.String(length=300), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["board_id"], ["board_board.id"]),
        sa.ForeignKeyConstraint(["member_id"], ["identity_member.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("board_id", "position", name="uq_board_seat_position"),
    )
    op.create_index(op.f("ix_board_seat_board_id"), "board_seat", ["board_id"])


def downgrade() -> None:
    op.drop_index(op.f("ix_board_seat_board_id"), table_name="board_seat")
    op.drop_table("board_seat")
    op.drop_index(op.f("ix_board_board_fiscal_year"), table_name="board_board")
    op.drop_table("board_board")
