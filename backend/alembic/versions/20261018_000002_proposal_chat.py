"""Create proposal_chat_messages for the proposal-wide team chat.

Revision ID: 0002_proposal_chat
Revises: 0001_review_baseline
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0002_proposal_chat"
down_revision: Union[str, None] = "0001_review_baseline"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "proposal_chat_messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "proposal_id",
            sa.Integer(),
            sa.ForeignKey("proposals.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("author_id", sa.Integer(), nullable=False),
        sa.Column("author_name", sa.Text(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_proposal_chat_messages_proposal_id",
        "proposal_chat_messages",
        ["proposal_id"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_proposal_chat_messages_proposal_id", table_name="proposal_chat_messages"
    )
    op.drop_table("proposal_chat_messages")
