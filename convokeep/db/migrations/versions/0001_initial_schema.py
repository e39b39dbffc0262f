"""initial schema with conversations and lookup indexes

Revision ID: 0001_initial_schema
Revises: 
Create Date: 2025-02-03 10:12:41.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # Create conversations table (one row per conversation, messages embedded)
    op.create_table(
        'conversations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('conversation_id', sa.String(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('created_at', sa.String(), nullable=False),
        sa.Column('updated_at', sa.String(), nullable=False),
        sa.Column('source', sa.String(), nullable=False, server_default='unknown'),
        sa.Column('model', sa.String(), nullable=False, server_default=''),
        sa.Column('messages', sa.JSON(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    # Lookup indexes
    op.create_index('by_conversation_id', 'conversations', ['conversation_id'], unique=True)
    op.create_index('by_source', 'conversations', ['source'])
    op.create_index('by_created_at', 'conversations', ['created_at'])
    op.create_index('by_updated_at', 'conversations', ['updated_at'])
    op.create_index('by_model', 'conversations', ['model'])
    op.create_index('by_title', 'conversations', ['title'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('by_title', table_name='conversations')
    op.drop_index('by_model', table_name='conversations')
    op.drop_index('by_updated_at', table_name='conversations')
    op.drop_index('by_created_at', table_name='conversations')
    op.drop_index('by_source', table_name='conversations')
    op.drop_index('by_conversation_id', table_name='conversations')
    op.drop_table('conversations')
