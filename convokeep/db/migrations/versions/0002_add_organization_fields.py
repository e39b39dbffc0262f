"""add tags, starred and archived plus the tag index

Revision ID: 0002_add_organization_fields
Revises: 0001_initial_schema
Create Date: 2025-04-22 18:47:09.502377

"""
import logging
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0002_add_organization_fields'
down_revision: Union[str, Sequence[str], None] = '0001_initial_schema'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

logger = logging.getLogger(__name__)

BACKFILL_BATCH_SIZE = 500


def upgrade() -> None:
    """Upgrade schema - Add organization features."""
    op.add_column('conversations', sa.Column('tags', sa.JSON(), nullable=False, server_default=sa.text("'[]'")))
    op.add_column('conversations', sa.Column('starred', sa.Boolean(), nullable=False, server_default=sa.text('0')))
    op.add_column('conversations', sa.Column('archived', sa.Boolean(), nullable=False, server_default=sa.text('0')))
    op.create_index('by_starred', 'conversations', ['starred'])
    op.create_index('by_archived', 'conversations', ['archived'])

    # Multi-entry index over conversations.tags
    op.create_table(
        'conversation_tags',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('conversation_pk', sa.Integer(), nullable=False),
        sa.Column('tag', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['conversation_pk'], ['conversations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('conversation_pk', 'tag', name='uq_conversation_tags_conversation_tag')
    )
    op.create_index('by_tags', 'conversation_tags', ['tag'])

    _backfill_organization_fields()


def _backfill_organization_fields() -> None:
    """Walk every pre-existing conversation, fill defaults and index its tags."""
    bind = op.get_bind()
    conversations = sa.table(
        'conversations',
        sa.column('id', sa.Integer),
        sa.column('tags', sa.JSON),
        sa.column('starred', sa.Boolean),
        sa.column('archived', sa.Boolean),
    )
    conversation_tags = sa.table(
        'conversation_tags',
        sa.column('conversation_pk', sa.Integer),
        sa.column('tag', sa.String),
    )

    last_id = 0
    migrated = 0
    while True:
        rows = bind.execute(
            sa.select(conversations.c.id, conversations.c.tags,
                      conversations.c.starred, conversations.c.archived)
            .where(conversations.c.id > last_id)
            .order_by(conversations.c.id)
            .limit(BACKFILL_BATCH_SIZE)
        ).fetchall()
        if not rows:
            break

        for row in rows:
            tags = []
            for tag in row.tags if isinstance(row.tags, list) else []:
                if isinstance(tag, str) and tag not in tags:
                    tags.append(tag)

            bind.execute(
                conversations.update()
                .where(conversations.c.id == row.id)
                .values(tags=tags, starred=bool(row.starred), archived=bool(row.archived))
            )
            if tags:
                bind.execute(
                    conversation_tags.insert(),
                    [{'conversation_pk': row.id, 'tag': tag} for tag in tags]
                )
            last_id = row.id
            migrated += 1

    logger.info(f"Migrated {migrated} conversations to organization schema")


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('by_tags', table_name='conversation_tags')
    op.drop_table('conversation_tags')
    with op.batch_alter_table('conversations') as batch_op:
        batch_op.drop_index('by_archived')
        batch_op.drop_index('by_starred')
        batch_op.drop_column('archived')
        batch_op.drop_column('starred')
        batch_op.drop_column('tags')
