"""
SQLAlchemy models for the archive schema.
Corresponds to the schema built by the migrations in db/migrations/versions.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Conversation(Base):
    __tablename__ = 'conversations'

    id = Column(Integer, primary_key=True, autoincrement=True)  # Surrogate key, stable across upserts
    conversation_id = Column(String, nullable=False)  # Natural key from the source
    title = Column(Text, nullable=False)
    created_at = Column(String, nullable=False)  # ISO-8601 UTC, sorts lexically
    updated_at = Column(String, nullable=False)
    source = Column(String, nullable=False, default='unknown')
    model = Column(String, nullable=False, default='')
    messages = Column(JSON, nullable=False, default=list)
    conversation_metadata = Column('metadata', JSON, default=dict)

    # Organization fields (schema v3)
    tags = Column(JSON, nullable=False, default=list)
    starred = Column(Boolean, nullable=False, default=False)
    archived = Column(Boolean, nullable=False, default=False)

    # Multi-entry index rows mirroring `tags`
    tag_entries = relationship("ConversationTag", back_populates="conversation", cascade="all, delete-orphan")

    def to_dict(self) -> dict:
        """Full unified record including messages."""
        return {
            'id': self.id,
            'conversation_id': self.conversation_id,
            'title': self.title,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
            'source': self.source,
            'model': self.model,
            'messages': list(self.messages or []),
            'metadata': dict(self.conversation_metadata or {}),
            'tags': list(self.tags or []),
            'starred': bool(self.starred),
            'archived': bool(self.archived),
        }

    def __repr__(self):
        return f"<Conversation(id={self.id}, conversation_id='{self.conversation_id}', title='{(self.title or '')[:50]}...')>"


class ConversationTag(Base):
    __tablename__ = 'conversation_tags'

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_pk = Column(Integer, ForeignKey('conversations.id', ondelete='CASCADE'), nullable=False)
    tag = Column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint('conversation_pk', 'tag', name='uq_conversation_tags_conversation_tag'),
    )

    conversation = relationship("Conversation", back_populates="tag_entries")

    def __repr__(self):
        return f"<ConversationTag(conversation_pk={self.conversation_pk}, tag='{self.tag}')>"


# Indexes (names match the migrations)
Index('by_conversation_id', Conversation.conversation_id, unique=True)
Index('by_source', Conversation.source)
Index('by_created_at', Conversation.created_at)
Index('by_updated_at', Conversation.updated_at)
Index('by_model', Conversation.model)
Index('by_title', Conversation.title)
Index('by_starred', Conversation.starred)
Index('by_archived', Conversation.archived)
Index('by_tags', ConversationTag.tag)
