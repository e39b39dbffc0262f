"""
Test configuration and fixtures
"""
import pytest
from typing import Any, Dict

from convokeep.db.database import StorageConnector
from convokeep.db.importers.pipeline import ConversionPipeline
from convokeep.db.repositories.conversation_repository import ConversationRepository
from convokeep.db.repositories.unit_of_work import UnitOfWork
from convokeep.utils.ids import create_sequential_id_generator


@pytest.fixture
def id_generator():
    """Deterministic id generator: conv_1, msg_2, ..."""
    return create_sequential_id_generator()


@pytest.fixture
def pipeline(id_generator):
    """Conversion pipeline using the deterministic id generator."""
    return ConversionPipeline(id_generator)


@pytest.fixture
def connector():
    """Connected in-memory SQLite store, migrated to head."""
    connector = StorageConnector("sqlite://")
    connector.connect()
    yield connector
    connector.dispose()


@pytest.fixture
def session(connector):
    session = connector.get_session()
    yield session
    session.close()


@pytest.fixture
def repository(session, pipeline):
    """Repository with a small batch size so multi-batch paths run."""
    return ConversationRepository(session, pipeline=pipeline, batch_size=2)


@pytest.fixture
def uow(connector, pipeline):
    with UnitOfWork(connector, pipeline=pipeline) as uow:
        yield uow


def make_native(conversation_id: str, created_at: str = "2024-01-01T00:00:00.000Z",
                **overrides) -> Dict[str, Any]:
    """Build a native-format record."""
    record = {
        "conversation_id": conversation_id,
        "title": f"Conversation {conversation_id}",
        "created_at": created_at,
        "updated_at": created_at,
        "source": "convokeep",
        "model": "unknown",
        "messages": [
            {"id": f"{conversation_id}-m1", "role": "user", "content": "Hello",
             "created_at": created_at, "metadata": {}},
        ],
        "metadata": {},
    }
    record.update(overrides)
    return record


@pytest.fixture
def native_factory():
    return make_native


@pytest.fixture
def chatgpt_conversation() -> Dict[str, Any]:
    """Linear ChatGPT export: empty root node, user question, assistant answer."""
    return {
        "id": "chatgpt-conv-1",
        "title": "Python help",
        "create_time": 1700000000,
        "update_time": 1700000100.5,
        "current_node": "node-3",
        "default_model_slug": "gpt-4",
        "mapping": {
            "node-1": {"id": "node-1", "parent": None, "children": ["node-2"], "message": None},
            "node-2": {
                "id": "node-2", "parent": "node-1", "children": ["node-3"],
                "message": {
                    "id": "msg-user",
                    "author": {"role": "user"},
                    "create_time": 1700000010,
                    "content": {"content_type": "text", "parts": ["How do I sort a list?"]},
                },
            },
            "node-3": {
                "id": "node-3", "parent": "node-2", "children": [],
                "message": {
                    "id": "msg-assistant",
                    "author": {"role": "assistant"},
                    "create_time": 1700000020,
                    "content": {"content_type": "text", "parts": ["Use sorted()."]},
                    "metadata": {"model_slug": "gpt-4o"},
                    "status": "finished_successfully",
                    "weight": 1.0,
                },
            },
        },
    }


@pytest.fixture
def claude_conversation() -> Dict[str, Any]:
    return {
        "uuid": "claude-conv-1",
        "name": "Rust lifetimes",
        "created_at": "2024-03-01T12:00:00Z",
        "updated_at": "2024-03-01T12:30:00.250Z",
        "account": {"uuid": "account-1"},
        "chat_messages": [
            {"uuid": "c-msg-1", "sender": "human", "text": "Explain lifetimes",
             "created_at": "2024-03-01T12:00:00Z"},
            {"uuid": "c-msg-2", "sender": "assistant", "text": "",
             "content": [{"type": "text", "text": "Lifetimes describe"},
                         {"type": "tool_use", "name": "search"},
                         {"type": "text", "text": "how long references live."}],
             "created_at": "2024-03-01T12:01:00Z",
             "attachments": [{"file_name": "notes.txt"}]},
        ],
    }


