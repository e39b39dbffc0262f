"""
Unit of Work pattern implementation for managing transactions and repository instances.
"""

from contextlib import contextmanager
from typing import Optional
import logging

from sqlalchemy.orm import Session

from convokeep.db.database import StorageConnector
from convokeep.db.importers.pipeline import ConversionPipeline
from convokeep.db.repositories.conversation_repository import ConversationRepository

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    Unit of Work pattern implementation that manages a database session
    and provides access to the conversation repository within it.
    """

    def __init__(self, connector: Optional[StorageConnector] = None,
                 session: Optional[Session] = None,
                 pipeline: Optional[ConversionPipeline] = None):
        self._connector = connector
        self._session = session
        self._owns_session = session is None
        self._pipeline = pipeline
        self._conversations: Optional[ConversationRepository] = None

    @property
    def session(self) -> Session:
        """Get the database session, creating one if needed."""
        if self._session is None:
            if self._connector is None:
                self._connector = StorageConnector()
            self._session = self._connector.get_session()
        return self._session

    @property
    def conversations(self) -> ConversationRepository:
        """Get the conversations repository."""
        if self._conversations is None:
            self._conversations = ConversationRepository(self.session, pipeline=self._pipeline)
        return self._conversations

    def commit(self):
        """Commit the current transaction."""
        try:
            self.session.commit()
            logger.debug("Transaction committed successfully")
        except Exception as e:
            logger.error(f"Transaction commit failed: {e}")
            self.session.rollback()
            raise

    def rollback(self):
        """Rollback the current transaction."""
        self.session.rollback()
        logger.debug("Transaction rolled back")

    def close(self):
        """Close the session if we own it."""
        if self._owns_session and self._session:
            self._session.close()
            self._session = None
            self._conversations = None
            logger.debug("Database session closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            logger.warning(f"Exception in UnitOfWork context: {exc_type.__name__}: {exc_val}")
            self.rollback()
        else:
            self.commit()

        self.close()


@contextmanager
def get_unit_of_work(connector: Optional[StorageConnector] = None,
                     pipeline: Optional[ConversionPipeline] = None):
    """Context manager for creating a Unit of Work with automatic cleanup."""
    uow = UnitOfWork(connector, pipeline=pipeline)
    try:
        yield uow
        uow.commit()
    except Exception as e:
        logger.error(f"Exception in Unit of Work: {e}")
        uow.rollback()
        raise
    finally:
        uow.close()
