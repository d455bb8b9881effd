"""Database operations for RavenDB - store creation, indexing and database admin."""

import logging

import requests
from ravendb import DocumentStore
from ravendb.documents.indexes.definitions import (
    FieldIndexing,
    FieldStorage,
    IndexDefinition,
    IndexFieldOptions,
)
from ravendb.documents.indexes.vector.options import VectorOptions
from ravendb.documents.operations.indexes import GetIndexNamesOperation, PutIndexesOperation

from ticobot.constants import CHUNKS_COLLECTION, CHUNKS_VECTOR_INDEX
from ticobot.service.database.config import RavenDBConfig

logger = logging.getLogger(__name__)


def create_document_store(url: str | None = None, database: str | None = None) -> DocumentStore:
    """Create and initialize a DocumentStore instance.

    Args:
        url: RavenDB server URL (defaults to value from RavenDBConfig.get_url())
        database: Database name (defaults to value from RavenDBConfig.get_database_name())

    Returns:
        DocumentStore: Initialized DocumentStore instance
    """
    if url is None:
        url = RavenDBConfig.get_url()
    if database is None:
        database = RavenDBConfig.get_database_name()

    store = DocumentStore([url], database)
    store.initialize()
    return store


def ensure_index_exists(store: DocumentStore, dimensions: int | None = None) -> None:
    """Ensure the vector search index over chunk embeddings exists.

    Args:
        store: Initialized DocumentStore instance
        dimensions: Embedding length to declare on the vector field; left to
            the server when None
    """
    existing_indexes = store.maintenance.send(GetIndexNamesOperation(0, 100))
    if CHUNKS_VECTOR_INDEX in existing_indexes:
        return

    index_definition = IndexDefinition()
    index_definition.name = CHUNKS_VECTOR_INDEX
    index_definition.maps = {
        f"""from chunk in docs.{CHUNKS_COLLECTION}
        where chunk.embedding != null
        select new {{
            document_id = chunk.document_id,
            chunk_index = chunk.chunk_index,
            content = chunk.content,
            embedding = CreateField("embedding", chunk.embedding, new CreateFieldOptions {{ Storage = FieldStorage.Yes, Indexing = FieldIndexing.No }})
        }}"""
    }

    vector_options = VectorOptions(dimensions=dimensions) if dimensions else VectorOptions()
    index_definition.fields = {
        "embedding": IndexFieldOptions(
            storage=FieldStorage.YES, indexing=FieldIndexing.NO, vector=vector_options
        )
    }

    store.maintenance.send(PutIndexesOperation(index_definition))
    logger.info(f"📇 Created vector index {CHUNKS_VECTOR_INDEX} (dimensions={dimensions})")


def database_exists(url: str | None = None, database: str | None = None) -> bool:
    """Check if a database exists in RavenDB.

    Args:
        url: RavenDB server URL (defaults to value from RavenDBConfig.get_url())
        database: Database name (defaults to value from RavenDBConfig.get_database_name())

    Returns:
        bool: True if database exists and answers queries, False otherwise
    """
    if url is None:
        url = RavenDBConfig.get_url()
    if database is None:
        database = RavenDBConfig.get_database_name()

    try:
        store = DocumentStore([url], database)
        store.initialize()
        with store.open_session() as session:
            list(session.query().take(0))
        store.close()
        return True
    except Exception as e:
        logger.debug(f"Database {database} not reachable at {url}: {e}")
        return False


def create_database(url: str | None = None, database: str | None = None) -> None:
    """Create a new database in RavenDB.

    Args:
        url: RavenDB server URL (defaults to value from RavenDBConfig.get_url())
        database: Database name (defaults to value from RavenDBConfig.get_database_name())
    """
    if url is None:
        url = RavenDBConfig.get_url()
    if database is None:
        database = RavenDBConfig.get_database_name()

    api_url = f"{url}/admin/databases"
    payload = {"DatabaseName": database, "Settings": {}, "Disabled": False}

    response = requests.put(api_url, json=payload, timeout=30)
    response.raise_for_status()
    logger.info(f"🗄️ Created RavenDB database {database}")


class RavenConnection:
    """Lazily created DocumentStore shared by the RavenDB-backed providers.

    Every public method of a subclass opens its own session, so one
    connection can be used from the worker threads that asyncio.to_thread
    dispatches to.
    """

    def __init__(self, url: str | None = None, database: str | None = None) -> None:
        self.url = url or RavenDBConfig.get_url()
        self.database = database or RavenDBConfig.get_database_name()
        self._store: DocumentStore | None = None

    @property
    def store(self) -> DocumentStore:
        if self._store is None:
            logger.info(f"🔌 Connecting to RavenDB at {self.url} (database: {self.database})")
            self._store = create_document_store(self.url, self.database)
        return self._store

    def ensure_database(self) -> None:
        """Create the database when it does not exist yet."""
        if not database_exists(self.url, self.database):
            create_database(self.url, self.database)

    def close(self) -> None:
        if self._store is not None:
            self._store.close()
            self._store = None
