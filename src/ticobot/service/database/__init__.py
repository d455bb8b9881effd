"""RavenDB storage for ticobot.

This package provides the RavenDB implementations of the storage contracts:
- Configuration management (RavenDBConfig)
- Document store creation, database and index management
- RavenVectorStore: chunk embeddings and similarity search
- RavenDatabaseProvider: document and chunk CRUD with cascade delete

Usage:
    from ticobot.service.database import RavenDatabaseProvider, RavenVectorStore

    store = RavenVectorStore(dimensions=1536)
    await store.initialize()
    results = await store.similarity_search(query_embedding, k=5, filters={"party_id": "PLN"})
"""

from ticobot.service.database.base import DatabaseProvider, VectorStore
from ticobot.service.database.cache_store import RavenCacheStore
from ticobot.service.database.config import RavenDBConfig
from ticobot.service.database.operations import (
    RavenConnection,
    create_database,
    create_document_store,
    database_exists,
    ensure_index_exists,
)
from ticobot.service.database.provider import RavenDatabaseProvider
from ticobot.service.database.utils import cosine_similarity
from ticobot.service.database.vector_store import RavenVectorStore

__all__ = [
    # Protocols
    "VectorStore",
    "DatabaseProvider",
    # Config
    "RavenDBConfig",
    # Operations
    "RavenConnection",
    "create_document_store",
    "ensure_index_exists",
    "database_exists",
    "create_database",
    # Providers
    "RavenVectorStore",
    "RavenDatabaseProvider",
    "RavenCacheStore",
    # Utils
    "cosine_similarity",
]
