"""RavenDB-backed storage for documents and their chunks."""

import dataclasses
import logging
import uuid
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from ticobot.constants import CHUNKS_COLLECTION, DOCUMENTS_COLLECTION
from ticobot.errors import RecordNotFoundError
from ticobot.models import Chunk, Document, QueryOptions
from ticobot.service.database.models import ChunkEntity, DocumentEntity
from ticobot.service.database.operations import RavenConnection, database_exists
from ticobot.service.database.utils import (
    from_iso,
    matches_filters,
    record_id,
    to_iso,
    utc_now,
)
from ticobot.service.database.vector_store import run_storage

logger = logging.getLogger(__name__)

UPDATABLE_DOCUMENT_FIELDS = frozenset(
    {"title", "source", "url", "page_count", "publication_date", "party", "metadata"}
)


def document_from_record(record: dict[str, Any], doc_id: str | None = None) -> Document:
    return Document(
        id=doc_id or record_id(record) or "",
        title=record.get("title", ""),
        source=record.get("source", ""),
        url=record.get("url", ""),
        page_count=record.get("page_count"),
        publication_date=from_iso(record.get("publication_date")),
        party=record.get("party"),
        metadata=dict(record.get("metadata") or {}),
        created_at=from_iso(record.get("created_at")),
        updated_at=from_iso(record.get("updated_at")),
    )


def chunk_from_record(record: dict[str, Any], chunk_id: str | None = None) -> Chunk:
    return Chunk(
        id=chunk_id or record_id(record) or "",
        document_id=record.get("document_id", ""),
        content=record.get("content", ""),
        chunk_index=record.get("chunk_index", 0),
        page_number=record.get("page_number"),
        metadata=dict(record.get("metadata") or {}),
        created_at=from_iso(record.get("created_at")),
    )


def apply_query_options(
    records: list[dict[str, Any]], options: QueryOptions | None, default_order: str
) -> list[dict[str, Any]]:
    """Filter, order and page records loaded from a collection.

    Records missing the order field sort last in either direction.
    """
    options = options or QueryOptions()
    records = [record for record in records if matches_filters(record, options.filters)]

    order_by = options.order_by or default_order
    present = [record for record in records if record.get(order_by) is not None]
    missing = [record for record in records if record.get(order_by) is None]
    present.sort(key=lambda record: record[order_by], reverse=options.order_direction == "desc")
    records = present + missing

    end = options.offset + options.limit if options.limit is not None else None
    return records[options.offset : end]


class RavenDatabaseProvider(RavenConnection):
    """Document and chunk storage in the Documents and Chunks collections.

    Every chunk references an existing document; deleting a document deletes
    its chunks.
    """

    async def connect(self) -> None:
        await run_storage("connect", self._connect_sync)

    def _connect_sync(self) -> None:
        self.ensure_database()
        # Touch the store so connection errors surface here
        _ = self.store
        logger.info(f"✅ Connected to RavenDB database {self.database}")

    async def disconnect(self) -> None:
        self.close()
        logger.info("🔌 Disconnected from RavenDB")

    async def health_check(self) -> bool:
        """Check that the database answers queries."""
        return await run_storage("health check", database_exists, self.url, self.database)

    # ---------------------------------------------------------------- documents

    async def create_document(self, document: Document) -> Document:
        """Store a new document.

        Args:
            document: Document to create; a new id is assigned when ``id`` is empty

        Returns:
            Document: The stored document with id and timestamps set
        """
        return await run_storage("create document", self._create_document_sync, document)

    def _create_document_sync(self, document: Document) -> Document:
        doc_id = document.id or f"{DOCUMENTS_COLLECTION}/{uuid.uuid4()}"
        now = to_iso(utc_now())
        entity = DocumentEntity(
            Id=doc_id,
            title=document.title,
            source=document.source,
            url=document.url,
            page_count=document.page_count,
            publication_date=to_iso(document.publication_date),
            party=document.party,
            metadata=dict(document.metadata),
            created_at=now,
            updated_at=now,
        )
        with self.store.open_session() as session:
            session.store(entity, doc_id)
            session.advanced.get_metadata_for(entity)["@collection"] = DOCUMENTS_COLLECTION
            session.save_changes()

        logger.info(f"📄 Created document {doc_id}: {document.title}")
        return document_from_record(dataclasses.asdict(entity), doc_id)

    async def get_document_by_id(self, id: str) -> Document | None:
        return await run_storage("get document", self._get_document_sync, id)

    def _get_document_sync(self, doc_id: str) -> Document | None:
        with self.store.open_session() as session:
            entity = session.load(doc_id, DocumentEntity)
        if entity is None:
            return None
        return document_from_record(dataclasses.asdict(entity), doc_id)

    async def update_document(self, id: str, updates: dict[str, Any]) -> Document:
        """Update fields of an existing document.

        Args:
            id: Document id
            updates: Field -> new value; only title, source, url, page_count,
                publication_date, party and metadata may change

        Returns:
            Document: The updated document

        Raises:
            ValueError: If updates names a field that cannot be changed
            RecordNotFoundError: If the document does not exist
        """
        unknown = set(updates) - UPDATABLE_DOCUMENT_FIELDS
        if unknown:
            raise ValueError(f"Cannot update document fields: {', '.join(sorted(unknown))}")
        return await run_storage("update document", self._update_document_sync, id, updates)

    def _update_document_sync(self, doc_id: str, updates: dict[str, Any]) -> Document:
        with self.store.open_session() as session:
            entity = session.load(doc_id, DocumentEntity)
            if entity is None:
                raise RecordNotFoundError(f"Document not found: {doc_id}")

            for field_name, value in updates.items():
                if isinstance(value, datetime):
                    value = to_iso(value)
                setattr(entity, field_name, value)
            entity.updated_at = to_iso(utc_now())
            session.save_changes()

        return document_from_record(dataclasses.asdict(entity), doc_id)

    async def delete_document(self, id: str) -> None:
        await run_storage("delete document", self._delete_document_sync, id)

    def _delete_document_sync(self, doc_id: str) -> None:
        with self.store.open_session() as session:
            chunk_ids = self._chunk_ids_for(session, doc_id)
            for chunk_id in chunk_ids:
                session.delete(chunk_id)
            session.delete(doc_id)
            session.save_changes()
        logger.info(f"🗑️ Deleted document {doc_id} and {len(chunk_ids)} chunks")

    async def list_documents(self, options: QueryOptions | None = None) -> list[Document]:
        """List documents, newest-first ordering available via options.

        Args:
            options: Filters over document fields (e.g. {"party": "PLN"}),
                ordering (default: created_at ascending) and paging

        Returns:
            list[Document]: Matching documents
        """
        return await run_storage("list documents", self._list_documents_sync, options)

    def _list_documents_sync(self, options: QueryOptions | None) -> list[Document]:
        with self.store.open_session() as session:
            records = list(
                session.advanced.raw_query(f"from {DOCUMENTS_COLLECTION}", object_type=dict)
            )
        return [
            document_from_record(record)
            for record in apply_query_options(records, options, "created_at")
        ]

    # ------------------------------------------------------------------- chunks

    async def create_chunk(self, chunk: Chunk) -> Chunk:
        created = await self.create_chunks([chunk])
        return created[0]

    async def create_chunks(self, chunks: Sequence[Chunk]) -> list[Chunk]:
        """Store chunks in a single session.

        Args:
            chunks: Chunks to create; new ids are assigned when ``id`` is empty

        Returns:
            list[Chunk]: The stored chunks, in input order

        Raises:
            RecordNotFoundError: If a chunk references a missing document
        """
        if not chunks:
            return []
        return await run_storage("create chunks", self._create_chunks_sync, list(chunks))

    def _create_chunks_sync(self, chunks: list[Chunk]) -> list[Chunk]:
        now = to_iso(utc_now())
        created = []
        with self.store.open_session() as session:
            for document_id in {chunk.document_id for chunk in chunks}:
                if session.load(document_id, DocumentEntity) is None:
                    raise RecordNotFoundError(f"Document not found: {document_id}")

            for chunk in chunks:
                chunk_id = chunk.id or f"{CHUNKS_COLLECTION}/{uuid.uuid4()}"
                entity = ChunkEntity(
                    Id=chunk_id,
                    document_id=chunk.document_id,
                    chunk_index=chunk.chunk_index,
                    content=chunk.content,
                    page_number=chunk.page_number,
                    metadata=dict(chunk.metadata),
                    created_at=now,
                )
                session.store(entity, chunk_id)
                session.advanced.get_metadata_for(entity)["@collection"] = CHUNKS_COLLECTION
                created.append(chunk_from_record(dataclasses.asdict(entity), chunk_id))

            session.save_changes()

        logger.info(f"🧩 Created {len(created)} chunks")
        return created

    async def get_chunk_by_id(self, id: str) -> Chunk | None:
        return await run_storage("get chunk", self._get_chunk_sync, id)

    def _get_chunk_sync(self, chunk_id: str) -> Chunk | None:
        with self.store.open_session() as session:
            entity = session.load(chunk_id, ChunkEntity)
        if entity is None:
            return None
        return chunk_from_record(dataclasses.asdict(entity), chunk_id)

    async def get_chunks_by_document_id(
        self, document_id: str, options: QueryOptions | None = None
    ) -> list[Chunk]:
        """Get a document's chunks, ordered by chunk_index unless options say otherwise."""
        return await run_storage(
            "get chunks", self._get_chunks_by_document_sync, document_id, options
        )

    def _get_chunks_by_document_sync(
        self, document_id: str, options: QueryOptions | None
    ) -> list[Chunk]:
        with self.store.open_session() as session:
            records = list(
                session.query_collection(CHUNKS_COLLECTION, object_type=dict).where_equals(
                    "document_id", document_id
                )
            )
        return [
            chunk_from_record(record)
            for record in apply_query_options(records, options, "chunk_index")
        ]

    async def delete_chunk(self, id: str) -> None:
        await run_storage("delete chunk", self._delete_chunk_sync, id)

    def _delete_chunk_sync(self, chunk_id: str) -> None:
        with self.store.open_session() as session:
            session.delete(chunk_id)
            session.save_changes()

    async def delete_chunks_by_document_id(self, document_id: str) -> int:
        """Delete every chunk of a document and return how many were deleted."""
        return await run_storage(
            "delete chunks", self._delete_chunks_by_document_sync, document_id
        )

    def _delete_chunks_by_document_sync(self, document_id: str) -> int:
        with self.store.open_session() as session:
            chunk_ids = self._chunk_ids_for(session, document_id)
            for chunk_id in chunk_ids:
                session.delete(chunk_id)
            session.save_changes()
        return len(chunk_ids)

    @staticmethod
    def _chunk_ids_for(session: Any, document_id: str) -> list[str]:
        records = session.query_collection(CHUNKS_COLLECTION, object_type=dict).where_equals(
            "document_id", document_id
        )
        return [chunk_id for chunk_id in (record_id(record) for record in records) if chunk_id]
