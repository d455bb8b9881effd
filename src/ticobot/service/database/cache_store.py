"""RavenDB storage for cached chat answers."""

import dataclasses
import logging
from typing import Any

from ticobot.constants import CHAT_CACHE_COLLECTION
from ticobot.service.database.models import CacheEntry
from ticobot.service.database.operations import RavenConnection
from ticobot.service.database.utils import record_id
from ticobot.service.database.vector_store import run_storage

logger = logging.getLogger(__name__)


class RavenCacheStore(RavenConnection):
    """Keeps CacheEntry documents in the ChatCache collection."""

    async def get(self, entry_id: str) -> CacheEntry | None:
        return await run_storage("cache read", self._get_sync, entry_id)

    def _get_sync(self, entry_id: str) -> CacheEntry | None:
        with self.store.open_session() as session:
            return session.load(entry_id, CacheEntry)

    async def put(self, entry: CacheEntry) -> None:
        """Insert or replace an entry under ``entry.Id``."""
        await run_storage("cache write", self._put_sync, entry)

    def _put_sync(self, entry: CacheEntry) -> None:
        # A fresh entity per write so RavenDB replaces any stored version
        entity = CacheEntry(**dataclasses.asdict(entry))
        with self.store.open_session() as session:
            session.store(entity, entity.Id)
            session.advanced.get_metadata_for(entity)["@collection"] = CHAT_CACHE_COLLECTION
            session.save_changes()

    async def delete(self, entry_ids: list[str]) -> None:
        if entry_ids:
            await run_storage("cache delete", self._delete_sync, entry_ids)

    def _delete_sync(self, entry_ids: list[str]) -> None:
        with self.store.open_session() as session:
            for entry_id in entry_ids:
                session.delete(entry_id)
            session.save_changes()

    async def list_entries(self) -> list[dict[str, Any]]:
        """Load every cache entry as a dict with ``Id`` set."""
        return await run_storage("cache scan", self._list_sync)

    def _list_sync(self) -> list[dict[str, Any]]:
        with self.store.open_session() as session:
            records = list(
                session.advanced.raw_query(f"from {CHAT_CACHE_COLLECTION}", object_type=dict)
            )
        return [{**record, "Id": record_id(record)} for record in records]
