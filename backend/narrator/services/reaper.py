"""Periodic eviction of expired temp files and finished records."""

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from narrator.schemas.records import UploadedSource, utcnow
from narrator.storage.workspace import Workspace
from narrator.store.base import RecordStore

logger = logging.getLogger(__name__)


class Reaper:
    def __init__(self, store: RecordStore, workspace: Workspace, interval_seconds: float = 3600,
                 record_ttl_hours: float = 0):
        self.store = store
        self.workspace = workspace
        self.interval_seconds = interval_seconds
        self.record_ttl_hours = record_ttl_hours
        self._task: Optional[asyncio.Task] = None

    async def sweep(self) -> dict:
        files = self.workspace.cleanup_expired()
        records = 0
        if self.record_ttl_hours > 0:
            cutoff = utcnow() - timedelta(hours=self.record_ttl_hours)
            for item in await self.store.list_terminal_media_items_before(cutoff):
                if await self.store.delete_media_item(item.id):
                    file_ref = item.source.file_ref if isinstance(item.source, UploadedSource) else None
                    self.workspace.discard(item.id, file_ref)
                    records += 1
        if files or records:
            logger.info("reaper removed %d temp entries and %d media items", files, records)
        return {'files': files, 'records': records}

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep()
            except Exception:
                logger.exception("reaper sweep failed")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop(), name="reaper")

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
