"""Dict-backed record store used by tests and ``STORE_BACKEND=memory``."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from narrator.core.errors import DuplicateRecord, NotFoundError
from narrator.schemas.records import (
    TERMINAL_JOB_STATUSES,
    TERMINAL_MEDIA_STATUSES,
    JobStatus,
    MediaItem,
    MediaStatus,
    ProcessingJob,
    Summary,
    utcnow,
)
from narrator.store.base import RecordStore


class MemoryRecordStore(RecordStore):
    def __init__(self):
        self._media: Dict[str, MediaItem] = {}
        self._summaries: Dict[str, Summary] = {}
        self._jobs: Dict[str, ProcessingJob] = {}

    async def create_media_item(self, item: MediaItem) -> MediaItem:
        self._media[item.id] = item
        return item

    async def get_media_item(self, media_item_id: str) -> Optional[MediaItem]:
        return self._media.get(media_item_id)

    async def update_media_item(self, media_item_id: str, **fields: Any) -> MediaItem:
        item = self._media.get(media_item_id)
        if item is None:
            raise NotFoundError("Media item", media_item_id)
        updated = item.model_copy(update=fields)
        self._media[media_item_id] = updated
        return updated

    async def delete_media_item(self, media_item_id: str) -> bool:
        if self._media.pop(media_item_id, None) is None:
            return False
        self._summaries = {k: s for k, s in self._summaries.items() if s.media_item_id != media_item_id}
        self._jobs = {k: j for k, j in self._jobs.items() if j.media_item_id != media_item_id}
        return True

    async def list_terminal_media_items_before(self, cutoff: datetime) -> List[MediaItem]:
        return [
            m for m in self._media.values()
            if m.status in TERMINAL_MEDIA_STATUSES and m.created_at < cutoff
        ]

    async def fail_unfinished(self, error: str) -> int:
        for job_id, job in list(self._jobs.items()):
            if job.status not in TERMINAL_JOB_STATUSES:
                self._jobs[job_id] = job.model_copy(
                    update={"status": JobStatus.FAILED, "error": error, "updated_at": utcnow()})
        failed = 0
        for item_id, item in list(self._media.items()):
            if item.status not in TERMINAL_MEDIA_STATUSES:
                self._media[item_id] = item.model_copy(update={"status": MediaStatus.FAILED})
                failed += 1
        return failed

    async def create_summary(self, summary: Summary) -> Summary:
        if await self.get_summary_by_media_item_id(summary.media_item_id) is not None:
            raise DuplicateRecord(f"Media item {summary.media_item_id} already has a summary")
        self._summaries[summary.id] = summary
        return summary

    async def get_summary(self, summary_id: str) -> Optional[Summary]:
        return self._summaries.get(summary_id)

    async def get_summary_by_media_item_id(self, media_item_id: str) -> Optional[Summary]:
        return next((s for s in self._summaries.values() if s.media_item_id == media_item_id), None)

    async def update_summary(self, summary_id: str, **fields: Any) -> Summary:
        summary = self._summaries.get(summary_id)
        if summary is None:
            raise NotFoundError("Summary", summary_id)
        updated = summary.model_copy(update=fields)
        self._summaries[summary_id] = updated
        return updated

    async def create_job(self, job: ProcessingJob) -> ProcessingJob:
        self._jobs[job.id] = job
        return job

    async def get_job(self, job_id: str) -> Optional[ProcessingJob]:
        return self._jobs.get(job_id)

    async def get_job_by_media_item_id(self, media_item_id: str) -> Optional[ProcessingJob]:
        # dicts keep insertion order, so the last match is the newest job
        matches = [j for j in self._jobs.values() if j.media_item_id == media_item_id]
        return matches[-1] if matches else None

    async def update_job(self, job_id: str, **fields: Any) -> ProcessingJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError("Processing job", job_id)
        updated = job.model_copy(update={**fields, "updated_at": utcnow()})
        self._jobs[job_id] = updated
        return updated
