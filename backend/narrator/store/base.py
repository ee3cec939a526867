"""Record store interface for media items, summaries and processing jobs."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, List, Optional

from narrator.schemas.records import MediaItem, ProcessingJob, Summary


class RecordStore(ABC):
    """Persistence boundary used by the API and the pipeline.

    ``get_*`` return ``None`` for unknown ids; ``update_*`` raise ``NotFoundError``.
    Updates are last-write-wins, there is no isolation between concurrent writers.
    """

    async def init(self) -> None:
        """Prepare backing storage (create tables etc.)."""

    async def close(self) -> None:
        """Release backing resources."""

    # media items
    @abstractmethod
    async def create_media_item(self, item: MediaItem) -> MediaItem: ...

    @abstractmethod
    async def get_media_item(self, media_item_id: str) -> Optional[MediaItem]: ...

    @abstractmethod
    async def update_media_item(self, media_item_id: str, **fields: Any) -> MediaItem: ...

    @abstractmethod
    async def delete_media_item(self, media_item_id: str) -> bool:
        """Delete the item with its summary and jobs. Returns False if it did not exist."""

    @abstractmethod
    async def list_terminal_media_items_before(self, cutoff: datetime) -> List[MediaItem]: ...

    @abstractmethod
    async def fail_unfinished(self, error: str) -> int:
        """Mark every non-terminal job and media item failed, jobs with ``error``.

        Run at startup: work that was in flight or queued when the process stopped
        is never resumed. Returns the number of media items marked failed.
        """

    # summaries
    @abstractmethod
    async def create_summary(self, summary: Summary) -> Summary:
        """Store a summary; raises ``DuplicateRecord`` if the media item already owns one."""

    @abstractmethod
    async def get_summary(self, summary_id: str) -> Optional[Summary]: ...

    @abstractmethod
    async def get_summary_by_media_item_id(self, media_item_id: str) -> Optional[Summary]: ...

    @abstractmethod
    async def update_summary(self, summary_id: str, **fields: Any) -> Summary: ...

    # processing jobs
    @abstractmethod
    async def create_job(self, job: ProcessingJob) -> ProcessingJob: ...

    @abstractmethod
    async def get_job(self, job_id: str) -> Optional[ProcessingJob]: ...

    @abstractmethod
    async def get_job_by_media_item_id(self, media_item_id: str) -> Optional[ProcessingJob]:
        """Most recently created job for the media item."""

    @abstractmethod
    async def update_job(self, job_id: str, **fields: Any) -> ProcessingJob:
        """Merge fields and refresh ``updated_at``."""

