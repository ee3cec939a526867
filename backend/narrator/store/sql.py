"""SQLAlchemy-backed record store (default runtime backend)."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from narrator.core.errors import DuplicateRecord, NotFoundError
from narrator.db.database import Base, create_engine_for, create_sessionmaker
from narrator.models.records import MediaItemRow, ProcessingJobRow, SummaryRow
from narrator.schemas.records import (
    TERMINAL_JOB_STATUSES,
    TERMINAL_MEDIA_STATUSES,
    JobStatus,
    MediaItem,
    MediaStatus,
    ProcessingJob,
    RemoteSource,
    Summary,
    UploadedSource,
    utcnow,
)
from narrator.store.base import RecordStore


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands datetimes back without tzinfo; everything is written in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _media_columns(fields: Dict[str, Any]) -> Dict[str, Any]:
    columns = {k: _plain(v) for k, v in fields.items() if k != 'source'}
    if 'source' in fields:
        source = fields['source']
        if source is None:
            columns['source_kind'] = None
            columns['source_ref'] = None
        elif isinstance(source, dict):
            columns['source_kind'] = source['kind']
            columns['source_ref'] = source.get('url') or source.get('file_ref')
        elif isinstance(source, RemoteSource):
            columns['source_kind'] = 'remote'
            columns['source_ref'] = source.url
        else:
            columns['source_kind'] = 'upload'
            columns['source_ref'] = source.file_ref
    return columns


def _to_media_item(row: MediaItemRow) -> MediaItem:
    source = None
    if row.source_kind == 'remote':
        source = RemoteSource(url=row.source_ref)
    elif row.source_kind == 'upload':
        source = UploadedSource(file_ref=row.source_ref)
    return MediaItem(
        id=row.id,
        title=row.title,
        source=source,
        duration=row.duration,
        thumbnail_url=row.thumbnail_url,
        status=row.status,
        created_at=_aware(row.created_at),
    )


def _to_summary(row: SummaryRow) -> Summary:
    return Summary(
        id=row.id,
        media_item_id=row.media_item_id,
        content=row.content,
        style=row.style,
        target_duration=row.target_duration,
        voice_id=row.voice_id,
        speech_speed=row.speech_speed,
        audio_url=row.audio_url,
        final_video_url=row.final_video_url,
        is_edited=bool(row.is_edited),
        created_at=_aware(row.created_at),
    )


def _to_job(row: ProcessingJobRow) -> ProcessingJob:
    return ProcessingJob(
        id=row.id,
        media_item_id=row.media_item_id,
        status=row.status,
        progress=row.progress,
        current_step=row.current_step,
        error=row.error,
        result=row.result,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


class SqlRecordStore(RecordStore):
    def __init__(self, database_url: str):
        self._engine = create_engine_for(database_url)
        self._sessions = create_sessionmaker(self._engine)

    async def init(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self._engine.dispose()

    async def _update(self, row_cls, record_id: str, kind: str, columns: Dict[str, Any]):
        async with self._sessions() as db:
            row = await db.get(row_cls, record_id)
            if row is None:
                raise NotFoundError(kind, record_id)
            for key, value in columns.items():
                setattr(row, key, value)
            await db.commit()
            return row

    # media items

    async def create_media_item(self, item: MediaItem) -> MediaItem:
        async with self._sessions() as db:
            fields = {**item.model_dump(exclude={'id', 'source'}), 'source': item.source}
            db.add(MediaItemRow(id=item.id, **_media_columns(fields)))
            await db.commit()
        return item

    async def get_media_item(self, media_item_id: str) -> Optional[MediaItem]:
        async with self._sessions() as db:
            row = await db.get(MediaItemRow, media_item_id)
            return _to_media_item(row) if row else None

    async def update_media_item(self, media_item_id: str, **fields: Any) -> MediaItem:
        row = await self._update(MediaItemRow, media_item_id, 'Media item', _media_columns(fields))
        return _to_media_item(row)

    async def delete_media_item(self, media_item_id: str) -> bool:
        async with self._sessions() as db:
            row = await db.get(MediaItemRow, media_item_id)
            if row is None:
                return False
            await db.execute(delete(SummaryRow).where(SummaryRow.media_item_id == media_item_id))
            await db.execute(delete(ProcessingJobRow).where(ProcessingJobRow.media_item_id == media_item_id))
            await db.delete(row)
            await db.commit()
            return True

    async def list_terminal_media_items_before(self, cutoff: datetime) -> List[MediaItem]:
        statuses = [s.value for s in TERMINAL_MEDIA_STATUSES]
        async with self._sessions() as db:
            q = await db.execute(
                select(MediaItemRow).where(MediaItemRow.status.in_(statuses), MediaItemRow.created_at < cutoff)
            )
            return [_to_media_item(row) for row in q.scalars()]

    async def fail_unfinished(self, error: str) -> int:
        job_done = [s.value for s in TERMINAL_JOB_STATUSES]
        media_done = [s.value for s in TERMINAL_MEDIA_STATUSES]
        async with self._sessions() as db:
            await db.execute(
                update(ProcessingJobRow)
                .where(ProcessingJobRow.status.not_in(job_done))
                .values(status=JobStatus.FAILED.value, error=error, updated_at=utcnow())
            )
            q = await db.execute(
                update(MediaItemRow)
                .where(MediaItemRow.status.not_in(media_done))
                .values(status=MediaStatus.FAILED.value)
            )
            await db.commit()
            return q.rowcount or 0

    # summaries

    async def create_summary(self, summary: Summary) -> Summary:
        columns = {k: _plain(v) for k, v in summary.model_dump(exclude={'id'}).items()}
        async with self._sessions() as db:
            db.add(SummaryRow(id=summary.id, **columns))
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise DuplicateRecord(f"Media item {summary.media_item_id} already has a summary") from exc
        return summary

    async def get_summary(self, summary_id: str) -> Optional[Summary]:
        async with self._sessions() as db:
            row = await db.get(SummaryRow, summary_id)
            return _to_summary(row) if row else None

    async def get_summary_by_media_item_id(self, media_item_id: str) -> Optional[Summary]:
        async with self._sessions() as db:
            q = await db.execute(select(SummaryRow).where(SummaryRow.media_item_id == media_item_id))
            row = q.scalars().first()
            return _to_summary(row) if row else None

    async def update_summary(self, summary_id: str, **fields: Any) -> Summary:
        columns = {k: _plain(v) for k, v in fields.items()}
        row = await self._update(SummaryRow, summary_id, 'Summary', columns)
        return _to_summary(row)

    # processing jobs

    async def create_job(self, job: ProcessingJob) -> ProcessingJob:
        columns = {k: _plain(v) for k, v in job.model_dump(exclude={'id'}).items()}
        async with self._sessions() as db:
            db.add(ProcessingJobRow(id=job.id, **columns))
            await db.commit()
        return job

    async def get_job(self, job_id: str) -> Optional[ProcessingJob]:
        async with self._sessions() as db:
            row = await db.get(ProcessingJobRow, job_id)
            return _to_job(row) if row else None

    async def get_job_by_media_item_id(self, media_item_id: str) -> Optional[ProcessingJob]:
        async with self._sessions() as db:
            q = await db.execute(
                select(ProcessingJobRow)
                .where(ProcessingJobRow.media_item_id == media_item_id)
                .order_by(ProcessingJobRow.created_at.desc())
            )
            row = q.scalars().first()
            return _to_job(row) if row else None

    async def update_job(self, job_id: str, **fields: Any) -> ProcessingJob:
        columns = {k: _plain(v) for k, v in fields.items()}
        columns['updated_at'] = utcnow()
        row = await self._update(ProcessingJobRow, job_id, 'Processing job', columns)
        return _to_job(row)
