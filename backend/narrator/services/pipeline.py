"""Content pipeline: source -> transcript -> summary -> voiceover, with job progress bookkeeping."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from narrator.ai.speech_model import SpeechModelClient
from narrator.core.errors import ItemNotFound, NotFoundError
from narrator.media.acquisition import acquire
from narrator.media.tools import MediaTools
from narrator.schemas.records import (
    JobStatus,
    MediaStatus,
    PipelineStage,
    ProcessingJob,
    Summary,
    SummaryStyle,
    UploadedSource,
)
from narrator.storage.workspace import Workspace
from narrator.store.base import RecordStore

logger = logging.getLogger(__name__)

STAGE_PROGRESS = {
    PipelineStage.ANALYZING: 10,
    PipelineStage.TRANSCRIBING: 30,
    PipelineStage.SUMMARIZING: 50,
    PipelineStage.GENERATING_AUDIO: 70,
    PipelineStage.CREATING_VIDEO: 90,
    PipelineStage.COMPLETED: 100,
}

DEFAULT_SUMMARY = dict(style=SummaryStyle.INFORMATIVE, target_duration=60, voice_id='alloy', speech_speed='1.0')


class ContentPipeline:
    def __init__(self, store: RecordStore, model: SpeechModelClient, tools: MediaTools,
                 workspace: Workspace, render_video: bool = False, cleanup_delay_seconds: float = 24 * 3600):
        self.store = store
        self.model = model
        self.tools = tools
        self.workspace = workspace
        self.render_video = render_video
        self.cleanup_delay_seconds = cleanup_delay_seconds

    async def _advance(self, job: ProcessingJob, stage: PipelineStage) -> ProcessingJob:
        logger.info("media %s: %s (%d%%)", job.media_item_id, stage.value, STAGE_PROGRESS[stage])
        return await self.store.update_job(job.id, progress=STAGE_PROGRESS[stage], current_step=stage)

    async def run(self, media_item_id: str) -> None:
        """Drive one media item through every stage.

        Any failure after the item lookup marks the job and the item failed; nothing is retried.
        """
        item = await self.store.get_media_item(media_item_id)
        if item is None:
            raise ItemNotFound(media_item_id)

        job: Optional[ProcessingJob] = None
        try:
            job = await self.store.create_job(ProcessingJob(
                media_item_id=media_item_id,
                status=JobStatus.PROCESSING,
                progress=0,
                current_step=PipelineStage.ANALYZING,
            ))
            job = await self._advance(job, PipelineStage.ANALYZING)

            acquired = await acquire(item, self.workspace, self.tools)
            if isinstance(item.source, UploadedSource):
                item = await self.store.update_media_item(media_item_id, duration=acquired.duration)
            else:
                item = await self.store.update_media_item(
                    media_item_id,
                    title=acquired.title or item.title,
                    duration=acquired.duration,
                    thumbnail_url=acquired.thumbnail_path,
                )

            job = await self._advance(job, PipelineStage.TRANSCRIBING)
            audio = await asyncio.to_thread(Path(acquired.audio_path).read_bytes)
            transcript = await self.model.transcribe(audio, Path(acquired.audio_path).name)

            job = await self._advance(job, PipelineStage.SUMMARIZING)
            analysis = await self.model.analyze(transcript, item.title)
            summary = await self._summary_for(media_item_id)
            result = await self.model.summarize(
                transcript, summary.style.value, summary.target_duration, analysis
            )
            summary = await self.store.update_summary(summary.id, content=result.content)

            job = await self._advance(job, PipelineStage.GENERATING_AUDIO)
            speech = await self.model.synthesize(summary.content, summary.voice_id, summary.speech_speed)
            speech_path = await self.workspace.write_bytes(media_item_id, '_speech.mp3', speech)

            job = await self._advance(job, PipelineStage.CREATING_VIDEO)
            final_path = speech_path
            if self.render_video and acquired.video_path:
                final_path = await self.tools.mux(
                    acquired.video_path, speech_path, summary.target_duration,
                    self.workspace.new_path(media_item_id, '_final.mp4'),
                )
            summary = await self.store.update_summary(summary.id, audio_url=speech_path, final_video_url=final_path)

            job = await self.store.update_job(
                job.id,
                status=JobStatus.COMPLETED,
                progress=STAGE_PROGRESS[PipelineStage.COMPLETED],
                current_step=PipelineStage.COMPLETED,
                result={'summaryId': summary.id, 'audioUrl': speech_path, 'finalVideoUrl': final_path},
            )
            await self.store.update_media_item(media_item_id, status=MediaStatus.COMPLETED)
            logger.info("media %s: completed", media_item_id)

            self.workspace.schedule_cleanup([acquired.audio_path], self.cleanup_delay_seconds)
        except Exception as exc:
            logger.exception("Processing failed for media %s", media_item_id)
            await self._mark_failed(media_item_id, job, str(exc) or type(exc).__name__)

    async def _summary_for(self, media_item_id: str) -> Summary:
        summary = await self.store.get_summary_by_media_item_id(media_item_id)
        if summary is None:
            summary = await self.store.create_summary(Summary(media_item_id=media_item_id, **DEFAULT_SUMMARY))
        return summary

    async def _mark_failed(self, media_item_id: str, job: Optional[ProcessingJob], message: str) -> None:
        try:
            if job is None:
                job = await self.store.get_job_by_media_item_id(media_item_id)
            if job is not None:
                await self.store.update_job(job.id, status=JobStatus.FAILED, error=message)
            await self.store.update_media_item(media_item_id, status=MediaStatus.FAILED)
        except NotFoundError:
            # deleted while the pipeline was running
            logger.warning("media %s vanished before it could be marked failed", media_item_id)

    async def regenerate_audio(self, summary_id: str) -> Summary:
        """Synthesize the summary's current content again into a fresh file."""
        summary = await self.store.get_summary(summary_id)
        if summary is None:
            raise NotFoundError('Summary', summary_id)
        speech = await self.model.synthesize(summary.content, summary.voice_id, summary.speech_speed)
        path = await self.workspace.write_bytes(summary.media_item_id, '_speech.mp3', speech)
        logger.info("summary %s: regenerated audio at %s", summary_id, path)
        return await self.store.update_summary(summary_id, audio_url=path)
