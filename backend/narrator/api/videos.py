import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import ValidationError

from narrator.api.deps import get_dispatcher, get_store, get_workspace
from narrator.core.config import get_settings
from narrator.core.errors import NotFoundError, UploadRejected
from narrator.jobs.dispatcher import JobDispatcher
from narrator.schemas.api import SubmitResponse, SummaryOptions, VideoStatus, YoutubeRequest
from narrator.schemas.records import MediaItem, MediaStatus, RemoteSource, Summary, UploadedSource
from narrator.storage.workspace import Workspace
from narrator.store.base import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])


async def _create_and_submit(store: RecordStore, dispatcher: JobDispatcher, item: MediaItem,
                             options: SummaryOptions) -> SubmitResponse:
    item = await store.create_media_item(item)
    summary = await store.create_summary(Summary(
        media_item_id=item.id,
        content="",
        style=options.style,
        target_duration=int(options.target_duration),
        voice_id=options.voice_id,
        speech_speed=options.speech_speed,
    ))
    await dispatcher.submit(item.id)
    logger.info("queued media %s (summary %s)", item.id, summary.id)
    return SubmitResponse(video_id=item.id, summary_id=summary.id)


@router.post('/youtube', response_model=SubmitResponse)
async def submit_youtube(req: YoutubeRequest, store: RecordStore = Depends(get_store),
                         dispatcher: JobDispatcher = Depends(get_dispatcher)):
    item = MediaItem(title="Processing...", source=RemoteSource(url=str(req.url)), status=MediaStatus.PROCESSING)
    options = SummaryOptions(style=req.style, target_duration=req.target_duration,
                             voice_id=req.voice_id, speech_speed=req.speech_speed)
    return await _create_and_submit(store, dispatcher, item, options)


@router.post('/upload', response_model=SubmitResponse)
async def submit_upload(
    video: Optional[UploadFile] = File(None),
    style: str = Form("informative"),
    target_duration: str = Form("60", alias="targetDuration"),
    voice_id: str = Form("alloy", alias="voiceId"),
    speech_speed: str = Form("1.0", alias="speechSpeed"),
    store: RecordStore = Depends(get_store),
    dispatcher: JobDispatcher = Depends(get_dispatcher),
    workspace: Workspace = Depends(get_workspace),
):
    if video is None or not video.filename:
        raise HTTPException(status_code=400, detail="No video file provided")
    try:
        options = SummaryOptions(style=style, target_duration=target_duration,
                                 voice_id=voice_id, speech_speed=speech_speed)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False, include_context=False))
    try:
        file_ref = await workspace.save_upload(video, get_settings().max_upload_bytes)
    except UploadRejected as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("upload failed")
        raise HTTPException(status_code=500, detail=f"Upload failed: {e}")
    item = MediaItem(title=video.filename, source=UploadedSource(file_ref=file_ref), status=MediaStatus.PROCESSING)
    try:
        return await _create_and_submit(store, dispatcher, item, options)
    except Exception as e:
        logger.exception("submit failed for upload %s", file_ref)
        await store.delete_media_item(item.id)
        workspace.discard(item.id, file_ref)
        raise HTTPException(status_code=500, detail=f"Upload failed: {e}")


@router.get('/{video_id}', response_model=VideoStatus)
async def get_video(video_id: str, store: RecordStore = Depends(get_store)):
    item = await store.get_media_item(video_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Video not found")
    return VideoStatus(
        video=item,
        summary=await store.get_summary_by_media_item_id(video_id),
        processing=await store.get_job_by_media_item_id(video_id),
    )


@router.delete('/{video_id}')
async def delete_video(video_id: str, store: RecordStore = Depends(get_store),
                       workspace: Workspace = Depends(get_workspace)):
    item = await store.get_media_item(video_id)
    if item is None or not await store.delete_media_item(video_id):
        raise NotFoundError("Video", video_id)
    file_ref = item.source.file_ref if isinstance(item.source, UploadedSource) else None
    workspace.discard(video_id, file_ref)
    return {"deleted": video_id}
