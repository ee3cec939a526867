import logging
import os

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse

from narrator.api.deps import get_pipeline, get_store
from narrator.core.errors import NotFoundError
from narrator.schemas.api import SummaryUpdate
from narrator.schemas.records import Summary
from narrator.services.pipeline import ContentPipeline
from narrator.store.base import RecordStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/summaries", tags=["summaries"])


@router.get('/{summary_id}', response_model=Summary)
async def get_summary(summary_id: str, store: RecordStore = Depends(get_store)):
    summary = await store.get_summary(summary_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Summary not found")
    return summary


@router.patch('/{summary_id}', response_model=Summary)
async def update_summary(summary_id: str, req: SummaryUpdate, store: RecordStore = Depends(get_store)):
    return await store.update_summary(summary_id, content=req.content, is_edited=True)


@router.post('/{summary_id}/regenerate-audio', response_model=Summary)
async def regenerate_audio(summary_id: str, pipeline: ContentPipeline = Depends(get_pipeline)):
    try:
        return await pipeline.regenerate_audio(summary_id)
    except NotFoundError:
        raise
    except Exception as e:
        logger.exception("audio regeneration failed for summary %s", summary_id)
        raise HTTPException(status_code=500, detail=f"Failed to regenerate audio: {e}")


@router.get('/{summary_id}/audio')
async def get_summary_audio(summary_id: str, store: RecordStore = Depends(get_store)):
    """Stream the latest synthesized voiceover."""
    summary = await store.get_summary(summary_id)
    if summary is None:
        raise HTTPException(status_code=404, detail="Summary not found")
    if not summary.audio_url or not os.path.exists(summary.audio_url):
        raise HTTPException(status_code=404, detail="Audio not available")
    return FileResponse(summary.audio_url, media_type='audio/mpeg', filename=f"summary_{summary_id}.mp3")
