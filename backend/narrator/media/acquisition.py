"""Turn a media item's source into a local audio file plus metadata."""

import json
import logging
import os
import uuid
from dataclasses import dataclass
from typing import Optional

from narrator.core.errors import ExternalToolError, NoSourceAvailable
from narrator.media.tools import MediaTools
from narrator.schemas.records import MediaItem, RemoteSource, UploadedSource
from narrator.storage.workspace import Workspace

logger = logging.getLogger(__name__)

THUMBNAIL_EXTS = ('.webp', '.jpg', '.jpeg', '.png')


@dataclass
class AcquiredMedia:
    audio_path: str
    title: Optional[str] = None
    duration: Optional[int] = None
    thumbnail_path: Optional[str] = None
    video_path: Optional[str] = None  # only known for uploads


async def acquire_remote(url: str, media_item_id: str, workspace: Workspace, tools: MediaTools) -> AcquiredMedia:
    stem = os.path.join(workspace.item_dir(media_item_id), uuid.uuid4().hex)
    await tools.download(url, stem)
    try:
        with open(f"{stem}.info.json", 'r', encoding='utf-8') as f:
            info = json.load(f)
    except (OSError, ValueError) as exc:
        raise ExternalToolError('yt-dlp', f"Failed to parse video metadata ({exc})") from exc
    audio_path = f"{stem}.mp3"
    if not os.path.exists(audio_path):
        raise ExternalToolError('yt-dlp', 'no audio track was extracted')
    thumbnail = next((stem + ext for ext in THUMBNAIL_EXTS if os.path.exists(stem + ext)), None)
    duration = info.get('duration')
    return AcquiredMedia(
        audio_path=audio_path,
        title=info.get('title'),
        duration=int(round(duration)) if isinstance(duration, (int, float)) else None,
        thumbnail_path=thumbnail,
    )


async def acquire_upload(file_ref: str, media_item_id: str, workspace: Workspace, tools: MediaTools) -> AcquiredMedia:
    video_path = workspace.upload_path(file_ref)
    meta = await tools.probe(video_path)
    audio_path = await tools.extract_audio(video_path, workspace.new_path(media_item_id, '.mp3'))
    return AcquiredMedia(
        audio_path=audio_path,
        title=meta['title'],
        duration=int(round(meta['duration'])),
        video_path=video_path,
    )


async def acquire(item: MediaItem, workspace: Workspace, tools: MediaTools) -> AcquiredMedia:
    if isinstance(item.source, RemoteSource):
        logger.info("Downloading %s for %s", item.source.url, item.id)
        return await acquire_remote(item.source.url, item.id, workspace, tools)
    if isinstance(item.source, UploadedSource):
        logger.info("Extracting audio from upload %s for %s", item.source.file_ref, item.id)
        return await acquire_upload(item.source.file_ref, item.id, workspace, tools)
    raise NoSourceAvailable(item.id)
