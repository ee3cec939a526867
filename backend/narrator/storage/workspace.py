"""Temporary files: uploads, downloads, extracted audio and synthesized speech."""

import asyncio
import logging
import os
import shutil
import time
import uuid
from typing import Iterable, List, Optional

from narrator.core.errors import UploadRejected

logger = logging.getLogger(__name__)

ALLOWED_VIDEO_TYPES = {'video/mp4': '.mp4', 'video/avi': '.avi', 'video/quicktime': '.mov'}
UPLOADS = 'uploads'
CHUNK_SIZE = 1024 * 1024


class Workspace:
    """Lays out temp files as ``<base>/uploads/<hex><ext>`` and ``<base>/<media_item_id>/<hex><suffix>``."""

    def __init__(self, base_dir: str, ttl_hours: float = 24):
        self._base_dir = os.path.abspath(base_dir)
        self._ttl_seconds = ttl_hours * 3600
        os.makedirs(self.uploads_dir, exist_ok=True)

    @property
    def base_dir(self) -> str:
        return self._base_dir

    @property
    def uploads_dir(self) -> str:
        return os.path.join(self._base_dir, UPLOADS)

    def upload_path(self, file_ref: str) -> str:
        return os.path.join(self.uploads_dir, os.path.basename(file_ref))

    def item_dir(self, media_item_id: str) -> str:
        path = os.path.join(self._base_dir, media_item_id)
        os.makedirs(path, exist_ok=True)
        return path

    def new_path(self, media_item_id: str, suffix: str) -> str:
        return os.path.join(self.item_dir(media_item_id), f"{uuid.uuid4().hex}{suffix}")

    async def save_upload(self, file, max_bytes: int) -> str:
        """Stream an UploadFile to disk; returns the stored file name (the file reference)."""
        if file.content_type not in ALLOWED_VIDEO_TYPES:
            raise UploadRejected('Invalid file type. Only MP4, AVI, and MOV files are allowed.')
        ext = os.path.splitext(file.filename or '')[1].lower() or ALLOWED_VIDEO_TYPES[file.content_type]
        name = f"{uuid.uuid4().hex}{ext}"
        dest = self.upload_path(name)
        total = 0
        out = await asyncio.to_thread(open, dest, 'wb')
        try:
            try:
                while True:
                    chunk = await file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    total += len(chunk)
                    if total > max_bytes:
                        raise UploadRejected(f"File too large (max {max_bytes} bytes)")
                    await asyncio.to_thread(out.write, chunk)
            finally:
                await asyncio.to_thread(out.close)
        except BaseException:
            _remove_quietly(dest)
            raise
        return name

    async def write_bytes(self, media_item_id: str, suffix: str, data: bytes) -> str:
        path = self.new_path(media_item_id, suffix)
        await asyncio.to_thread(_write_file, path, data)
        return path

    def discard(self, media_item_id: str, file_ref: Optional[str] = None) -> None:
        shutil.rmtree(os.path.join(self._base_dir, media_item_id), ignore_errors=True)
        if file_ref:
            _remove_quietly(self.upload_path(file_ref))

    def schedule_cleanup(self, paths: Iterable[str], delay_seconds: float) -> asyncio.TimerHandle:
        """Delete ``paths`` after ``delay_seconds``; failures are only logged."""
        loop = asyncio.get_running_loop()
        return loop.call_later(delay_seconds, remove_files, list(paths))

    def cleanup_expired(self) -> int:
        """Remove item directories and uploads older than the TTL. Returns count removed."""
        now = time.time()
        removed = 0
        for parent in (self._base_dir, self.uploads_dir):
            if not os.path.isdir(parent):
                continue
            for entry in os.listdir(parent):
                path = os.path.join(parent, entry)
                if path == self.uploads_dir:
                    continue
                try:
                    if now - os.path.getmtime(path) <= self._ttl_seconds:
                        continue
                    if os.path.isdir(path):
                        shutil.rmtree(path)
                    else:
                        os.remove(path)
                    removed += 1
                except OSError as exc:
                    logger.warning("Failed to cleanup %s: %s", path, exc)
        return removed


def remove_files(paths: List[str]) -> None:
    for path in paths:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to cleanup %s: %s", path, exc)


def _write_file(path: str, data: bytes) -> None:
    with open(path, 'wb') as f:
        f.write(data)


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except OSError:
        pass
