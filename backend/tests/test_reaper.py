import os
from datetime import timedelta
import pytest

from narrator.schemas.records import MediaItem, MediaStatus, Summary, UploadedSource, utcnow
from narrator.services.reaper import Reaper

pytestmark = pytest.mark.anyio


async def test_sweep_purges_old_terminal_items(store, workspace):
    old = await store.create_media_item(MediaItem(
        title='old.mp4', source=UploadedSource(file_ref='old.mp4'), status=MediaStatus.COMPLETED,
        created_at=utcnow() - timedelta(hours=80)))
    await store.create_summary(Summary(media_item_id=old.id))
    speech = await workspace.write_bytes(old.id, '_speech.mp3', b'ID3')
    with open(workspace.upload_path('old.mp4'), 'wb') as f:
        f.write(b'v')
    running = await store.create_media_item(MediaItem(
        title='run', status=MediaStatus.PROCESSING, created_at=utcnow() - timedelta(hours=80)))
    recent = await store.create_media_item(MediaItem(title='new', status=MediaStatus.FAILED))

    result = await Reaper(store, workspace, record_ttl_hours=72).sweep()

    assert result['records'] == 1
    assert await store.get_media_item(old.id) is None
    assert await store.get_summary_by_media_item_id(old.id) is None
    assert not os.path.exists(speech)
    assert not os.path.exists(workspace.upload_path('old.mp4'))
    assert await store.get_media_item(running.id) is not None
    assert await store.get_media_item(recent.id) is not None


async def test_sweep_keeps_records_when_ttl_disabled(store, workspace):
    old = await store.create_media_item(MediaItem(
        title='old', status=MediaStatus.COMPLETED, created_at=utcnow() - timedelta(days=30)))
    result = await Reaper(store, workspace, record_ttl_hours=0).sweep()
    assert result == {'files': 0, 'records': 0}
    assert await store.get_media_item(old.id) is not None
