import asyncio, io, os, time
import pytest

from narrator.core.errors import UploadRejected
from narrator.storage.workspace import CHUNK_SIZE, Workspace, remove_files


class FakeUpload:
    def __init__(self, data: bytes, filename='clip.mp4', content_type='video/mp4'):
        self._buf = io.BytesIO(data)
        self.filename = filename
        self.content_type = content_type

    async def read(self, size=-1):
        return self._buf.read(size)


@pytest.mark.anyio
async def test_save_upload_streams_to_uploads_dir(workspace):
    ref = await workspace.save_upload(FakeUpload(b'x' * 3000), max_bytes=10_000)
    assert ref.endswith('.mp4')
    with open(workspace.upload_path(ref), 'rb') as f:
        assert f.read() == b'x' * 3000


@pytest.mark.anyio
async def test_save_upload_rejects_wrong_type(workspace):
    with pytest.raises(UploadRejected):
        await workspace.save_upload(FakeUpload(b'abc', 'notes.txt', 'text/plain'), max_bytes=10_000)
    assert os.listdir(workspace.uploads_dir) == []


@pytest.mark.anyio
async def test_save_upload_rejects_oversized_and_removes_partial(workspace):
    with pytest.raises(UploadRejected):
        await workspace.save_upload(FakeUpload(b'x' * (3 * 1024 * 1024), 'big.mov', 'video/quicktime'),
                                    max_bytes=2 * 1024 * 1024)
    assert os.listdir(workspace.uploads_dir) == []


@pytest.mark.anyio
async def test_file_writes_let_other_tasks_run(workspace):
    ticks = 0

    async def ticker():
        nonlocal ticks
        while True:
            ticks += 1
            await asyncio.sleep(0)

    task = asyncio.create_task(ticker())
    await workspace.save_upload(FakeUpload(b'x' * (4 * CHUNK_SIZE)), max_bytes=8 * CHUNK_SIZE)
    after_upload = ticks
    await workspace.write_bytes('m1', '_speech.mp3', b'ID3' * 1024)
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)

    # every chunk write suspends the caller at least once
    assert after_upload >= 4
    assert ticks > after_upload


def test_new_paths_are_distinct(workspace):
    a = workspace.new_path('m1', '_speech.mp3')
    b = workspace.new_path('m1', '_speech.mp3')
    assert a != b
    assert os.path.dirname(a) == workspace.item_dir('m1')


def test_cleanup_expired_only_removes_old_entries(tmp_path):
    ws = Workspace(str(tmp_path / 'ws'), ttl_hours=1)
    old_dir = ws.item_dir('old-item')
    fresh_dir = ws.item_dir('fresh-item')
    old_upload = ws.upload_path('old.mp4')
    with open(old_upload, 'wb') as f:
        f.write(b'v')
    stale = time.time() - 2 * 3600
    os.utime(old_dir, (stale, stale))
    os.utime(old_upload, (stale, stale))

    assert ws.cleanup_expired() == 2
    assert not os.path.exists(old_dir)
    assert not os.path.exists(old_upload)
    assert os.path.isdir(fresh_dir)
    assert os.path.isdir(ws.uploads_dir)


@pytest.mark.anyio
async def test_discard_removes_item_dir_and_upload(workspace):
    path = await workspace.write_bytes('m1', '_speech.mp3', b'ID3')
    with open(workspace.upload_path('in.mp4'), 'wb') as f:
        f.write(b'v')
    workspace.discard('m1', 'in.mp4')
    assert not os.path.exists(path)
    assert not os.path.exists(workspace.upload_path('in.mp4'))


@pytest.mark.anyio
async def test_schedule_cleanup_deletes_after_delay(workspace):
    keep = await workspace.write_bytes('m1', '_speech.mp3', b'keep')
    drop = await workspace.write_bytes('m1', '.mp3', b'drop')
    workspace.schedule_cleanup([drop, drop + '.missing'], 0.01)
    assert os.path.exists(drop)
    await asyncio.sleep(0.05)
    assert not os.path.exists(drop)
    assert os.path.exists(keep)


def test_remove_files_ignores_missing(tmp_path):
    remove_files([str(tmp_path / 'never-existed.mp3')])
