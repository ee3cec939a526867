import json, os, stat, sys
import pytest

from narrator.core.errors import ExternalToolError, NoSourceAvailable
from narrator.media.acquisition import acquire
from narrator.media.tools import MediaTools, run_tool
from narrator.schemas.records import MediaItem, RemoteSource, UploadedSource

pytestmark = pytest.mark.anyio


def _script(tmp_path, name, body):
    path = tmp_path / name
    path.write_text(f"#!{sys.executable}\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return str(path)


async def test_run_tool_returns_output():
    out, _ = await run_tool(sys.executable, ['-c', 'print("ready")'])
    assert out.strip() == 'ready'


async def test_run_tool_nonzero_exit_carries_stderr():
    with pytest.raises(ExternalToolError) as info:
        await run_tool(sys.executable, ['-c', 'import sys; sys.stderr.write("bad codec"); sys.exit(3)'])
    assert info.value.returncode == 3
    assert 'bad codec' in str(info.value)


async def test_run_tool_missing_binary():
    with pytest.raises(ExternalToolError):
        await run_tool('/nonexistent/yt-dlp', ['--version'])


async def test_probe_reads_duration_and_title(tmp_path):
    payload = {'format': {'duration': '61.5', 'tags': {'title': 'Kitchen tour'}}}
    ffprobe = _script(tmp_path, 'ffprobe', f"print({json.dumps(json.dumps(payload))})")
    meta = await MediaTools(ffprobe_bin=ffprobe).probe('/videos/tour.mp4')
    assert meta == {'duration': 61.5, 'title': 'Kitchen tour'}


async def test_probe_falls_back_to_file_name_and_zero(tmp_path):
    ffprobe = _script(tmp_path, 'ffprobe', "print('{\"format\": {\"duration\": \"N/A\"}}')")
    meta = await MediaTools(ffprobe_bin=ffprobe).probe('/videos/tour.mp4')
    assert meta == {'duration': 0.0, 'title': 'tour.mp4'}


async def test_probe_unparsable_output(tmp_path):
    ffprobe = _script(tmp_path, 'ffprobe', "print('not json')")
    with pytest.raises(ExternalToolError):
        await MediaTools(ffprobe_bin=ffprobe).probe('/videos/tour.mp4')


async def test_extract_audio_passes_fixed_arguments(tmp_path):
    ffmpeg = _script(tmp_path, 'ffmpeg', "import sys; open(sys.argv[-1], 'w').write(' '.join(sys.argv[1:]))")
    dest = str(tmp_path / 'out.mp3')
    await MediaTools(ffmpeg_bin=ffmpeg).extract_audio('/videos/in.mp4', dest)
    with open(dest) as f:
        assert f.read() == f"-i /videos/in.mp4 -vn -acodec mp3 -ab 192k -ar 44100 -y {dest}"


async def test_download_passes_fixed_arguments(tmp_path):
    ytdlp = _script(tmp_path, 'yt-dlp', (
        "import sys; args = sys.argv[1:]; "
        "out = args[args.index('--output') + 1].replace('%(ext)s', 'args'); "
        "open(out, 'w').write(' '.join(args))"
    ))
    stem = str(tmp_path / 'abc')
    await MediaTools(ytdlp_bin=ytdlp).download('https://youtu.be/abc', stem)
    with open(stem + '.args') as f:
        assert f.read() == (
            "--no-playlist --write-info-json --write-thumbnail --extract-audio "
            f"--audio-format mp3 --audio-quality 0 --output {stem}.%(ext)s https://youtu.be/abc"
        )


async def test_mux_passes_fixed_arguments(tmp_path):
    ffmpeg = _script(tmp_path, 'ffmpeg', "import sys; open(sys.argv[-1], 'w').write(' '.join(sys.argv[1:]))")
    dest = str(tmp_path / 'final.mp4')
    assert await MediaTools(ffmpeg_bin=ffmpeg).mux('/videos/in.mp4', '/tmp/speech.mp3', 60, dest) == dest
    with open(dest) as f:
        assert f.read() == (
            "-i /videos/in.mp4 -i /tmp/speech.mp3 -t 60 -c:v libx264 -c:a aac "
            f"-map 0:v:0 -map 1:a:0 -shortest -y {dest}"
        )


async def test_acquire_remote(workspace, fake_tools):
    item = MediaItem(title='Processing...', source=RemoteSource(url='https://www.youtube.com/watch?v=abc'))
    acquired = await acquire(item, workspace, fake_tools)
    assert acquired.title == 'Sourdough Basics'
    assert acquired.duration == 212
    assert acquired.thumbnail_path.endswith('.webp')
    assert os.path.exists(acquired.audio_path)
    assert acquired.video_path is None


async def test_acquire_remote_without_metadata(workspace, fake_tools):
    async def download_no_sidecar(url, out_stem):
        with open(out_stem + '.mp3', 'wb') as f:
            f.write(b'a')
    fake_tools.download = download_no_sidecar
    item = MediaItem(title='x', source=RemoteSource(url='https://youtu.be/abc'))
    with pytest.raises(ExternalToolError):
        await acquire(item, workspace, fake_tools)


async def test_acquire_upload(workspace, fake_tools):
    item = MediaItem(title='tour.mp4', source=UploadedSource(file_ref='f00.mp4'))
    acquired = await acquire(item, workspace, fake_tools)
    assert fake_tools.calls == ['probe', 'extract_audio']
    assert acquired.duration == 43
    assert acquired.video_path == workspace.upload_path('f00.mp4')
    assert os.path.exists(acquired.audio_path)


async def test_acquire_without_source(workspace, fake_tools):
    with pytest.raises(NoSourceAvailable):
        await acquire(MediaItem(title='orphan'), workspace, fake_tools)
