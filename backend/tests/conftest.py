import os, json, tempfile, pytest
from httpx import AsyncClient, ASGITransport

os.environ.setdefault('APP_ENV', 'test')
os.environ['STORE_BACKEND'] = 'memory'
os.environ['TEMP_DIR'] = tempfile.mkdtemp(prefix='narrator-test-')
os.environ['OPENAI_API_KEY'] = ''

from narrator.main import app  # after env setup
from narrator.ai.speech_model import SummaryResult, VideoAnalysis
from narrator.api.deps import get_dispatcher, get_pipeline, get_store, get_workspace
from narrator.core.errors import ExternalApiError, ExternalToolError
from narrator.jobs.in_process_queue import InProcessQueue
from narrator.services.pipeline import ContentPipeline
from narrator.storage.workspace import Workspace
from narrator.store.memory import MemoryRecordStore


class FakeModel:
    """Stands in for SpeechModelClient; set ``fail_on`` to a method name to make it raise."""

    def __init__(self):
        self.fail_on = None
        self.calls = []
        self.summary_text = "Three ideas, one minute: here is what the video teaches."

    def _check(self, name):
        self.calls.append(name)
        if self.fail_on == name:
            raise ExternalApiError(f"Failed to {name}: upstream returned 500", 500)

    async def transcribe(self, audio, filename='audio.mp3'):
        self._check('transcribe')
        return "welcome to the channel today we talk about sourdough"

    async def analyze(self, transcript, title):
        self._check('analyze')
        return VideoAnalysis(title=title, key_points=['starter'], topics=['baking'], sentiment='positive')

    async def summarize(self, transcript, style, target_duration, analysis):
        self._check('summarize')
        self.last_summarize = (style, target_duration)
        return SummaryResult(content=self.summary_text, key_highlights=['starter'])

    async def synthesize(self, text, voice, speed):
        self._check('synthesize')
        return b"ID3" + f"{voice}:{speed}:{text}".encode()


class FakeTools:
    """Stands in for MediaTools by writing the files the real binaries would produce."""

    def __init__(self):
        self.fail_on = None
        self.calls = []

    def _check(self, name):
        self.calls.append(name)
        if self.fail_on == name:
            raise ExternalToolError(name, "exit code 1", 1, "ERROR: simulated failure")

    async def download(self, url, out_stem):
        self._check('download')
        with open(f"{out_stem}.info.json", 'w', encoding='utf-8') as f:
            json.dump({'title': 'Sourdough Basics', 'duration': 212.4}, f)
        for ext in ('.webp', '.mp3'):
            with open(out_stem + ext, 'wb') as f:
                f.write(b'data')

    async def probe(self, path):
        self._check('probe')
        return {'duration': 42.6, 'title': os.path.basename(path)}

    async def extract_audio(self, src, dest):
        self._check('extract_audio')
        with open(dest, 'wb') as f:
            f.write(b'audio')
        return dest

    async def mux(self, video_path, audio_path, seconds, dest):
        self._check('mux')
        with open(dest, 'wb') as f:
            f.write(b'video')
        return dest


class RecordingDispatcher:
    def __init__(self):
        self.submitted = []

    async def submit(self, media_item_id):
        self.submitted.append(media_item_id)

    def pending(self):
        return len(self.submitted)

    async def start(self):
        pass

    async def stop(self):
        pass


@pytest.fixture(scope='session')
def anyio_backend():
    return 'asyncio'


@pytest.fixture
def store():
    return MemoryRecordStore()


@pytest.fixture
def workspace(tmp_path):
    return Workspace(str(tmp_path / 'ws'))


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def fake_tools():
    return FakeTools()


@pytest.fixture
def pipeline(store, fake_model, fake_tools, workspace):
    return ContentPipeline(store, fake_model, fake_tools, workspace)


def _override(store, workspace, pipeline, dispatcher):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_workspace] = lambda: workspace
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
async def client(store, workspace, pipeline, dispatcher):
    """Client whose submissions are only recorded, never processed."""
    _override(store, workspace, pipeline, dispatcher)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def live_client(store, workspace, pipeline):
    """Client backed by a running in-process queue that drives the (fake) pipeline."""
    queue = InProcessQueue(worker_fn=pipeline.run, workers=2)
    await queue.start()
    _override(store, workspace, pipeline, queue)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac
    await queue.stop()
    app.dependency_overrides.clear()
