import logging
from contextlib import asynccontextmanager
from time import time

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from narrator.ai.speech_model import SpeechModelClient
from narrator.api.deps import get_dispatcher
from narrator.api.router import api_router
from narrator.core.config import get_settings
from narrator.core.errors import DuplicateRecord, NotFoundError, UploadRejected
from narrator.core.logging import configure_logging
from narrator.jobs.dispatcher import JobDispatcher
from narrator.jobs.in_process_queue import InProcessQueue
from narrator.media.tools import MediaTools
from narrator.services.pipeline import ContentPipeline
from narrator.services.reaper import Reaper
from narrator.storage.workspace import Workspace
from narrator.store.factory import build_store

logger = logging.getLogger(__name__)

INTERRUPTED_ERROR = "Processing was interrupted by a server shutdown"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.log_level)

    store = build_store(settings)
    await store.init()
    interrupted = await store.fail_unfinished(INTERRUPTED_ERROR)
    if interrupted:
        logger.warning("marked %d unfinished media item(s) failed after restart", interrupted)
    workspace = Workspace(settings.temp_dir, ttl_hours=settings.temp_ttl_hours)
    pipeline = ContentPipeline(
        store,
        SpeechModelClient.from_settings(settings),
        MediaTools.from_settings(settings),
        workspace,
        render_video=settings.render_video,
        cleanup_delay_seconds=settings.cleanup_delay_hours * 3600,
    )
    dispatcher = InProcessQueue(worker_fn=pipeline.run, workers=settings.pipeline_workers)
    reaper = Reaper(store, workspace, settings.reap_interval_seconds, settings.record_ttl_hours)

    app.state.store = store
    app.state.workspace = workspace
    app.state.pipeline = pipeline
    app.state.dispatcher = dispatcher

    await dispatcher.start()
    reaper.start()
    logger.info("started: store=%s temp=%s workers=%d", settings.store_backend,
                workspace.base_dir, settings.pipeline_workers)
    yield
    await reaper.stop()
    await dispatcher.stop()
    await store.close()
    logger.info("stopped")


app = FastAPI(title="Video Narrator", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(UploadRejected)
async def _upload_rejected(request: Request, exc: UploadRejected):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(DuplicateRecord)
async def _duplicate(request: Request, exc: DuplicateRecord):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def _not_found(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.get("/")
def root():
    return {"message": "Video Narrator API Running"}


@app.get("/health")
def health(dispatcher: JobDispatcher = Depends(get_dispatcher)):
    return {"status": "ok", "queued": dispatcher.pending()}


@app.middleware("http")
async def _log_requests(request: Request, call_next):
    start = time()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        dur_ms = int((time() - start) * 1000)
        logger.info("[REQ] %s %s -> %s %dms", request.method, request.url.path, status, dur_ms)
