from fastapi import Request

from narrator.jobs.dispatcher import JobDispatcher
from narrator.services.pipeline import ContentPipeline
from narrator.storage.workspace import Workspace
from narrator.store.base import RecordStore


# Wired onto app.state during lifespan; tests swap them via app.dependency_overrides.

def get_store(request: Request) -> RecordStore:
    return request.app.state.store


def get_dispatcher(request: Request) -> JobDispatcher:
    return request.app.state.dispatcher


def get_workspace(request: Request) -> Workspace:
    return request.app.state.workspace


def get_pipeline(request: Request) -> ContentPipeline:
    return request.app.state.pipeline
