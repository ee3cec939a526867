from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union
import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class MediaStatus(str, Enum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PipelineStage(str, Enum):
    ANALYZING = "analyzing"
    TRANSCRIBING = "transcribing"
    SUMMARIZING = "summarizing"
    GENERATING_AUDIO = "generating_audio"
    CREATING_VIDEO = "creating_video"
    COMPLETED = "completed"


class SummaryStyle(str, Enum):
    INFORMATIVE = "informative"
    ENTERTAINING = "entertaining"
    EDUCATIONAL = "educational"


TERMINAL_MEDIA_STATUSES = (MediaStatus.COMPLETED, MediaStatus.FAILED)
TERMINAL_JOB_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, use_enum_values=False)


class RemoteSource(CamelModel):
    kind: Literal["remote"] = "remote"
    url: str


class UploadedSource(CamelModel):
    kind: Literal["upload"] = "upload"
    file_ref: str


MediaSource = Annotated[Union[RemoteSource, UploadedSource], Field(discriminator="kind")]


class MediaItem(CamelModel):
    id: str = Field(default_factory=new_id)
    title: str
    source: Optional[MediaSource] = None
    duration: Optional[int] = None  # seconds
    thumbnail_url: Optional[str] = None
    status: MediaStatus = MediaStatus.UPLOADING
    created_at: datetime = Field(default_factory=utcnow)


class Summary(CamelModel):
    id: str = Field(default_factory=new_id)
    media_item_id: str = Field(alias="videoId")
    content: str = ""
    style: SummaryStyle = SummaryStyle.INFORMATIVE
    target_duration: int = 60
    voice_id: str = "alloy"
    speech_speed: str = "1.0"
    audio_url: Optional[str] = None
    final_video_url: Optional[str] = None
    is_edited: bool = False
    created_at: datetime = Field(default_factory=utcnow)


class ProcessingJob(CamelModel):
    id: str = Field(default_factory=new_id)
    media_item_id: str = Field(alias="videoId")
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    current_step: Optional[PipelineStage] = None
    error: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
