from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl

from narrator.schemas.records import CamelModel, MediaItem, ProcessingJob, Summary, SummaryStyle

TargetDuration = Literal["30", "60", "90"]
SpeechSpeed = Literal["0.9", "1.0", "1.1"]


class SummaryOptions(CamelModel):
    style: SummaryStyle = SummaryStyle.INFORMATIVE
    target_duration: TargetDuration = "60"
    voice_id: str = Field("alloy", min_length=1)
    speech_speed: SpeechSpeed = "1.0"


class YoutubeRequest(CamelModel):
    # every option is required here, unlike the upload form
    url: HttpUrl
    style: SummaryStyle
    target_duration: TargetDuration
    voice_id: str = Field(min_length=1)
    speech_speed: SpeechSpeed


class SummaryUpdate(BaseModel):
    content: str = Field(min_length=1)


class SubmitResponse(CamelModel):
    video_id: str
    summary_id: str


class VideoStatus(BaseModel):
    video: MediaItem
    summary: Optional[Summary] = None
    processing: Optional[ProcessingJob] = None


class Voice(BaseModel):
    id: str
    name: str
    language: str

    model_config = ConfigDict(frozen=True)
