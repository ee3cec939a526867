"""Client for the hosted speech/language model (transcription, JSON chat, text-to-speech)."""

import json
import logging
import re
from typing import List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from narrator.core.errors import ExternalApiError

logger = logging.getLogger(__name__)

WORDS_PER_SECOND = 2.5

ANALYSIS_SYSTEM = (
    "You are an expert video content analyzer. Analyze the video transcript and provide structured insights.\n"
    'Respond with JSON in this format: {"title": "enhanced_title", "keyPoints": ["point1", ...], '
    '"topics": ["topic1", ...], "sentiment": "positive|neutral|negative", '
    '"duration": estimated_original_duration_in_seconds}'
)

SUMMARY_SYSTEM = (
    "You are an expert content creator specializing in viral social media content. "
    "Create engaging summaries optimized for short-form video platforms."
)

STYLE_PROMPTS = {
    'informative': "Create a clear, factual summary focusing on key information and main points.",
    'entertaining': "Create an engaging, fun summary with personality and hooks to maintain viewer attention.",
    'educational': "Create a structured, learning-focused summary that teaches key concepts step by step.",
}


class _ModelReply(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VideoAnalysis(_ModelReply):
    title: str = ''
    key_points: List[str] = Field(default_factory=list)
    topics: List[str] = Field(default_factory=list)
    sentiment: str = 'neutral'
    duration: Optional[float] = None


class SummaryResult(_ModelReply):
    content: str
    key_highlights: List[str] = Field(default_factory=list)
    call_to_action: str = ''


def parse_json_reply(raw: str) -> dict:
    """Extract the JSON object from a model reply, tolerating code fences and chatter."""
    cleaned = (raw or '').strip()
    if cleaned.startswith('```'):
        cleaned = re.sub(r'^```(?:json)?', '', cleaned, flags=re.IGNORECASE).strip()
        cleaned = re.sub(r'```$', '', cleaned).strip()
    match = re.search(r'\{[\s\S]*\}', cleaned)
    if not match:
        raise ExternalApiError(f"Model reply is not JSON: {cleaned[:200]}")
    try:
        data = json.loads(match.group(0))
    except ValueError as exc:
        raise ExternalApiError(f"Model reply is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ExternalApiError("Model reply is not a JSON object")
    return data


class SpeechModelClient:
    def __init__(self, api_key: str, base_url: str = 'https://api.openai.com/v1',
                 chat_model: str = 'gpt-4o', transcription_model: str = 'whisper-1',
                 tts_model: str = 'tts-1-hd', timeout: float = 120,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.chat_model = chat_model
        self.transcription_model = transcription_model
        self.tts_model = tts_model
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings) -> 'SpeechModelClient':
        return cls(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            chat_model=settings.chat_model,
            transcription_model=settings.transcription_model,
            tts_model=settings.tts_model,
            timeout=settings.model_timeout_seconds,
        )

    async def _post(self, path: str, action: str, **kwargs) -> httpx.Response:
        if not self.api_key:
            raise ExternalApiError(f"Failed to {action}: OPENAI_API_KEY is not configured")
        headers = {'Authorization': f"Bearer {self.api_key}"}
        logger.debug("POST %s%s", self.base_url, path)
        try:
            async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout,
                                         transport=self._transport) as client:
                r = await client.post(path, headers=headers, **kwargs)
                r.raise_for_status()
                return r
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:500]
            raise ExternalApiError(f"Failed to {action}: HTTP {exc.response.status_code} {body}",
                                   exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            raise ExternalApiError(f"Failed to {action}: {type(exc).__name__}: {exc}") from exc

    async def _chat_json(self, system: str, user: str, action: str) -> dict:
        body = {
            'model': self.chat_model,
            'messages': [
                {'role': 'system', 'content': system},
                {'role': 'user', 'content': user},
            ],
            'response_format': {'type': 'json_object'},
        }
        r = await self._post('/chat/completions', action, json=body)
        try:
            content = r.json()['choices'][0]['message']['content']
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise ExternalApiError(f"Failed to {action}: unexpected response shape") from exc
        return parse_json_reply(content or '{}')

    async def transcribe(self, audio: bytes, filename: str = 'audio.mp3') -> str:
        r = await self._post(
            '/audio/transcriptions', 'transcribe audio',
            data={'model': self.transcription_model},
            files={'file': (filename, audio, 'audio/mpeg')},
        )
        try:
            text = r.json().get('text')
        except ValueError as exc:
            raise ExternalApiError("Failed to transcribe audio: response is not JSON") from exc
        if not text:
            raise ExternalApiError("Failed to transcribe audio: empty transcript")
        return text

    async def analyze(self, transcript: str, title: str) -> VideoAnalysis:
        data = await self._chat_json(
            ANALYSIS_SYSTEM, f"Video Title: {title}\n\nTranscript:\n{transcript}", 'analyze video content'
        )
        try:
            return VideoAnalysis.model_validate(data)
        except ValidationError as exc:
            raise ExternalApiError(f"Failed to analyze video content: {exc}") from exc

    async def summarize(self, transcript: str, style: str, target_duration: int,
                        analysis: VideoAnalysis) -> SummaryResult:
        prompt = (
            f"Based on this video analysis and transcript, create a {style} summary for a "
            f"{target_duration}-second social media video.\n\n"
            f"Video Analysis: {analysis.model_dump_json(by_alias=True)}\n"
            f"Transcript: {transcript}\n\n"
            f"Style: {STYLE_PROMPTS.get(style, STYLE_PROMPTS['informative'])}\n\n"
            f"Target Duration: {target_duration} seconds\n"
            f"Estimated words: {int(target_duration * WORDS_PER_SECOND)} words (aim for natural speech pace)\n\n"
            'Respond with JSON in this format: {"content": "the_summary_text_optimized_for_voiceover", '
            '"keyHighlights": ["highlight1", "highlight2", "highlight3"], "callToAction": "engaging_call_to_action"}'
        )
        data = await self._chat_json(SUMMARY_SYSTEM, prompt, 'generate summary')
        try:
            result = SummaryResult.model_validate(data)
        except ValidationError as exc:
            raise ExternalApiError(f"Failed to generate summary: {exc}") from exc
        if not result.content.strip():
            raise ExternalApiError("Failed to generate summary: empty content")
        return result

    async def synthesize(self, text: str, voice: str, speed: str) -> bytes:
        body = {'model': self.tts_model, 'voice': voice, 'input': text, 'speed': float(speed)}
        r = await self._post('/audio/speech', 'generate speech', json=body)
        if not r.content:
            raise ExternalApiError("Failed to generate speech: empty audio")
        return r.content
