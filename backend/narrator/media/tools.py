"""Async wrappers around the yt-dlp / ffprobe / ffmpeg command-line tools."""

import asyncio
import json
import logging
import os
from typing import Dict, List, Tuple

from narrator.core.errors import ExternalToolError

logger = logging.getLogger(__name__)


async def run_tool(tool: str, args: List[str]) -> Tuple[str, str]:
    """Run ``tool args...`` to completion; returns (stdout, stderr).

    Raises ExternalToolError if the binary is missing or exits nonzero.
    """
    logger.debug("exec %s %s", tool, " ".join(args))
    try:
        proc = await asyncio.create_subprocess_exec(
            tool, *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ExternalToolError(os.path.basename(tool), f"could not start ({exc})") from exc
    out, err = await proc.communicate()
    stdout = out.decode('utf-8', errors='replace')
    stderr = err.decode('utf-8', errors='replace')
    if proc.returncode != 0:
        raise ExternalToolError(os.path.basename(tool), f"exit code {proc.returncode}", proc.returncode, stderr)
    return stdout, stderr


class MediaTools:
    def __init__(self, ytdlp_bin: str = 'yt-dlp', ffmpeg_bin: str = 'ffmpeg', ffprobe_bin: str = 'ffprobe'):
        self.ytdlp_bin = ytdlp_bin
        self.ffmpeg_bin = ffmpeg_bin
        self.ffprobe_bin = ffprobe_bin

    @classmethod
    def from_settings(cls, settings) -> 'MediaTools':
        return cls(settings.ytdlp_bin, settings.ffmpeg_bin, settings.ffprobe_bin)

    async def download(self, url: str, out_stem: str) -> None:
        """Fetch ``url`` producing <stem>.info.json, a thumbnail and <stem>.mp3."""
        await run_tool(self.ytdlp_bin, [
            '--no-playlist',
            '--write-info-json',
            '--write-thumbnail',
            '--extract-audio',
            '--audio-format', 'mp3',
            '--audio-quality', '0',
            '--output', f"{out_stem}.%(ext)s",
            url,
        ])

    async def probe(self, path: str) -> Dict:
        stdout, _ = await run_tool(self.ffprobe_bin, [
            '-v', 'quiet',
            '-print_format', 'json',
            '-show_format',
            '-show_streams',
            path,
        ])
        try:
            fmt = json.loads(stdout).get('format') or {}
        except ValueError as exc:
            raise ExternalToolError('ffprobe', f"unparsable output ({exc})") from exc
        try:
            duration = float(fmt.get('duration'))
        except (TypeError, ValueError):
            duration = 0.0
        title = (fmt.get('tags') or {}).get('title') or os.path.basename(path)
        return {'duration': duration, 'title': title}

    async def extract_audio(self, src: str, dest: str) -> str:
        await run_tool(self.ffmpeg_bin, [
            '-i', src,
            '-vn',
            '-acodec', 'mp3',
            '-ab', '192k',
            '-ar', '44100',
            '-y',
            dest,
        ])
        return dest

    async def mux(self, video_path: str, audio_path: str, seconds: int, dest: str) -> str:
        """Lay ``audio_path`` over the picture of ``video_path``, trimmed to ``seconds``."""
        await run_tool(self.ffmpeg_bin, [
            '-i', video_path,
            '-i', audio_path,
            '-t', str(seconds),
            '-c:v', 'libx264',
            '-c:a', 'aac',
            '-map', '0:v:0',
            '-map', '1:a:0',
            '-shortest',
            '-y',
            dest,
        ])
        return dest
