from pydantic import BaseModel, ConfigDict
from functools import lru_cache
import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    # Real API keys must come from environment variables (.env not committed).
    openai_api_key: str = os.getenv("OPENAI_API_KEY") or os.getenv("OPENAI_KEY") or ""
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    transcription_model: str = os.getenv("TRANSCRIPTION_MODEL", "whisper-1")
    chat_model: str = os.getenv("CHAT_MODEL", "gpt-4o")
    tts_model: str = os.getenv("TTS_MODEL", "tts-1-hd")
    model_timeout_seconds: float = float(os.getenv("MODEL_TIMEOUT_SECONDS", "120"))

    store_backend: str = os.getenv("STORE_BACKEND", "sql")  # sql|memory
    database_url: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./narrator.db")
    app_env: str = os.getenv("APP_ENV", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    temp_dir: str = os.getenv("TEMP_DIR", "temp")
    max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(2 * 1024 * 1024 * 1024)))  # 2GB

    pipeline_workers: int = int(os.getenv("PIPELINE_WORKERS", "2"))
    render_video: bool = _flag("RENDER_VIDEO")
    cleanup_delay_hours: float = float(os.getenv("CLEANUP_DELAY_HOURS", "24"))
    temp_ttl_hours: float = float(os.getenv("TEMP_TTL_HOURS", "24"))
    record_ttl_hours: float = float(os.getenv("RECORD_TTL_HOURS", "0"))  # 0 keeps records forever
    reap_interval_seconds: float = float(os.getenv("REAP_INTERVAL_SECONDS", "3600"))

    ytdlp_bin: str = os.getenv("YTDLP_BIN", "yt-dlp")
    ffmpeg_bin: str = os.getenv("FFMPEG_BIN", "ffmpeg")
    ffprobe_bin: str = os.getenv("FFPROBE_BIN", "ffprobe")

    model_config = ConfigDict(arbitrary_types_allowed=True)


@lru_cache
def get_settings() -> Settings:
    return Settings()
