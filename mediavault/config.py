"""Configuration management"""

import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class QualityLevel(BaseModel):
    """One rung of the adaptive-bitrate ladder"""

    height: int = Field(..., ge=1)
    bitrate: int = Field(..., ge=1)  # video, kbit/s
    audio_bitrate: int = Field(128, ge=1)  # kbit/s
    crf: int = Field(..., ge=0, le=51)

    @property
    def name(self) -> str:
        return f"{self.height}p"


DEFAULT_QUALITY_LEVELS = [
    QualityLevel(height=480, bitrate=1500, audio_bitrate=96, crf=30),
    QualityLevel(height=720, bitrate=3000, audio_bitrate=128, crf=25),
    QualityLevel(height=1080, bitrate=4500, audio_bitrate=192, crf=23),
]


class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./data/mediavault.db"

    # Directories
    BASE_DIR: Path = Path(__file__).parent.parent
    DATA_DIR: Path = BASE_DIR / "data"
    LOGS_DIR: Path = DATA_DIR / "logs"
    SAVE_DIR: Path = DATA_DIR / "media"
    TEMP_DIR: Optional[Path] = None  # system temp directory when unset

    # TMDB
    TMDB_API_KEY: Optional[str] = None
    TMDB_BASE_URL: str = "https://api.themoviedb.org/3"

    # Media toolkit
    FFMPEG_BIN: str = "ffmpeg"
    FFPROBE_BIN: str = "ffprobe"
    FFMPEG_THREADS: Optional[int] = None
    HARDWARE_ACCELERATION: bool = False

    # Auto indexing
    WATCH_ENABLED: bool = False
    WATCH_DIRECTORY: Optional[Path] = None
    WATCH_POLLING: bool = True
    IGNORED_SUFFIXES: List[str] = [".part", ".!qB", ".!qb", ".!ut", ".crdownload"]
    DEBOUNCE_SECONDS: float = 10.0
    REMOVE_AFTER_INDEXING: bool = False
    RETRY_FAILED: bool = False

    # Media output
    GENERATE_THUMBNAILS: bool = True
    THUMBNAIL_INTERVAL: int = 10
    THUMBNAIL_WIDTH: int = 150
    QUALITY_LEVELS: List[QualityLevel] = DEFAULT_QUALITY_LEVELS
    SEGMENT_SECONDS: int = 5
    VIDEO_CODEC: str = "libx264"
    VIDEO_CODEC_NAME: str = "h264"  # ffprobe codec_name produced by VIDEO_CODEC
    AUDIO_CODEC: str = "aac"
    AUDIO_CODEC_NAME: str = "aac"

    class Config:
        env_file = ".env"
        case_sensitive = True

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Ensure directories exist
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)
        self.LOGS_DIR.mkdir(parents=True, exist_ok=True)

    @property
    def ffmpeg_threads(self) -> int:
        """Thread cap for ffmpeg, leaving one core to the rest of the host"""
        if self.FFMPEG_THREADS:
            return self.FFMPEG_THREADS
        return max(1, (os.cpu_count() or 2) - 1)

    def is_ignored(self, path) -> bool:
        """Partial-download sentinels and other files never worth indexing"""
        name = Path(path).name
        return any(name.endswith(suffix) for suffix in self.IGNORED_SUFFIXES)


# Global settings instance
settings = Settings()
