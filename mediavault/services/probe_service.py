"""Media prober"""

from pathlib import Path
from typing import Optional

from ..errors import ProbeError, ToolkitError
from ..schemas.probe import ProbeResult
from .ffmpeg import run_ffprobe
from .log_service import log_service


class MediaProber:
    """Wraps ffprobe and returns structured container/stream metadata"""

    def __init__(self, binary: Optional[str] = None):
        self.binary = binary

    async def probe(self, filepath) -> ProbeResult:
        filepath = str(Path(filepath))
        try:
            data = await run_ffprobe(filepath, binary=self.binary)
        except ToolkitError as e:
            log_service.error(f"Failed to probe {filepath}: {e}")
            raise ProbeError(f"Failed to probe {filepath}", e) from e

        result = ProbeResult.from_ffprobe(filepath, data)
        if not result.streams:
            raise ProbeError(f"No media streams found in {filepath}")

        log_service.debug(
            f"Probed {filepath}: duration={result.duration:.1f}s "
            f"video={len(result.video_streams)} audio={len(result.audio_streams)} "
            f"subtitles={len(result.subtitle_streams)}"
        )
        return result
