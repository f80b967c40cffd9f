"""Preview thumbnail generation"""

import asyncio
from pathlib import Path
from typing import Callable, List, Optional

from ..config import Settings, settings
from ..errors import ThumbnailError, ToolkitError
from ..models import Image, Stream, Thumbnail
from .catalog_service import CatalogRepository
from .ffmpeg import run_ffmpeg
from .log_service import log_service
from .storage import MediaStorage

FRAME_PATTERN = "%04d.jpg"


def thumbnail_ranges(frame_count: int, interval: int) -> List[tuple]:
    """[from, to] seconds covered by each frame"""
    return [(i * interval, (i + 1) * interval - 1) for i in range(frame_count)]


class ThumbnailGenerator:
    """Extracts one small frame every `interval` seconds as stored images"""

    def __init__(
        self,
        db,
        storage: Optional[MediaStorage] = None,
        runner=run_ffmpeg,
        config: Settings = settings,
    ):
        self.repository = CatalogRepository(db)
        self.storage = storage or MediaStorage()
        self.runner = runner
        self.config = config

    def build_command(self, source: str, workdir: Path, interval: int) -> List[str]:
        return [
            "-hide_banner",
            "-y",
            "-i",
            str(source),
            "-threads",
            str(self.config.ffmpeg_threads),
            "-progress",
            "pipe:1",
            "-nostats",
            "-vf",
            f"fps=1/{interval},scale={self.config.THUMBNAIL_WIDTH}:-2",
            str(workdir / FRAME_PATTERN),
        ]

    async def generate(
        self,
        source,
        interval: Optional[int] = None,
        on_progress: Optional[Callable[[float], None]] = None,
        duration: float = 0,
        stream: Optional[Stream] = None,
    ) -> List[Thumbnail]:
        interval = interval or self.config.THUMBNAIL_INTERVAL
        source = str(source)
        log_service.tool(f"Generating thumbnails for {source} every {interval}s")

        async with self.storage.scratch_directory() as workdir:
            try:
                await self.runner(
                    self.build_command(source, workdir, interval),
                    duration=duration,
                    on_progress=on_progress,
                )
                frames = sorted(p.name for p in workdir.glob("*.jpg"))
                # ffmpeg emits a frame at time 0 before the first full interval
                frames = frames[1:]

                thumbnails = []
                copies = []
                for (time_from, time_to), frame in zip(
                    thumbnail_ranges(len(frames), interval), frames
                ):
                    image = Image(mime_type="image/jpeg")
                    thumbnails.append(
                        Thumbnail(
                            time_from=time_from,
                            time_to=time_to,
                            image=image,
                            stream_id=stream.id if stream is not None else None,
                        )
                    )
                    copies.append(self.storage.copy("image", workdir / frame, image.filename))
                await asyncio.gather(*copies)
            except (ToolkitError, OSError) as e:
                log_service.error(f"Thumbnail generation failed for {source}: {e}")
                raise ThumbnailError(f"Error generating thumbnails for {source}", e) from e

        if thumbnails:
            await self.repository.save(*thumbnails)
        if on_progress:
            on_progress(100)
        log_service.tool(f"Successfully generated {len(thumbnails)} thumbnails for {source}")
        return thumbnails
