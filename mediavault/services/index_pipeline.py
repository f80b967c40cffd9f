"""Per-file indexing pipeline"""

from pathlib import Path
from typing import Callable, Optional

from ..config import Settings, settings
from ..errors import IndexingError
from ..models import Watchable
from .filename_parser import parse_filename
from .log_service import log_service
from .metadata_service import MetadataResolver, MovieJob, ShowJob
from .probe_service import MediaProber
from .progress import (
    GATHERING_INFORMATION,
    GENERATING_STREAM,
    GENERATING_THUMBNAILS,
    IMPORTING_PLAYLIST,
    LOOKING_UP,
)
from .thumbnail_service import ThumbnailGenerator
from .transcode_service import TranscodePipeline

ProgressReport = Callable[[str, float], None]


def _ignore_progress(stage: str, percentage: float):
    pass


class IndexPipeline:
    """probe -> transcode -> thumbnails -> metadata lookup -> persist"""

    def __init__(
        self,
        prober: MediaProber,
        transcoder: TranscodePipeline,
        thumbnails: ThumbnailGenerator,
        resolver: MetadataResolver,
        config: Settings = settings,
    ):
        self.prober = prober
        self.transcoder = transcoder
        self.thumbnails = thumbnails
        self.resolver = resolver
        self.config = config

    async def index_file(
        self, filepath, on_progress: Optional[ProgressReport] = None
    ) -> Watchable:
        report = on_progress or _ignore_progress
        filepath = str(filepath)
        log_service.info(f"Indexing {filepath}")

        try:
            report(GATHERING_INFORMATION, 0)
            if not Path(filepath).is_file():
                raise IndexingError(f"File not found: {filepath}")

            parsed = parse_filename(filepath)
            probe = await self.prober.probe(filepath)
            report(GATHERING_INFORMATION, 100)

            def transcode_progress(percentage: float):
                if percentage < 100:
                    report(GENERATING_STREAM, percentage)
                else:
                    report(IMPORTING_PLAYLIST, 0)

            stream = await self.transcoder.transcode(
                filepath,
                self.config.QUALITY_LEVELS,
                on_progress=transcode_progress,
                probe=probe,
            )
            report(IMPORTING_PLAYLIST, 100)

            if self.config.GENERATE_THUMBNAILS:
                await self.thumbnails.generate(
                    filepath,
                    self.config.THUMBNAIL_INTERVAL,
                    on_progress=lambda percentage: report(
                        GENERATING_THUMBNAILS, percentage
                    ),
                    duration=probe.duration,
                    stream=stream,
                )

            report(LOOKING_UP, 0)
            job_type = ShowJob if parsed.is_episode else MovieJob
            job = job_type(
                filepath=filepath,
                parsed=parsed,
                stream=stream,
                duration=probe.duration,
                quality=probe.quality,
            )
            watchable = await self.resolver.resolve(job)
            report(LOOKING_UP, 100)
        except IndexingError:
            raise
        except Exception as e:
            raise IndexingError(f"Error indexing {filepath}", e) from e

        log_service.info(f"Successfully indexed {filepath} as {watchable.kind} '{watchable.title}'")
        return watchable
