"""Business logic services"""

from .catalog_service import CatalogRepository
from .image_service import ImageService
from .index_pipeline import IndexPipeline
from .indexer import Indexer, QueueItem
from .log_service import log_service
from .metadata_service import MetadataResolver, MovieJob, ShowJob
from .probe_service import MediaProber
from .progress import ProgressStream
from .scheduler_service import SchedulerService
from .storage import MediaStorage
from .thumbnail_service import ThumbnailGenerator
from .tmdb_service import TMDBService
from .transcode_service import TranscodePipeline
from .watcher import DirectoryWatcher

__all__ = [
    "CatalogRepository",
    "DirectoryWatcher",
    "ImageService",
    "IndexPipeline",
    "Indexer",
    "MediaProber",
    "MediaStorage",
    "MetadataResolver",
    "MovieJob",
    "ProgressStream",
    "QueueItem",
    "SchedulerService",
    "ShowJob",
    "TMDBService",
    "ThumbnailGenerator",
    "TranscodePipeline",
    "log_service",
]
