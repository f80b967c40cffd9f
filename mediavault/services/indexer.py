"""Ingestion queue"""

import asyncio
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Set

import httpx

from ..config import Settings, settings
from ..database import AsyncSessionLocal, new_id, utcnow
from ..models import Watchable
from ..schemas.queue import QueueItemResponse
from .catalog_service import CatalogRepository
from .ffmpeg import run_ffmpeg
from .image_service import ImageService
from .index_pipeline import IndexPipeline, ProgressReport
from .log_service import log_service
from .metadata_service import MetadataResolver
from .probe_service import MediaProber
from .progress import ProgressStream
from .scheduler_service import SchedulerService
from .storage import MediaStorage, remove_file
from .thumbnail_service import ThumbnailGenerator
from .tmdb_service import TMDBService
from .transcode_service import TranscodePipeline
from .watcher import DirectoryWatcher, iter_files

_STOP = object()


@dataclass
class QueueItem:
    """A file waiting for (or undergoing) indexing"""

    filepath: str
    id: str = field(default_factory=new_id)
    action: Optional[str] = None
    percentage: float = 0
    running: bool = False
    progress: ProgressStream = field(default_factory=ProgressStream)

    def report(self, stage: str, percentage: float):
        log_service.debug(f"[Index-Progress] {self.filepath} {stage}: {percentage:.2f}")
        self.action = stage
        self.percentage = percentage
        self.progress.publish(stage, percentage)


def format_error(error: BaseException) -> str:
    """IndexLog error text: timestamp, message and stack"""
    stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return f"Time: {utcnow().isoformat()}\n{error}\n\nStack:\n{stack}"


class Indexer:
    """Serializes indexing jobs; at most one runs at a time.

    All queue state (items, the running slot, pending debounce timers) is
    owned by a single actor task and only changed through its inbox, so
    callers on other tasks or threads never race each other.
    """

    def __init__(
        self,
        session_factory=None,
        tmdb: Optional[TMDBService] = None,
        storage: Optional[MediaStorage] = None,
        prober: Optional[MediaProber] = None,
        runner=run_ffmpeg,
        http_client: Optional[httpx.AsyncClient] = None,
        pipeline_factory: Optional[Callable[[object], IndexPipeline]] = None,
        scheduler: Optional[SchedulerService] = None,
        config: Settings = settings,
    ):
        self.config = config
        self.session_factory = session_factory or AsyncSessionLocal
        if tmdb is None and config.TMDB_API_KEY:
            tmdb = TMDBService(config.TMDB_API_KEY, config.TMDB_BASE_URL)
        self.tmdb = tmdb
        self.storage = storage or MediaStorage(config.SAVE_DIR, config.TEMP_DIR)
        self.prober = prober or MediaProber(config.FFPROBE_BIN)
        self.runner = runner
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=30.0, follow_redirects=True)
        self.pipeline_factory = pipeline_factory or self.create_pipeline
        self.scheduler = scheduler or SchedulerService()
        self.watcher: Optional[DirectoryWatcher] = None

        self.queue: List[QueueItem] = []
        self._running: Optional[QueueItem] = None
        self._job: Optional[asyncio.Task] = None
        self._pending: Set[str] = set()
        self._idle_waiters: List[asyncio.Future] = []
        self._inbox: asyncio.Queue = asyncio.Queue()
        self._actor: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stopping = False

    def create_pipeline(self, db) -> IndexPipeline:
        """Pipeline whose components share the job's database session"""
        return IndexPipeline(
            prober=self.prober,
            transcoder=TranscodePipeline(db, self.storage, self.prober, self.runner, self.config),
            thumbnails=ThumbnailGenerator(db, self.storage, self.runner, self.config),
            resolver=MetadataResolver(
                db, self.tmdb, ImageService(db, self.storage, client=self.http_client)
            ),
            config=self.config,
        )

    # Lifecycle

    async def start(self):
        if self._actor is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._stopping = False

        async with self.session_factory() as db:
            await CatalogRepository(db).mark_interrupted_logs()

        await self.scheduler.start()
        self._actor = asyncio.create_task(self._run())
        log_service.info("Indexer started")

        if self.config.WATCH_ENABLED and self.config.WATCH_DIRECTORY:
            await self.watch(self.config.WATCH_DIRECTORY)

    async def stop(self):
        """Stop watching and wait for the running job; queued items are dropped"""
        if self._actor is None:
            return
        self._stopping = True

        if self.watcher is not None:
            await asyncio.to_thread(self.watcher.stop)
            self.watcher = None
        await self.scheduler.stop()

        if self._job is not None:
            await asyncio.gather(self._job, return_exceptions=True)

        self._inbox.put_nowait(_STOP)
        await self._actor
        self._actor = None

        if self._owns_http_client:
            await self.http_client.aclose()
        if self.tmdb is not None:
            await self.tmdb.close()
        log_service.info("Indexer stopped")

    # Public operations; each posts a message to the actor

    async def watch(self, directory):
        """Enqueue every file below `directory`, then follow changes to it"""
        directory = Path(directory).resolve()
        files = await asyncio.to_thread(lambda: list(iter_files(directory, self.config)))
        log_service.info(f"Found {len(files)} files in {directory}")
        for path in files:
            self.enqueue(str(path))

        self.watcher = DirectoryWatcher(directory, self.notify, config=self.config)
        await asyncio.to_thread(self.watcher.start)

    def notify(self, path: str):
        """Thread-safe entry point for filesystem events"""
        self._loop.call_soon_threadsafe(self.debounce, path)

    def debounce(self, path: str):
        self._inbox.put_nowait(("debounce", str(path)))

    def enqueue(self, path: str):
        self._inbox.put_nowait(("enqueue", str(path)))

    def run_next(self):
        self._inbox.put_nowait(("run_next", None))

    async def wait_idle(self):
        """Resolve once nothing is queued, running or waiting on a debounce timer"""
        future = asyncio.get_running_loop().create_future()
        self._inbox.put_nowait(("wait_idle", future))
        await future

    def snapshot(self) -> List[QueueItemResponse]:
        return [QueueItemResponse.model_validate(item) for item in self.queue]

    def get_item(self, item_id: str) -> Optional[QueueItem]:
        for item in self.queue:
            if item.id == item_id:
                return item
        return None

    async def index_file(self, filepath, on_progress: Optional[ProgressReport] = None) -> Watchable:
        async with self.session_factory() as db:
            return await self.pipeline_factory(db).index_file(filepath, on_progress)

    # Actor

    async def _run(self):
        while True:
            message = await self._inbox.get()
            if message is _STOP:
                break
            kind, payload = message

            if kind == "debounce":
                self._arm(payload)
            elif kind == "fire":
                self._pending.discard(payload)
                self._append(payload)
            elif kind == "enqueue":
                self._append(payload)
            elif kind == "done":
                self._finish(payload)
            elif kind == "wait_idle":
                self._idle_waiters.append(payload)

            self._run_next()
            self._notify_idle()

        for future in self._idle_waiters:
            if not future.done():
                future.cancel()
        self._idle_waiters = []

    def _arm(self, path: str):
        if self._stopping:
            return
        self._pending.add(path)
        self.scheduler.debounce(path, self.config.DEBOUNCE_SECONDS, self._fire, path)

    async def _fire(self, path: str):
        log_service.debug(f"Debounce elapsed for {path}")
        self._inbox.put_nowait(("fire", path))

    def _append(self, path: str):
        if self._stopping:
            return
        if any(item.filepath == path for item in self.queue):
            return
        self.queue.append(QueueItem(filepath=path))
        log_service.debug(f"Queued {path} ({len(self.queue)} in queue)")

    def _finish(self, item_id: str):
        self.queue = [item for item in self.queue if item.id != item_id]
        if self._running is not None and self._running.id == item_id:
            self._running = None
            self._job = None

    def _run_next(self):
        # Check and set run without a suspension point in between
        if self._running is not None or self._stopping or not self.queue:
            return
        item = self.queue[0]
        item.running = True
        self._running = item
        self._job = asyncio.create_task(self._process(item))

    def _notify_idle(self):
        if self.queue or self._running is not None or self._pending:
            return
        for future in self._idle_waiters:
            if not future.done():
                future.set_result(None)
        self._idle_waiters = []

    # Jobs

    async def _process(self, item: QueueItem):
        try:
            await self.index_job(item)
        except Exception as e:
            # Last resort: the queue must keep draining
            log_service.error(f"Unexpected error while indexing {item.filepath}: {e}")
        finally:
            item.running = False
            item.progress.close()
            self._inbox.put_nowait(("done", item.id))

    async def index_job(self, item: QueueItem):
        filepath = item.filepath
        async with self.session_factory() as db:
            repository = CatalogRepository(db)
            index_log = await repository.get_index_log(filepath)
            if index_log is not None:
                if not (self.config.RETRY_FAILED and index_log.failed):
                    log_service.debug(f"{filepath} already indexed, skipping")
                    return
                log_service.info(f"Retrying previously failed {filepath}")
                index_log.failed = False
                index_log.error = None
                index_log.indexing = True
                await repository.save(index_log)
            else:
                log_service.debug(f"{filepath} picked up, indexing")
                index_log = await repository.create_index_log(filepath)

            try:
                watchable = await self.index_file(filepath, item.report)
            except Exception as e:
                log_service.error(f"Error indexing {filepath}: {e}")
                index_log.indexing = False
                index_log.failed = True
                index_log.error = format_error(e)
                index_log.indexed_on = utcnow()
                await repository.save(index_log)
                return

            index_log.indexing = False
            index_log.watchable_id = watchable.id
            index_log.indexed_on = utcnow()
            await repository.save(index_log)

        if self.config.REMOVE_AFTER_INDEXING:
            log_service.info(f"Removing {filepath}")
            await remove_file(filepath)
